"""Span helpers for erasure and export operations.

Only identifiers (subject, job, entity type, collection, prefix) are ever
written as span attributes. Record contents must not reach the trace backend.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

P = ParamSpec("P")
R = TypeVar("R")

AttributeValue = str | int | float | bool

SPAN_ARGUMENTS = frozenset(
    {"subject_id", "job_id", "role", "entity_type", "collection", "prefix"}
)

_tracer = trace.get_tracer("lifecycle")


def _finish(span: trace.Span, error: BaseException | None) -> None:
    if error is None:
        span.set_status(Status(StatusCode.OK))
    else:
        span.set_status(Status(StatusCode.ERROR, type(error).__name__))
        span.record_exception(error)


def traced(span_name: str) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Run a coroutine function inside a span named ``span_name``.

    Keyword arguments listed in SPAN_ARGUMENTS become ``arg.<name>`` attributes.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with _tracer.start_as_current_span(
                span_name, record_exception=False, set_status_on_exception=False
            ) as span:
                for key in SPAN_ARGUMENTS.intersection(kwargs):
                    span.set_attribute(f"arg.{key}", str(kwargs[key]))
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    _finish(span, exc)
                    raise
                _finish(span, None)
                return result

        return wrapper

    return decorator


def add_span_attributes(**attributes: AttributeValue) -> None:
    """Annotate the current span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attributes(attributes)


class TracedOperation:
    """Async context manager giving a block its own current span.

        async with TracedOperation("erasure.step", {"entity_type": "posts"}) as op:
            ...
            op.set_attribute("records_affected", 3)
    """

    def __init__(self, name: str, attributes: dict[str, AttributeValue] | None = None) -> None:
        self.name = name
        self.attributes = attributes or {}
        self.span: trace.Span | None = None
        self._scope: Any = None

    def set_attribute(self, key: str, value: AttributeValue) -> None:
        if self.span is not None:
            self.span.set_attribute(key, value)

    async def __aenter__(self) -> "TracedOperation":
        self._scope = _tracer.start_as_current_span(
            self.name,
            attributes=self.attributes,
            record_exception=False,
            set_status_on_exception=False,
        )
        self.span = self._scope.__enter__()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        if self.span is None:
            return
        _finish(self.span, exc_val)
        self._scope.__exit__(exc_type, exc_val, exc_tb)
