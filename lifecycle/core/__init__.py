"""Core: configuration, constants, lifespan wiring, and exception handlers."""

from lifecycle.core.config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
