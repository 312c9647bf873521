"""Thin Firestore REST API client (no firebase-admin).

Uses google-auth for service account tokens and Firestore REST v1.
All HTTP calls use httpx.AsyncClient so they do not block the event loop.
HTTP and transport failures are mapped to the store error taxonomy here:
timeouts, connection errors and 429/5xx become TransientStoreError, any other
non-2xx status becomes FirestoreRequestError.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import AsyncIterator
from typing import Any

import httpx

from lifecycle.core.constants import FIRESTORE_QUERY_PAGE_SIZE
from lifecycle.domain.exceptions import TransientStoreError
from lifecycle.infrastructure.exceptions import FirestoreRequestError
from lifecycle.infrastructure.firebase._rest_encoding import encode_fields, encode_value

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_IDENTITY_SCOPE = "https://www.googleapis.com/auth/identitytoolkit"
_BASE = "https://firestore.googleapis.com/v1"

TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

_SIMPLE_FIELD = re.compile(r"^[A-Za-z_][A-Za-z_0-9]*$")


def _get_credentials(key_dict: dict):
    """Return google.oauth2.service_account.Credentials for Firestore and Identity Toolkit."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[_FIRESTORE_SCOPE, _IDENTITY_SCOPE]
    )


def _get_access_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


def field_path(name: str) -> str:
    """Quote a field name for updateMask / fieldFilter when it is not a simple identifier."""
    if _SIMPLE_FIELD.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def _error_reason(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", ""))[:200]
    return resp.text[:200]


async def send_request(
    http: httpx.AsyncClient,
    operation: str,
    method: str,
    url: str,
    *,
    body: dict | None = None,
    access_token: str | None = None,
) -> Any:
    """Perform a Google REST call and map failures. 404 returns None.

    Raises:
        TransientStoreError: Timeout, transport error, or HTTP 429/500/502/503/504.
        FirestoreRequestError: Any other non-2xx response.
    """
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    try:
        resp = await http.request(method, url, headers=headers, json=body)
    except httpx.TimeoutException:
        raise TransientStoreError(operation, "timeout") from None
    except httpx.TransportError as e:
        raise TransientStoreError(operation, type(e).__name__) from e

    if resp.status_code == 404:
        return None
    if resp.status_code in TRANSIENT_STATUS_CODES:
        raise TransientStoreError(operation, f"HTTP {resp.status_code}")
    if resp.status_code >= 400:
        raise FirestoreRequestError(operation, resp.status_code, _error_reason(resp))
    if not resp.content:
        return {}
    return resp.json()


class FirestoreRESTClient:
    """Lightweight Firestore client using the REST API (no firebase-admin)."""

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.project_id = project_id
        self._credentials = credentials
        self._database = f"projects/{project_id}/databases/(default)"
        self._prefix = f"{self._database}/documents"
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str | None:
        """Return a valid access token; refreshes in thread pool to avoid blocking.

        Returns None when no credentials are set (emulator, tests).
        """
        if self._credentials is None:
            return None
        return await asyncio.to_thread(_get_access_token, self._credentials)

    def document_name(self, collection: str, doc_id: str) -> str:
        return f"{self._prefix}/{collection}/{doc_id}"

    async def _call(
        self, operation: str, method: str, url: str, body: dict | None = None
    ) -> Any:
        return await send_request(
            self._http,
            operation,
            method,
            url,
            body=body,
            access_token=await self.get_token(),
        )

    async def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one raw document ({name, fields, ...}); None if missing."""
        url = f"{_BASE}/{self.document_name(collection, doc_id)}"
        return await self._call(f"get:{collection}", "GET", url)

    async def set_document(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or overwrite the document (PATCH with full replace)."""
        url = f"{_BASE}/{self.document_name(collection, doc_id)}"
        await self._call(f"set:{collection}", "PATCH", url, {"fields": encode_fields(data)})

    async def run_query(
        self,
        collection: str,
        field: str,
        value: Any,
        *,
        page_size: int = FIRESTORE_QUERY_PAGE_SIZE,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield every raw document where field == value, paging by document name."""
        url = f"{_BASE}/{self._prefix}:runQuery"
        last_name: str | None = None
        while True:
            structured: dict[str, Any] = {
                "from": [{"collectionId": collection}],
                "where": {
                    "fieldFilter": {
                        "field": {"fieldPath": field_path(field)},
                        "op": "EQUAL",
                        "value": encode_value(value),
                    }
                },
                "orderBy": [{"field": {"fieldPath": "__name__"}, "direction": "ASCENDING"}],
                "limit": page_size,
            }
            if last_name is not None:
                structured["startAt"] = {
                    "values": [{"referenceValue": last_name}],
                    "before": False,
                }
            resp = await self._call(
                f"query:{collection}", "POST", url, {"structuredQuery": structured}
            )
            items = resp if isinstance(resp, list) else []
            count = 0
            for item in items:
                doc = item.get("document")
                if not doc:
                    continue
                count += 1
                last_name = doc.get("name", "")
                yield doc
            if count < page_size:
                return

    async def batch_write(self, collection: str, writes: list[dict[str, Any]]) -> list[dict]:
        """Apply writes non-atomically via documents:batchWrite.

        Returns:
            One google.rpc.Status dict per write (empty dict = OK).
        """
        url = f"{_BASE}/{self._prefix}:batchWrite"
        resp = await self._call(f"write:{collection}", "POST", url, {"writes": writes})
        statuses = (resp or {}).get("status") or []
        return list(statuses) + [{}] * (len(writes) - len(statuses))

    def delete_write(self, collection: str, doc_id: str) -> dict[str, Any]:
        return {"delete": self.document_name(collection, doc_id)}

    def update_write(
        self, collection: str, doc_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        """Masked update that fails (instead of creating) when the document is gone."""
        return {
            "update": {
                "name": self.document_name(collection, doc_id),
                "fields": encode_fields(fields),
            },
            "updateMask": {"fieldPaths": [field_path(name) for name in fields]},
            "currentDocument": {"exists": True},
        }
