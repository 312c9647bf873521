"""Service-account loading and the shared Firestore/Identity Toolkit client.

Credentials come from FIREBASE_SERVICE_ACCOUNT_KEY (inline JSON) or, failing
that, FIREBASE_SERVICE_ACCOUNT_PATH. One REST client is opened per engine and
closed with it.
"""

import json
import logging
from pathlib import Path
from typing import Any

from lifecycle.core.config import Settings
from lifecycle.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    _get_credentials,
)

logger = logging.getLogger(__name__)


def load_service_account(settings: Settings) -> dict[str, Any] | None:
    """Parse the configured service account, or None when none is configured.

    Raises:
        ValueError: Inline key is not JSON or lacks project_id.
    """
    if settings.firebase_service_account_key:
        raw = settings.firebase_service_account_key.get_secret_value()
        try:
            account = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    elif settings.firebase_service_account_path:
        path = Path(settings.firebase_service_account_path).expanduser()
        if not path.is_file():
            logger.warning("Service account file not found: %s", path)
            return None
        account = json.loads(path.read_text(encoding="utf-8"))
    else:
        return None

    if not account.get("project_id"):
        raise ValueError("Firebase service account JSON missing 'project_id'")
    return account


def init_firebase(settings: Settings) -> FirestoreRESTClient | None:
    """Open a REST client for the configured project; None if Firebase is not configured.

    Malformed credentials raise ValueError so a misconfigured deployment fails
    at startup rather than on its first erasure.
    """
    account = load_service_account(settings)
    if account is None:
        return None
    client = FirestoreRESTClient(
        account["project_id"],
        _get_credentials(account),
        timeout=settings.store_timeout_seconds,
    )
    logger.info("Firestore client opened for project %s", account["project_id"])
    return client


async def close_firebase(client: FirestoreRESTClient) -> None:
    await client.aclose()
    logger.info("Firestore client closed")
