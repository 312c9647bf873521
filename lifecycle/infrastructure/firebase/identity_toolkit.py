"""Firebase Authentication identity provider (implements IIdentityProvider).

Deletes the auth user through the Identity Toolkit REST API. A user that no
longer exists counts as already revoked.
"""

from __future__ import annotations

from lifecycle.infrastructure.exceptions import FirestoreRequestError, IdentityProviderError
from lifecycle.infrastructure.firebase._rest_client import FirestoreRESTClient, send_request

_IDENTITY_BASE = "https://identitytoolkit.googleapis.com/v1"
USER_NOT_FOUND = "USER_NOT_FOUND"


class FirebaseIdentityProvider:
    """Revokes identities with accounts:delete, sharing the Firestore client's auth."""

    def __init__(self, client: FirestoreRESTClient) -> None:
        self._client = client

    async def revoke_identity(self, subject_id: str) -> None:
        """Delete the auth user.

        Raises:
            TransientStoreError: Network failure or 429/5xx (retried by caller).
            IdentityProviderError: The deletion was rejected.
        """
        url = f"{_IDENTITY_BASE}/projects/{self._client.project_id}/accounts:delete"
        try:
            await send_request(
                self._client.http,
                "revoke_identity",
                "POST",
                url,
                body={"localId": subject_id},
                access_token=await self._client.get_token(),
            )
        except FirestoreRequestError as e:
            reason = str(e.details.get("reason", ""))
            if USER_NOT_FOUND in reason:
                return
            raise IdentityProviderError(subject_id, reason) from e
