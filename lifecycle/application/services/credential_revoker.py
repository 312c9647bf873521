"""Credential revocation: the last step of every successful erasure."""

from lifecycle.application.interfaces.services import IIdentityProvider
from lifecycle.application.services.retry import RetryPolicy
from lifecycle.domain.exceptions import AuthRevocationError, StoreError
from lifecycle.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class CredentialRevoker:
    """Revokes the subject's identity once all data has been erased.

    Any final failure (after retries) becomes AuthRevocationError: the data is
    gone but the credential may still be live, which needs an operator.
    """

    def __init__(self, identity_provider: IIdentityProvider, retry: RetryPolicy) -> None:
        self.identity_provider = identity_provider
        self.retry = retry

    async def revoke(self, subject_id: str) -> None:
        """Revoke the subject's identity.

        Raises:
            AuthRevocationError: If the identity provider keeps failing.
        """
        try:
            await self.retry.run(
                f"revoke_identity:{subject_id}",
                lambda: self.identity_provider.revoke_identity(subject_id),
            )
        except StoreError as e:
            raise AuthRevocationError(subject_id, reason=e.message) from e
        logger.info("Identity revoked for subject %s", subject_id)
