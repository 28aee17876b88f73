"""
Verification Flows

Vérification d'email et reset de mot de passe: même forme d'enregistrement
que les refresh credentials, purpose dédié, TTL court (minutes), hors
famille, usage unique par lookup puis suppression.
"""

from typing import Awaitable, Callable, Optional

from ..logging import StructuredLogger
from ..rotation import CredentialError, IRotationEngine, IssuedCredential
from ..store import CredentialPurpose


# (principal_id, raw_secret, purpose) -> envoi du lien (email...)
Deliverer = Callable[[str, str, CredentialPurpose], Awaitable[None]]


class VerificationFailed(Exception):
    """
    Lien de vérification refusé.

    Message public unique: inconnu, expiré et déjà utilisé sont indistinguables.
    """

    PUBLIC_MESSAGE = "Verification link is invalid or has expired"

    def __init__(self, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(self.PUBLIC_MESSAGE)


class VerificationFlows:
    """
    Émission et consommation des credentials EMAIL_VERIFY / RESET_PASSWORD.

    Le transport du lien est délégué au `deliverer`. Un échec d'envoi est
    journalisé sans faire échouer l'émission: l'utilisateur peut redemander
    un lien.

    Example:
        flows = VerificationFlows(engine, deliverer=send_verification_email)
        await flows.issue_email_verification("u1")
        principal_id = await flows.redeem_email_verification(raw_secret)
    """

    def __init__(
        self,
        engine: IRotationEngine,
        deliverer: Optional[Deliverer] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        self._engine = engine
        self._deliverer = deliverer
        self._logger = logger or StructuredLogger("verification-flows")

    async def issue_email_verification(self, principal_id: str) -> IssuedCredential:
        return await self._issue(principal_id, CredentialPurpose.EMAIL_VERIFY)

    async def redeem_email_verification(self, raw_secret: str) -> str:
        """
        Returns:
            principal_id dont l'email est vérifié

        Raises:
            VerificationFailed: Lien inconnu, expiré ou déjà utilisé
        """
        record = await self._redeem(raw_secret, CredentialPurpose.EMAIL_VERIFY)
        return record.principal_id

    async def issue_password_reset(self, principal_id: str) -> IssuedCredential:
        return await self._issue(principal_id, CredentialPurpose.RESET_PASSWORD)

    async def redeem_password_reset(self, raw_secret: str, revoke_sessions: bool = True) -> str:
        """
        Consomme un lien de reset.

        Args:
            raw_secret: Secret reçu dans le lien
            revoke_sessions: Révoquer toutes les sessions du principal

        Returns:
            principal_id autorisé à changer son mot de passe

        Raises:
            VerificationFailed: Lien inconnu, expiré ou déjà utilisé
        """
        record = await self._redeem(raw_secret, CredentialPurpose.RESET_PASSWORD)

        if revoke_sessions:
            await self._engine.revoke_all_for_principal(record.principal_id)

        return record.principal_id

    async def _issue(self, principal_id: str, purpose: CredentialPurpose) -> IssuedCredential:
        issued = await self._engine.create(principal_id, purpose=purpose)

        if self._deliverer is not None:
            try:
                await self._deliverer(principal_id, issued.raw_secret, purpose)
            except Exception as e:
                self._logger.error(
                    "verification_delivery_failed",
                    principal_id=principal_id,
                    purpose=purpose.value,
                    error=type(e).__name__,
                )

        return issued

    async def _redeem(self, raw_secret: str, purpose: CredentialPurpose):
        try:
            return await self._engine.consume(raw_secret, purpose)
        except CredentialError as e:
            self._logger.info(
                "verification_rejected",
                purpose=purpose.value,
                reason=type(e).__name__,
            )
            raise VerificationFailed(e) from e
