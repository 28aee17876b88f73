"""
Session Facade Implementation

Séquences login / refresh / logout au-dessus du RotationEngine et de
l'AccessTokenIssuer.

Toutes les erreurs de credential sont ramenées à un unique résultat public
"ré-authentification requise". La distinction interne ne sert qu'aux logs.
Les pannes store (StoreUnavailable) remontent telles quelles.
"""

from typing import List, Optional

from ..access import AccessTokenError, IAccessIssuer
from ..logging import StructuredLogger, correlation_scope
from ..rotation import CredentialError, CredentialReused, IRotationEngine, IssuedCredential
from ..store import DeviceInfo, ExpiredCredentialSweeper
from .interfaces import ActiveSession, ISessionFacade, SessionState, SessionTokens


class ReauthenticationRequired(Exception):
    """
    Session rejetée: l'appelant doit se ré-authentifier.

    Le message est identique quelle que soit la cause (anti-énumération).
    La cause interne est conservée dans `cause`.
    """

    PUBLIC_MESSAGE = "Authentication required"

    def __init__(self, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(self.PUBLIC_MESSAGE)

    @property
    def reason(self) -> str:
        """Nom de la cause interne (logs/télémétrie uniquement)."""
        return type(self.cause).__name__ if self.cause is not None else "unknown"


class CredentialReuseDetected(ReauthenticationRequired):
    """
    Rejeu d'un refresh credential: la famille est révoquée.

    La couche transport doit effacer le credential stocké côté client
    et forcer une authentification complète.
    """

    clear_stored_credential = True


class SessionFacade(ISessionFacade):
    """
    Façade de session.

    Chaque appel émet ses événements (facade, moteur, purge) sous un même
    correlation_id: celui passé en argument, sinon celui du scope englobant,
    sinon un identifiant généré pour l'appel.

    Si un sweeper est fourni, login et refresh déclenchent la purge
    opportuniste des credentials expirés (au plus une fois par intervalle).

    Example:
        facade = SessionFacade(engine, issuer, sweeper=sweeper)
        tokens = await facade.login("u1", engine.device_info(user_agent, ip), correlation_id=request_id)
        tokens = await facade.refresh(tokens.refresh_secret)
        await facade.logout(tokens.refresh_secret)
    """

    def __init__(
        self,
        engine: IRotationEngine,
        issuer: IAccessIssuer,
        logger: Optional[StructuredLogger] = None,
        sweeper: Optional[ExpiredCredentialSweeper] = None,
    ) -> None:
        self._engine = engine
        self._issuer = issuer
        self._logger = logger or StructuredLogger("session-facade")
        self._sweeper = sweeper

    async def login(
        self,
        principal_id: str,
        device_info: Optional[DeviceInfo] = None,
        correlation_id: Optional[str] = None,
    ) -> SessionTokens:
        with correlation_scope(correlation_id):
            await self._maybe_sweep()
            issued = await self._engine.create(principal_id, device_info=device_info)
            tokens = self._tokens(issued, SessionState.AUTHENTICATED)

            self._logger.info(
                "session_login",
                principal_id=principal_id,
                family_id=issued.record.family_id,
                device_label=issued.record.device_info.label,
            )
            return tokens

    async def refresh(
        self,
        refresh_secret: str,
        device_info: Optional[DeviceInfo] = None,
        correlation_id: Optional[str] = None,
    ) -> SessionTokens:
        with correlation_scope(correlation_id):
            await self._maybe_sweep()
            try:
                successor = await self._engine.rotate(refresh_secret, device_info)
            except CredentialReused as e:
                self._logger.warn(
                    "session_refresh_rejected",
                    reason=type(e).__name__,
                    family_id=e.family_id,
                    family_revoked=e.family_revoked,
                )
                raise CredentialReuseDetected(e) from e
            except CredentialError as e:
                self._logger.info("session_refresh_rejected", reason=type(e).__name__)
                raise ReauthenticationRequired(e) from e

            return self._tokens(successor, SessionState.ROTATED)

    async def logout(self, refresh_secret: Optional[str], correlation_id: Optional[str] = None) -> None:
        if not refresh_secret:
            return

        with correlation_scope(correlation_id):
            revoked = await self._engine.revoke(refresh_secret)
            self._logger.info("session_logout", revoked=revoked)

    async def logout_everywhere(self, principal_id: str, correlation_id: Optional[str] = None) -> int:
        with correlation_scope(correlation_id):
            return await self._engine.revoke_all_for_principal(principal_id)

    async def get_active_sessions(self, principal_id: str) -> List[ActiveSession]:
        records = await self._engine.list_active(principal_id)
        return [
            ActiveSession(
                session_id=record.family_id or record.id,
                device_label=record.device_info.label,
                user_agent=record.device_info.user_agent,
                ip=record.device_info.ip,
                created_at=record.created_at,
                expires_at=record.expires_at,
            )
            for record in records
        ]

    async def revoke_session(self, principal_id: str, session_id: str) -> bool:
        """
        Révoque une session listée par get_active_sessions.

        Une session d'un autre principal est ignorée (retourne False).
        """
        sessions = await self.get_active_sessions(principal_id)
        if session_id not in {s.session_id for s in sessions}:
            return False

        return await self._engine.revoke_family(session_id) > 0

    async def _maybe_sweep(self) -> None:
        if self._sweeper is not None:
            await self._sweeper.maybe_sweep()

    def authenticate(self, access_token: str) -> str:
        try:
            return self._issuer.verify(access_token).principal_id
        except AccessTokenError as e:
            raise ReauthenticationRequired(e) from e

    def authenticate_header(self, authorization: Optional[str]) -> str:
        """Variante prenant le header Authorization brut."""
        try:
            return self._issuer.principal_from_authorization(authorization)
        except AccessTokenError as e:
            raise ReauthenticationRequired(e) from e

    def _tokens(self, issued: IssuedCredential, state: SessionState) -> SessionTokens:
        record = issued.record
        access_token, access_claims = self._issuer.issue_with_claims(record.principal_id)

        return SessionTokens(
            principal_id=record.principal_id,
            access_token=access_token,
            access_expires_at=access_claims.expires_at,
            refresh_secret=issued.raw_secret,
            refresh_expires_at=record.expires_at,
            family_id=record.family_id,
            state=state,
        )
