"""
Rotation Engine Implementation

Création, vérification et rotation des refresh credentials.

Représentation de l'usage unique: soft delete. Un credential rotaté est
marqué révoqué et conservé jusqu'à sa propre expiration; toute présentation
ultérieure est traitée comme un vol et révoque la famille entière,
y compris le descendant le plus récent.
"""

import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from ..core import EngineConfig, ISecretGenerator, SecretGenerator
from ..core.clock import Clock, utc_now
from ..logging import StructuredLogger
from ..store import (
    CredentialFilter,
    CredentialPurpose,
    DeviceInfo,
    DuplicateDigestError,
    ICredentialStore,
    RefreshCredential,
)
from .interfaces import IRotationEngine, IssuedCredential


class CredentialError(Exception):
    """Erreur de vérification d'un credential."""

    default_message = "Credential rejected"

    def __init__(self, message: Optional[str] = None, credential_id: Optional[str] = None):
        self.credential_id = credential_id
        super().__init__(message or self.default_message)


class CredentialInvalid(CredentialError):
    """Credential inconnu ou mauvais purpose (indistinguables)."""

    default_message = "Invalid credential"


class CredentialExpired(CredentialError):
    """Credential expiré."""

    default_message = "Credential expired"


class CredentialReused(CredentialError):
    """
    Credential révoqué présenté à nouveau: preuve de vol.

    Jamais transitoire. La famille est révoquée AVANT que l'erreur remonte.
    """

    default_message = "Credential reuse detected"

    def __init__(
        self,
        message: Optional[str] = None,
        credential_id: Optional[str] = None,
        family_id: Optional[str] = None,
        family_revoked: bool = True,
    ):
        self.family_id = family_id
        self.family_revoked = family_revoked
        super().__init__(message, credential_id=credential_id)


def _revoke_patch(now: datetime) -> dict:
    return {"revoked": True, "revoked_at": now, "updated_at": now}


class RotationEngine(IRotationEngine):
    """
    Moteur de rotation des refresh credentials.

    Sans état propre: tout l'état vit dans le store. Chaque mutation est
    un appel store unique (swap, update_many, delete).

    Example:
        engine = RotationEngine(store, config)
        issued = await engine.create("u1", device_info=DeviceInfo.from_request(ua, ip))
        successor = await engine.rotate(issued.raw_secret)
    """

    def __init__(
        self,
        store: ICredentialStore,
        config: EngineConfig,
        secrets: Optional[ISecretGenerator] = None,
        clock: Optional[Clock] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Args:
            store: Stockage des credentials
            config: Configuration (TTL par purpose, entropie)
            secrets: Générateur de secrets (défaut: SecretGenerator depuis config)
            clock: Horloge UTC injectable
            logger: Logger structuré
        """
        self._store = store
        self._config = config
        self._secrets = secrets or SecretGenerator.from_config(config)
        self._clock = clock or utc_now
        self._logger = logger or StructuredLogger("rotation-engine")

    def default_ttl(self, purpose: CredentialPurpose) -> timedelta:
        """Durée de vie par défaut d'un purpose."""
        if purpose == CredentialPurpose.REFRESH:
            return self._config.refresh_ttl
        if purpose == CredentialPurpose.EMAIL_VERIFY:
            return self._config.email_verify_ttl
        return self._config.reset_password_ttl

    def device_info(self, user_agent: Optional[str] = None, ip: Optional[str] = None) -> DeviceInfo:
        """DeviceInfo avec la longueur de label configurée."""
        return DeviceInfo.from_request(user_agent, ip, self._config.device_label_max_length)

    # ──────────────────────────────────────────────────────────────────────
    # Création
    # ──────────────────────────────────────────────────────────────────────

    async def create(
        self,
        principal_id: str,
        purpose: CredentialPurpose = CredentialPurpose.REFRESH,
        ttl: Optional[timedelta] = None,
        device_info: Optional[DeviceInfo] = None,
        family_id: Optional[str] = None,
    ) -> IssuedCredential:
        issued = self._build(principal_id, purpose, ttl, device_info, family_id, self._clock())

        try:
            await self._store.put(issued.record)
        except DuplicateDigestError:
            self._logger.critical(
                "credential_digest_collision",
                principal_id=principal_id,
                purpose=purpose.value,
            )
            raise

        self._logger.info(
            "credential_created",
            principal_id=principal_id,
            purpose=purpose.value,
            credential_id=issued.record.id,
            family_id=issued.record.family_id,
        )
        return issued

    def _build(
        self,
        principal_id: str,
        purpose: CredentialPurpose,
        ttl: Optional[timedelta],
        device_info: Optional[DeviceInfo],
        family_id: Optional[str],
        now: datetime,
    ) -> IssuedCredential:
        """Construit l'enregistrement et le secret brut (sans persister)."""
        if not principal_id:
            raise ValueError("principal_id obligatoire")

        ttl = ttl if ttl is not None else self.default_ttl(purpose)
        if ttl <= timedelta(0):
            raise ValueError("ttl doit être strictement positif")

        # Seul REFRESH participe aux familles
        if purpose == CredentialPurpose.REFRESH:
            family_id = family_id or self._secrets.generate_family_id()
        else:
            family_id = None

        raw_secret = self._secrets.generate_secret()
        record = RefreshCredential(
            id=str(uuid.uuid4()),
            principal_id=principal_id,
            purpose=purpose,
            secret_digest=self._secrets.digest(raw_secret),
            device_info=device_info or DeviceInfo(),
            expires_at=now + ttl,
            family_id=family_id,
            created_at=now,
            updated_at=now,
        )
        return IssuedCredential(record=record, raw_secret=raw_secret)

    # ──────────────────────────────────────────────────────────────────────
    # Vérification
    # ──────────────────────────────────────────────────────────────────────

    async def verify(
        self,
        raw_secret: str,
        expected_purpose: Optional[CredentialPurpose] = None,
    ) -> RefreshCredential:
        """
        Ordre des contrôles:
            1. Inconnu → CredentialInvalid
            2. Révoqué → révocation famille puis CredentialReused
            3. Expiré → CredentialExpired
            4. Purpose différent → CredentialInvalid
        """
        if not raw_secret:
            raise CredentialInvalid()

        record = await self._store.find_by_digest(self._secrets.digest(raw_secret))
        return await self._evaluate(record, expected_purpose)

    async def _evaluate(
        self,
        record: Optional[RefreshCredential],
        expected_purpose: Optional[CredentialPurpose],
    ) -> RefreshCredential:
        if record is None:
            raise CredentialInvalid()

        if record.revoked:
            family_revoked = await self._handle_reuse(record)
            raise CredentialReused(
                credential_id=record.id,
                family_id=record.family_id,
                family_revoked=family_revoked,
            )

        if record.is_expired(self._clock()):
            raise CredentialExpired(credential_id=record.id)

        if expected_purpose is not None and record.purpose != expected_purpose:
            raise CredentialInvalid(credential_id=record.id)

        return record

    async def _handle_reuse(self, record: RefreshCredential) -> bool:
        """
        Révocation en cascade de la famille du credential réutilisé.

        Un échec ici est journalisé pour suivi opérateur; l'appelant
        échoue quand même en CredentialReused.

        Returns:
            True si la famille a été révoquée (ou n'existe pas)
        """
        self._logger.error(
            "credential_reuse_detected",
            principal_id=record.principal_id,
            credential_id=record.id,
            family_id=record.family_id,
            purpose=record.purpose.value,
        )

        if record.family_id is None:
            return True

        try:
            await self.revoke_family(record.family_id)
        except Exception as e:
            self._logger.critical(
                "family_revocation_failed",
                principal_id=record.principal_id,
                family_id=record.family_id,
                error=f"{type(e).__name__}: {e}",
            )
            return False

        return True

    # ──────────────────────────────────────────────────────────────────────
    # Rotation
    # ──────────────────────────────────────────────────────────────────────

    async def rotate(self, raw_secret: str, device_info: Optional[DeviceInfo] = None) -> IssuedCredential:
        """
        Remplace un credential REFRESH par un successeur de la même famille.

        Le remplacement est un swap atomique côté store: si un appel
        concurrent a déjà consommé le credential, le perdant est traité
        exactement comme un rejeu.

        Raises:
            CredentialInvalid / CredentialExpired / CredentialReused
        """
        current = await self.verify(raw_secret, CredentialPurpose.REFRESH)

        now = self._clock()
        successor = self._build(
            current.principal_id,
            CredentialPurpose.REFRESH,
            self._config.refresh_ttl,
            device_info or current.device_info,
            current.family_id,
            now,
        )

        result = await self._store.swap(current.id, successor.record, now)
        if not result.swapped:
            # Course perdue: état observé par le swap, sans relecture
            await self._evaluate(result.current, CredentialPurpose.REFRESH)
            raise CredentialInvalid(credential_id=current.id)

        self._logger.info(
            "credential_rotated",
            principal_id=current.principal_id,
            family_id=current.family_id,
            previous_id=current.id,
            credential_id=successor.record.id,
        )
        return successor

    # ──────────────────────────────────────────────────────────────────────
    # Révocation
    # ──────────────────────────────────────────────────────────────────────

    async def revoke(self, raw_secret: str) -> bool:
        if not raw_secret:
            return False

        record = await self._store.find_by_digest(self._secrets.digest(raw_secret))
        if record is None or record.revoked:
            return False

        now = self._clock()
        updated = await self._store.update_many(
            CredentialFilter(record_id=record.id, revoked=False),
            _revoke_patch(now),
        )

        if updated:
            self._logger.info(
                "credential_revoked",
                principal_id=record.principal_id,
                credential_id=record.id,
                family_id=record.family_id,
            )
        return updated > 0

    async def revoke_family(self, family_id: str) -> int:
        if not family_id:
            raise ValueError("family_id obligatoire")

        now = self._clock()
        revoked = await self._store.update_many(
            CredentialFilter(family_id=family_id, revoked=False),
            _revoke_patch(now),
        )

        self._logger.warn("family_revoked", family_id=family_id, revoked=revoked)
        return revoked

    async def revoke_all_for_principal(self, principal_id: str) -> int:
        if not principal_id:
            raise ValueError("principal_id obligatoire")

        now = self._clock()
        revoked = await self._store.update_many(
            CredentialFilter(
                principal_id=principal_id,
                purpose=CredentialPurpose.REFRESH,
                revoked=False,
            ),
            _revoke_patch(now),
        )

        self._logger.info("principal_sessions_revoked", principal_id=principal_id, revoked=revoked)
        return revoked

    # ──────────────────────────────────────────────────────────────────────
    # Usage unique hors rotation (email, reset)
    # ──────────────────────────────────────────────────────────────────────

    async def consume(self, raw_secret: str, purpose: CredentialPurpose) -> RefreshCredential:
        """
        Lookup par digest puis suppression physique.

        Un second appel (ou un appel concurrent perdant) voit "inconnu".
        """
        record = await self.verify(raw_secret, purpose)

        if not await self._store.delete(record.id):
            raise CredentialInvalid(credential_id=record.id)

        self._logger.info(
            "credential_consumed",
            principal_id=record.principal_id,
            credential_id=record.id,
            purpose=purpose.value,
        )
        return record

    async def list_active(self, principal_id: str) -> List[RefreshCredential]:
        records = await self._store.list_active(principal_id, self._clock())
        return [r for r in records if r.purpose == CredentialPurpose.REFRESH]
