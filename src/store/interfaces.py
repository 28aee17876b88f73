"""
Credential Store - Interfaces

Table persistante des credentials hachés. Couche données/indexation pure:
aucune logique métier (expiré vs révoqué est décidé par le RotationEngine).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


UNKNOWN_DEVICE_LABEL = "Unknown device"


class CredentialPurpose(Enum):
    """Usage du credential. Seul REFRESH participe à la rotation par famille."""

    EMAIL_VERIFY = "EMAIL_VERIFY"
    REFRESH = "REFRESH"
    RESET_PASSWORD = "RESET_PASSWORD"


class CredentialStoreError(Exception):
    """Erreur de la couche de stockage."""

    pass


class StoreUnavailable(CredentialStoreError):
    """Store injoignable. Transitoire: retenté par la couche transport."""

    pass


class DuplicateDigestError(CredentialStoreError):
    """Collision de secret_digest: erreur fatale de création."""

    pass


@dataclass(frozen=True)
class DeviceInfo:
    """
    Métadonnées appareil, indicatives uniquement.

    Attributes:
        user_agent: User agent client
        ip: Adresse IP source
        label: Libellé affichable dérivé du user agent
    """

    user_agent: Optional[str] = None
    ip: Optional[str] = None
    label: str = UNKNOWN_DEVICE_LABEL

    @classmethod
    def from_request(
        cls,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
        max_label_length: int = 120,
    ) -> "DeviceInfo":
        """Dérive le label: user agent tronqué, sinon "Unknown device"."""
        user_agent = user_agent or None
        label = user_agent[:max_label_length] if user_agent else UNKNOWN_DEVICE_LABEL
        return cls(user_agent=user_agent, ip=ip or None, label=label)


@dataclass(frozen=True)
class RefreshCredential:
    """
    Enregistrement de credential haché.

    Valeur immuable: toute modification passe par un appel explicite au store.

    Attributes:
        id: Identifiant attribué au stockage
        principal_id: Référence opaque au principal authentifié
        purpose: Usage du credential
        secret_digest: Digest one-way du secret brut (unique)
        device_info: Métadonnées appareil
        expires_at: Expiration absolue (UTC)
        family_id: Lignée de rotation (None hors REFRESH)
        created_at: Horodatage création
        updated_at: Horodatage dernière modification
        revoked: True si révoqué ou consommé par rotation
        revoked_at: Horodatage révocation
    """

    id: str
    principal_id: str
    purpose: CredentialPurpose
    secret_digest: str
    device_info: DeviceInfo
    expires_at: datetime
    family_id: Optional[str]
    created_at: datetime
    updated_at: datetime
    revoked: bool = False
    revoked_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_live(self, now: datetime) -> bool:
        """Non révoqué et non expiré."""
        return not self.revoked and not self.is_expired(now)

    def mark_revoked(self, at: datetime) -> "RefreshCredential":
        """Copie révoquée (l'original n'est pas modifié)."""
        return replace(self, revoked=True, revoked_at=at, updated_at=at)


@dataclass(frozen=True)
class CredentialFilter:
    """
    Filtre de sélection pour update_many.

    Les critères renseignés sont combinés en ET. Un filtre vide est refusé.
    """

    record_id: Optional[str] = None
    principal_id: Optional[str] = None
    family_id: Optional[str] = None
    purpose: Optional[CredentialPurpose] = None
    revoked: Optional[bool] = None

    def is_empty(self) -> bool:
        return (
            self.record_id is None
            and self.principal_id is None
            and self.family_id is None
            and self.purpose is None
        )

    def matches(self, record: RefreshCredential) -> bool:
        if self.record_id is not None and record.id != self.record_id:
            return False
        if self.principal_id is not None and record.principal_id != self.principal_id:
            return False
        if self.family_id is not None and record.family_id != self.family_id:
            return False
        if self.purpose is not None and record.purpose != self.purpose:
            return False
        if self.revoked is not None and record.revoked != self.revoked:
            return False
        return True


@dataclass(frozen=True)
class SwapResult:
    """
    Issue d'un swap.

    Attributes:
        swapped: True si la rotation a eu lieu
        current: État de old_id observé sous le verrou (tombstone si swapped,
            None si absent). Permet au perdant d'une course de conclure
            sans relire le store.
    """

    swapped: bool
    current: Optional[RefreshCredential] = None


# Champs modifiables par update_many
PATCHABLE_FIELDS = frozenset({"revoked", "revoked_at", "updated_at"})


class ICredentialStore(ABC):
    """
    Interface stockage des credentials.

    Contrat:
        - find_by_digest ne filtre NI les expirés NI les révoqués
        - swap est atomique vis-à-vis des appels concurrents
        - les erreurs de connectivité remontent en StoreUnavailable
    """

    @abstractmethod
    async def put(self, record: RefreshCredential) -> None:
        """
        Insère un enregistrement.

        Raises:
            DuplicateDigestError: secret_digest déjà présent
        """
        pass

    @abstractmethod
    async def find_by_digest(self, secret_digest: str) -> Optional[RefreshCredential]:
        """Recherche par digest, expirés et révoqués inclus."""
        pass

    @abstractmethod
    async def get(self, record_id: str) -> Optional[RefreshCredential]:
        """Recherche par identifiant."""
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """
        Supprime physiquement un enregistrement.

        Returns:
            True uniquement pour l'appelant qui a effectivement supprimé
        """
        pass

    @abstractmethod
    async def update_many(self, criteria: CredentialFilter, patch: Dict[str, Any]) -> int:
        """
        Applique un patch à tous les enregistrements correspondants.

        Returns:
            Nombre d'enregistrements modifiés

        Raises:
            ValueError: Filtre vide ou champ non modifiable
        """
        pass

    @abstractmethod
    async def list_active(self, principal_id: str, now: datetime) -> List[RefreshCredential]:
        """Credentials non révoqués et non expirés, plus récents en premier."""
        pass

    @abstractmethod
    async def swap(self, old_id: str, new_record: RefreshCredential, now: datetime) -> SwapResult:
        """
        Rotation atomique: révoque old_id et insère new_record.

        Ne fait rien si old_id est absent, révoqué ou expiré.

        Returns:
            SwapResult: swapped=True pour le seul gagnant par old_id,
            current=état de old_id vu par le swap

        Raises:
            DuplicateDigestError: digest du nouvel enregistrement déjà présent
        """
        pass

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        """
        Supprime physiquement les enregistrements expirés.

        Returns:
            Nombre d'enregistrements supprimés
        """
        pass


def validate_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Vérifie qu'un patch ne touche que les champs modifiables.

    Raises:
        ValueError: Patch vide ou champ interdit
    """
    if not patch:
        raise ValueError("Patch vide")

    forbidden = set(patch) - PATCHABLE_FIELDS
    if forbidden:
        raise ValueError(f"Champs non modifiables: {', '.join(sorted(forbidden))}")

    return dict(patch)
