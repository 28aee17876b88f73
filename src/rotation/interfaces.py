"""
Rotation - Interfaces

Contrat du moteur de rotation des refresh credentials:
rotation à usage unique, détection de réutilisation et révocation
en cascade de la famille.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from ..store import CredentialPurpose, DeviceInfo, RefreshCredential


@dataclass(frozen=True)
class IssuedCredential:
    """
    Credential fraîchement créé.

    Le secret brut n'est retourné qu'UNE fois, à l'appelant immédiat.
    Il n'apparaît pas dans repr() pour ne jamais finir dans un log.

    Attributes:
        record: Enregistrement persisté (digest uniquement)
        raw_secret: Secret brut à remettre à la couche transport
    """

    record: RefreshCredential
    raw_secret: str = field(repr=False)


class IRotationEngine(ABC):
    """
    Interface moteur de rotation.

    Garanties:
        - Un credential REFRESH rotaté est marqué révoqué (tombstone)
        - Présenter un credential révoqué révoque toute sa famille
        - Deux rotations concurrentes du même secret: un seul succès
    """

    @abstractmethod
    async def create(
        self,
        principal_id: str,
        purpose: CredentialPurpose = CredentialPurpose.REFRESH,
        ttl: Optional[timedelta] = None,
        device_info: Optional[DeviceInfo] = None,
        family_id: Optional[str] = None,
    ) -> IssuedCredential:
        """
        Génère, hache et persiste un credential.

        Args:
            principal_id: Principal déjà authentifié
            purpose: Usage (REFRESH par défaut)
            ttl: Durée de vie (défaut selon purpose)
            device_info: Métadonnées appareil
            family_id: Famille héritée (nouvelle famille si REFRESH et None)

        Raises:
            DuplicateDigestError: Collision de digest (fatale)
        """
        pass

    @abstractmethod
    async def verify(
        self,
        raw_secret: str,
        expected_purpose: Optional[CredentialPurpose] = None,
    ) -> RefreshCredential:
        """
        Vérifie un secret brut.

        Raises:
            CredentialInvalid: Inconnu ou mauvais purpose
            CredentialReused: Révoqué (famille révoquée avant de lever)
            CredentialExpired: Expiré
        """
        pass

    @abstractmethod
    async def rotate(self, raw_secret: str, device_info: Optional[DeviceInfo] = None) -> IssuedCredential:
        """
        Vérifie puis remplace atomiquement un credential REFRESH.

        Returns:
            Successeur dans la même famille
        """
        pass

    @abstractmethod
    async def revoke(self, raw_secret: str) -> bool:
        """
        Révoque un credential. Idempotent, ne lève jamais pour absent/révoqué.

        Returns:
            True si un credential a effectivement été révoqué
        """
        pass

    @abstractmethod
    async def revoke_family(self, family_id: str) -> int:
        """Révoque tous les credentials vivants d'une famille."""
        pass

    @abstractmethod
    async def revoke_all_for_principal(self, principal_id: str) -> int:
        """Révoque toutes les sessions (REFRESH) vivantes d'un principal."""
        pass

    @abstractmethod
    async def consume(self, raw_secret: str, purpose: CredentialPurpose) -> RefreshCredential:
        """
        Vérifie puis supprime un credential à usage unique (email, reset).

        Raises:
            CredentialInvalid: Inconnu, mauvais purpose ou déjà consommé
            CredentialExpired: Expiré
        """
        pass

    @abstractmethod
    async def list_active(self, principal_id: str) -> List[RefreshCredential]:
        """Sessions (REFRESH) vivantes, plus récentes en premier."""
        pass
