"""
Session - Interfaces

Orchestration login / refresh / logout au-dessus du RotationEngine et de
l'AccessIssuer. La session n'est pas une entité persistée: son état se
déduit de l'existence et de la validité des refresh credentials.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ..store import DeviceInfo


class SessionState(Enum):
    """
    États dérivés d'une session.

    ANONYMOUS → AUTHENTICATED → ROTATED → REVOKED
    """

    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    ROTATED = "rotated"
    REVOKED = "revoked"


@dataclass(frozen=True)
class SessionTokens:
    """
    Résultat d'un login ou d'un refresh.

    access_token va dans le corps de réponse; refresh_secret est remis UNE
    fois à la couche transport (cookie httpOnly limité à l'endpoint refresh),
    jamais dans une URL, un log ou un claim.

    Attributes:
        principal_id: Principal authentifié
        access_token: JWT court
        access_expires_at: Expiration access token
        refresh_secret: Secret brut du refresh credential
        refresh_expires_at: Expiration refresh credential
        family_id: Famille de rotation
        state: AUTHENTICATED (login) ou ROTATED (refresh)
    """

    principal_id: str
    access_token: str = field(repr=False)
    access_expires_at: datetime
    refresh_secret: str = field(repr=False)
    refresh_expires_at: datetime
    family_id: Optional[str]
    state: SessionState


@dataclass(frozen=True)
class ActiveSession:
    """
    Vue opérateur d'une session active ("gérer mes sessions").

    Jamais de digest ni de secret: métadonnées appareil et horodatages.
    """

    session_id: str  # family_id
    device_label: str
    user_agent: Optional[str]
    ip: Optional[str]
    created_at: datetime
    expires_at: datetime


class ISessionFacade(ABC):
    """Interface façade de session."""

    @abstractmethod
    async def login(
        self,
        principal_id: str,
        device_info: Optional[DeviceInfo] = None,
        correlation_id: Optional[str] = None,
    ) -> SessionTokens:
        """
        Ouvre une session pour un principal DÉJÀ authentifié.

        Effet: exactement une nouvelle famille vivante par appel.
        correlation_id relie les événements de l'appel (généré si absent).
        """
        pass

    @abstractmethod
    async def refresh(
        self,
        refresh_secret: str,
        device_info: Optional[DeviceInfo] = None,
        correlation_id: Optional[str] = None,
    ) -> SessionTokens:
        """
        Rotation du refresh credential + nouvel access token.

        Raises:
            CredentialReuseDetected: Rejeu détecté, famille révoquée
            ReauthenticationRequired: Tout autre rejet
        """
        pass

    @abstractmethod
    async def logout(self, refresh_secret: Optional[str], correlation_id: Optional[str] = None) -> None:
        """Déconnexion idempotente: ne lève jamais pour un credential invalide."""
        pass

    @abstractmethod
    async def logout_everywhere(self, principal_id: str, correlation_id: Optional[str] = None) -> int:
        """Révoque toutes les sessions du principal."""
        pass

    @abstractmethod
    async def get_active_sessions(self, principal_id: str) -> List[ActiveSession]:
        """Sessions actives, plus récentes en premier."""
        pass

    @abstractmethod
    def authenticate(self, access_token: str) -> str:
        """
        Vérifie un access token.

        Returns:
            principal_id

        Raises:
            ReauthenticationRequired: Token rejeté
        """
        pass
