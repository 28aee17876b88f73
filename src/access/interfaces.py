"""
Access - Interfaces

Définit le contrat d'émission et de vérification des access tokens.
Stateless: aucune lecture du store, aucune révocation possible.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class AccessClaims:
    """
    Claims extraits et validés d'un access token.

    Attributes:
        principal_id: Principal lié (sub claim)
        issued_at: Date émission (iat)
        expires_at: Date expiration (exp)
        token_id: Identifiant unique du token (jti)
        issuer: Émetteur (iss), si configuré
    """

    principal_id: str
    issued_at: datetime
    expires_at: datetime
    token_id: str
    issuer: Optional[str] = None

    def __post_init__(self):
        """Validation des contraintes."""
        if not self.principal_id:
            raise ValueError("principal_id must not be empty")
        if self.expires_at <= self.issued_at:
            raise ValueError("exp must be after iat")


class IAccessIssuer(ABC):
    """
    Interface émission/vérification access token.

    Le TTL court est la seule mitigation en cas de vol d'access token.
    """

    @abstractmethod
    def issue(self, principal_id: str) -> str:
        """
        Émet un access token signé lié au principal.

        Returns:
            JWT compact
        """
        pass

    @abstractmethod
    def issue_with_claims(self, principal_id: str) -> Tuple[str, AccessClaims]:
        """
        Comme issue, avec les claims signés (évite de re-décoder le token).

        Returns:
            (JWT compact, claims)
        """
        pass

    @abstractmethod
    def verify(self, token: str) -> AccessClaims:
        """
        Vérifie signature, structure et expiration.

        Raises:
            SignatureInvalid: Signature incorrecte
            TokenExpired: Token expiré
            MalformedToken: Structure invalide
        """
        pass

    @abstractmethod
    def principal_from_authorization(self, header: Optional[str]) -> str:
        """
        Extrait et vérifie le token d'un header "Authorization: Bearer <token>".

        Returns:
            principal_id
        """
        pass
