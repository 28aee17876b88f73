"""
Access Issuer

Access tokens JWT courts, signés, liés à un principal. Vérification
stateless: c'est la frontière de scalabilité du moteur.
"""

from .interfaces import IAccessIssuer, AccessClaims
from .token_issuer import (
    AccessTokenIssuer,
    AccessTokenError,
    SignatureInvalid,
    TokenExpired,
    MalformedToken,
)

__all__ = [
    # Interfaces
    "IAccessIssuer",
    # Data classes
    "AccessClaims",
    # Implementations
    "AccessTokenIssuer",
    # Exceptions
    "AccessTokenError",
    "SignatureInvalid",
    "TokenExpired",
    "MalformedToken",
]
