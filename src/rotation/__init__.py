"""
Rotation Engine

Refresh credentials à usage unique, détection de réutilisation
et révocation en cascade par famille.
"""

from .interfaces import IRotationEngine, IssuedCredential
from .rotation_engine import (
    RotationEngine,
    CredentialError,
    CredentialInvalid,
    CredentialExpired,
    CredentialReused,
)

__all__ = [
    # Interfaces
    "IRotationEngine",
    # Data classes
    "IssuedCredential",
    # Implementations
    "RotationEngine",
    # Exceptions
    "CredentialError",
    "CredentialInvalid",
    "CredentialExpired",
    "CredentialReused",
]
