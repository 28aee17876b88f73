"""
Credential Store

Table des credentials hachés (digest-at-rest), sans logique métier.
"""

from .interfaces import (
    ICredentialStore,
    CredentialPurpose,
    DeviceInfo,
    RefreshCredential,
    CredentialFilter,
    SwapResult,
    CredentialStoreError,
    StoreUnavailable,
    DuplicateDigestError,
    UNKNOWN_DEVICE_LABEL,
)
from .memory_store import InMemoryCredentialStore
from .sweeper import ExpiredCredentialSweeper

__all__ = [
    # Interfaces
    "ICredentialStore",
    # Data classes
    "CredentialPurpose",
    "DeviceInfo",
    "RefreshCredential",
    "CredentialFilter",
    "SwapResult",
    "UNKNOWN_DEVICE_LABEL",
    # Implementations
    "InMemoryCredentialStore",
    "ExpiredCredentialSweeper",
    # Exceptions
    "CredentialStoreError",
    "StoreUnavailable",
    "DuplicateDigestError",
]
