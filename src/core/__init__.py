"""
Core: configuration et primitives cryptographiques
"""

from .interfaces import IConfigLoader, ISecretGenerator
from .config import EngineConfig
from .config_loader import ConfigLoader, ConfigurationError, parse_duration_seconds
from .clock import Clock, utc_now
from .crypto_provider import SecretGenerator, SigningKeys

__all__ = [
    # Interfaces
    "IConfigLoader",
    "ISecretGenerator",
    # Data classes
    "EngineConfig",
    # Implementations
    "ConfigLoader",
    "SecretGenerator",
    "SigningKeys",
    "parse_duration_seconds",
    "utc_now",
    "Clock",
    # Exceptions
    "ConfigurationError",
]
