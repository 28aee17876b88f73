"""
Logging

Événements JSON structurés, secrets masqués avant écriture.
"""

from .interfaces import LogLevel, LogEntry, LogConfig, IStructuredLogger, ISensitiveMasker, correlation_id_var
from .sensitive_masker import SensitiveMasker
from .structured_logger import StructuredLogger, MissingEventError, InvalidLogLevelError, correlation_scope

__all__ = [
    # Interfaces
    "IStructuredLogger",
    "ISensitiveMasker",
    # Data classes
    "LogLevel",
    "LogEntry",
    "LogConfig",
    # Implementations
    "SensitiveMasker",
    "StructuredLogger",
    "correlation_scope",
    "correlation_id_var",
    # Exceptions
    "MissingEventError",
    "InvalidLogLevelError",
]
