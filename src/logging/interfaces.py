"""
Logging - Interfaces

Journal des événements du cycle de vie des credentials.

Chaque ligne est un objet JSON: timestamp UTC, niveau, correlation_id,
composant émetteur, nom d'événement et champs métier. Un secret brut,
un digest ou un access token n'y figure jamais.
"""

import json
from abc import ABC, abstractmethod
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# correlation_id de la requête en cours, propagé aux tâches asyncio filles
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


class LogLevel(Enum):
    """Sévérité: DEBUG < INFO < WARN < ERROR < CRITICAL."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def priority(self) -> int:
        return _PRIORITY[self]


_PRIORITY = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
    LogLevel.CRITICAL: 50,
}


@dataclass(frozen=True)
class LogEntry:
    """
    Événement journalisé.

    Attributes:
        timestamp: ISO 8601 UTC, millisecondes
        level: Sévérité
        correlation_id: Requête d'origine
        logger_name: Composant émetteur (rotation-engine, session-facade...)
        event: Nom d'événement (credential_rotated, family_revoked...)
        fields: Champs métier, déjà masqués
    """

    timestamp: str
    level: LogLevel
    correlation_id: str
    logger_name: str
    event: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        line = {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "correlation_id": self.correlation_id,
            "logger": self.logger_name,
            "event": self.event,
        }
        if self.fields:
            line["fields"] = self.fields
        return line

    def to_json(self) -> str:
        # datetime, Enum... sérialisés via str()
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


@dataclass
class LogConfig:
    """
    Attributes:
        min_level: Niveau minimum émis
        include_fields: Inclure les champs métier
        mask_sensitive: Masquer clés et valeurs sensibles
        default_correlation_id: correlation_id si l'appel n'en fournit pas
        max_captured_entries: Taille du tampon mémoire
    """

    min_level: LogLevel = LogLevel.INFO
    include_fields: bool = True
    mask_sensitive: bool = True
    default_correlation_id: Optional[str] = None
    max_captured_entries: int = 1000


class IStructuredLogger(ABC):
    """Journal structuré d'un composant."""

    @abstractmethod
    def log(
        self,
        level: LogLevel,
        event: str,
        correlation_id: Optional[str] = None,
        **fields: Any,
    ) -> Optional[LogEntry]:
        """
        Journalise un événement.

        Returns:
            LogEntry émis, None si filtré par niveau

        Raises:
            InvalidLogLevelError: level n'est pas un LogLevel
            MissingEventError: event vide
        """
        pass

    @abstractmethod
    def entries(self, level: Optional[LogLevel] = None, event: Optional[str] = None) -> List[LogEntry]:
        """Événements capturés en mémoire, filtrables par niveau et nom."""
        pass


class ISensitiveMasker(ABC):
    """
    Masquage avant écriture.

    Une valeur est masquée si sa clé évoque un secret, ou si la valeur
    elle-même a la forme d'un secret brut, d'un digest ou d'un JWT.
    """

    SENSITIVE_KEYS: List[str] = [
        "password",
        "secret",
        "token",
        "digest",
        "authorization",
        "bearer",
        "jwt",
        "cookie",
        "private_key",
    ]

    MASK_VALUE: str = "***MASKED***"

    @abstractmethod
    def mask(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Copie masquée (récursive) d'un dictionnaire de champs."""
        pass

    @abstractmethod
    def looks_like_secret(self, value: str) -> bool:
        """True si la valeur a la forme d'un secret, quelle que soit sa clé."""
        pass
