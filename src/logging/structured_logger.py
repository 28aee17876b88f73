"""
Logging - Structured Logger

Émission des événements du moteur en JSON, avec tampon mémoire borné
consultable par les tests et le diagnostic.
"""

import uuid
from collections import deque
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Iterator, List, Optional

from .interfaces import (
    IStructuredLogger,
    ISensitiveMasker,
    LogConfig,
    LogEntry,
    LogLevel,
    correlation_id_var,
)
from .sensitive_masker import SensitiveMasker


class MissingEventError(Exception):
    """Événement sans nom."""

    def __init__(self) -> None:
        super().__init__("Log event name is required")


class InvalidLogLevelError(Exception):
    """Niveau de log invalide."""

    def __init__(self, level: Any) -> None:
        self.level = level
        super().__init__(f"Invalid log level: {level!r}")


def utc_timestamp() -> str:
    """2025-01-15T09:00:00.123Z"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """
    Rattache au même correlation_id tous les événements émis dans le bloc,
    quel que soit le logger émetteur.

    Sans argument, le scope englobant est réutilisé s'il existe, sinon un
    nouvel identifiant est généré.

    Args:
        correlation_id: Identifiant transmis par l'appelant (header X-Correlation-ID...)

    Yields:
        correlation_id effectif

    Example:
        with correlation_scope(headers.get("X-Correlation-ID")):
            tokens = await facade.refresh(secret)
    """
    current = correlation_id or correlation_id_var.get() or uuid.uuid4().hex
    token = correlation_id_var.set(current)
    try:
        yield current
    finally:
        correlation_id_var.reset(token)


class StructuredLogger(IStructuredLogger):
    """
    Journal JSON d'un composant.

    Chaque entrée est gardée dans un tampon borné puis, si un
    output_handler est fourni, écrite sous forme d'une ligne JSON.

    Example:
        logger = StructuredLogger("rotation-engine", output_handler=print)
        logger.warn("family_revoked", family_id=family_id, revoked=3)
    """

    def __init__(
        self,
        name: str,
        config: Optional[LogConfig] = None,
        masker: Optional[ISensitiveMasker] = None,
        output_handler: Optional[Callable[[str], None]] = None,
    ) -> None:
        """
        Args:
            name: Composant émetteur
            config: Niveau minimum, masquage, taille du tampon
            masker: Masquage des champs (défaut: SensitiveMasker)
            output_handler: Destination des lignes JSON (stdout, fichier...)

        Raises:
            ValueError: Si name vide
        """
        if not name or not name.strip():
            raise ValueError("Logger name cannot be empty")

        self.name = name.strip()
        self.config = config or LogConfig()
        self._masker = masker or SensitiveMasker()
        self._output_handler = output_handler
        self._buffer: Deque[LogEntry] = deque(maxlen=self.config.max_captured_entries)

    def log(
        self,
        level: LogLevel,
        event: str,
        correlation_id: Optional[str] = None,
        **fields: Any,
    ) -> Optional[LogEntry]:
        if not isinstance(level, LogLevel):
            raise InvalidLogLevelError(level)
        if level.priority < self.config.min_level.priority:
            return None
        if not event:
            raise MissingEventError()

        entry = LogEntry(
            timestamp=utc_timestamp(),
            level=level,
            correlation_id=self._resolve_correlation(correlation_id),
            logger_name=self.name,
            event=event,
            fields=self._prepare(fields),
        )

        self._buffer.append(entry)
        if self._output_handler is not None:
            self._output_handler(entry.to_json())
        return entry

    def _resolve_correlation(self, correlation_id: Optional[str]) -> str:
        """Argument explicite, sinon scope courant, sinon défaut config, sinon nouvel id."""
        return (
            correlation_id
            or correlation_id_var.get()
            or self.config.default_correlation_id
            or uuid.uuid4().hex
        )

    def _prepare(self, fields: dict) -> dict:
        if not fields or not self.config.include_fields:
            return {}
        if self.config.mask_sensitive:
            return self._masker.mask(fields)
        return dict(fields)

    def debug(self, event: str, **fields: Any) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, event, **fields)

    def warn(self, event: str, **fields: Any) -> Optional[LogEntry]:
        return self.log(LogLevel.WARN, event, **fields)

    def error(self, event: str, **fields: Any) -> Optional[LogEntry]:
        return self.log(LogLevel.ERROR, event, **fields)

    def critical(self, event: str, **fields: Any) -> Optional[LogEntry]:
        return self.log(LogLevel.CRITICAL, event, **fields)

    def entries(self, level: Optional[LogLevel] = None, event: Optional[str] = None) -> List[LogEntry]:
        return [
            e for e in self._buffer
            if (level is None or e.level == level) and (event is None or e.event == event)
        ]

    def clear(self) -> None:
        self._buffer.clear()

