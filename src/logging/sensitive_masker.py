"""
Logging - Sensitive Masker

Redaction des champs d'événements avant écriture.
"""

import re
from typing import Any, Dict, Iterable, List

from .interfaces import ISensitiveMasker


# Secrets bruts (128 hex) et digests SHA-256 (64 hex); un family_id (32 hex) reste lisible
HEX_SECRET_PATTERN = re.compile(r"^[0-9a-fA-F]{48,}$")

JWT_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]+$")


class SensitiveMasker(ISensitiveMasker):
    """
    Example:
        SensitiveMasker().mask({"refresh_token": "abc", "principal_id": "u1"})
        # {"refresh_token": "***MASKED***", "principal_id": "u1"}
    """

    def __init__(self, extra_keys: Iterable[str] = ()) -> None:
        self._keys: List[str] = [k.lower() for k in self.SENSITIVE_KEYS]
        for key in extra_keys:
            self.add_key(key)

    @property
    def keys(self) -> List[str]:
        return list(self._keys)

    def add_key(self, key: str) -> None:
        """
        Raises:
            ValueError: Clé vide
        """
        normalized = key.strip().lower() if key else ""
        if not normalized:
            raise ValueError("Sensitive key cannot be empty")
        if normalized not in self._keys:
            self._keys.append(normalized)

    def is_sensitive_key(self, key: str) -> bool:
        lowered = key.lower()
        return bool(lowered) and any(k in lowered for k in self._keys)

    def looks_like_secret(self, value: str) -> bool:
        candidate = value.strip()
        if candidate[:7].lower() == "bearer ":
            return True
        return bool(HEX_SECRET_PATTERN.match(candidate) or JWT_PATTERN.match(candidate))

    def mask(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(data, dict):
            return data
        return {
            key: self.MASK_VALUE if self.is_sensitive_key(str(key)) else self._redact(value)
            for key, value in data.items()
        }

    def _redact(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.mask(value)
        if isinstance(value, (list, tuple)):
            return [self._redact(item) for item in value]
        if isinstance(value, str) and self.looks_like_secret(value):
            return self.MASK_VALUE
        return value
