"""
Core - Config Loader Implementation

Charge la configuration depuis un fichier YAML puis applique
les surcharges d'environnement (JWT_ACCESS_SECRET, REFRESH_TOKEN_TTL_DAYS...).
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from .config import EngineConfig
from .interfaces import IConfigLoader


class ConfigurationError(Exception):
    """Erreur de configuration (fichier, environnement ou validation)."""

    pass


# Variable d'environnement -> champ EngineConfig
ENV_OVERRIDES: Dict[str, str] = {
    "JWT_ACCESS_SECRET": "access_secret",
    "JWT_ACCESS_ALGORITHM": "access_algorithm",
    "JWT_ACCESS_EXPIRES": "access_ttl_seconds",
    "JWT_ACCESS_ISSUER": "access_issuer",
    "JWT_ACCESS_PRIVATE_KEY": "access_private_key_pem",
    "REFRESH_TOKEN_TTL_DAYS": "refresh_ttl_days",
    "EMAIL_VERIFY_TTL_MINUTES": "email_verify_ttl_minutes",
    "RESET_PASSWORD_TTL_MINUTES": "reset_password_ttl_minutes",
    "CREDENTIAL_SWEEP_INTERVAL_MINUTES": "sweep_interval_minutes",
}

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration_seconds(value: Any) -> int:
    """
    Convertit une durée ("900", "15m", "1h", 900) en secondes.

    Raises:
        ConfigurationError: Format invalide
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Durée invalide: {value!r}")
    if isinstance(value, int):
        return value

    match = _DURATION_PATTERN.match(str(value))
    if not match:
        raise ConfigurationError(f"Durée invalide: {value!r}")

    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit]


class ConfigLoader(IConfigLoader):
    """
    Chargement de EngineConfig.

    Ordre de priorité: environnement > fichier YAML > valeurs par défaut.

    Example:
        config = ConfigLoader("config/engine.yaml").load()
    """

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            config_path: Fichier YAML optionnel
            environ: Environnement à lire (défaut: os.environ)
        """
        self.config_path = Path(config_path) if config_path else None
        self._environ = environ if environ is not None else os.environ

    def load(self) -> EngineConfig:
        """
        Construit la configuration.

        Raises:
            ConfigurationError: Fichier illisible ou valeurs invalides
        """
        values: Dict[str, Any] = {}

        if self.config_path is not None:
            values.update(self._read_file(self.config_path))

        values.update(self._read_environ())

        if "access_ttl_seconds" in values:
            values["access_ttl_seconds"] = parse_duration_seconds(values["access_ttl_seconds"])

        try:
            return EngineConfig(**values)
        except ValidationError as e:
            # Sans les valeurs saisies: secret HMAC et clé privée n'apparaissent pas
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
                for error in e.errors(include_url=False, include_input=False)
            )
            raise ConfigurationError(f"Configuration invalide: {details}") from e

    def _read_file(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ConfigurationError(f"Configuration non trouvée: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Erreur de parsing YAML: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Erreur de lecture fichier: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration doit être un objet YAML")

        unknown = set(data) - set(EngineConfig.model_fields)
        if unknown:
            raise ConfigurationError(f"Champs inconnus: {', '.join(sorted(unknown))}")

        return data

    def _read_environ(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for env_name, field_name in ENV_OVERRIDES.items():
            raw = self._environ.get(env_name)
            if raw:
                values[field_name] = raw
        return values
