"""
Core - Configuration moteur

Structure de configuration construite UNE fois au démarrage du process,
puis passée par référence aux constructeurs (RotationEngine, AccessTokenIssuer).
Aucune lecture d'environnement dans la logique métier.
"""

from datetime import timedelta
from typing import Any, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from pydantic import BaseModel, ConfigDict, field_validator, model_validator


HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")
ASYMMETRIC_ALGORITHMS = ("ES256", "ES384", "RS256")
SUPPORTED_ALGORITHMS = HMAC_ALGORITHMS + ASYMMETRIC_ALGORITHMS

# HS256 exige au moins 256 bits de clé
MIN_HMAC_SECRET_BYTES = 32
MIN_SECRET_BYTES = 32

# Seul algorithme autorisé sans clé fournie (clé éphémère générée au démarrage)
EPHEMERAL_KEY_ALGORITHM = "ES384"

EC_CURVES = {"ES256": "secp256r1", "ES384": "secp384r1"}


def load_private_key(pem: str, algorithm: str) -> Any:
    """
    Charge une clé privée PEM non chiffrée et vérifie qu'elle correspond
    à l'algorithme de signature.

    Args:
        pem: Clé privée PEM
        algorithm: ES256, ES384 ou RS256

    Returns:
        Clé privée cryptography

    Raises:
        ValueError: PEM illisible ou type de clé incompatible
    """
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        # Jamais d'extrait de la clé dans le message
        raise ValueError(f"access_private_key_pem illisible ({type(e).__name__})") from None

    if algorithm in EC_CURVES:
        expected_curve = EC_CURVES[algorithm]
        if not isinstance(key, ec.EllipticCurvePrivateKey) or key.curve.name != expected_curve:
            raise ValueError(f"{algorithm} exige une clé EC {expected_curve}")
    elif algorithm == "RS256" and not isinstance(key, rsa.RSAPrivateKey):
        raise ValueError("RS256 exige une clé RSA")

    return key


class EngineConfig(BaseModel):
    """
    Configuration du moteur de credentials.

    Attributes:
        access_secret: Secret HMAC (algorithmes HS*)
        access_algorithm: Algorithme de signature fixe
        access_ttl_seconds: Durée de vie access token (défaut: 15 min)
        access_issuer: Claim iss optionnel
        access_private_key_pem: Clé privée PEM (algorithmes ES*/RS*)
        refresh_ttl_days: Durée de vie refresh credential
        email_verify_ttl_minutes: Durée de vie vérification email
        reset_password_ttl_minutes: Durée de vie reset mot de passe
        secret_bytes: Octets aléatoires par secret brut
        family_id_bytes: Octets aléatoires par family_id
        device_label_max_length: Longueur max du label appareil
        sweep_interval_minutes: Intervalle minimum entre deux purges
    """

    model_config = ConfigDict(frozen=True)

    access_secret: Optional[str] = None
    access_algorithm: str = "HS256"
    access_ttl_seconds: int = 900
    access_issuer: Optional[str] = None
    access_private_key_pem: Optional[str] = None

    refresh_ttl_days: int = 7
    email_verify_ttl_minutes: int = 15
    reset_password_ttl_minutes: int = 15

    secret_bytes: int = 64
    family_id_bytes: int = 16
    device_label_max_length: int = 120
    sweep_interval_minutes: int = 5

    @field_validator("access_algorithm")
    @classmethod
    def _check_algorithm(cls, value: str) -> str:
        if value not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Algorithme non supporté: {value}")
        return value

    @field_validator(
        "access_ttl_seconds",
        "refresh_ttl_days",
        "email_verify_ttl_minutes",
        "reset_password_ttl_minutes",
        "family_id_bytes",
        "device_label_max_length",
        "sweep_interval_minutes",
    )
    @classmethod
    def _check_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("doit être strictement positif")
        return value

    @field_validator("secret_bytes")
    @classmethod
    def _check_secret_entropy(cls, value: int) -> int:
        if value < MIN_SECRET_BYTES:
            raise ValueError(f"secret_bytes doit être >= {MIN_SECRET_BYTES} (256 bits)")
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> "EngineConfig":
        if self.access_algorithm in HMAC_ALGORITHMS:
            if not self.access_secret:
                raise ValueError("access_secret obligatoire pour un algorithme HMAC")
            if len(self.access_secret.encode("utf-8")) < MIN_HMAC_SECRET_BYTES:
                raise ValueError(f"access_secret doit faire au moins {MIN_HMAC_SECRET_BYTES} octets")

        if self.access_algorithm in ASYMMETRIC_ALGORITHMS:
            if self.access_private_key_pem:
                load_private_key(self.access_private_key_pem, self.access_algorithm)
            elif self.access_algorithm != EPHEMERAL_KEY_ALGORITHM:
                raise ValueError(f"access_private_key_pem obligatoire pour {self.access_algorithm}")

        if self.access_ttl >= self.refresh_ttl:
            raise ValueError("access_ttl_seconds doit être inférieur à la durée du refresh credential")

        return self

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(seconds=self.access_ttl_seconds)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(days=self.refresh_ttl_days)

    @property
    def email_verify_ttl(self) -> timedelta:
        return timedelta(minutes=self.email_verify_ttl_minutes)

    @property
    def reset_password_ttl(self) -> timedelta:
        return timedelta(minutes=self.reset_password_ttl_minutes)

    @property
    def sweep_interval(self) -> timedelta:
        return timedelta(minutes=self.sweep_interval_minutes)
