"""
Core - Crypto Provider Implementation

Génération des secrets bruts, digests at-rest et matériel de signature
des access tokens.
"""

import hashlib
import hmac
import secrets
from typing import Any, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from .config import HMAC_ALGORITHMS, EngineConfig, load_private_key
from .interfaces import ISecretGenerator


class SecretGenerator(ISecretGenerator):
    """
    Secrets haute entropie et digests SHA-256.

    Le secret brut n'existe qu'en mémoire: seul son digest est persisté.
    """

    def __init__(self, secret_bytes: int = 64, family_id_bytes: int = 16):
        """
        Args:
            secret_bytes: Octets aléatoires par secret (défaut: 64 = 512 bits)
            family_id_bytes: Octets aléatoires par family_id
        """
        self.secret_bytes = secret_bytes
        self.family_id_bytes = family_id_bytes

    @classmethod
    def from_config(cls, config: EngineConfig) -> "SecretGenerator":
        return cls(secret_bytes=config.secret_bytes, family_id_bytes=config.family_id_bytes)

    def generate_secret(self) -> str:
        """
        Génère un secret brut.

        Returns:
            Hex string (2 * secret_bytes caractères)
        """
        return secrets.token_hex(self.secret_bytes)

    def generate_family_id(self) -> str:
        return secrets.token_hex(self.family_id_bytes)

    def digest(self, raw_secret: str) -> str:
        """
        Calcule le digest SHA-256 d'un secret brut.

        Toute chaîne a un digest, y compris une entrée client mal formée
        (surrogates isolés): elle est alors simplement inconnue du store.

        Returns:
            Hash hex string (64 caractères)
        """
        return hashlib.sha256(raw_secret.encode("utf-8", "surrogatepass")).hexdigest()

    def matches(self, raw_secret: str, secret_digest: str) -> bool:
        """Comparaison en temps constant secret brut / digest stocké."""
        return hmac.compare_digest(self.digest(raw_secret), secret_digest)


class SigningKeys:
    """
    Matériel de signature des access tokens.

    - HS*: secret partagé
    - ES*/RS*: clé privée PEM fournie, sinon clé ECDSA-P384 éphémère (ES384 uniquement)
    """

    def __init__(self, algorithm: str, signing_key: Any, verification_key: Any):
        self.algorithm = algorithm
        self.signing_key = signing_key
        self.verification_key = verification_key

    @classmethod
    def from_config(cls, config: EngineConfig) -> "SigningKeys":
        algorithm = config.access_algorithm

        if algorithm in HMAC_ALGORITHMS:
            return cls(algorithm, config.access_secret, config.access_secret)

        private_key = cls._load_private_key(config.access_private_key_pem, algorithm)
        return cls(algorithm, private_key, private_key.public_key())

    @staticmethod
    def _load_private_key(pem: Optional[str], algorithm: str) -> Any:
        if pem:
            return load_private_key(pem, algorithm)

        # EngineConfig n'accepte l'absence de PEM que pour ES384.
        # Clé éphémère: les tokens ne survivent pas au redémarrage
        return ec.generate_private_key(ec.SECP384R1())

    def public_key_pem(self) -> Optional[str]:
        """Clé publique PEM (None pour HMAC)."""
        if self.algorithm in HMAC_ALGORITHMS:
            return None
        return self.verification_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("utf-8")
