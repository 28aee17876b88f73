"""
Tests unitaires pour SecretGenerator et SigningKeys.
"""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from pydantic import ValidationError

from src.core import EngineConfig, ISecretGenerator, SecretGenerator, SigningKeys


class TestSecretGenerator:
    """Tests pour SecretGenerator."""

    def setup_method(self):
        """Setup avant chaque test."""
        self.secrets = SecretGenerator()

    def test_implements_interface(self):
        assert isinstance(self.secrets, ISecretGenerator)

    def test_secret_is_512_bits_hex(self):
        """64 octets par défaut → 128 caractères hex."""
        raw = self.secrets.generate_secret()

        assert len(raw) == 128
        assert all(c in "0123456789abcdef" for c in raw)

    def test_secrets_unique(self):
        generated = {self.secrets.generate_secret() for _ in range(100)}

        assert len(generated) == 100

    def test_family_id_length(self):
        assert len(self.secrets.generate_family_id()) == 32

    def test_from_config(self):
        config = EngineConfig(access_secret="x" * 32, secret_bytes=32, family_id_bytes=8)
        generator = SecretGenerator.from_config(config)

        assert len(generator.generate_secret()) == 64
        assert len(generator.generate_family_id()) == 16

    def test_digest_returns_64_chars(self):
        """Le digest SHA-256 doit retourner exactement 64 caractères."""
        digest = self.secrets.digest("raw")

        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)

    def test_digest_deterministic(self):
        raw = self.secrets.generate_secret()

        assert self.secrets.digest(raw) == self.secrets.digest(raw)

    def test_digest_differs_from_secret(self):
        """Le secret brut n'est jamais son propre digest."""
        raw = self.secrets.generate_secret()

        assert self.secrets.digest(raw) != raw

    def test_digest_of_malformed_unicode(self):
        """Un surrogate isolé (entrée client invalide) a un digest comme le reste."""
        digest = self.secrets.digest("\ud800abc")

        assert len(digest) == 64
        assert digest != self.secrets.digest("abc")

    def test_matches(self):
        raw = self.secrets.generate_secret()
        digest = self.secrets.digest(raw)

        assert self.secrets.matches(raw, digest) is True
        assert self.secrets.matches(raw + "0", digest) is False


class TestSigningKeys:
    """Tests pour SigningKeys."""

    def test_hmac_uses_secret(self):
        config = EngineConfig(access_secret="s" * 40, access_algorithm="HS512")
        keys = SigningKeys.from_config(config)

        assert keys.algorithm == "HS512"
        assert keys.signing_key == keys.verification_key == "s" * 40
        assert keys.public_key_pem() is None

    def test_es384_ephemeral_key(self):
        """Sans PEM, ES384 génère une clé P-384 éphémère."""
        keys = SigningKeys.from_config(EngineConfig(access_algorithm="ES384"))

        assert isinstance(keys.signing_key, ec.EllipticCurvePrivateKey)
        assert keys.signing_key.curve.name == "secp384r1"
        assert keys.public_key_pem().startswith("-----BEGIN PUBLIC KEY-----")

    def test_ephemeral_keys_differ(self):
        config = EngineConfig(access_algorithm="ES384")

        assert SigningKeys.from_config(config).public_key_pem() != SigningKeys.from_config(config).public_key_pem()

    def test_rs256_requires_pem(self):
        """L'absence de clé est refusée dès la configuration."""
        with pytest.raises(ValidationError) as exc_info:
            EngineConfig(access_algorithm="RS256")

        assert "RS256" in str(exc_info.value)

    def test_es256_from_pem(self):
        private_key = ec.generate_private_key(ec.SECP256R1())
        pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("utf-8")

        keys = SigningKeys.from_config(EngineConfig(access_algorithm="ES256", access_private_key_pem=pem))

        assert keys.signing_key.curve.name == "secp256r1"

    def test_rs256_from_pem(self):
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("utf-8")

        keys = SigningKeys.from_config(EngineConfig(access_algorithm="RS256", access_private_key_pem=pem))

        assert isinstance(keys.verification_key, rsa.RSAPublicKey)
        assert keys.verification_key.public_numbers() == private_key.public_key().public_numbers()
