"""
Access Token Issuer

Émission et validation des access tokens JWT (PyJWT).

Les dates sont vérifiées avec l'horloge injectée et non l'horloge système,
pour rester cohérent avec le reste du moteur.
"""

import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt

from ..core import EngineConfig, SigningKeys
from ..core.clock import Clock, utc_now
from ..logging import StructuredLogger
from .interfaces import AccessClaims, IAccessIssuer


class AccessTokenError(Exception):
    """Erreur validation access token."""

    default_message = "Access token rejected"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class SignatureInvalid(AccessTokenError):
    """Signature incorrecte ou algorithme non autorisé."""

    default_message = "Invalid token signature"


class TokenExpired(AccessTokenError):
    """Token expiré."""

    default_message = "Token expired"


class MalformedToken(AccessTokenError):
    """Structure ou claims invalides."""

    default_message = "Malformed token"


BEARER_PATTERN = re.compile(r"^Bearer\s+(\S+)\s*$")

REQUIRED_CLAIMS = ["exp", "iat", "sub", "jti"]


class AccessTokenIssuer(IAccessIssuer):
    """
    Émetteur d'access tokens courts.

    Conformité:
        - Algorithme fixe (pas de négociation via le header alg)
        - Claims obligatoires: sub, iat, exp, jti, typ="access"
        - Aucun secret de refresh dans les claims

    Example:
        issuer = AccessTokenIssuer(config)
        token = issuer.issue("u1")
        claims = issuer.verify(token)
    """

    TOKEN_TYPE = "access"

    def __init__(
        self,
        config: EngineConfig,
        keys: Optional[SigningKeys] = None,
        clock: Optional[Clock] = None,
        logger: Optional[StructuredLogger] = None,
        leeway: timedelta = timedelta(seconds=0),
    ) -> None:
        """
        Args:
            config: Configuration (algorithme, TTL, issuer)
            keys: Matériel de signature (défaut: depuis config)
            clock: Horloge UTC injectable
            logger: Logger structuré
            leeway: Tolérance de décalage d'horloge
        """
        self._keys = keys or SigningKeys.from_config(config)
        self._ttl = config.access_ttl
        self._issuer = config.access_issuer
        self._clock = clock or utc_now
        self._logger = logger or StructuredLogger("access-issuer")
        self._leeway = leeway

    @property
    def algorithm(self) -> str:
        return self._keys.algorithm

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, principal_id: str) -> str:
        return self.issue_with_claims(principal_id)[0]

    def issue_with_claims(self, principal_id: str) -> Tuple[str, AccessClaims]:
        if not principal_id:
            raise ValueError("principal_id obligatoire")

        now = self._clock()
        payload = {
            "sub": principal_id,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
            "jti": uuid.uuid4().hex,
            "typ": self.TOKEN_TYPE,
        }
        if self._issuer:
            payload["iss"] = self._issuer

        token = jwt.encode(payload, self._keys.signing_key, algorithm=self._keys.algorithm)
        claims = AccessClaims(
            principal_id=principal_id,
            issued_at=self._to_datetime(payload["iat"]),
            expires_at=self._to_datetime(payload["exp"]),
            token_id=payload["jti"],
            issuer=self._issuer or None,
        )
        return token, claims

    def verify(self, token: str) -> AccessClaims:
        """
        Valide un access token et retourne ses claims.

        Raises:
            SignatureInvalid: Signature incorrecte / algorithme refusé
            TokenExpired: Token expiré
            MalformedToken: Token illisible ou claims invalides
        """
        if not token or not isinstance(token, str):
            raise MalformedToken("Empty token")

        try:
            payload = jwt.decode(
                token,
                self._keys.verification_key,
                algorithms=[self._keys.algorithm],
                issuer=self._issuer or None,
                options={
                    "require": REQUIRED_CLAIMS,
                    # exp/iat vérifiés plus bas avec l'horloge injectée
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "verify_aud": False,
                },
            )
        except jwt.InvalidSignatureError:
            self._reject("signature")
            raise SignatureInvalid()
        except jwt.InvalidAlgorithmError:
            self._reject("algorithm")
            raise SignatureInvalid("Token algorithm not allowed")
        except jwt.InvalidTokenError as e:
            self._reject("malformed")
            raise MalformedToken(f"Invalid token: {e}")

        claims = self._build_claims(payload)

        if self._clock() >= claims.expires_at + self._leeway:
            self._reject("expired")
            raise TokenExpired()

        return claims

    def principal_from_authorization(self, header: Optional[str]) -> str:
        """
        Raises:
            MalformedToken: Header absent ou schéma différent de Bearer
            SignatureInvalid / TokenExpired: voir verify
        """
        match = BEARER_PATTERN.match(header or "")
        if not match:
            raise MalformedToken("Missing bearer token")
        return self.verify(match.group(1)).principal_id

    def _build_claims(self, payload: dict) -> AccessClaims:
        if payload.get("typ") != self.TOKEN_TYPE:
            self._reject("token_type")
            raise MalformedToken("Unexpected token type")

        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            self._reject("subject")
            raise MalformedToken("Invalid subject")

        try:
            return AccessClaims(
                principal_id=sub,
                issued_at=self._to_datetime(payload["iat"]),
                expires_at=self._to_datetime(payload["exp"]),
                token_id=str(payload["jti"]),
                issuer=payload.get("iss"),
            )
        except (TypeError, ValueError, OverflowError) as e:
            self._reject("timestamps")
            raise MalformedToken(f"Invalid timestamps: {e}")

    @staticmethod
    def _to_datetime(value) -> datetime:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"numeric timestamp expected, got {type(value).__name__}")
        return datetime.fromtimestamp(value, tz=timezone.utc)

    def _reject(self, reason: str) -> None:
        self._logger.info("access_token_rejected", reason=reason)
