"""
Session token issuing and verification.

Tokens are compact HS256 JWTs carrying the user id (as both ``sub`` and
``id``), email, role, ``iat`` and ``exp``. Two interchangeable backends
produce the same wire format:

- ``jose``: signs and verifies with python-jose
- ``edge``: assembles the JWT by hand with hmac/hashlib/base64 only, for
  runtimes where the native crypto backends are unavailable

Verification never says *why* a token was rejected; callers only see ``None``.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type

from jose import JWTError, jwt

from lamont.core.config import Settings

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    email: str
    role: str
    issued_at: int
    expires_at: int


class TokenService(ABC):
    """Issues and verifies signed, stateless session tokens."""

    def __init__(self, secret_key: str, ttl_seconds: int, clock: Optional[Clock] = None) -> None:
        if not secret_key:
            raise ValueError("A non-empty secret key is required to sign tokens")
        self._secret_key = secret_key
        self._ttl_seconds = ttl_seconds
        self._clock = clock or time.time

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, user_id: str, email: str, role: str) -> str:
        """Mint a token for the given identity, expiring after the configured TTL."""
        issued_at = int(self._clock())
        claims = {
            "sub": str(user_id),
            "id": str(user_id),
            "email": email,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self._ttl_seconds,
        }
        return self._encode(claims)

    def verify(self, token: Optional[str]) -> Optional[TokenPayload]:
        """Return the payload if the signature is valid and the token has not expired."""
        if not token or not isinstance(token, str):
            return None
        claims = self._decode(token)
        if claims is None:
            return None
        return self._payload_from_claims(claims)

    def _payload_from_claims(self, claims: Dict[str, Any]) -> Optional[TokenPayload]:
        expires_at = claims.get("exp")
        issued_at = claims.get("iat", 0)
        if not isinstance(expires_at, (int, float)) or isinstance(expires_at, bool):
            logger.debug("Rejecting token without a numeric exp claim")
            return None
        # Valid up to and including the expiry second
        if self._clock() > expires_at:
            logger.debug("Rejecting expired token")
            return None

        user_id = claims.get("sub") or claims.get("id")
        email = claims.get("email")
        if not user_id or not email:
            logger.debug("Rejecting token missing identity claims")
            return None

        return TokenPayload(
            user_id=str(user_id),
            email=str(email),
            role=str(claims.get("role") or "user"),
            issued_at=int(issued_at) if isinstance(issued_at, (int, float)) else 0,
            expires_at=int(expires_at),
        )

    @abstractmethod
    def _encode(self, claims: Dict[str, Any]) -> str:
        """Sign the claims into a compact token string."""
        pass

    @abstractmethod
    def _decode(self, token: str) -> Optional[Dict[str, Any]]:
        """Check the signature and return the raw claims, or None if it does not hold."""
        pass


_backend_registry: Dict[str, Type[TokenService]] = {}


def register_token_backend(name: str):
    """Decorator to register a token backend class"""
    def decorator(cls: Type[TokenService]):
        _backend_registry[name] = cls
        return cls
    return decorator


def get_token_backend(name: str) -> Type[TokenService] | None:
    """Get a token backend class by name"""
    return _backend_registry.get(name)


def list_token_backends() -> list[str]:
    """List all registered backend names"""
    return list(_backend_registry.keys())


@register_token_backend("jose")
class JoseTokenService(TokenService):
    def __init__(self, secret_key: str, ttl_seconds: int, clock: Optional[Clock] = None,
                 algorithm: str = "HS256") -> None:
        super().__init__(secret_key, ttl_seconds, clock)
        self._algorithm = algorithm

    def _encode(self, claims: Dict[str, Any]) -> str:
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def _decode(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            # Expiry is checked against our own clock in _payload_from_claims
            return jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTError as e:
            logger.debug(f"Token rejected by jose: {type(e).__name__}")
            return None


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


@register_token_backend("edge")
class EdgeTokenService(TokenService):
    """HS256 JWTs built from the standard HMAC primitive alone."""

    HEADER = {"alg": "HS256", "typ": "JWT"}

    def __init__(self, secret_key: str, ttl_seconds: int, clock: Optional[Clock] = None,
                 algorithm: str = "HS256") -> None:
        if algorithm != "HS256":
            raise ValueError(f"Edge token backend only supports HS256, not {algorithm}")
        super().__init__(secret_key, ttl_seconds, clock)
        self._key = secret_key.encode("utf-8")

    def _sign(self, signing_input: str) -> str:
        digest = hmac.new(self._key, signing_input.encode("ascii"), hashlib.sha256).digest()
        return _b64url_encode(digest)

    def _encode(self, claims: Dict[str, Any]) -> str:
        header = _b64url_encode(json.dumps(self.HEADER, separators=(",", ":")).encode("utf-8"))
        body = _b64url_encode(json.dumps(claims, separators=(",", ":")).encode("utf-8"))
        signing_input = f"{header}.{body}"
        return f"{signing_input}.{self._sign(signing_input)}"

    def _decode(self, token: str) -> Optional[Dict[str, Any]]:
        parts = token.split(".")
        if len(parts) != 3:
            logger.debug("Token rejected: not a three-part JWT")
            return None
        header_segment, body_segment, signature = parts
        try:
            header = json.loads(_b64url_decode(header_segment))
            if not isinstance(header, dict) or header.get("alg") != "HS256":
                logger.debug("Token rejected: unexpected header")
                return None
            expected = self._sign(f"{header_segment}.{body_segment}")
            if not hmac.compare_digest(expected, signature):
                logger.debug("Token rejected: signature mismatch")
                return None
            claims = json.loads(_b64url_decode(body_segment))
        except (ValueError, TypeError, binascii.Error) as e:
            logger.debug(f"Token rejected: undecodable segment ({type(e).__name__})")
            return None
        if not isinstance(claims, dict):
            return None
        return claims


def build_token_service(settings: Settings, clock: Optional[Clock] = None) -> TokenService:
    """Construct the backend selected by TOKEN_BACKEND."""
    backend = get_token_backend(settings.TOKEN_BACKEND)
    if backend is None:
        raise ValueError(
            f"Unknown TOKEN_BACKEND '{settings.TOKEN_BACKEND}', "
            f"expected one of: {', '.join(list_token_backends())}"
        )
    return backend(
        settings.SECRET_KEY,
        settings.access_token_expire_seconds,
        clock=clock,
        algorithm=settings.ALGORITHM,
    )
