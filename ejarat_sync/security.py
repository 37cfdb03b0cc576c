"""Password hashing and signed session tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

DEFAULT_TOKEN_TTL = timedelta(days=30)
DEFAULT_BCRYPT_ROUNDS = 10


class InvalidToken(Exception):
    """Raised for any token that is malformed, badly signed or expired."""


def build_password_context(rounds: int = DEFAULT_BCRYPT_ROUNDS) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


_pwd_context = build_password_context()


def configure_password_hashing(rounds: int) -> None:
    global _pwd_context
    _pwd_context = build_password_context(rounds)


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return _pwd_context.verify(password, password_hash)
    except ValueError:
        return False


class TokenService:
    """Issue and verify HMAC-signed, time-limited bearer tokens."""

    def __init__(
        self,
        secret: str,
        *,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        algorithm: str = "HS256",
    ) -> None:
        if not secret:
            raise ValueError("A signing secret must be provided")
        self._secret = secret
        self._ttl = ttl
        self._algorithm = algorithm

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, user_id: str, email: str, name: Optional[str] = None) -> str:
        issued_at = int(self._now().timestamp())
        claims: Dict[str, Any] = {
            "sub": user_id,
            "email": email,
            "iat": issued_at,
            "exp": issued_at + int(self._ttl.total_seconds()),
        }
        if name is not None:
            claims["name"] = name
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc
        if not claims.get("sub"):
            raise InvalidToken("Token has no subject")
        return claims

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = [
    "InvalidToken",
    "TokenService",
    "configure_password_hashing",
    "hash_password",
    "verify_password",
]
