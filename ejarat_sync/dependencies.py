"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ejarat_sync.config import Settings, get_settings
from ejarat_sync.db import DbClient, InMemoryDbClient, SqlDbClient
from ejarat_sync.errors import InvalidSession, Unauthorized
from ejarat_sync.security import InvalidToken, TokenService

_settings: Settings | None = None
_db_client: DbClient | None = None
_token_service: TokenService | None = None

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, decoded from a verified bearer token."""

    user_id: str
    email: str
    name: Optional[str] = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client shared by every request.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = _settings or get_settings()
    if settings.use_in_memory_backends:
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url or "")
    return _db_client


def get_token_service() -> TokenService:
    global _token_service
    if _token_service:
        return _token_service

    settings = _settings or get_settings()
    _token_service = TokenService(
        settings.jwt_secret,
        ttl=timedelta(days=settings.token_ttl_days),
        algorithm=settings.jwt_algorithm,
    )
    return _token_service


def configure_dependencies(settings: Settings) -> None:
    """Build the singletons from ``settings`` instead of the environment."""
    global _settings
    reset_dependencies()
    _settings = settings


def reset_dependencies() -> None:
    """Drop the cached singletons so the next request rebuilds them."""
    global _settings, _db_client, _token_service
    _settings = None
    _db_client = None
    _token_service = None


def require_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized()
    try:
        claims = tokens.verify(credentials.credentials)
    except InvalidToken:
        raise InvalidSession()
    request.state.claims = claims
    return Identity(
        user_id=str(claims["sub"]),
        email=claims.get("email", ""),
        name=claims.get("name"),
    )
