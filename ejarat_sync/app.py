"""
FastAPI application entry point for the sync backend.
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ejarat_sync.config import Settings, get_settings
from ejarat_sync.dependencies import configure_dependencies
from ejarat_sync.errors import PayloadTooLarge, error_response, install_exception_handlers
from ejarat_sync.routes import router
from ejarat_sync.security import configure_password_hashing


class BodyLimitMiddleware:
    """Reject request bodies larger than ``max_body_bytes``.

    The declared ``Content-Length`` is checked up front; bodies sent without
    one (chunked) are counted as they are read.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > self.max_body_bytes:
            response = error_response(PayloadTooLarge.status_code, PayloadTooLarge.default_detail)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    raise PayloadTooLarge()
            return message

        await self.app(scope, limited_receive, send)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_password_hashing(settings.bcrypt_rounds)
    configure_dependencies(settings)

    app = FastAPI(title="ejarat-sync API", version="0.1.0")
    app.state.settings = settings
    app.add_middleware(BodyLimitMiddleware, max_body_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app)
    app.include_router(router)
    return app
