"""
HTTP routes for the sync backend.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ejarat_sync.db import DbClient, DuplicateEmailError, UserRecord, isoformat
from ejarat_sync.dependencies import (
    Identity,
    get_db_client,
    get_token_service,
    require_identity,
)
from ejarat_sync.errors import BadRequest, Conflict, Unauthorized
from ejarat_sync.schemas import (
    AuthResponse,
    HealthResponse,
    InvoiceCreateRequest,
    InvoiceListResponse,
    InvoiceResponse,
    LoginRequest,
    OkResponse,
    ProfileResponse,
    SignupRequest,
    SnapshotPullResponse,
    SnapshotPushRequest,
    SnapshotPushResponse,
)
from ejarat_sync.security import TokenService, hash_password, verify_password

logger = logging.getLogger(__name__)

SERVICE_MESSAGE = "ejarat-sync API is running"
INVALID_CREDENTIALS = "invalid credentials"
INVALID_PASSWORD = "invalid password"

router = APIRouter()


def _auth_payload(user: UserRecord, tokens: TokenService) -> AuthResponse:
    token = tokens.issue(user.user_id, user.email, user.name or None)
    return AuthResponse(token=token, user=user.public_dict())


def _require_credentials(email: str | None, password: str | None) -> tuple[str, str]:
    email = (email or "").strip()
    if not email or not (password or "").strip():
        raise BadRequest()
    return email, password


@router.get("/", response_model=HealthResponse)
@router.get("/healthz", response_model=HealthResponse)
def health():
    return HealthResponse(msg=SERVICE_MESSAGE)


@router.post("/api/auth/signup", response_model=AuthResponse, status_code=201)
@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def signup(
    payload: SignupRequest,
    db: DbClient = Depends(get_db_client),
    tokens: TokenService = Depends(get_token_service),
):
    email, password = _require_credentials(payload.email, payload.password)
    if db.get_user_by_email(email):
        raise Conflict()

    try:
        password_hash = hash_password(password)
    except ValueError:
        raise BadRequest(INVALID_PASSWORD)

    try:
        user = db.create_user(email, payload.name or "", password_hash)
    except DuplicateEmailError:
        raise Conflict()

    logger.info("Registered user %s", user.user_id)
    return _auth_payload(user, tokens)


@router.post("/api/auth/login", response_model=AuthResponse)
@router.post("/auth/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    db: DbClient = Depends(get_db_client),
    tokens: TokenService = Depends(get_token_service),
):
    email, password = _require_credentials(payload.email, payload.password)
    user = db.get_user_by_email(email)
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        raise Unauthorized(INVALID_CREDENTIALS)

    logger.info("User %s logged in", user.user_id)
    return _auth_payload(user, tokens)


@router.get("/api/me", response_model=ProfileResponse)
def me(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    user = db.get_user(identity.user_id)
    return ProfileResponse(user=user.profile_dict() if user else None)


@router.get("/api/invoices", response_model=InvoiceListResponse)
def list_invoices(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    items = db.list_invoices(identity.user_id)
    return InvoiceListResponse(items=[item.as_dict() for item in items])


@router.post("/api/invoices", response_model=InvoiceResponse, status_code=201)
def create_invoice(
    payload: InvoiceCreateRequest,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    item = db.create_invoice(
        identity.user_id,
        title=payload.title,
        amount=payload.amount,
        month=payload.month,
        notes=payload.notes,
    )
    return InvoiceResponse(item=item.as_dict())


@router.delete("/api/invoices/{invoice_id}", response_model=OkResponse)
def delete_invoice(
    invoice_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    # Ids owned by other users are silently ignored.
    db.delete_invoice(identity.user_id, invoice_id)
    return OkResponse()


@router.post("/data/push", response_model=SnapshotPushResponse)
def push_snapshot(
    payload: SnapshotPushRequest,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    snapshot = db.save_snapshot(identity.user_id, payload.data)
    return SnapshotPushResponse(updatedAt=isoformat(snapshot.updated_at))


@router.get("/data/pull", response_model=SnapshotPullResponse)
def pull_snapshot(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    snapshot = db.get_snapshot(identity.user_id)
    if snapshot is None:
        return SnapshotPullResponse(data=None, updatedAt=None)
    return SnapshotPullResponse(data=snapshot.data, updatedAt=isoformat(snapshot.updated_at))
