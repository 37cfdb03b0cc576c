"""
Pydantic schemas for the sync backend.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    email: Optional[str] = Field(None, max_length=320)
    password: Optional[str] = None
    name: Optional[str] = Field("", max_length=200)


class LoginRequest(BaseModel):
    email: Optional[str] = Field(None, max_length=320)
    password: Optional[str] = None


class PublicUser(BaseModel):
    id: str
    email: str
    name: str


class UserProfile(PublicUser):
    createdAt: str
    updatedAt: str


class AuthResponse(BaseModel):
    token: str
    user: PublicUser


class ProfileResponse(BaseModel):
    user: Optional[UserProfile]


class InvoiceCreateRequest(BaseModel):
    title: Optional[str] = None
    amount: Optional[Union[int, Annotated[float, Field(allow_inf_nan=False)]]] = None
    month: Optional[str] = Field(None, max_length=32)
    notes: Optional[str] = None


class Invoice(BaseModel):
    id: str
    userId: str
    title: Optional[str] = None
    amount: Optional[Union[int, float]] = None
    month: Optional[str] = None
    notes: Optional[str] = None
    createdAt: str
    updatedAt: str


class InvoiceListResponse(BaseModel):
    items: list[Invoice]


class InvoiceResponse(BaseModel):
    item: Invoice


class OkResponse(BaseModel):
    ok: Literal[True] = True


class HealthResponse(OkResponse):
    msg: str


class SnapshotPushRequest(BaseModel):
    data: dict[str, Any]


class SnapshotPushResponse(OkResponse):
    updatedAt: str


class SnapshotPullResponse(OkResponse):
    data: Optional[dict[str, Any]] = None
    updatedAt: Optional[str] = None
