"""
Persistence for users, invoices and sync snapshots.

Two implementations share the ``DbClient`` interface: an in-memory store for
tests/local runs and a SQLAlchemy store for Postgres (or SQLite in tests).
"""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import JSON, Column, Float, ForeignKey, String, create_engine, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class DuplicateEmailError(ValueError):
    """Raised when creating a user whose email is already registered."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


def json_number(value: Optional[float]) -> Optional[float]:
    """Render integral amounts as ints so `1500` round-trips unchanged."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def isoformat(timestamp: Optional[float]) -> Optional[str]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(self, email: str, name: str, password_hash: str) -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def list_invoices(self, user_id: str) -> list["InvoiceRecord"]:
        ...

    def create_invoice(
        self,
        user_id: str,
        *,
        title: Optional[str] = None,
        amount: Optional[float] = None,
        month: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> "InvoiceRecord":
        ...

    def delete_invoice(self, user_id: str, invoice_id: str) -> bool:
        ...

    def save_snapshot(self, user_id: str, data: dict) -> "SnapshotRecord":
        ...

    def get_snapshot(self, user_id: str) -> Optional["SnapshotRecord"]:
        ...


@dataclass
class UserRecord:
    user_id: str
    email: str
    name: str
    password_hash: str
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def public_dict(self) -> dict:
        return {"id": self.user_id, "email": self.email, "name": self.name}

    def profile_dict(self) -> dict:
        return {
            **self.public_dict(),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


@dataclass
class InvoiceRecord:
    invoice_id: str
    user_id: str
    title: Optional[str] = None
    amount: Optional[float] = None
    month: Optional[str] = None
    notes: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.invoice_id,
            "userId": self.user_id,
            "title": self.title,
            "amount": json_number(self.amount),
            "month": self.month,
            "notes": self.notes,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


@dataclass
class SnapshotRecord:
    user_id: str
    data: Dict[str, Any]
    updated_at: float = field(default_factory=lambda: time.time())


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.invoices: Dict[str, InvoiceRecord] = {}
        self.snapshots: Dict[str, SnapshotRecord] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.invoices.clear()
        self.snapshots.clear()

    def create_user(self, email: str, name: str, password_hash: str) -> UserRecord:
        email = normalize_email(email)
        if any(user.email == email for user in self.users.values()):
            raise DuplicateEmailError(email)
        record = UserRecord(
            user_id=uuid.uuid4().hex,
            email=email,
            name=name,
            password_hash=password_hash,
        )
        self.users[record.user_id] = record
        return record

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        email = normalize_email(email)
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def list_invoices(self, user_id: str) -> list[InvoiceRecord]:
        items = [inv for inv in self.invoices.values() if inv.user_id == user_id]
        return sorted(items, key=lambda inv: inv.created_at, reverse=True)

    def create_invoice(
        self,
        user_id: str,
        *,
        title: Optional[str] = None,
        amount: Optional[float] = None,
        month: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> InvoiceRecord:
        record = InvoiceRecord(
            invoice_id=uuid.uuid4().hex,
            user_id=user_id,
            title=title,
            amount=amount,
            month=month,
            notes=notes,
        )
        self.invoices[record.invoice_id] = record
        return record

    def delete_invoice(self, user_id: str, invoice_id: str) -> bool:
        record = self.invoices.get(invoice_id)
        if record is None or record.user_id != user_id:
            return False
        del self.invoices[invoice_id]
        return True

    def save_snapshot(self, user_id: str, data: dict) -> SnapshotRecord:
        record = SnapshotRecord(user_id=user_id, data=copy.deepcopy(data))
        self.snapshots[user_id] = record
        return record

    def get_snapshot(self, user_id: str) -> Optional[SnapshotRecord]:
        record = self.snapshots.get(user_id)
        if record is None:
            return None
        return SnapshotRecord(
            user_id=record.user_id,
            data=copy.deepcopy(record.data),
            updated_at=record.updated_at,
        )


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            user_id=row.id,
            email=row.email,
            name=row.name,
            password_hash=row.password_hash,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _to_invoice_record(self, row: "InvoiceRow") -> InvoiceRecord:
        return InvoiceRecord(
            invoice_id=row.id,
            user_id=row.user_id,
            title=row.title,
            amount=row.amount,
            month=row.month,
            notes=row.notes,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def create_user(self, email: str, name: str, password_hash: str) -> UserRecord:
        now = time.time()
        email = normalize_email(email)
        with self.Session() as session:
            row = UserRow(
                id=uuid.uuid4().hex,
                email=email,
                name=name,
                password_hash=password_hash,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateEmailError(email) from exc
            return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return None
            return self._to_user_record(row)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == normalize_email(email))
            row = session.execute(stmt).scalar_one_or_none()
            if not row:
                return None
            return self._to_user_record(row)

    def list_invoices(self, user_id: str) -> list[InvoiceRecord]:
        with self.Session() as session:
            stmt = (
                select(InvoiceRow)
                .where(InvoiceRow.user_id == user_id)
                .order_by(InvoiceRow.created_at.desc())
            )
            return [self._to_invoice_record(row) for row in session.execute(stmt).scalars()]

    def create_invoice(
        self,
        user_id: str,
        *,
        title: Optional[str] = None,
        amount: Optional[float] = None,
        month: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> InvoiceRecord:
        now = time.time()
        with self.Session() as session:
            row = InvoiceRow(
                id=uuid.uuid4().hex,
                user_id=user_id,
                title=title,
                amount=amount,
                month=month,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            return self._to_invoice_record(row)

    def delete_invoice(self, user_id: str, invoice_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(InvoiceRow).where(
                    InvoiceRow.id == invoice_id,
                    InvoiceRow.user_id == user_id,
                )
            )
            session.commit()
            return bool(result.rowcount)

    def save_snapshot(self, user_id: str, data: dict) -> SnapshotRecord:
        now = time.time()
        with self.Session() as session:
            row = session.get(SnapshotRow, user_id)
            if row:
                row.data = data
                row.updated_at = now
                session.commit()
            else:
                session.add(SnapshotRow(user_id=user_id, data=data, updated_at=now))
                try:
                    session.commit()
                except IntegrityError:
                    # Lost the insert race to a concurrent push; overwrite it.
                    session.rollback()
                    row = session.get(SnapshotRow, user_id)
                    row.data = data
                    row.updated_at = now
                    session.commit()
        return SnapshotRecord(user_id=user_id, data=data, updated_at=now)

    def get_snapshot(self, user_id: str) -> Optional[SnapshotRecord]:
        with self.Session() as session:
            row = session.get(SnapshotRow, user_id)
            if not row:
                return None
            return SnapshotRecord(
                user_id=row.user_id, data=row.data, updated_at=row.updated_at
            )


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False, default="")
    password_hash = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class InvoiceRow(Base):
    __tablename__ = "invoices"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=True)
    amount = Column(Float, nullable=True)
    month = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class SnapshotRow(Base):
    __tablename__ = "snapshots"

    user_id = Column(String, ForeignKey("users.id"), primary_key=True)
    data = Column(JSON, nullable=False)
    updated_at = Column(Float, nullable=False)
