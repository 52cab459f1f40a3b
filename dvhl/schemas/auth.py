"""Identity tables read by the DVHL API.

The identity layer owns account creation and login. These tables mirror what it
writes: the user directory (also the eligible-player directory), hashed session
tokens, and named permissions such as ``manage_dvhl``.
"""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel

from dvhl.utils.clock import utcnow


class User(SQLModel, table=True):  # type: ignore[call-arg]
    """Club member account."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    full_name: str = Field(index=True)
    email: str = Field(unique=True, index=True)
    role: str = Field(default="player", index=True)  # "player" | "admin" | "public"
    status: str = Field(default="pending", index=True)  # "approved" | "pending"
    jersey_number: int | None = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserSession(SQLModel, table=True):  # type: ignore[call-arg]
    """Server-side session for a user (cookie token is hashed)."""

    __tablename__ = "user_sessions"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    token_hash: str = Field(unique=True, index=True)

    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(index=True)
    revoked_at: datetime | None = Field(default=None, index=True)


class UserPermission(SQLModel, table=True):  # type: ignore[call-arg]
    """Named permission granted to a user."""

    __tablename__ = "user_permissions"

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    permission: str = Field(primary_key=True)
    created_at: datetime = Field(default_factory=utcnow)
