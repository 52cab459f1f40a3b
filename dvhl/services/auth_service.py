"""Session-token lookup and permission checks against the identity tables."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.config import settings
from dvhl.schemas.auth import User, UserPermission, UserSession
from dvhl.utils.clock import utcnow

MANAGE_DVHL = "manage_dvhl"
ADMIN_ROLE = "admin"

SESSION_TTL = timedelta(days=1)


def _hash_token(token: str) -> str:
    key = settings.secret_key.encode("utf-8")
    return hmac.new(key, token.encode("utf-8"), hashlib.sha256).hexdigest()


def generate_session_token() -> str:
    """Generate a raw bearer/cookie token (stored only as a hash server-side)."""
    return secrets.token_urlsafe(32)


async def issue_session(
    db: AsyncSession,
    *,
    user_id: int,
    ttl: timedelta = SESSION_TTL,
) -> tuple[str, UserSession]:
    """Create a new session row and return (raw_token, session)."""
    now = utcnow()
    raw_token = generate_session_token()
    session = UserSession(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        created_at=now,
        expires_at=now + ttl,
        revoked_at=None,
    )
    async with db.begin():
        db.add(session)
    return raw_token, session


async def revoke_session(db: AsyncSession, *, raw_token: str) -> None:
    """Revoke a session token (idempotent)."""
    now = utcnow()
    async with db.begin():
        await db.execute(
            update(UserSession)
            .where(
                UserSession.token_hash == _hash_token(raw_token),  # type: ignore[arg-type]
                UserSession.revoked_at.is_(None),  # type: ignore[union-attr]
            )
            .values(revoked_at=now)
        )


async def get_user_for_session_token(
    db: AsyncSession,
    *,
    raw_token: str,
) -> User | None:
    """Return the approved user for a live session token."""
    now = utcnow()
    async with db.begin():
        result = await db.execute(
            select(User)
            .join(UserSession, UserSession.user_id == User.id)  # type: ignore[arg-type]
            .where(
                UserSession.token_hash == _hash_token(raw_token),  # type: ignore[arg-type]
                UserSession.revoked_at.is_(None),  # type: ignore[union-attr]
                UserSession.expires_at > now,  # type: ignore[arg-type]
                User.status == "approved",  # type: ignore[arg-type]
            )
        )
        return result.scalar_one_or_none()


async def user_has_permission(db: AsyncSession, *, user: User, permission: str) -> bool:
    """Admins hold every permission; everyone else needs an explicit grant."""
    if user.role == ADMIN_ROLE:
        return True
    async with db.begin():
        result = await db.execute(
            select(UserPermission).where(
                UserPermission.user_id == user.id,  # type: ignore[arg-type]
                UserPermission.permission == permission,  # type: ignore[arg-type]
            )
        )
        return result.scalar_one_or_none() is not None


async def grant_permission(db: AsyncSession, *, user_id: int, permission: str) -> None:
    async with db.begin():
        if await db.get(UserPermission, (user_id, permission)) is None:
            db.add(UserPermission(user_id=user_id, permission=permission))
