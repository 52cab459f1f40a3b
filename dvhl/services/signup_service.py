"""Signup intents: who wants to play in a season and who volunteers to captain.

Writes here are unconditional. Window policy (closed signups, locked captain
flag) is enforced by the route layer before calling `upsert_intent`.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.schemas.season_plans import SignupIntent
from dvhl.utils.clock import utcnow

logger = logging.getLogger(__name__)


async def load_intent(db: AsyncSession, *, season_id: int, user_id: int) -> SignupIntent | None:
    result = await db.execute(
        select(SignupIntent).where(
            SignupIntent.season_id == season_id,  # type: ignore[arg-type]
            SignupIntent.user_id == user_id,  # type: ignore[arg-type]
        )
    )
    return result.scalar_one_or_none()


async def get_intent(db: AsyncSession, *, season_id: int, user_id: int) -> SignupIntent | None:
    async with db.begin():
        return await load_intent(db, season_id=season_id, user_id=user_id)


async def list_intents(db: AsyncSession, *, season_id: int | None = None) -> list[SignupIntent]:
    """All intents (optionally for one season), most recently updated first."""
    query = select(SignupIntent).order_by(
        SignupIntent.updated_at.desc(),  # type: ignore[attr-defined]
        SignupIntent.id.desc(),  # type: ignore[union-attr]
    )
    if season_id is not None:
        query = query.where(SignupIntent.season_id == season_id)  # type: ignore[arg-type]
    async with db.begin():
        result = await db.execute(query)
        return list(result.scalars().all())


async def upsert_intent(
    db: AsyncSession,
    *,
    season_id: int,
    user_id: int,
    wants_captain: bool,
    note: str | None = None,
) -> SignupIntent:
    """Create or overwrite the (season, user) intent.

    The note is trimmed and a blank note is stored as None.
    """
    now = utcnow()
    clean_note = note.strip() if note and note.strip() else None
    async with db.begin():
        intent = await load_intent(db, season_id=season_id, user_id=user_id)
        if intent is None:
            intent = SignupIntent(season_id=season_id, user_id=user_id, created_at=now)
            db.add(intent)
        intent.wants_captain = bool(wants_captain)
        intent.note = clean_note
        intent.updated_at = now
    logger.info(
        "Signup intent saved season=%s user=%s wants_captain=%s",
        season_id,
        user_id,
        intent.wants_captain,
    )
    return intent


async def load_signup_user_ids(db: AsyncSession, season_id: int) -> list[int]:
    result = await db.execute(
        select(SignupIntent.user_id)
        .where(SignupIntent.season_id == season_id)  # type: ignore[arg-type]
        .order_by(SignupIntent.created_at, SignupIntent.id)  # type: ignore[arg-type]
    )
    return list(dict.fromkeys(result.scalars().all()))


async def seed_pool_from_signups(db: AsyncSession, *, season_id: int) -> list[int]:
    """Distinct user ids of everyone who signed up, in signup order."""
    async with db.begin():
        return await load_signup_user_ids(db, season_id)
