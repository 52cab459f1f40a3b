"""Player self-ratings and the static 1-10 level table."""

from __future__ import annotations

import logging
import math

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.fields import SkillPosition
from dvhl.models.skill_ratings import SkillLevel, SkillRatingWithUser
from dvhl.schemas.auth import User
from dvhl.schemas.skill_ratings import SkillRating
from dvhl.utils.clock import utcnow

logger = logging.getLogger(__name__)

SKILL_LEVELS: tuple[SkillLevel, ...] = (
    SkillLevel(
        level=1,
        min=0,
        max=10,
        summary="Beginner. Needs foundational skating, puck skills, and rules development.",
    ),
    SkillLevel(
        level=2,
        min=11,
        max=20,
        summary=(
            "Basic understanding, but still struggles across skating, puck control, "
            "passing, and shooting."
        ),
    ),
    SkillLevel(
        level=3,
        min=21,
        max=30,
        summary=(
            "More comfortable on skates, but still limited forward/backward skating "
            "and puck execution."
        ),
    ),
    SkillLevel(
        level=4,
        min=31,
        max=40,
        summary=(
            "Developing positional play and team concepts, still inconsistent skating "
            "and puck skills."
        ),
    ),
    SkillLevel(
        level=5,
        min=41,
        max=50,
        summary=(
            "Comfortable forward and backward skating; building consistency in handling, "
            "passing, and crossovers."
        ),
    ),
    SkillLevel(
        level=6,
        min=51,
        max=60,
        summary=(
            "Average recreational level: competitive play, solid game understanding, "
            "generally athletic."
        ),
    ),
    SkillLevel(
        level=7,
        min=61,
        max=70,
        summary=(
            "Comfortable in faster pace with stronger all-around execution and average "
            "physical shape."
        ),
    ),
    SkillLevel(
        level=8,
        min=71,
        max=80,
        summary=(
            "Substantial hockey ability and experience; typically coached with meaningful "
            "game background."
        ),
    ),
    SkillLevel(
        level=9,
        min=81,
        max=90,
        summary="High level across all areas with strong rules, concepts, and puck skills.",
    ),
    SkillLevel(
        level=10,
        min=91,
        max=100,
        summary=(
            "Top tier recreational skill profile with high-level execution and "
            "above-average conditioning."
        ),
    ),
)


def clamp_rating(rating: float) -> int:
    return max(0, min(100, math.floor(rating)))


def rating_to_level(rating: float) -> int:
    """Map a 0-100 rating onto levels of ten points each (0-10 is level 1)."""
    safe = clamp_rating(rating)
    if safe <= 10:
        return 1
    return min(10, math.ceil(safe / 10))


def normalize_position(value: str | None) -> SkillPosition:
    normalized = (value or "").strip().upper()
    if normalized == "D":
        return SkillPosition.defense
    if normalized == "G":
        return SkillPosition.goalie
    return SkillPosition.offense


def list_skill_levels() -> list[SkillLevel]:
    return list(SKILL_LEVELS)


async def get_skill_rating(db: AsyncSession, *, user_id: int) -> SkillRating | None:
    async with db.begin():
        return await db.get(SkillRating, user_id)


async def upsert_skill_rating(
    db: AsyncSession,
    *,
    user_id: int,
    rating: float,
    position: str | None = None,
    notes: str | None = None,
) -> SkillRating:
    safe_rating = clamp_rating(rating)
    now = utcnow()
    async with db.begin():
        row = await db.get(SkillRating, user_id)
        if row is None:
            row = SkillRating(user_id=user_id, created_at=now)
            db.add(row)
        row.position = normalize_position(position)
        row.rating = safe_rating
        row.level = rating_to_level(safe_rating)
        row.notes = notes.strip() if notes and notes.strip() else None
        row.updated_at = now
    logger.info("Skill rating for user %s set to %s (level %s)", user_id, row.rating, row.level)
    return row


async def list_skill_ratings(db: AsyncSession) -> list[SkillRatingWithUser]:
    """Highest rating first, most recently updated breaking ties."""
    async with db.begin():
        result = await db.execute(
            select(SkillRating, User)
            .outerjoin(User, User.id == SkillRating.user_id)  # type: ignore[arg-type]
            .order_by(
                SkillRating.rating.desc(),  # type: ignore[attr-defined]
                SkillRating.updated_at.desc(),  # type: ignore[attr-defined]
            )
        )
        rows = result.all()

    return [
        SkillRatingWithUser(
            user_id=rating.user_id,
            full_name=user.full_name if user else "Unknown player",
            email=user.email if user else "",
            role=user.role if user else "public",
            position=rating.position,
            rating=rating.rating,
            level=rating.level,
            notes=rating.notes,
            updated_at=rating.updated_at,
        )
        for rating, user in rows
    ]
