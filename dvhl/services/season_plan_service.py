"""Season workflow plan: upsert with field merging and derived phase.

A plan is never deleted. Every field that the operator leaves empty keeps its
previous value, so partial forms never wipe configuration. Phase is computed
from the plan and the clock on every read.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.fields import DraftMode, PlanPhase, PlayerPoolStrategy, TeamOrderStrategy
from dvhl.models.plans import PlanUpdate
from dvhl.schemas.season_plans import SeasonPlan
from dvhl.services.competition_service import load_season
from dvhl.utils.clock import utcnow

logger = logging.getLogger(__name__)

DEFAULT_CAPTAIN_COUNT = 4
DEFAULT_ROUNDS = 1

E = TypeVar("E", bound=Enum)


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 value into a naive UTC datetime, or None if unusable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def _parse_enum(enum_cls: type[E], value: str | None) -> E | None:
    if not value:
        return None
    try:
        return enum_cls(value.strip())
    except ValueError:
        return None


def get_phase(plan: SeasonPlan | None, now: datetime | None = None) -> PlanPhase:
    """Derive the workflow phase.

    No plan means setup. An unset signup close, or one still in the future,
    means signups are open; otherwise captains are being assigned.
    """
    if plan is None:
        return PlanPhase.plan_setup
    now = now or utcnow()
    if plan.signup_closes_at is None or now < plan.signup_closes_at:
        return PlanPhase.signup_open
    return PlanPhase.captain_assignment


def signup_window_open(plan: SeasonPlan | None, now: datetime | None = None) -> bool:
    """Signups are accepted while the close time is unset or still ahead."""
    if plan is None or plan.signup_closes_at is None:
        return True
    return (now or utcnow()) < plan.signup_closes_at


def captain_window_open(plan: SeasonPlan | None, now: datetime | None = None) -> bool:
    if plan is None or plan.captain_signup_closes_at is None:
        return True
    return (now or utcnow()) < plan.captain_signup_closes_at


async def get_plan(db: AsyncSession, *, season_id: int) -> SeasonPlan | None:
    async with db.begin():
        return await db.get(SeasonPlan, season_id)


async def upsert_plan(
    db: AsyncSession,
    *,
    season_id: int,
    update: PlanUpdate,
    actor_id: int | None,
) -> SeasonPlan:
    """Merge `update` over the stored plan, seeding defaults on first write.

    Raises:
        SeasonNotFound: The season does not exist.
    """
    now = utcnow()
    async with db.begin():
        await load_season(db, season_id)
        plan = await db.get(SeasonPlan, season_id)
        if plan is None:
            plan = SeasonPlan(
                season_id=season_id,
                desired_captain_count=DEFAULT_CAPTAIN_COUNT,
                team_order_strategy=TeamOrderStrategy.manual,
                player_pool_strategy=PlayerPoolStrategy.all_signups,
                draft_mode=DraftMode.manual,
                rounds=DEFAULT_ROUNDS,
                created_at=now,
            )
            db.add(plan)

        plan.signup_closes_at = parse_datetime(update.signup_closes_at) or plan.signup_closes_at
        plan.captain_signup_closes_at = (
            parse_datetime(update.captain_signup_closes_at) or plan.captain_signup_closes_at
        )
        plan.desired_captain_count = update.desired_captain_count or plan.desired_captain_count
        plan.team_order_strategy = (
            _parse_enum(TeamOrderStrategy, update.team_order_strategy)
            or plan.team_order_strategy
        )
        plan.player_pool_strategy = (
            _parse_enum(PlayerPoolStrategy, update.player_pool_strategy)
            or plan.player_pool_strategy
        )
        plan.draft_mode = _parse_enum(DraftMode, update.draft_mode) or plan.draft_mode
        plan.rounds = update.rounds or plan.rounds
        plan.updated_at = now
        plan.updated_by_user_id = actor_id

    logger.info("Season %s plan saved by %s (phase=%s)", season_id, actor_id, get_phase(plan).value)
    return plan
