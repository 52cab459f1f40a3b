"""Captain of record and sub-pool membership per team."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.schemas.competitions import Team, TeamControl
from dvhl.services.errors import TeamNotFound
from dvhl.utils.clock import utcnow

logger = logging.getLogger(__name__)


def default_control(team_id: int) -> TeamControl:
    """Control state for a team nobody has configured yet (not persisted)."""
    return TeamControl(team_id=team_id, captain_user_id=None, sub_pool_user_ids=[])


async def load_team_control(db: AsyncSession, team_id: int) -> TeamControl:
    """Stored control row, or an unsaved default, on the caller's transaction."""
    control = await db.get(TeamControl, team_id)
    return control if control is not None else default_control(team_id)


async def get_team_control_map(
    db: AsyncSession,
    *,
    team_ids: list[int],
) -> dict[int, TeamControl]:
    """Return a control entry for every requested team id.

    Teams without a stored row get the default (no captain, empty sub pool).
    """
    controls = {team_id: default_control(team_id) for team_id in team_ids}
    if not team_ids:
        return controls
    async with db.begin():
        result = await db.execute(
            select(TeamControl).where(TeamControl.team_id.in_(team_ids))  # type: ignore[attr-defined]
        )
        for row in result.scalars().all():
            controls[row.team_id] = row
    return controls


async def _get_or_create(db: AsyncSession, team_id: int) -> TeamControl:
    if await db.get(Team, team_id) is None:
        raise TeamNotFound(f"Team {team_id} not found")
    control = await db.get(TeamControl, team_id)
    if control is None:
        control = default_control(team_id)
        db.add(control)
    return control


async def set_team_captain(
    db: AsyncSession,
    *,
    team_id: int,
    captain_user_id: int | None,
    actor_id: int | None,
) -> TeamControl:
    """Replace the captain; the sub pool is kept."""
    async with db.begin():
        control = await _get_or_create(db, team_id)
        control.captain_user_id = captain_user_id or None
        control.updated_at = utcnow()
        control.updated_by_user_id = actor_id
    logger.info("Team %s captain set to %s by %s", team_id, captain_user_id, actor_id)
    return control


async def assign_captains(
    db: AsyncSession,
    *,
    team_ids: list[int],
    captain_user_ids: list[int | None],
    actor_id: int | None,
) -> list[TeamControl]:
    """Set captains pairwise from two parallel lists in one transaction."""
    if len(team_ids) != len(captain_user_ids):
        raise ValueError("team_ids and captain_user_ids must have the same length")
    now = utcnow()
    updated: list[TeamControl] = []
    async with db.begin():
        for team_id, captain_user_id in zip(team_ids, captain_user_ids):
            control = await _get_or_create(db, team_id)
            control.captain_user_id = captain_user_id or None
            control.updated_at = now
            control.updated_by_user_id = actor_id
            updated.append(control)
    logger.info("Assigned captains for %d teams by %s", len(updated), actor_id)
    return updated


async def add_sub_pool_member(
    db: AsyncSession,
    *,
    team_id: int,
    user_id: int,
    actor_id: int | None,
) -> TeamControl:
    async with db.begin():
        control = await _get_or_create(db, team_id)
        # Reassign so the JSON column is flagged dirty.
        control.sub_pool_user_ids = list(
            dict.fromkeys([*(control.sub_pool_user_ids or []), user_id])
        )
        control.updated_at = utcnow()
        control.updated_by_user_id = actor_id
    return control


async def remove_sub_pool_member(
    db: AsyncSession,
    *,
    team_id: int,
    user_id: int,
    actor_id: int | None,
) -> TeamControl | None:
    """Drop a user from the sub pool. None when the team does not exist.

    A team nobody has configured yet has an empty pool, so its default control
    is returned unsaved.
    """
    async with db.begin():
        if await db.get(Team, team_id) is None:
            return None
        control = await db.get(TeamControl, team_id)
        if control is None:
            return default_control(team_id)
        control.sub_pool_user_ids = [
            uid for uid in (control.sub_pool_user_ids or []) if uid != user_id
        ]
        control.updated_at = utcnow()
        control.updated_by_user_id = actor_id
    return control
