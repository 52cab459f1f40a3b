"""Seasons, teams and rosters for DVHL competitions.

The workflow services treat this module as their collaborator for everything
that is not workflow state: which teams a season has, who is on them, and who
is eligible to play. Functions prefixed with ``stage_`` or ``load_`` run on the
caller's open transaction; everything else opens its own.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.schemas.auth import User
from dvhl.schemas.competitions import Game, Season, Team, TeamControl, TeamMember
from dvhl.schemas.drafts import DraftPick, DraftSession
from dvhl.schemas.sub_requests import SubRequest
from dvhl.services.errors import (
    PlayerNotEligible,
    SeasonNotFound,
    TeamHasDraftPicks,
    TeamNotFound,
)
from dvhl.utils.clock import utcnow

logger = logging.getLogger(__name__)

DVHL_TEAM_COUNT = 4
ELIGIBLE_ROLES = ("player", "admin")


def _clean_str(val: str | None) -> str | None:
    if val and val.strip():
        return val.strip()
    return None


async def load_season(db: AsyncSession, season_id: int) -> Season:
    season = await db.get(Season, season_id)
    if season is None:
        raise SeasonNotFound(f"Season {season_id} not found")
    return season


async def load_teams(db: AsyncSession, season_id: int) -> list[Team]:
    result = await db.execute(
        select(Team)
        .where(Team.season_id == season_id)  # type: ignore[arg-type]
        .order_by(Team.id)  # type: ignore[arg-type]
    )
    return list(result.scalars().all())


async def load_member_ids(db: AsyncSession, team_ids: list[int]) -> list[int]:
    """Distinct member user ids across the given teams, first-seen order."""
    if not team_ids:
        return []
    result = await db.execute(
        select(TeamMember.user_id)
        .where(TeamMember.team_id.in_(team_ids))  # type: ignore[attr-defined]
        .order_by(TeamMember.team_id, TeamMember.id)  # type: ignore[arg-type]
    )
    return list(dict.fromkeys(result.scalars().all()))


async def load_eligible_players(db: AsyncSession) -> list[User]:
    result = await db.execute(
        select(User)
        .where(
            User.status == "approved",  # type: ignore[arg-type]
            User.role.in_(ELIGIBLE_ROLES),  # type: ignore[attr-defined]
        )
        .order_by(User.full_name, User.id)  # type: ignore[arg-type]
    )
    return list(result.scalars().all())


async def stage_team_member(db: AsyncSession, *, team_id: int, user_id: int) -> TeamMember:
    """Add (team, user) to the roster unless already present."""
    result = await db.execute(
        select(TeamMember).where(
            TeamMember.team_id == team_id,  # type: ignore[arg-type]
            TeamMember.user_id == user_id,  # type: ignore[arg-type]
        )
    )
    member = result.scalar_one_or_none()
    if member is not None:
        return member
    member = TeamMember(team_id=team_id, user_id=user_id, created_at=utcnow())
    db.add(member)
    return member


async def create_dvhl_season(
    db: AsyncSession,
    *,
    title: str,
    team_names: list[str],
    starts_at: datetime | None = None,
    notes: str | None = None,
) -> tuple[Season, list[Team]]:
    """Create a season with its four named teams.

    Raises:
        ValueError: Title is blank or fewer than four non-blank team names.
    """
    clean_title = _clean_str(title)
    if clean_title is None:
        raise ValueError("Season title is required")
    names = [name.strip() for name in team_names if name and name.strip()]
    if len(names) != DVHL_TEAM_COUNT:
        raise ValueError(f"Exactly {DVHL_TEAM_COUNT} team names are required")

    now = utcnow()
    async with db.begin():
        season = Season(
            title=clean_title,
            starts_at=starts_at,
            notes=_clean_str(notes),
            created_at=now,
        )
        db.add(season)
        await db.flush()
        teams = [Team(season_id=season.id, name=name, created_at=now) for name in names]
        db.add_all(teams)
        await db.flush()

    logger.info("Created DVHL season %s (%s) with %d teams", season.id, season.title, len(teams))
    return season, teams


async def get_season(db: AsyncSession, *, season_id: int) -> Season | None:
    async with db.begin():
        return await db.get(Season, season_id)


async def list_seasons(db: AsyncSession) -> list[Season]:
    """Newest season first."""
    async with db.begin():
        result = await db.execute(
            select(Season).order_by(Season.created_at.desc(), Season.id.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())


async def list_teams(db: AsyncSession, *, season_id: int) -> list[Team]:
    async with db.begin():
        return await load_teams(db, season_id)


async def add_team(db: AsyncSession, *, season_id: int, name: str) -> Team:
    clean_name = _clean_str(name)
    if clean_name is None:
        raise ValueError("Team name is required")
    async with db.begin():
        await load_season(db, season_id)
        team = Team(season_id=season_id, name=clean_name, created_at=utcnow())
        db.add(team)
        await db.flush()
    logger.info("Added team %s (%s) to season %s", team.id, team.name, season_id)
    return team


async def remove_team(db: AsyncSession, *, team_id: int) -> bool:
    """Delete a team with its roster, control row, sub requests and games.

    The team is also dropped from its season's draft order. A team that has
    already made draft picks cannot be removed until the draft is reset.
    Returns False when the team does not exist.
    """
    async with db.begin():
        team = await db.get(Team, team_id)
        if team is None:
            return False
        picked = await db.execute(
            select(DraftPick.id).where(DraftPick.team_id == team_id).limit(1)  # type: ignore[arg-type]
        )
        if picked.first() is not None:
            raise TeamHasDraftPicks(f"Team {team_id} has draft picks; reset the draft first")

        draft = (
            await db.execute(select(DraftSession).where(DraftSession.season_id == team.season_id))  # type: ignore[arg-type]
        ).scalar_one_or_none()
        if draft is not None and team_id in draft.pick_order_team_ids:
            draft.pick_order_team_ids = [t for t in draft.pick_order_team_ids if t != team_id]
            draft.version += 1
            draft.updated_at = utcnow()

        await db.execute(delete(SubRequest).where(SubRequest.team_id == team_id))  # type: ignore[arg-type]
        await db.execute(delete(TeamMember).where(TeamMember.team_id == team_id))  # type: ignore[arg-type]
        await db.execute(delete(TeamControl).where(TeamControl.team_id == team_id))  # type: ignore[arg-type]
        await db.execute(
            delete(Game).where(
                or_(
                    Game.team_id == team_id,  # type: ignore[arg-type]
                    Game.opponent_team_id == team_id,  # type: ignore[arg-type]
                )
            )
        )
        await db.delete(team)
    logger.info("Removed team %s", team_id)
    return True


async def assign_player_to_team(db: AsyncSession, *, team_id: int, user_id: int) -> TeamMember:
    """Idempotently put an approved player or admin on a team roster."""
    async with db.begin():
        if await db.get(Team, team_id) is None:
            raise TeamNotFound(f"Team {team_id} not found")
        user = await db.get(User, user_id)
        if user is None or user.role not in ELIGIBLE_ROLES or user.status != "approved":
            raise PlayerNotEligible(
                "Only approved player/admin accounts can be assigned to teams"
            )
        member = await stage_team_member(db, team_id=team_id, user_id=user_id)
    return member


async def remove_player_from_team(db: AsyncSession, *, team_id: int, user_id: int) -> bool:
    async with db.begin():
        result = await db.execute(
            delete(TeamMember).where(
                TeamMember.team_id == team_id,  # type: ignore[arg-type]
                TeamMember.user_id == user_id,  # type: ignore[arg-type]
            )
        )
    return bool(result.rowcount)  # type: ignore[attr-defined]


async def list_team_member_ids(db: AsyncSession, *, team_ids: list[int]) -> list[int]:
    async with db.begin():
        return await load_member_ids(db, team_ids)


async def list_eligible_players(db: AsyncSession) -> list[User]:
    """Approved accounts with role player or admin, ordered by name."""
    async with db.begin():
        return await load_eligible_players(db)
