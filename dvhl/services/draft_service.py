"""Draft session engine.

A season has at most one draft session. Teams pick in a fixed order, either
repeating every round (manual) or reversing on odd rounds (snake). Each pick
is guarded by an optimistic ``version`` compare-and-swap plus unique
constraints on (session, pick_number) and (session, user), so two concurrent
pickers can never both win the same slot or player.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.fields import (
    DraftMode,
    DraftStatus,
    NotificationAudience,
    NotificationKind,
    PlayerPoolStrategy,
    TeamOrderStrategy,
)
from dvhl.schemas.drafts import DraftPick, DraftSession
from dvhl.schemas.season_plans import SeasonPlan
from dvhl.services.competition_service import (
    load_eligible_players,
    load_member_ids,
    load_season,
    load_teams,
    stage_team_member,
)
from dvhl.services.errors import (
    DraftAlreadyOpen,
    DraftComplete,
    DraftNotFound,
    DraftNotOpen,
    DraftPickConflict,
    InvalidPickTeam,
    NotThisTeamTurn,
    PlayerAlreadyPicked,
    PlayerNotInPool,
)
from dvhl.services.notification_service import queue_notification
from dvhl.services.signup_service import load_signup_user_ids
from dvhl.utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass
class DraftBoard:
    """A draft session together with its picks in pick order."""

    session: DraftSession
    picks: list[DraftPick] = field(default_factory=list)

    @property
    def next_team_id(self) -> int | None:
        return next_team_id(self.session)

    @property
    def total_picks(self) -> int:
        return total_pick_slots(self.session)


@dataclass
class DraftSetup:
    """Arguments for starting a draft after plan defaults are applied."""

    team_ids: list[int]
    pool_user_ids: list[int]
    draft_mode: DraftMode
    rounds: int


def dedupe_ids(values: Iterable[int | str | None]) -> list[int]:
    """Drop blanks and repeats, keeping first-seen order."""
    seen: dict[int, None] = {}
    for value in values:
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        seen.setdefault(int(value), None)
    return list(seen)


def expected_team_for_index(order: list[int], index: int, mode: DraftMode) -> int | None:
    """Team on the clock at zero-based pick `index`.

    Snake drafts run the order backwards on every odd round.
    """
    n = len(order)
    if n == 0:
        return None
    round_index, slot = divmod(index, n)
    if mode == DraftMode.snake and round_index % 2 == 1:
        return order[n - 1 - slot]
    return order[slot]


def total_pick_slots(session: DraftSession) -> int:
    return max(session.rounds, 1) * len(session.pick_order_team_ids or [])


def next_team_id(session: DraftSession) -> int | None:
    """Team expected to pick next, or None when nobody can pick."""
    order = list(session.pick_order_team_ids or [])
    if not order or session.current_pick_index >= total_pick_slots(session):
        return None
    return expected_team_for_index(order, session.current_pick_index, session.draft_mode)


def resolve_pick_order(
    team_ids: list[int],
    strategy: TeamOrderStrategy | None,
    rng: random.Random | None = None,
) -> list[int]:
    order = list(team_ids)
    if strategy == TeamOrderStrategy.random:
        (rng or random.Random()).shuffle(order)
    return order


def resolve_player_pool(
    strategy: PlayerPoolStrategy | None,
    *,
    signup_user_ids: list[int],
    member_user_ids: list[int],
    eligible_user_ids: list[int],
    include_all_eligible: bool = False,
) -> list[int]:
    """Default draft pool for a plan's pool strategy.

    Current team members are always included so nobody already rostered is
    left out of the draft.
    """
    if strategy == PlayerPoolStrategy.all_eligible:
        base = eligible_user_ids
    elif strategy == PlayerPoolStrategy.ops_selected:
        base = member_user_ids
    else:
        base = signup_user_ids
    extra = eligible_user_ids if include_all_eligible else []
    return dedupe_ids([*base, *member_user_ids, *extra])


async def _load_session(db: AsyncSession, season_id: int) -> DraftSession | None:
    result = await db.execute(
        select(DraftSession).where(DraftSession.season_id == season_id)  # type: ignore[arg-type]
    )
    return result.scalar_one_or_none()


async def _load_picks(db: AsyncSession, draft_session_id: int) -> list[DraftPick]:
    result = await db.execute(
        select(DraftPick)
        .where(DraftPick.draft_session_id == draft_session_id)  # type: ignore[arg-type]
        .order_by(DraftPick.pick_number)  # type: ignore[arg-type]
    )
    return list(result.scalars().all())


async def get_draft(db: AsyncSession, *, season_id: int) -> DraftBoard | None:
    async with db.begin():
        session = await _load_session(db, season_id)
        if session is None:
            return None
        picks = await _load_picks(db, session.id)  # type: ignore[arg-type]
    return DraftBoard(session=session, picks=picks)


async def resolve_draft_setup(
    db: AsyncSession,
    *,
    season_id: int,
    team_ids: list[int] | None = None,
    pool_user_ids: list[int] | None = None,
    draft_mode: DraftMode | None = None,
    rounds: int | None = None,
    include_all_eligible: bool = False,
    rng: random.Random | None = None,
) -> DraftSetup:
    """Fill in whatever the operator did not submit from the season plan."""
    async with db.begin():
        await load_season(db, season_id)
        plan = await db.get(SeasonPlan, season_id)
        teams = await load_teams(db, season_id)
        season_team_ids = [team.id for team in teams if team.id is not None]
        member_ids = await load_member_ids(db, season_team_ids)
        signup_ids = await load_signup_user_ids(db, season_id)
        eligible_ids = [u.id for u in await load_eligible_players(db) if u.id is not None]

    submitted_order = dedupe_ids(team_ids or [])
    order = submitted_order or resolve_pick_order(
        season_team_ids, plan.team_order_strategy if plan else None, rng
    )
    submitted_pool = dedupe_ids(pool_user_ids or [])
    pool = submitted_pool or resolve_player_pool(
        plan.player_pool_strategy if plan else None,
        signup_user_ids=signup_ids,
        member_user_ids=member_ids,
        eligible_user_ids=eligible_ids,
        include_all_eligible=include_all_eligible,
    )
    return DraftSetup(
        team_ids=order,
        pool_user_ids=pool,
        draft_mode=draft_mode or (plan.draft_mode if plan else DraftMode.manual),
        rounds=rounds or (plan.rounds if plan else 1),
    )


async def _replace_session(
    db: AsyncSession,
    *,
    season_id: int,
    existing: DraftSession | None,
    team_ids: list[int],
    pool_user_ids: list[int],
    draft_mode: DraftMode | None,
    rounds: int | None,
    actor_id: int | None,
) -> DraftSession:
    order = dedupe_ids(team_ids)
    season_team_ids = {team.id for team in await load_teams(db, season_id)}
    unknown = [team_id for team_id in order if team_id not in season_team_ids]
    if unknown:
        raise InvalidPickTeam(f"Teams {unknown} are not part of season {season_id}")

    now = utcnow()
    if existing is None:
        session = DraftSession(season_id=season_id, created_at=now, version=0)
        db.add(session)
    else:
        session = existing
        await db.execute(
            delete(DraftPick).where(DraftPick.draft_session_id == existing.id)  # type: ignore[arg-type]
        )
        session.version = existing.version + 1
    session.status = DraftStatus.open
    session.pick_order_team_ids = order
    session.pool_user_ids = dedupe_ids(pool_user_ids)
    session.current_pick_index = 0
    session.draft_mode = draft_mode or DraftMode.manual
    session.rounds = rounds if rounds and rounds > 0 else 1
    session.updated_at = now
    session.updated_by_user_id = actor_id
    await db.flush()
    return session


async def start_draft(
    db: AsyncSession,
    *,
    season_id: int,
    team_ids: list[int],
    pool_user_ids: list[int],
    draft_mode: DraftMode | None = None,
    rounds: int | None = None,
    actor_id: int | None = None,
) -> DraftBoard:
    """Open a new draft; refuses to touch one that is still open.

    Raises:
        DraftAlreadyOpen: An open session exists (use `reset_draft`).
        SeasonNotFound: The season does not exist.
    """
    async with db.begin():
        await load_season(db, season_id)
        existing = await _load_session(db, season_id)
        if existing is not None and existing.status == DraftStatus.open:
            raise DraftAlreadyOpen(f"Season {season_id} already has an open draft")
        session = await _replace_session(
            db,
            season_id=season_id,
            existing=existing,
            team_ids=team_ids,
            pool_user_ids=pool_user_ids,
            draft_mode=draft_mode,
            rounds=rounds,
            actor_id=actor_id,
        )
    logger.info(
        "Draft started season=%s teams=%d pool=%d mode=%s rounds=%d",
        season_id,
        len(session.pick_order_team_ids),
        len(session.pool_user_ids),
        session.draft_mode.value,
        session.rounds,
    )
    return DraftBoard(session=session, picks=[])


async def reset_draft(
    db: AsyncSession,
    *,
    season_id: int,
    team_ids: list[int],
    pool_user_ids: list[int],
    draft_mode: DraftMode | None = None,
    rounds: int | None = None,
    actor_id: int | None = None,
) -> DraftBoard:
    """Discard any prior draft state (picks included) and open a fresh session."""
    async with db.begin():
        await load_season(db, season_id)
        existing = await _load_session(db, season_id)
        session = await _replace_session(
            db,
            season_id=season_id,
            existing=existing,
            team_ids=team_ids,
            pool_user_ids=pool_user_ids,
            draft_mode=draft_mode,
            rounds=rounds,
            actor_id=actor_id,
        )
    logger.warning("Draft reset season=%s by %s", season_id, actor_id)
    return DraftBoard(session=session, picks=[])


async def close_draft(
    db: AsyncSession,
    *,
    season_id: int,
    actor_id: int | None = None,
) -> DraftSession:
    async with db.begin():
        session = await _load_session(db, season_id)
        if session is None:
            raise DraftNotFound(f"No draft for season {season_id}")
        session.status = DraftStatus.closed
        session.updated_at = utcnow()
        session.updated_by_user_id = actor_id
    logger.info("Draft closed season=%s by %s", season_id, actor_id)
    return session


async def make_pick(
    db: AsyncSession,
    *,
    season_id: int,
    team_id: int,
    user_id: int,
    actor_id: int | None = None,
) -> DraftBoard:
    """Record a pick for the team on the clock.

    The drafted player is added to the team roster and a notification is
    queued in the same transaction.

    Raises:
        DraftNotOpen: No session, or the session is closed.
        DraftComplete: Every pick slot has been used.
        InvalidPickTeam: The team is not in the pick order.
        PlayerNotInPool: The player is not in the draft pool.
        PlayerAlreadyPicked: The player was already drafted.
        NotThisTeamTurn: Another team is on the clock.
        DraftPickConflict: A concurrent pick won the race.
    """
    async with db.begin():
        session = await _load_session(db, season_id)
        if session is None:
            raise DraftNotOpen(f"No draft for season {season_id}")
        if session.status == DraftStatus.complete:
            raise DraftComplete()
        if session.status != DraftStatus.open:
            raise DraftNotOpen()

        order = list(session.pick_order_team_ids or [])
        if team_id not in order:
            raise InvalidPickTeam()
        if user_id not in (session.pool_user_ids or []):
            raise PlayerNotInPool()

        picks = await _load_picks(db, session.id)  # type: ignore[arg-type]
        if any(pick.user_id == user_id for pick in picks):
            raise PlayerAlreadyPicked()

        total = total_pick_slots(session)
        if session.current_pick_index >= total:
            raise DraftComplete()
        expected = expected_team_for_index(order, session.current_pick_index, session.draft_mode)
        if expected != team_id:
            raise NotThisTeamTurn(f"Team {expected} is on the clock")

        now = utcnow()
        seen_version = session.version
        next_index = session.current_pick_index + 1
        next_status = DraftStatus.complete if next_index >= total else DraftStatus.open
        result = await db.execute(
            update(DraftSession)
            .where(
                DraftSession.id == session.id,  # type: ignore[arg-type]
                DraftSession.version == seen_version,  # type: ignore[arg-type]
            )
            .values(
                current_pick_index=next_index,
                status=next_status,
                version=seen_version + 1,
                updated_at=now,
                updated_by_user_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise DraftPickConflict("Draft changed while the pick was being saved")

        pick_number = len(picks) + 1
        pick = DraftPick(
            draft_session_id=session.id,  # type: ignore[arg-type]
            pick_number=pick_number,
            round=(pick_number - 1) // len(order) + 1,
            team_id=team_id,
            user_id=user_id,
            picked_at=now,
            picked_by_user_id=actor_id,
        )
        db.add(pick)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise DraftPickConflict("Pick slot or player was taken concurrently") from exc

        await stage_team_member(db, team_id=team_id, user_id=user_id)
        queue_notification(
            db,
            kind=NotificationKind.draft_pick_saved,
            audience=NotificationAudience.season,
            season_id=season_id,
            team_id=team_id,
            recipient_user_id=user_id,
            message=f"Pick {pick_number}: player {user_id} drafted by team {team_id}",
            payload={"pick_number": pick_number, "round": pick.round},
        )
        await db.refresh(session)
        picks.append(pick)

    logger.info(
        "Draft pick season=%s #%d team=%s user=%s status=%s",
        season_id,
        pick_number,
        team_id,
        user_id,
        session.status.value,
    )
    return DraftBoard(session=session, picks=picks)
