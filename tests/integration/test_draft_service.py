"""Integration tests for the draft engine against a real database."""

from __future__ import annotations

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.fields import DraftMode, DraftStatus, NotificationKind
from dvhl.models.plans import PlanUpdate
from dvhl.schemas.competitions import TeamMember
from dvhl.schemas.drafts import DraftPick, DraftSession
from dvhl.services import draft_service, notification_service, season_plan_service, signup_service
from dvhl.services.competition_service import assign_player_to_team
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
from tests.integration.auth_helpers import create_players, seed_season


@pytest_asyncio.fixture
async def season(db_session: AsyncSession) -> tuple[int, list[int]]:
    return await seed_season(db_session)


@pytest_asyncio.fixture
async def players(db_session: AsyncSession) -> list[int]:
    return await create_players(db_session, 8)


async def _start(
    db_session: AsyncSession,
    season_id: int,
    team_ids: list[int],
    pool: list[int],
    *,
    mode: DraftMode = DraftMode.manual,
    rounds: int = 1,
) -> draft_service.DraftBoard:
    return await draft_service.start_draft(
        db_session,
        season_id=season_id,
        team_ids=team_ids,
        pool_user_ids=pool,
        draft_mode=mode,
        rounds=rounds,
        actor_id=None,
    )


@pytest.mark.asyncio
async def test_start_refuses_while_a_draft_is_open(db_session, season, players):
    season_id, team_ids = season
    board = await _start(db_session, season_id, team_ids, players)
    assert board.session.status == DraftStatus.open
    assert board.next_team_id == team_ids[0]

    with pytest.raises(DraftAlreadyOpen):
        await _start(db_session, season_id, team_ids, players)


@pytest.mark.asyncio
async def test_start_rejects_teams_from_another_season(db_session, season, players):
    season_id, _ = season
    _, other_team_ids = await seed_season(db_session, title="DVHL Spring 2026")

    with pytest.raises(InvalidPickTeam):
        await _start(db_session, season_id, other_team_ids, players)


@pytest.mark.asyncio
async def test_snake_draft_runs_to_completion(db_session, season, players):
    season_id, team_ids = season
    await _start(db_session, season_id, team_ids, players, mode=DraftMode.snake, rounds=2)

    expected_order = team_ids + list(reversed(team_ids))
    board = None
    for user_id, team_id in zip(players, expected_order):
        board = await draft_service.make_pick(
            db_session, season_id=season_id, team_id=team_id, user_id=user_id
        )

    assert board is not None
    assert board.session.status == DraftStatus.complete
    assert board.session.current_pick_index == 8
    assert board.next_team_id is None
    assert [pick.team_id for pick in board.picks] == expected_order
    assert [pick.round for pick in board.picks] == [1, 1, 1, 1, 2, 2, 2, 2]

    with pytest.raises(DraftComplete):
        await draft_service.make_pick(
            db_session, season_id=season_id, team_id=team_ids[0], user_id=players[0]
        )

    async with db_session.begin():
        rows = (await db_session.execute(select(TeamMember))).scalars().all()
        rostered = {(row.team_id, row.user_id) for row in rows}
    assert rostered == set(zip(expected_order, players))

    pending = await notification_service.list_pending_notifications(db_session)
    kinds = [row.kind for row in pending]
    assert kinds.count(NotificationKind.draft_pick_saved) == 8


@pytest.mark.asyncio
async def test_out_of_turn_pick_leaves_board_unchanged(db_session, season, players):
    season_id, team_ids = season
    await _start(db_session, season_id, team_ids, players)

    with pytest.raises(NotThisTeamTurn):
        await draft_service.make_pick(
            db_session, season_id=season_id, team_id=team_ids[1], user_id=players[0]
        )

    board = await draft_service.get_draft(db_session, season_id=season_id)
    assert board is not None
    assert board.session.current_pick_index == 0
    assert board.picks == []


@pytest.mark.asyncio
async def test_pick_racing_a_version_bump_is_a_conflict(db_session, season, players, monkeypatch):
    season_id, team_ids = season
    started = await _start(db_session, season_id, team_ids, players)
    version = started.session.version
    load_picks = draft_service._load_picks

    async def load_then_bump_version(db, draft_session_id):
        picks = await load_picks(db, draft_session_id)
        # Another writer saves a pick after this one read the session.
        await db.execute(
            update(DraftSession)
            .where(DraftSession.id == draft_session_id)
            .values(version=DraftSession.version + 1)
            .execution_options(synchronize_session=False)
        )
        return picks

    monkeypatch.setattr(draft_service, "_load_picks", load_then_bump_version)
    with pytest.raises(DraftPickConflict):
        await draft_service.make_pick(
            db_session, season_id=season_id, team_id=team_ids[0], user_id=players[0]
        )
    monkeypatch.undo()

    board = await draft_service.get_draft(db_session, season_id=season_id)
    assert board is not None
    assert board.session.current_pick_index == 0
    assert board.session.version == version
    assert board.picks == []


@pytest.mark.asyncio
async def test_pick_slot_taken_concurrently_is_a_conflict(db_session, season, players, monkeypatch):
    season_id, team_ids = season
    await _start(db_session, season_id, team_ids, players)
    load_picks = draft_service._load_picks

    async def load_then_take_slot(db, draft_session_id):
        picks = await load_picks(db, draft_session_id)
        await db.execute(
            insert(DraftPick).values(
                draft_session_id=draft_session_id,
                pick_number=1,
                round=1,
                team_id=team_ids[0],
                user_id=players[1],
                picked_at=datetime(2026, 1, 1),
            )
        )
        return picks

    monkeypatch.setattr(draft_service, "_load_picks", load_then_take_slot)
    with pytest.raises(DraftPickConflict):
        await draft_service.make_pick(
            db_session, season_id=season_id, team_id=team_ids[0], user_id=players[0]
        )
    monkeypatch.undo()

    board = await draft_service.get_draft(db_session, season_id=season_id)
    assert board is not None
    assert board.session.current_pick_index == 0
    assert board.picks == []


@pytest.mark.asyncio
async def test_pick_validation_errors(db_session, season, players):
    season_id, team_ids = season
    pool = players[:4]
    await _start(db_session, season_id, team_ids[:3], pool)

    with pytest.raises(InvalidPickTeam):
        await draft_service.make_pick(
            db_session, season_id=season_id, team_id=team_ids[3], user_id=pool[0]
        )
    with pytest.raises(PlayerNotInPool):
        await draft_service.make_pick(
            db_session, season_id=season_id, team_id=team_ids[0], user_id=players[7]
        )

    await draft_service.make_pick(db_session, season_id=season_id, team_id=team_ids[0], user_id=pool[0])
    with pytest.raises(PlayerAlreadyPicked):
        await draft_service.make_pick(
            db_session, season_id=season_id, team_id=team_ids[1], user_id=pool[0]
        )


@pytest.mark.asyncio
async def test_reset_discards_picks_and_keeps_session_identity(db_session, season, players):
    season_id, team_ids = season
    started = await _start(db_session, season_id, team_ids, players)
    session_id = started.session.id
    await draft_service.make_pick(
        db_session, season_id=season_id, team_id=team_ids[0], user_id=players[0]
    )

    board = await draft_service.reset_draft(
        db_session,
        season_id=season_id,
        team_ids=list(reversed(team_ids)),
        pool_user_ids=players,
        draft_mode=DraftMode.snake,
        rounds=2,
        actor_id=None,
    )

    assert board.session.id == session_id
    assert board.session.current_pick_index == 0
    assert board.session.version >= 2
    assert board.next_team_id == team_ids[-1]
    fetched = await draft_service.get_draft(db_session, season_id=season_id)
    assert fetched is not None and fetched.picks == []


@pytest.mark.asyncio
async def test_closed_draft_rejects_picks_and_can_restart(db_session, season, players):
    season_id, team_ids = season
    with pytest.raises(DraftNotFound):
        await draft_service.close_draft(db_session, season_id=season_id)
    with pytest.raises(DraftNotOpen):
        await draft_service.make_pick(
            db_session, season_id=season_id, team_id=team_ids[0], user_id=players[0]
        )

    await _start(db_session, season_id, team_ids, players)
    await draft_service.close_draft(db_session, season_id=season_id)

    with pytest.raises(DraftNotOpen):
        await draft_service.make_pick(
            db_session, season_id=season_id, team_id=team_ids[0], user_id=players[0]
        )

    board = await _start(db_session, season_id, team_ids, players)
    assert board.session.status == DraftStatus.open


@pytest.mark.asyncio
async def test_setup_falls_back_to_plan_signups_and_members(db_session, season, players):
    season_id, team_ids = season
    await season_plan_service.upsert_plan(
        db_session,
        season_id=season_id,
        update=PlanUpdate(player_pool_strategy="all_signups", draft_mode="snake", rounds=3),
        actor_id=None,
    )
    await signup_service.upsert_intent(
        db_session, season_id=season_id, user_id=players[2], wants_captain=False
    )
    await signup_service.upsert_intent(
        db_session, season_id=season_id, user_id=players[0], wants_captain=True
    )
    await assign_player_to_team(db_session, team_id=team_ids[1], user_id=players[5])

    setup = await draft_service.resolve_draft_setup(db_session, season_id=season_id)

    assert setup.team_ids == team_ids
    assert setup.pool_user_ids == [players[2], players[0], players[5]]
    assert setup.draft_mode == DraftMode.snake
    assert setup.rounds == 3


@pytest.mark.asyncio
async def test_setup_prefers_submitted_values(db_session, season, players):
    season_id, team_ids = season
    setup = await draft_service.resolve_draft_setup(
        db_session,
        season_id=season_id,
        team_ids=[team_ids[2], team_ids[0], team_ids[2]],
        pool_user_ids=players[:2],
        rounds=2,
    )
    assert setup.team_ids == [team_ids[2], team_ids[0]]
    assert setup.pool_user_ids == players[:2]
    assert setup.draft_mode == DraftMode.manual
    assert setup.rounds == 2
