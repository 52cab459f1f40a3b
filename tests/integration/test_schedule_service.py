"""Integration tests for schedule saves, playoff resolution and standings."""

from __future__ import annotations

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.fields import PlayoffTag
from dvhl.models.schedule import GameSlot, PlayoffSlotOverride, WeekSlate
from dvhl.schemas.competitions import Game
from dvhl.services import competition_service, schedule_service, standings_service
from dvhl.services.errors import (
    GameNotFound,
    ScheduleTeamsInvalid,
    SemifinalsNotReady,
    SemifinalTied,
    UnmappedSemifinalTeam,
)
from tests.integration.auth_helpers import seed_season

CUP_TIME = datetime(2026, 4, 4, 19, 0)


@pytest_asyncio.fixture
async def season(db_session: AsyncSession) -> tuple[int, list[int]]:
    return await seed_season(db_session, team_names=("A", "B", "C", "D"))


async def _playoff_setup(
    db_session: AsyncSession,
    season_id: int,
    team_ids: list[int],
    *,
    championship: GameSlot | None = None,
    consolation: GameSlot | None = None,
) -> list[int]:
    a, b, c, d = team_ids
    rows = await schedule_service.save_playoff_setup(
        db_session,
        season_id=season_id,
        semifinals=[
            GameSlot(home_team_id=a, away_team_id=b),
            GameSlot(home_team_id=c, away_team_id=d),
        ],
        championship=championship or GameSlot(),
        consolation=consolation or GameSlot(),
    )
    # Semifinals are written first.
    return [row.id for row in rows[:2]]  # type: ignore[misc]


async def _score(db_session: AsyncSession, game_id: int, home: int, away: int) -> None:
    await schedule_service.record_game_result(
        db_session, game_id=game_id, home_score=home, away_score=away
    )


@pytest.mark.asyncio
async def test_preset_writes_twelve_tagged_games(db_session, season):
    season_id, team_ids = season
    games = await schedule_service.save_preset_schedule(
        db_session,
        season_id=season_id,
        team_ids=team_ids,
        base_starts_at=datetime(2026, 1, 10, 19, 0),
        location="Rink 1",
    )

    assert len(games) == 12
    assert games[0].week_tag == "week 1"
    assert games[-1].week_tag == "week 6"
    assert games[0].opponent == "B"
    assert games[0].opponent_team_id == team_ids[1]
    assert all(game.location == "Rink 1" for game in games)


@pytest.mark.asyncio
async def test_preset_replaces_existing_schedule(db_session, season):
    season_id, team_ids = season
    await schedule_service.save_preset_schedule(db_session, season_id=season_id, team_ids=team_ids)
    await schedule_service.save_preset_schedule(
        db_session, season_id=season_id, team_ids=team_ids, cycle_count=1
    )

    games = await schedule_service.list_games(db_session, season_id=season_id)
    assert len(games) == 6


@pytest.mark.asyncio
async def test_invalid_team_leaves_previous_schedule_untouched(db_session, season):
    season_id, team_ids = season
    await schedule_service.save_preset_schedule(db_session, season_id=season_id, team_ids=team_ids)

    with pytest.raises(ScheduleTeamsInvalid):
        await schedule_service.save_preset_schedule(
            db_session, season_id=season_id, team_ids=[*team_ids[:3], 9999]
        )

    games = await schedule_service.list_games(db_session, season_id=season_id)
    assert len(games) == 12


@pytest.mark.asyncio
async def test_weekly_save_skips_incomplete_slots(db_session, season):
    season_id, team_ids = season
    a, b, c, d = team_ids
    games = await schedule_service.save_weekly_schedule(
        db_session,
        season_id=season_id,
        weeks=[
            WeekSlate(
                week_number=1,
                games=[
                    GameSlot(home_team_id=a, away_team_id=b, location=" North "),
                    GameSlot(home_team_id=c, away_team_id=""),
                ],
            ),
            WeekSlate(week_number=2, games=[GameSlot(home_team_id=d, away_team_id=d)]),
            WeekSlate(week_number=3, games=[GameSlot(home_team_id=d, away_team_id=c)]),
        ],
    )

    assert [(g.week_tag, g.team_id, g.opponent_team_id) for g in games] == [
        ("week 1", a, b),
        ("week 3", d, c),
    ]
    assert games[0].location == "North"


@pytest.mark.asyncio
async def test_resolve_pairs_winners_and_losers(db_session, season):
    season_id, team_ids = season
    a, b, c, d = team_ids
    semi_1, semi_2 = await _playoff_setup(db_session, season_id, team_ids)
    await _score(db_session, semi_1, 4, 2)
    await _score(db_session, semi_2, 1, 3)

    cup, bowl = await schedule_service.resolve_playoffs(db_session, season_id=season_id)

    assert (cup.team_id, cup.opponent_team_id) == (a, d)
    assert cup.playoff_tag == PlayoffTag.defenders_cup.value
    assert cup.notes == "Defenders Cup"
    assert cup.week_tag == "week 8"
    assert (bowl.team_id, bowl.opponent_team_id) == (b, c)
    assert bowl.playoff_tag == PlayoffTag.toilet_bowl.value


@pytest.mark.asyncio
async def test_resolve_replaces_week_eight_and_falls_back_on_previous_finals(db_session, season):
    season_id, team_ids = season
    a, b, _, _ = team_ids
    semi_1, semi_2 = await _playoff_setup(
        db_session,
        season_id,
        team_ids,
        championship=GameSlot(home_team_id=a, away_team_id=b, starts_at=CUP_TIME, location="Main"),
    )
    await _score(db_session, semi_1, 5, 0)
    await _score(db_session, semi_2, 2, 1)

    cup, bowl = await schedule_service.resolve_playoffs(db_session, season_id=season_id)
    assert (cup.starts_at, cup.location) == (CUP_TIME, "Main")
    assert (bowl.starts_at, bowl.location) == (CUP_TIME, "Main")

    cup, bowl = await schedule_service.resolve_playoffs(
        db_session,
        season_id=season_id,
        consolation=PlayoffSlotOverride(location="Practice Rink"),
    )
    assert (cup.starts_at, cup.location) == (CUP_TIME, "Main")
    assert (bowl.starts_at, bowl.location) == (CUP_TIME, "Practice Rink")

    games = await schedule_service.list_games(db_session, season_id=season_id)
    finals = [g for g in games if g.week_tag == "week 8"]
    assert len(finals) == 2


@pytest.mark.asyncio
async def test_resolve_requires_two_scored_decisive_semifinals(db_session, season):
    season_id, team_ids = season
    with pytest.raises(SemifinalsNotReady):
        await schedule_service.resolve_playoffs(db_session, season_id=season_id)

    semi_1, semi_2 = await _playoff_setup(db_session, season_id, team_ids)
    await _score(db_session, semi_1, 3, 1)
    with pytest.raises(SemifinalsNotReady):
        await schedule_service.resolve_playoffs(db_session, season_id=season_id)

    await _score(db_session, semi_2, 2, 2)
    with pytest.raises(SemifinalTied):
        await schedule_service.resolve_playoffs(db_session, season_id=season_id)


@pytest.mark.asyncio
async def test_resolve_rejects_semifinal_teams_outside_the_season(db_session, season):
    season_id, team_ids = season
    _, other_team_ids = await seed_season(db_session, title="DVHL Spring 2026")
    semi_1, semi_2 = await _playoff_setup(db_session, season_id, team_ids)
    await _score(db_session, semi_1, 3, 1)
    await _score(db_session, semi_2, 4, 2)

    # A legacy row whose opponent name matches no team.
    await db_session.execute(
        update(Game).where(Game.id == semi_1).values(opponent_team_id=None, opponent="Ghosts")
    )
    await db_session.commit()
    with pytest.raises(UnmappedSemifinalTeam):
        await schedule_service.resolve_playoffs(db_session, season_id=season_id)

    await db_session.execute(
        update(Game).where(Game.id == semi_1).values(opponent_team_id=other_team_ids[0], opponent="A")
    )
    await db_session.commit()
    with pytest.raises(UnmappedSemifinalTeam):
        await schedule_service.resolve_playoffs(db_session, season_id=season_id)

    games = await schedule_service.list_games(db_session, season_id=season_id)
    assert all(game.week_tag == "week 7" for game in games)


@pytest.mark.asyncio
async def test_record_result_for_unknown_game(db_session, season):
    with pytest.raises(GameNotFound):
        await _score(db_session, 9999, 1, 0)


@pytest.mark.asyncio
async def test_standings_follow_recorded_results(db_session, season):
    season_id, team_ids = season
    a, b, c, d = team_ids
    games = await schedule_service.save_preset_schedule(
        db_session, season_id=season_id, team_ids=team_ids, cycle_count=1
    )
    week_one = [g.id for g in games[:2]]
    await _score(db_session, week_one[0], 4, 1)  # A beats B
    await _score(db_session, week_one[1], 2, 2)  # C ties D

    standings = await standings_service.get_season_standings(db_session, season_id=season_id)

    assert [(r.team_id, r.points) for r in standings] == [(a, 2), (c, 1), (d, 1), (b, 0)]
    assert standings[0].goal_differential == 3


@pytest.mark.asyncio
async def test_removing_a_team_drops_its_home_and_away_games(db_session, season):
    season_id, team_ids = season
    await schedule_service.save_preset_schedule(
        db_session, season_id=season_id, team_ids=team_ids, cycle_count=1
    )

    assert await competition_service.remove_team(db_session, team_id=team_ids[1]) is True
    assert await competition_service.remove_team(db_session, team_id=team_ids[1]) is False

    games = await schedule_service.list_games(db_session, season_id=season_id)
    assert len(games) == 3
    assert all(team_ids[1] not in (g.team_id, g.opponent_team_id) for g in games)
