"""Schedule generation for four-team DVHL seasons.

Regular season games are tagged ``week <n>``. Playoffs live in week 7
(semifinals) and week 8 (championship and consolation, additionally tagged
with a ``playoff:`` marker). Every save runs its clear-then-create steps in one
transaction, so a failure leaves the previous schedule untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.fields import NotificationAudience, NotificationKind, PlayoffTag
from dvhl.models.schedule import GameSlot, PlayoffSlotOverride, WeekSlate
from dvhl.schemas.competitions import Game, Team
from dvhl.services.competition_service import load_season, load_teams
from dvhl.services.errors import (
    GameNotFound,
    ScheduleTeamsInvalid,
    SemifinalsNotReady,
    SemifinalTied,
    UnmappedSemifinalTeam,
)
from dvhl.services.notification_service import queue_notification
from dvhl.utils.clock import utcnow

logger = logging.getLogger(__name__)

SEMIFINAL_WEEK = 7
FINALS_WEEK = 8
MAX_EDITOR_WEEKS = 6
GAMES_PER_WEEK = 2

# Index pairs into the four-team list; one complete round robin.
ROUND_ROBIN_TEMPLATE: tuple[tuple[tuple[int, int], tuple[int, int]], ...] = (
    ((0, 1), (2, 3)),
    ((0, 2), (1, 3)),
    ((0, 3), (1, 2)),
)

PLAYOFF_NOTES = {
    PlayoffTag.defenders_cup: "Defenders Cup",
    PlayoffTag.toilet_bowl: "Toilet Bowl",
}


@dataclass
class PlannedGame:
    """A game ready to be written; not yet a database row."""

    week_number: int
    home_team_id: int
    away_team_id: int
    starts_at: datetime | None = None
    location: str | None = None
    playoff_tag: PlayoffTag | None = None
    notes: str | None = None


def week_tag(week_number: int) -> str:
    return f"week {week_number}"


def round_robin_weeks(team_ids: list[int], cycle_count: int) -> list[list[tuple[int, int]]]:
    """Home/away pairings per week, `cycle_count` repeats of the template.

    Raises:
        ScheduleTeamsInvalid: Not exactly four distinct team ids.
    """
    if len(team_ids) != 4 or len(set(team_ids)) != 4:
        raise ScheduleTeamsInvalid("Round robin preset needs exactly four distinct teams")
    weeks: list[list[tuple[int, int]]] = []
    for _ in range(max(cycle_count, 1)):
        for pairings in ROUND_ROBIN_TEMPLATE:
            weeks.append([(team_ids[home], team_ids[away]) for home, away in pairings])
    return weeks


def build_preset_games(
    team_ids: list[int],
    cycle_count: int,
    base_starts_at: datetime | None = None,
    week_interval_days: int = 7,
    game_gap_minutes: int = 90,
    location: str | None = None,
) -> list[PlannedGame]:
    """Expand the round robin into dated games.

    Game 1 of week w starts at base + (w - 1) intervals; game 2 follows after
    the gap. Without a base time no game gets a start time.
    """
    games: list[PlannedGame] = []
    for week_index, pairings in enumerate(round_robin_weeks(team_ids, cycle_count)):
        week_start = (
            base_starts_at + timedelta(days=week_interval_days * week_index)
            if base_starts_at is not None
            else None
        )
        for game_index, (home, away) in enumerate(pairings):
            starts_at = (
                week_start + timedelta(minutes=game_gap_minutes * game_index)
                if week_start is not None
                else None
            )
            games.append(
                PlannedGame(
                    week_number=week_index + 1,
                    home_team_id=home,
                    away_team_id=away,
                    starts_at=starts_at,
                    location=location,
                )
            )
    return games


def _planned_from_slot(
    slot: GameSlot,
    week_number: int,
    playoff_tag: PlayoffTag | None = None,
) -> PlannedGame | None:
    if not slot.is_playable:
        return None
    return PlannedGame(
        week_number=week_number,
        home_team_id=slot.home_team_id,  # type: ignore[arg-type]
        away_team_id=slot.away_team_id,  # type: ignore[arg-type]
        starts_at=slot.starts_at,
        location=(slot.location or "").strip() or None,
        playoff_tag=playoff_tag,
        notes=PLAYOFF_NOTES.get(playoff_tag) if playoff_tag else None,
    )


def _validate_team_ids(planned: list[PlannedGame], teams_by_id: dict[int, Team]) -> None:
    unknown = sorted(
        {
            team_id
            for game in planned
            for team_id in (game.home_team_id, game.away_team_id)
            if team_id not in teams_by_id
        }
    )
    if unknown:
        raise ScheduleTeamsInvalid(f"Teams {unknown} are not part of this season")


async def _clear_games(db: AsyncSession, season_id: int) -> None:
    await db.execute(delete(Game).where(Game.season_id == season_id))  # type: ignore[arg-type]


async def _write_games(
    db: AsyncSession,
    season_id: int,
    planned: list[PlannedGame],
    teams_by_id: dict[int, Team],
) -> list[Game]:
    now = utcnow()
    rows: list[Game] = []
    for game in planned:
        rows.append(
            Game(
                season_id=season_id,
                team_id=game.home_team_id,
                opponent_team_id=game.away_team_id,
                opponent=teams_by_id[game.away_team_id].name,
                starts_at=game.starts_at,
                location=game.location,
                notes=game.notes,
                week_tag=week_tag(game.week_number),
                playoff_tag=game.playoff_tag.value if game.playoff_tag else None,
                status="scheduled",
                created_at=now,
            )
        )
    db.add_all(rows)
    await db.flush()
    return rows


async def _save(
    db: AsyncSession,
    *,
    season_id: int,
    planned: list[PlannedGame],
    clear_existing: bool,
    label: str,
) -> list[Game]:
    async with db.begin():
        await load_season(db, season_id)
        teams_by_id = {team.id: team for team in await load_teams(db, season_id)}
        _validate_team_ids(planned, teams_by_id)  # type: ignore[arg-type]
        if clear_existing:
            await _clear_games(db, season_id)
        rows = await _write_games(db, season_id, planned, teams_by_id)  # type: ignore[arg-type]
        queue_notification(
            db,
            kind=NotificationKind.schedule_saved,
            audience=NotificationAudience.season,
            season_id=season_id,
            message=f"Schedule updated ({label}, {len(rows)} games)",
            payload={"games": len(rows), "cleared": clear_existing, "source": label},
        )
    logger.info(
        "Saved %s schedule for season %s: %d games (cleared=%s)",
        label,
        season_id,
        len(rows),
        clear_existing,
    )
    return rows


async def save_preset_schedule(
    db: AsyncSession,
    *,
    season_id: int,
    team_ids: list[int],
    cycle_count: int = 2,
    base_starts_at: datetime | None = None,
    week_interval_days: int = 7,
    game_gap_minutes: int = 90,
    location: str | None = None,
    clear_existing: bool = True,
) -> list[Game]:
    planned = build_preset_games(
        team_ids,
        cycle_count,
        base_starts_at=base_starts_at,
        week_interval_days=week_interval_days,
        game_gap_minutes=game_gap_minutes,
        location=location,
    )
    return await _save(
        db, season_id=season_id, planned=planned, clear_existing=clear_existing, label="preset"
    )


async def save_weekly_schedule(
    db: AsyncSession,
    *,
    season_id: int,
    weeks: list[WeekSlate],
    clear_existing: bool = False,
) -> list[Game]:
    """Write up to six weeks of up to two games each.

    Slots with a blank or identical home/away team are skipped.
    """
    planned: list[PlannedGame] = []
    for week in weeks[:MAX_EDITOR_WEEKS]:
        for slot in week.games[:GAMES_PER_WEEK]:
            game = _planned_from_slot(slot, week.week_number)
            if game is not None:
                planned.append(game)
    return await _save(
        db, season_id=season_id, planned=planned, clear_existing=clear_existing, label="weekly"
    )


async def save_playoff_setup(
    db: AsyncSession,
    *,
    season_id: int,
    semifinals: list[GameSlot],
    championship: GameSlot,
    consolation: GameSlot,
    clear_existing: bool = False,
) -> list[Game]:
    candidates = [_planned_from_slot(slot, SEMIFINAL_WEEK) for slot in semifinals[:2]]
    candidates.append(_planned_from_slot(championship, FINALS_WEEK, PlayoffTag.defenders_cup))
    candidates.append(_planned_from_slot(consolation, FINALS_WEEK, PlayoffTag.toilet_bowl))
    planned = [game for game in candidates if game is not None]
    return await _save(
        db, season_id=season_id, planned=planned, clear_existing=clear_existing, label="playoff"
    )


def _semifinal_outcome(
    game: Game,
    team_ids_by_name: dict[str, int],
    season_team_ids: set[int],
) -> tuple[int, int]:
    """Return (winner_team_id, loser_team_id) for a scored semifinal."""
    if game.home_score is None or game.away_score is None:
        raise SemifinalsNotReady("Both semifinals need recorded scores")
    if game.home_score == game.away_score:
        raise SemifinalTied(f"Semifinal {game.id} is tied")
    away_id = game.opponent_team_id
    if away_id is None:
        away_id = team_ids_by_name.get(game.opponent)
    if away_id is None or away_id not in season_team_ids or game.team_id not in season_team_ids:
        raise UnmappedSemifinalTeam(f"Semifinal {game.id} opponent {game.opponent!r} is unknown")
    if game.home_score > game.away_score:
        return game.team_id, away_id
    return away_id, game.team_id


def _first_tagged(games: list[Game], tag: PlayoffTag) -> Game | None:
    return next((g for g in games if g.playoff_tag == tag.value), None)


async def resolve_playoffs(
    db: AsyncSession,
    *,
    season_id: int,
    championship: PlayoffSlotOverride | None = None,
    consolation: PlayoffSlotOverride | None = None,
) -> list[Game]:
    """Replace week 8 with winners and losers of the two week 7 semifinals.

    Start time and location fall back field by field: the championship uses
    the supplied value, then the previous championship. The consolation uses
    the supplied value, then the previous consolation, then whatever the
    championship resolved to.

    Raises:
        SemifinalsNotReady: Fewer than two semifinals or missing scores.
        SemifinalTied: A semifinal ended level.
        UnmappedSemifinalTeam: A semifinal team is not in the season.
    """
    championship = championship or PlayoffSlotOverride()
    consolation = consolation or PlayoffSlotOverride()

    async with db.begin():
        await load_season(db, season_id)
        teams = await load_teams(db, season_id)
        teams_by_id = {team.id: team for team in teams}
        team_ids_by_name = {team.name: team.id for team in teams}

        result = await db.execute(
            select(Game)
            .where(
                Game.season_id == season_id,  # type: ignore[arg-type]
                Game.week_tag.in_([week_tag(SEMIFINAL_WEEK), week_tag(FINALS_WEEK)]),  # type: ignore[union-attr]
            )
            .order_by(Game.created_at, Game.id)  # type: ignore[arg-type]
        )
        games = list(result.scalars().all())
        semifinals = [g for g in games if g.week_tag == week_tag(SEMIFINAL_WEEK)][:2]
        previous_finals = [g for g in games if g.week_tag == week_tag(FINALS_WEEK)]
        if len(semifinals) < 2:
            raise SemifinalsNotReady("Two week 7 semifinals are required")

        season_team_ids = set(teams_by_id)  # type: ignore[arg-type]
        winner_1, loser_1 = _semifinal_outcome(semifinals[0], team_ids_by_name, season_team_ids)  # type: ignore[arg-type]
        winner_2, loser_2 = _semifinal_outcome(semifinals[1], team_ids_by_name, season_team_ids)  # type: ignore[arg-type]

        prev_champ = _first_tagged(previous_finals, PlayoffTag.defenders_cup)
        prev_consol = _first_tagged(previous_finals, PlayoffTag.toilet_bowl)

        champ_starts = championship.starts_at or (prev_champ.starts_at if prev_champ else None)
        champ_location = championship.location or (prev_champ.location if prev_champ else None)
        consol_starts = (
            consolation.starts_at
            or (prev_consol.starts_at if prev_consol else None)
            or champ_starts
        )
        consol_location = (
            consolation.location
            or (prev_consol.location if prev_consol else None)
            or champ_location
        )

        await db.execute(
            delete(Game).where(
                Game.season_id == season_id,  # type: ignore[arg-type]
                Game.week_tag == week_tag(FINALS_WEEK),  # type: ignore[arg-type]
            )
        )
        planned = [
            PlannedGame(
                week_number=FINALS_WEEK,
                home_team_id=winner_1,
                away_team_id=winner_2,
                starts_at=champ_starts,
                location=champ_location,
                playoff_tag=PlayoffTag.defenders_cup,
                notes=PLAYOFF_NOTES[PlayoffTag.defenders_cup],
            ),
            PlannedGame(
                week_number=FINALS_WEEK,
                home_team_id=loser_1,
                away_team_id=loser_2,
                starts_at=consol_starts,
                location=consol_location,
                playoff_tag=PlayoffTag.toilet_bowl,
                notes=PLAYOFF_NOTES[PlayoffTag.toilet_bowl],
            ),
        ]
        rows = await _write_games(db, season_id, planned, teams_by_id)  # type: ignore[arg-type]
        queue_notification(
            db,
            kind=NotificationKind.schedule_saved,
            audience=NotificationAudience.season,
            season_id=season_id,
            message="Playoff finals are set",
            payload={"championship_game_id": rows[0].id, "consolation_game_id": rows[1].id},
        )

    logger.info(
        "Resolved playoffs for season %s: cup %s vs %s, bowl %s vs %s",
        season_id,
        winner_1,
        winner_2,
        loser_1,
        loser_2,
    )
    return rows


async def clear_schedule(db: AsyncSession, *, season_id: int) -> None:
    async with db.begin():
        await _clear_games(db, season_id)
    logger.info("Cleared schedule for season %s", season_id)


async def list_games(db: AsyncSession, *, season_id: int) -> list[Game]:
    """Games in creation order."""
    async with db.begin():
        result = await db.execute(
            select(Game)
            .where(Game.season_id == season_id)  # type: ignore[arg-type]
            .order_by(Game.created_at, Game.id)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())


async def record_game_result(
    db: AsyncSession,
    *,
    game_id: int,
    home_score: int,
    away_score: int,
    status: str = "final",
) -> Game:
    async with db.begin():
        game = await db.get(Game, game_id)
        if game is None:
            raise GameNotFound(f"Game {game_id} not found")
        game.home_score = home_score
        game.away_score = away_score
        game.status = status
    logger.info("Recorded result for game %s: %s-%s (%s)", game_id, home_score, away_score, status)
    return game
