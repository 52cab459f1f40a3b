"""Season standings from final game results.

Win = 2 points, tie = 1, loss = 0. Games are stored from the home team's
side; the away team is resolved by `opponent_team_id`, and only rows written
before that column existed fall back to matching the opponent name.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.standings import TeamStandingRecord
from dvhl.schemas.competitions import Game, Team
from dvhl.services.competition_service import load_season, load_teams

WIN_POINTS = 2
TIE_POINTS = 1

FINAL_MARKERS = ("final", "complete")


def is_final_game(game: Game) -> bool:
    status = (game.status or "").lower()
    if any(marker in status for marker in FINAL_MARKERS):
        return True
    return isinstance(game.home_score, int) and isinstance(game.away_score, int)


def _apply(record: TeamStandingRecord, scored: int, conceded: int) -> None:
    record.games_played += 1
    record.goals_for += scored
    record.goals_against += conceded
    if scored > conceded:
        record.wins += 1
        record.points += WIN_POINTS
    elif scored < conceded:
        record.losses += 1
    else:
        record.ties += 1
        record.points += TIE_POINTS


def compute_standings(teams: list[Team], games: list[Game]) -> list[TeamStandingRecord]:
    """Rank teams by points, then goal differential, then name."""
    records = {
        team.id: TeamStandingRecord(team_id=team.id, team_name=team.name)  # type: ignore[arg-type]
        for team in teams
    }
    ids_by_name = {team.name: team.id for team in teams}

    for game in games:
        if not is_final_game(game):
            continue
        home = records.get(game.team_id)
        if game.opponent_team_id is not None:
            away = records.get(game.opponent_team_id)
        else:
            away = records.get(ids_by_name.get(game.opponent))  # type: ignore[arg-type]
        home_score = game.home_score or 0
        away_score = game.away_score or 0
        if home is not None:
            _apply(home, home_score, away_score)
        if away is not None:
            _apply(away, away_score, home_score)

    return sorted(
        records.values(),
        key=lambda r: (-r.points, -r.goal_differential, r.team_name.casefold(), r.team_name),
    )


async def get_season_standings(db: AsyncSession, *, season_id: int) -> list[TeamStandingRecord]:
    async with db.begin():
        await load_season(db, season_id)
        teams = await load_teams(db, season_id)
        result = await db.execute(
            select(Game).where(Game.season_id == season_id)  # type: ignore[arg-type]
        )
        games = list(result.scalars().all())
    return compute_standings(teams, games)
