"""Standings read model (derived from games, never stored)."""

from pydantic import BaseModel, computed_field


class TeamStandingRecord(BaseModel):
    team_id: int
    team_name: str
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    ties: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def goal_differential(self) -> int:
        return self.goals_for - self.goals_against
