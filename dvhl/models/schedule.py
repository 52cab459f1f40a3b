"""Request models for schedule generation and score entry."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class GameSlot(BaseModel):
    """One home/away pairing. Blank ids are allowed so partial forms validate."""

    home_team_id: Optional[int] = None
    away_team_id: Optional[int] = None
    starts_at: Optional[datetime] = None
    location: Optional[str] = None

    _blank_ids = field_validator(
        "home_team_id", "away_team_id", "starts_at", "location", mode="before"
    )(_blank_to_none)

    @property
    def is_playable(self) -> bool:
        return (
            self.home_team_id is not None
            and self.away_team_id is not None
            and self.home_team_id != self.away_team_id
        )


class WeekSlate(BaseModel):
    week_number: int = Field(ge=1, le=6)
    games: List[GameSlot] = Field(default_factory=list, max_length=2)


class WeeklyScheduleRequest(BaseModel):
    weeks: List[WeekSlate] = Field(default_factory=list, max_length=6)
    clear_existing: bool = False


class PresetScheduleRequest(BaseModel):
    team_ids: List[int] = Field(min_length=4, max_length=4)
    cycle_count: int = Field(default=2, ge=1, le=4)
    base_starts_at: Optional[datetime] = None
    week_interval_days: int = Field(default=7, ge=1, le=21)
    game_gap_minutes: int = Field(default=90, ge=0, le=360)
    location: Optional[str] = None
    clear_existing: bool = True

    _blank_base = field_validator("base_starts_at", "location", mode="before")(_blank_to_none)


class PlayoffSetupRequest(BaseModel):
    semifinals: List[GameSlot] = Field(min_length=2, max_length=2)
    championship: GameSlot
    consolation: GameSlot
    clear_existing: bool = False


class PlayoffSlotOverride(BaseModel):
    starts_at: Optional[datetime] = None
    location: Optional[str] = None

    _blank = field_validator("starts_at", "location", mode="before")(_blank_to_none)


class PlayoffResolveRequest(BaseModel):
    championship: Optional[PlayoffSlotOverride] = None
    consolation: Optional[PlayoffSlotOverride] = None


class GameResultRequest(BaseModel):
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    status: str = "final"
