"""Season, team and roster API models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlmodel import SQLModel


class SeasonCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    team_names: List[str] = Field(min_length=4, max_length=4)
    starts_at: Optional[datetime] = None
    notes: Optional[str] = None


class TeamRead(SQLModel):
    id: int
    season_id: int
    name: str


class SeasonRead(SQLModel):
    id: int
    title: str
    starts_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    teams: List[TeamRead] = []


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)


class RosterAssignment(BaseModel):
    user_id: int


class EligiblePlayer(SQLModel):
    id: int
    full_name: str
    email: str
    jersey_number: Optional[int] = None
