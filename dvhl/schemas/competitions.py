"""Competition aggregate: seasons, teams, rosters, sub pools and games."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from dvhl.utils.clock import utcnow


class Season(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "seasons"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(index=True, description="Season title like 'DVHL Winter 2026'")
    starts_at: Optional[datetime] = Field(default=None, index=True)
    notes: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class Team(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasons.id", index=True)
    name: str
    created_at: datetime = Field(default_factory=utcnow)


class TeamMember(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)


class TeamControl(SQLModel, table=True):  # type: ignore[call-arg]
    """Captain of record and pre-approved sub pool for a team."""

    __tablename__ = "team_controls"

    team_id: int = Field(foreign_key="teams.id", primary_key=True)
    captain_user_id: Optional[int] = Field(default=None, index=True)
    sub_pool_user_ids: List[int] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    updated_at: datetime = Field(default_factory=utcnow)
    updated_by_user_id: Optional[int] = Field(default=None)


class Game(SQLModel, table=True):  # type: ignore[call-arg]
    """A scheduled game, stored from the home team's side."""

    __tablename__ = "games"

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasons.id", index=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    # Stable id of the away team; `opponent` is a display cache only.
    opponent_team_id: Optional[int] = Field(default=None, index=True)
    opponent: str = Field(default="")
    starts_at: Optional[datetime] = Field(default=None, index=True)
    location: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    week_tag: Optional[str] = Field(default=None, index=True)  # e.g. "week 7"
    playoff_tag: Optional[str] = Field(default=None, index=True)
    status: Optional[str] = Field(default="scheduled")
    home_score: Optional[int] = Field(default=None)
    away_score: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, index=True)
