"""API models for season plans, signups and captain assignment."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlmodel import SQLModel

from dvhl.models.fields import DraftMode, PlanPhase, PlayerPoolStrategy, TeamOrderStrategy


class PlanUpdate(BaseModel):
    """Partial plan submitted by an operator.

    Dates and strategy names arrive as raw strings: values that do not parse
    are ignored and the stored value is kept.
    """

    signup_closes_at: Optional[str] = None
    captain_signup_closes_at: Optional[str] = None
    desired_captain_count: Optional[int] = None
    team_order_strategy: Optional[str] = None
    player_pool_strategy: Optional[str] = None
    draft_mode: Optional[str] = None
    rounds: Optional[int] = None


class PlanRead(SQLModel):
    season_id: int
    signup_closes_at: Optional[datetime] = None
    captain_signup_closes_at: Optional[datetime] = None
    desired_captain_count: int
    team_order_strategy: TeamOrderStrategy
    player_pool_strategy: PlayerPoolStrategy
    draft_mode: DraftMode
    rounds: int
    created_at: datetime
    updated_at: datetime
    updated_by_user_id: Optional[int] = None


class PlanStatus(BaseModel):
    """Plan (if any) with the phase derived at read time."""

    season_id: int
    phase: PlanPhase
    phase_label: str
    signup_window_open: bool
    captain_window_open: bool
    plan: Optional[PlanRead] = None


class SignupRequest(BaseModel):
    wants_captain: bool = False
    note: Optional[str] = Field(default=None, max_length=1000)


class CaptainAssignmentRequest(BaseModel):
    team_ids: List[int]
    captain_user_ids: List[Optional[int]]


class TeamControlRead(SQLModel):
    team_id: int
    captain_user_id: Optional[int] = None
    sub_pool_user_ids: List[int] = []
    updated_by_user_id: Optional[int] = None
