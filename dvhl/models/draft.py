"""Draft request and board models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlmodel import SQLModel

from dvhl.models.fields import DraftMode, DraftStatus


class DraftStartRequest(BaseModel):
    """Empty lists mean "derive from the season plan"."""

    team_ids: List[int] = Field(default_factory=list)
    pool_user_ids: List[int] = Field(default_factory=list)
    draft_mode: Optional[DraftMode] = None
    rounds: Optional[int] = Field(default=None, ge=1, le=30)
    include_all_eligible: bool = False


class DraftPickRequest(BaseModel):
    team_id: int
    user_id: int


class DraftPickRead(SQLModel):
    pick_number: int
    round: int
    team_id: int
    user_id: int
    picked_at: datetime
    picked_by_user_id: Optional[int] = None


class DraftBoardRead(BaseModel):
    id: int
    season_id: int
    status: DraftStatus
    draft_mode: DraftMode
    rounds: int
    pick_order_team_ids: List[int]
    pool_user_ids: List[int]
    current_pick_index: int
    total_picks: int
    next_team_id: Optional[int] = None
    version: int
    picks: List[DraftPickRead]
    created_at: datetime
    updated_at: datetime
    updated_by_user_id: Optional[int] = None
