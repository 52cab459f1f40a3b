"""Draft session and pick tables."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from dvhl.models.fields import DraftMode, DraftStatus
from dvhl.utils.clock import utcnow


class DraftSession(SQLModel, table=True):  # type: ignore[call-arg]
    """Turn-order state for a season's draft.

    No row means the draft has not started. `version` increments on every
    accepted pick so concurrent writers can detect a stale read.
    """

    __tablename__ = "draft_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasons.id", unique=True, index=True)
    status: DraftStatus = Field(default=DraftStatus.open, index=True)
    pick_order_team_ids: List[int] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    current_pick_index: int = Field(default=0, ge=0)
    draft_mode: DraftMode = Field(default=DraftMode.manual)
    rounds: int = Field(default=1)
    pool_user_ids: List[int] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    version: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    updated_by_user_id: Optional[int] = Field(default=None)


class DraftPick(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "draft_picks"
    __table_args__ = (
        UniqueConstraint("draft_session_id", "pick_number", name="uq_draft_picks_number"),
        UniqueConstraint("draft_session_id", "user_id", name="uq_draft_picks_player"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    draft_session_id: int = Field(foreign_key="draft_sessions.id", index=True)
    pick_number: int
    round: int
    team_id: int = Field(foreign_key="teams.id", index=True)
    user_id: int = Field(index=True)
    picked_at: datetime = Field(default_factory=utcnow)
    picked_by_user_id: Optional[int] = Field(default=None)
