from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from dvhl.models.fields import DraftMode, PlayerPoolStrategy, TeamOrderStrategy
from dvhl.utils.clock import utcnow


class SeasonPlan(SQLModel, table=True):  # type: ignore[call-arg]
    """Operator-configured workflow plan, one per season.

    Phase is derived from this row on read and never stored.
    """

    __tablename__ = "season_plans"

    season_id: int = Field(foreign_key="seasons.id", primary_key=True)
    signup_closes_at: Optional[datetime] = Field(default=None)
    captain_signup_closes_at: Optional[datetime] = Field(default=None)
    desired_captain_count: int = Field(default=4)
    team_order_strategy: TeamOrderStrategy = Field(default=TeamOrderStrategy.manual)
    player_pool_strategy: PlayerPoolStrategy = Field(default=PlayerPoolStrategy.all_signups)
    draft_mode: DraftMode = Field(default=DraftMode.manual)
    rounds: int = Field(default=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    updated_by_user_id: Optional[int] = Field(default=None)


class SignupIntent(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "signup_intents"

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasons.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    wants_captain: bool = Field(default=False)
    note: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)

    __table_args__ = (
        UniqueConstraint("season_id", "user_id", name="uq_signup_intents_season_user"),
    )
