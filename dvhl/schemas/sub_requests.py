from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from dvhl.models.fields import SubRequestStatus
from dvhl.utils.clock import utcnow


class SubRequest(SQLModel, table=True):  # type: ignore[call-arg]
    """A team's open need for a substitute player.

    Status moves only from `open` to `accepted` or `cancelled`; both are terminal.
    """

    __tablename__ = "sub_requests"

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasons.id", index=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    captain_user_id: int
    requested_by_user_id: int
    message: Optional[str] = Field(default=None)
    needed_for_game_id: Optional[int] = Field(default=None)
    status: SubRequestStatus = Field(default=SubRequestStatus.open, index=True)
    accepted_by_user_id: Optional[int] = Field(default=None)
    accepted_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
