from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from dvhl.models.fields import SkillPosition
from dvhl.utils.clock import utcnow


class SkillRating(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "skill_ratings"

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    position: SkillPosition = Field(default=SkillPosition.offense)
    rating: int = Field(default=0, description="Self rating clamped to 0-100")
    level: int = Field(default=1, index=True, description="Static 1-10 level for the rating")
    notes: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
