from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from dvhl.models.fields import SkillPosition


class SkillLevel(BaseModel):
    level: int
    min: int
    max: int
    summary: str


class SkillRatingRequest(BaseModel):
    position: Optional[str] = None
    rating: float
    notes: Optional[str] = Field(default=None, max_length=1000)


class SkillRatingWithUser(BaseModel):
    user_id: int
    full_name: str
    email: str
    role: str
    position: SkillPosition
    rating: int
    level: int
    notes: Optional[str] = None
    updated_at: datetime
