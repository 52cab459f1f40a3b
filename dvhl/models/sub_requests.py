from typing import Optional

from pydantic import BaseModel, Field


class SubRequestCreate(BaseModel):
    team_id: int
    message: Optional[str] = Field(default=None, max_length=1000)
    needed_for_game_id: Optional[int] = None
