"""Outbox of notification requests.

The workflow services only record who should hear about what. A delivery
worker outside this package reads pending rows and marks them delivered.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from dvhl.models.fields import NotificationAudience, NotificationKind
from dvhl.utils.clock import utcnow


class NotificationRequest(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "notification_requests"

    id: int | None = Field(default=None, primary_key=True)
    kind: NotificationKind = Field(index=True)
    audience: NotificationAudience = Field(default=NotificationAudience.user)
    season_id: int | None = Field(default=None, index=True)
    team_id: int | None = Field(default=None, index=True)
    recipient_user_id: int | None = Field(default=None, index=True)
    message: str
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, index=True)
    delivered_at: datetime | None = Field(default=None, index=True)
