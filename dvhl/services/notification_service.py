"""Outbox writes for "please notify X" requests.

`queue_notification` never opens its own transaction: it is called from inside
the workflow service that caused the event, so the request row commits or
rolls back together with the change it describes.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.fields import NotificationAudience, NotificationKind
from dvhl.schemas.notifications import NotificationRequest
from dvhl.utils.clock import utcnow

logger = logging.getLogger(__name__)


def queue_notification(
    db: AsyncSession,
    *,
    kind: NotificationKind,
    message: str,
    audience: NotificationAudience = NotificationAudience.user,
    season_id: int | None = None,
    team_id: int | None = None,
    recipient_user_id: int | None = None,
    payload: dict[str, Any] | None = None,
) -> NotificationRequest:
    """Stage a notification request on the caller's open transaction."""
    row = NotificationRequest(
        kind=kind,
        audience=audience,
        season_id=season_id,
        team_id=team_id,
        recipient_user_id=recipient_user_id,
        message=message,
        payload=dict(payload or {}),
        created_at=utcnow(),
    )
    db.add(row)
    logger.debug("Queued %s notification for %s", kind.value, audience.value)
    return row


async def list_pending_notifications(
    db: AsyncSession,
    *,
    limit: int = 100,
) -> list[NotificationRequest]:
    """Oldest undelivered requests first."""
    async with db.begin():
        result = await db.execute(
            select(NotificationRequest)
            .where(NotificationRequest.delivered_at.is_(None))  # type: ignore[union-attr]
            .order_by(NotificationRequest.created_at, NotificationRequest.id)  # type: ignore[arg-type]
            .limit(limit)
        )
        return list(result.scalars().all())


async def mark_delivered(db: AsyncSession, *, ids: Iterable[int]) -> int:
    """Stamp `delivered_at` on the given requests. Returns the number updated."""
    id_list = [int(i) for i in ids]
    if not id_list:
        return 0
    now = utcnow()
    async with db.begin():
        result = await db.execute(
            update(NotificationRequest)
            .where(
                NotificationRequest.id.in_(id_list),  # type: ignore[union-attr]
                NotificationRequest.delivered_at.is_(None),  # type: ignore[union-attr]
            )
            .values(delivered_at=now)
        )
    return int(result.rowcount or 0)  # type: ignore[attr-defined]
