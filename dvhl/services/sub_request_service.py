"""Substitute-player requests: open, accept, cancel.

A request starts `open` and moves exactly once, to `accepted` or `cancelled`.
Each transition queues a notification for the people who need to act on it.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.fields import NotificationAudience, NotificationKind, SubRequestStatus
from dvhl.schemas.competitions import Team
from dvhl.schemas.sub_requests import SubRequest
from dvhl.services.errors import SubRequestNotFound, SubRequestNotOpen, TeamNotFound
from dvhl.services.notification_service import queue_notification
from dvhl.services.team_control_service import load_team_control
from dvhl.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _clean_str(val: str | None) -> str | None:
    if val and val.strip():
        return val.strip()
    return None


async def _notify_sub_pool(
    db: AsyncSession,
    request: SubRequest,
    *,
    kind: NotificationKind,
    message: str,
) -> None:
    control = await load_team_control(db, request.team_id)
    queue_notification(
        db,
        kind=kind,
        audience=NotificationAudience.team_sub_pool,
        season_id=request.season_id,
        team_id=request.team_id,
        message=message,
        payload={
            "sub_request_id": request.id,
            "recipient_user_ids": list(control.sub_pool_user_ids or []),
            "needed_for_game_id": request.needed_for_game_id,
        },
    )


async def _load_open_request(db: AsyncSession, request_id: int) -> SubRequest:
    request = await db.get(SubRequest, request_id)
    if request is None:
        raise SubRequestNotFound(f"Sub request {request_id} not found")
    if request.status != SubRequestStatus.open:
        raise SubRequestNotOpen(f"Sub request {request_id} is {request.status.value}")
    return request


async def create_sub_request(
    db: AsyncSession,
    *,
    team_id: int,
    captain_user_id: int,
    requested_by_user_id: int,
    message: str | None = None,
    needed_for_game_id: int | None = None,
) -> SubRequest:
    """Open a new request for the team. Repeated calls create separate requests."""
    now = utcnow()
    async with db.begin():
        team = await db.get(Team, team_id)
        if team is None:
            raise TeamNotFound(f"Team {team_id} not found")
        request = SubRequest(
            season_id=team.season_id,
            team_id=team_id,
            captain_user_id=captain_user_id,
            requested_by_user_id=requested_by_user_id,
            message=_clean_str(message),
            needed_for_game_id=needed_for_game_id,
            status=SubRequestStatus.open,
            created_at=now,
            updated_at=now,
        )
        db.add(request)
        await db.flush()
        await _notify_sub_pool(
            db,
            request,
            kind=NotificationKind.sub_request_created,
            message=f"{team.name} needs a sub" + (f": {request.message}" if request.message else ""),
        )
    logger.info("Sub request %s opened for team %s by %s", request.id, team_id, requested_by_user_id)
    return request


async def accept_sub_request(db: AsyncSession, *, request_id: int, actor_id: int) -> SubRequest:
    """Raises SubRequestNotFound or SubRequestNotOpen."""
    now = utcnow()
    async with db.begin():
        request = await _load_open_request(db, request_id)
        request.status = SubRequestStatus.accepted
        request.accepted_by_user_id = actor_id
        request.accepted_at = now
        request.updated_at = now
        queue_notification(
            db,
            kind=NotificationKind.sub_request_accepted,
            audience=NotificationAudience.user,
            season_id=request.season_id,
            team_id=request.team_id,
            recipient_user_id=request.captain_user_id,
            message=f"Sub request {request.id} was accepted",
            payload={"sub_request_id": request.id, "accepted_by_user_id": actor_id},
        )
    logger.info("Sub request %s accepted by %s", request_id, actor_id)
    return request


async def cancel_sub_request(db: AsyncSession, *, request_id: int, actor_id: int) -> SubRequest:
    """Raises SubRequestNotFound or SubRequestNotOpen."""
    async with db.begin():
        request = await _load_open_request(db, request_id)
        request.status = SubRequestStatus.cancelled
        request.updated_at = utcnow()
        await _notify_sub_pool(
            db,
            request,
            kind=NotificationKind.sub_request_cancelled,
            message=f"Sub request {request.id} was cancelled",
        )
    logger.info("Sub request %s cancelled by %s", request_id, actor_id)
    return request


async def get_sub_request(db: AsyncSession, *, request_id: int) -> SubRequest | None:
    async with db.begin():
        return await db.get(SubRequest, request_id)


async def list_sub_requests(
    db: AsyncSession,
    *,
    season_id: int | None = None,
    team_id: int | None = None,
    status: SubRequestStatus | None = None,
) -> list[SubRequest]:
    """Newest first."""
    query = select(SubRequest).order_by(
        SubRequest.created_at.desc(),  # type: ignore[attr-defined]
        SubRequest.id.desc(),  # type: ignore[union-attr]
    )
    if season_id is not None:
        query = query.where(SubRequest.season_id == season_id)  # type: ignore[arg-type]
    if team_id is not None:
        query = query.where(SubRequest.team_id == team_id)  # type: ignore[arg-type]
    if status is not None:
        query = query.where(SubRequest.status == status)  # type: ignore[arg-type]
    async with db.begin():
        result = await db.execute(query)
        return list(result.scalars().all())
