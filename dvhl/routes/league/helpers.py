"""Shared helpers for the DVHL API routes: actor lookup and error mapping."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Awaitable, Callable, Iterator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.config import settings
from dvhl.schemas.auth import User
from dvhl.services.auth_service import MANAGE_DVHL, get_user_for_session_token, user_has_permission
from dvhl.services.errors import WorkflowError
from dvhl.utils.db_async import get_session

logger = logging.getLogger(__name__)


def _extract_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get(settings.session_cookie_name) or None


async def get_current_actor(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """The user behind the session cookie or bearer token, if any."""
    raw_token = _extract_token(request)
    if not raw_token:
        return None
    return await get_user_for_session_token(db, raw_token=raw_token)


async def require_actor(actor: User | None = Depends(get_current_actor)) -> User:
    if actor is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return actor


def require_permission(permission: str = MANAGE_DVHL) -> Callable[..., Awaitable[User]]:
    """Dependency factory: the actor must hold `permission` (admins always do)."""

    async def dependency(
        actor: User = Depends(require_actor),
        db: AsyncSession = Depends(get_session),
    ) -> User:
        if not await user_has_permission(db, user=actor, permission=permission):
            raise HTTPException(status_code=403, detail=f"Missing permission: {permission}")
        return actor

    return dependency


async def can_manage(db: AsyncSession, actor: User) -> bool:
    return await user_has_permission(db, user=actor, permission=MANAGE_DVHL)


def forbidden(reason: str) -> HTTPException:
    return HTTPException(status_code=403, detail={"code": reason, "message": reason})


@contextmanager
def workflow_errors() -> Iterator[None]:
    """Translate service failures into HTTP errors.

    Workflow errors keep their own status and code. Plain ValueError is a bad
    request payload. Storage faults are logged and reported as `save_failed`.
    """
    try:
        yield
    except WorkflowError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail={"code": exc.code, "message": str(exc)},
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": "invalid_request", "message": str(exc)},
        ) from exc
    except SQLAlchemyError as exc:
        logger.exception("DVHL storage failure")
        raise HTTPException(
            status_code=500,
            detail={"code": "save_failed", "message": "Could not save changes"},
        ) from exc


async def require_player(actor: User = Depends(require_actor)) -> User:
    """Approved accounts with a player or admin role."""
    if actor.role not in ("player", "admin"):
        raise forbidden("player_access_required")
    return actor
