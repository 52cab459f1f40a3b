"""Sub requests: captains ask, sub-pool members accept."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.fields import SubRequestStatus
from dvhl.models.sub_requests import SubRequestCreate
from dvhl.routes.league.helpers import can_manage, forbidden, require_actor, workflow_errors
from dvhl.schemas.auth import User
from dvhl.schemas.sub_requests import SubRequest
from dvhl.services import sub_request_service, team_control_service
from dvhl.utils.db_async import get_session

router = APIRouter(tags=["dvhl-sub-requests"])


async def _load_request(db: AsyncSession, request_id: int) -> SubRequest:
    request = await sub_request_service.get_sub_request(db, request_id=request_id)
    if request is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "sub_request_not_found", "message": "Sub request not found"},
        )
    return request


@router.get("/sub-requests", response_model=List[SubRequest])
async def list_sub_requests(
    season_id: Optional[int] = None,
    team_id: Optional[int] = None,
    status: Optional[SubRequestStatus] = None,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_actor),
) -> List[SubRequest]:
    return await sub_request_service.list_sub_requests(
        db, season_id=season_id, team_id=team_id, status=status
    )


@router.post("/sub-requests", response_model=SubRequest, status_code=201)
async def create_sub_request(
    payload: SubRequestCreate,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_actor),
) -> SubRequest:
    controls = await team_control_service.get_team_control_map(db, team_ids=[payload.team_id])
    control = controls[payload.team_id]
    is_captain = control.captain_user_id == actor.id
    if not is_captain and not await can_manage(db, actor):
        raise forbidden("captain_access_required")
    with workflow_errors():
        return await sub_request_service.create_sub_request(
            db,
            team_id=payload.team_id,
            captain_user_id=control.captain_user_id or actor.id,  # type: ignore[arg-type]
            requested_by_user_id=actor.id,  # type: ignore[arg-type]
            message=payload.message,
            needed_for_game_id=payload.needed_for_game_id,
        )


@router.post("/sub-requests/{request_id}/accept", response_model=SubRequest)
async def accept_sub_request(
    request_id: int,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_actor),
) -> SubRequest:
    request = await _load_request(db, request_id)
    controls = await team_control_service.get_team_control_map(db, team_ids=[request.team_id])
    in_sub_pool = actor.id in (controls[request.team_id].sub_pool_user_ids or [])
    if not in_sub_pool and not await can_manage(db, actor):
        raise forbidden("not_in_sub_pool")
    with workflow_errors():
        return await sub_request_service.accept_sub_request(
            db, request_id=request_id, actor_id=actor.id  # type: ignore[arg-type]
        )


@router.post("/sub-requests/{request_id}/cancel", response_model=SubRequest)
async def cancel_sub_request(
    request_id: int,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_actor),
) -> SubRequest:
    request = await _load_request(db, request_id)
    controls = await team_control_service.get_team_control_map(db, team_ids=[request.team_id])
    is_captain = controls[request.team_id].captain_user_id == actor.id
    is_requester = request.requested_by_user_id == actor.id
    if not (is_captain or is_requester) and not await can_manage(db, actor):
        raise forbidden("sub_request_cancel_not_authorized")
    with workflow_errors():
        return await sub_request_service.cancel_sub_request(
            db, request_id=request_id, actor_id=actor.id  # type: ignore[arg-type]
        )
