"""Draft board, start/reset/close and picks."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.draft import (
    DraftBoardRead,
    DraftPickRead,
    DraftPickRequest,
    DraftStartRequest,
)
from dvhl.routes.league.helpers import (
    can_manage,
    forbidden,
    require_actor,
    require_permission,
    workflow_errors,
)
from dvhl.schemas.auth import User
from dvhl.services import draft_service, team_control_service
from dvhl.services.draft_service import DraftBoard
from dvhl.utils.db_async import get_session

router = APIRouter(tags=["dvhl-draft"])


def _board_read(board: DraftBoard) -> DraftBoardRead:
    session = board.session
    return DraftBoardRead(
        id=session.id,  # type: ignore[arg-type]
        season_id=session.season_id,
        status=session.status,
        draft_mode=session.draft_mode,
        rounds=session.rounds,
        pick_order_team_ids=list(session.pick_order_team_ids or []),
        pool_user_ids=list(session.pool_user_ids or []),
        current_pick_index=session.current_pick_index,
        total_picks=board.total_picks,
        next_team_id=board.next_team_id,
        version=session.version,
        picks=[DraftPickRead.model_validate(p, from_attributes=True) for p in board.picks],
        created_at=session.created_at,
        updated_at=session.updated_at,
        updated_by_user_id=session.updated_by_user_id,
    )


@router.get("/seasons/{season_id}/draft", response_model=DraftBoardRead)
async def get_draft(season_id: int, db: AsyncSession = Depends(get_session)) -> DraftBoardRead:
    board = await draft_service.get_draft(db, season_id=season_id)
    if board is None:
        raise HTTPException(status_code=404, detail={"code": "draft_not_found"})
    return _board_read(board)


async def _open_draft(
    db: AsyncSession,
    season_id: int,
    payload: DraftStartRequest,
    actor: User,
    *,
    reset: bool,
) -> DraftBoardRead:
    with workflow_errors():
        setup = await draft_service.resolve_draft_setup(
            db,
            season_id=season_id,
            team_ids=payload.team_ids,
            pool_user_ids=payload.pool_user_ids,
            draft_mode=payload.draft_mode,
            rounds=payload.rounds,
            include_all_eligible=payload.include_all_eligible,
        )
        operation = draft_service.reset_draft if reset else draft_service.start_draft
        board = await operation(
            db,
            season_id=season_id,
            team_ids=setup.team_ids,
            pool_user_ids=setup.pool_user_ids,
            draft_mode=setup.draft_mode,
            rounds=setup.rounds,
            actor_id=actor.id,
        )
    return _board_read(board)


@router.post("/seasons/{season_id}/draft/start", response_model=DraftBoardRead, status_code=201)
async def start_draft(
    season_id: int,
    payload: DraftStartRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> DraftBoardRead:
    """Open a draft. Fails with 409 while another draft is still open."""
    return await _open_draft(db, season_id, payload, actor, reset=False)


@router.post("/seasons/{season_id}/draft/reset", response_model=DraftBoardRead)
async def reset_draft(
    season_id: int,
    payload: DraftStartRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> DraftBoardRead:
    """Throw away every pick and reopen the draft from the first slot."""
    return await _open_draft(db, season_id, payload, actor, reset=True)


@router.post("/seasons/{season_id}/draft/close", response_model=DraftBoardRead)
async def close_draft(
    season_id: int,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> DraftBoardRead:
    with workflow_errors():
        await draft_service.close_draft(db, season_id=season_id, actor_id=actor.id)
    board = await draft_service.get_draft(db, season_id=season_id)
    return _board_read(board)  # type: ignore[arg-type]


@router.post("/seasons/{season_id}/draft/picks", response_model=DraftBoardRead)
async def make_pick(
    season_id: int,
    payload: DraftPickRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_actor),
) -> DraftBoardRead:
    """Captains pick for their own team; operators may pick for any team."""
    if not await can_manage(db, actor):
        controls = await team_control_service.get_team_control_map(db, team_ids=[payload.team_id])
        if controls[payload.team_id].captain_user_id != actor.id:
            raise forbidden("draft_pick_not_authorized")
    with workflow_errors():
        board = await draft_service.make_pick(
            db,
            season_id=season_id,
            team_id=payload.team_id,
            user_id=payload.user_id,
            actor_id=actor.id,
        )
    return _board_read(board)
