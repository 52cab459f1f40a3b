"""Schedule generation, playoffs, game results and standings."""

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.schedule import (
    GameResultRequest,
    PlayoffResolveRequest,
    PlayoffSetupRequest,
    PresetScheduleRequest,
    WeeklyScheduleRequest,
)
from dvhl.models.standings import TeamStandingRecord
from dvhl.routes.league.helpers import require_permission, workflow_errors
from dvhl.schemas.auth import User
from dvhl.schemas.competitions import Game
from dvhl.services import schedule_service, standings_service
from dvhl.utils.db_async import get_session

router = APIRouter(tags=["dvhl-schedule"])


@router.get("/seasons/{season_id}/games", response_model=List[Game])
async def list_games(season_id: int, db: AsyncSession = Depends(get_session)) -> List[Game]:
    return await schedule_service.list_games(db, season_id=season_id)


@router.post("/seasons/{season_id}/schedule/preset", response_model=List[Game], status_code=201)
async def save_preset(
    season_id: int,
    payload: PresetScheduleRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> List[Game]:
    with workflow_errors():
        return await schedule_service.save_preset_schedule(
            db,
            season_id=season_id,
            team_ids=payload.team_ids,
            cycle_count=payload.cycle_count,
            base_starts_at=payload.base_starts_at,
            week_interval_days=payload.week_interval_days,
            game_gap_minutes=payload.game_gap_minutes,
            location=payload.location,
            clear_existing=payload.clear_existing,
        )


@router.post("/seasons/{season_id}/schedule/weekly", response_model=List[Game], status_code=201)
async def save_weekly(
    season_id: int,
    payload: WeeklyScheduleRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> List[Game]:
    with workflow_errors():
        return await schedule_service.save_weekly_schedule(
            db,
            season_id=season_id,
            weeks=payload.weeks,
            clear_existing=payload.clear_existing,
        )


@router.post("/seasons/{season_id}/schedule/playoffs", response_model=List[Game], status_code=201)
async def save_playoffs(
    season_id: int,
    payload: PlayoffSetupRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> List[Game]:
    with workflow_errors():
        return await schedule_service.save_playoff_setup(
            db,
            season_id=season_id,
            semifinals=payload.semifinals,
            championship=payload.championship,
            consolation=payload.consolation,
            clear_existing=payload.clear_existing,
        )


@router.post("/seasons/{season_id}/schedule/playoffs/resolve", response_model=List[Game])
async def resolve_playoffs(
    season_id: int,
    payload: PlayoffResolveRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> List[Game]:
    with workflow_errors():
        return await schedule_service.resolve_playoffs(
            db,
            season_id=season_id,
            championship=payload.championship,
            consolation=payload.consolation,
        )


@router.delete("/seasons/{season_id}/schedule", status_code=204)
async def clear_schedule(
    season_id: int,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> Response:
    with workflow_errors():
        await schedule_service.clear_schedule(db, season_id=season_id)
    return Response(status_code=204)


@router.put("/games/{game_id}/result", response_model=Game)
async def record_result(
    game_id: int,
    payload: GameResultRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> Game:
    with workflow_errors():
        return await schedule_service.record_game_result(
            db,
            game_id=game_id,
            home_score=payload.home_score,
            away_score=payload.away_score,
            status=payload.status,
        )


@router.get("/seasons/{season_id}/standings", response_model=List[TeamStandingRecord])
async def season_standings(
    season_id: int,
    db: AsyncSession = Depends(get_session),
) -> List[TeamStandingRecord]:
    with workflow_errors():
        return await standings_service.get_season_standings(db, season_id=season_id)
