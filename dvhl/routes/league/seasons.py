"""Seasons, teams, season plan, signups, captains and sub pools."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.plans import (
    CaptainAssignmentRequest,
    PlanRead,
    PlanStatus,
    PlanUpdate,
    SignupRequest,
    TeamControlRead,
)
from dvhl.models.seasons import (
    EligiblePlayer,
    RosterAssignment,
    SeasonCreate,
    SeasonRead,
    TeamCreate,
    TeamRead,
)
from dvhl.routes.league.helpers import (
    can_manage,
    forbidden,
    require_actor,
    require_permission,
    require_player,
    workflow_errors,
)
from dvhl.schemas.auth import User
from dvhl.schemas.competitions import Season, Team
from dvhl.schemas.season_plans import SeasonPlan, SignupIntent
from dvhl.services import (
    competition_service,
    season_plan_service,
    signup_service,
    team_control_service,
)
from dvhl.utils.db_async import get_session

router = APIRouter(tags=["dvhl-seasons"])


def _season_read(season: Season, teams: List[Team]) -> SeasonRead:
    return SeasonRead(
        id=season.id,  # type: ignore[arg-type]
        title=season.title,
        starts_at=season.starts_at,
        notes=season.notes,
        created_at=season.created_at,
        teams=[TeamRead.model_validate(team, from_attributes=True) for team in teams],
    )


def _plan_status(season_id: int, plan: SeasonPlan | None) -> PlanStatus:
    phase = season_plan_service.get_phase(plan)
    return PlanStatus(
        season_id=season_id,
        phase=phase,
        phase_label=phase.label,
        signup_window_open=season_plan_service.signup_window_open(plan),
        captain_window_open=season_plan_service.captain_window_open(plan),
        plan=PlanRead.model_validate(plan, from_attributes=True) if plan else None,
    )


@router.get("/seasons", response_model=List[SeasonRead])
async def list_seasons(db: AsyncSession = Depends(get_session)) -> List[SeasonRead]:
    seasons = await competition_service.list_seasons(db)
    out = []
    for season in seasons:
        teams = await competition_service.list_teams(db, season_id=season.id)  # type: ignore[arg-type]
        out.append(_season_read(season, teams))
    return out


@router.post("/seasons", response_model=SeasonRead, status_code=201)
async def create_season(
    payload: SeasonCreate,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> SeasonRead:
    with workflow_errors():
        season, teams = await competition_service.create_dvhl_season(
            db,
            title=payload.title,
            team_names=payload.team_names,
            starts_at=payload.starts_at,
            notes=payload.notes,
        )
    return _season_read(season, teams)


@router.get("/seasons/{season_id}", response_model=SeasonRead)
async def get_season(season_id: int, db: AsyncSession = Depends(get_session)) -> SeasonRead:
    season = await competition_service.get_season(db, season_id=season_id)
    if season is None:
        raise HTTPException(status_code=404, detail="Season not found")
    teams = await competition_service.list_teams(db, season_id=season_id)
    return _season_read(season, teams)


@router.post("/seasons/{season_id}/teams", response_model=TeamRead, status_code=201)
async def add_team(
    season_id: int,
    payload: TeamCreate,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> Team:
    with workflow_errors():
        return await competition_service.add_team(db, season_id=season_id, name=payload.name)


@router.delete("/teams/{team_id}", status_code=204)
async def remove_team(
    team_id: int,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> Response:
    with workflow_errors():
        removed = await competition_service.remove_team(db, team_id=team_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Team not found")
    return Response(status_code=204)


@router.post("/teams/{team_id}/members", status_code=201)
async def assign_player(
    team_id: int,
    payload: RosterAssignment,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> dict:
    with workflow_errors():
        await competition_service.assign_player_to_team(db, team_id=team_id, user_id=payload.user_id)
    return {"team_id": team_id, "user_id": payload.user_id}


@router.delete("/teams/{team_id}/members/{user_id}", status_code=204)
async def remove_player(
    team_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> Response:
    with workflow_errors():
        await competition_service.remove_player_from_team(db, team_id=team_id, user_id=user_id)
    return Response(status_code=204)


@router.get("/players/eligible", response_model=List[EligiblePlayer])
async def eligible_players(
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_player),
) -> List[User]:
    return await competition_service.list_eligible_players(db)


# Season plan


@router.get("/seasons/{season_id}/plan", response_model=PlanStatus)
async def get_plan(season_id: int, db: AsyncSession = Depends(get_session)) -> PlanStatus:
    plan = await season_plan_service.get_plan(db, season_id=season_id)
    return _plan_status(season_id, plan)


@router.put("/seasons/{season_id}/plan", response_model=PlanStatus)
async def update_plan(
    season_id: int,
    payload: PlanUpdate,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> PlanStatus:
    with workflow_errors():
        plan = await season_plan_service.upsert_plan(
            db, season_id=season_id, update=payload, actor_id=actor.id
        )
    return _plan_status(season_id, plan)


# Signups


@router.get("/seasons/{season_id}/signups", response_model=List[SignupIntent])
async def list_signups(
    season_id: int,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> List[SignupIntent]:
    return await signup_service.list_intents(db, season_id=season_id)


@router.put("/seasons/{season_id}/signup", response_model=SignupIntent)
async def submit_signup(
    season_id: int,
    payload: SignupRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_player),
) -> SignupIntent:
    """Register interest for the season.

    Rejected once signups close. After the captain window closes the stored
    captain flag is kept whatever the submission says.
    """
    plan = await season_plan_service.get_plan(db, season_id=season_id)
    if not season_plan_service.signup_window_open(plan):
        raise forbidden("signup_window_closed")

    wants_captain = payload.wants_captain
    if not season_plan_service.captain_window_open(plan):
        existing = await signup_service.get_intent(db, season_id=season_id, user_id=actor.id)  # type: ignore[arg-type]
        wants_captain = bool(existing and existing.wants_captain)

    with workflow_errors():
        return await signup_service.upsert_intent(
            db,
            season_id=season_id,
            user_id=actor.id,  # type: ignore[arg-type]
            wants_captain=wants_captain,
            note=payload.note,
        )


# Captains and sub pools


@router.get("/seasons/{season_id}/team-controls", response_model=List[TeamControlRead])
async def list_team_controls(
    season_id: int,
    db: AsyncSession = Depends(get_session),
) -> List[TeamControlRead]:
    teams = await competition_service.list_teams(db, season_id=season_id)
    controls = await team_control_service.get_team_control_map(
        db, team_ids=[team.id for team in teams]  # type: ignore[misc]
    )
    return [TeamControlRead.model_validate(c, from_attributes=True) for c in controls.values()]


@router.put("/seasons/{season_id}/captains", response_model=List[TeamControlRead])
async def assign_captains(
    season_id: int,
    payload: CaptainAssignmentRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> List[TeamControlRead]:
    season_team_ids = {
        team.id for team in await competition_service.list_teams(db, season_id=season_id)
    }
    if any(team_id not in season_team_ids for team_id in payload.team_ids):
        raise HTTPException(status_code=422, detail="Team is not part of this season")
    with workflow_errors():
        controls = await team_control_service.assign_captains(
            db,
            team_ids=payload.team_ids,
            captain_user_ids=payload.captain_user_ids,
            actor_id=actor.id,
        )
    return [TeamControlRead.model_validate(c, from_attributes=True) for c in controls]


async def _authorize_sub_pool_change(db: AsyncSession, actor: User, user_id: int) -> None:
    """Operators edit any pool; approved players may only add or remove themselves."""
    if await can_manage(db, actor):
        return
    if actor.id != user_id or actor.role not in ("player", "admin"):
        raise forbidden("sub_pool_self_service_only")


@router.post("/teams/{team_id}/sub-pool/{user_id}", response_model=TeamControlRead)
async def add_sub_pool_member(
    team_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_actor),
) -> TeamControlRead:
    await _authorize_sub_pool_change(db, actor, user_id)
    with workflow_errors():
        control = await team_control_service.add_sub_pool_member(
            db, team_id=team_id, user_id=user_id, actor_id=actor.id
        )
    return TeamControlRead.model_validate(control, from_attributes=True)


@router.delete("/teams/{team_id}/sub-pool/{user_id}", response_model=TeamControlRead)
async def remove_sub_pool_member(
    team_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_actor),
) -> TeamControlRead:
    await _authorize_sub_pool_change(db, actor, user_id)
    with workflow_errors():
        control = await team_control_service.remove_sub_pool_member(
            db, team_id=team_id, user_id=user_id, actor_id=actor.id
        )
    if control is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "team_not_found", "message": f"Team {team_id} not found"},
        )
    return TeamControlRead.model_validate(control, from_attributes=True)
