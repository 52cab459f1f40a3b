from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.models.skill_ratings import SkillLevel, SkillRatingRequest, SkillRatingWithUser
from dvhl.routes.league.helpers import require_permission, require_player, workflow_errors
from dvhl.schemas.auth import User
from dvhl.schemas.skill_ratings import SkillRating
from dvhl.services import skill_rating_service
from dvhl.utils.db_async import get_session

router = APIRouter(tags=["dvhl-skill-ratings"])


@router.get("/skill-levels", response_model=List[SkillLevel])
async def skill_levels() -> List[SkillLevel]:
    return skill_rating_service.list_skill_levels()


@router.get("/skill-ratings", response_model=List[SkillRatingWithUser])
async def list_ratings(
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_permission()),
) -> List[SkillRatingWithUser]:
    return await skill_rating_service.list_skill_ratings(db)


@router.get("/skill-ratings/me", response_model=SkillRating)
async def my_rating(
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_player),
) -> SkillRating:
    rating = await skill_rating_service.get_skill_rating(db, user_id=actor.id)  # type: ignore[arg-type]
    if rating is None:
        raise HTTPException(status_code=404, detail="No rating saved yet")
    return rating


@router.put("/skill-ratings/me", response_model=SkillRating)
async def save_my_rating(
    payload: SkillRatingRequest,
    db: AsyncSession = Depends(get_session),
    actor: User = Depends(require_player),
) -> SkillRating:
    if not 0 <= payload.rating <= 100:
        raise HTTPException(
            status_code=422,
            detail={"code": "invalid_skill_rating", "message": "Rating must be 0-100"},
        )
    with workflow_errors():
        return await skill_rating_service.upsert_skill_rating(
            db,
            user_id=actor.id,  # type: ignore[arg-type]
            rating=payload.rating,
            position=payload.position,
            notes=payload.notes,
        )
