"""DVHL league API.

Sub-routers, all mounted under /api/dvhl:
- seasons: seasons, teams, rosters, plan, signups, captains, sub pools
- draft: draft board and picks
- schedule: schedule generation, playoffs, results, standings
- sub_requests: sub request marketplace
- skill_ratings: self ratings and the level table
"""

from fastapi import APIRouter

from dvhl.routes.league.draft import router as draft_router
from dvhl.routes.league.schedule import router as schedule_router
from dvhl.routes.league.seasons import router as seasons_router
from dvhl.routes.league.skill_ratings import router as skill_ratings_router
from dvhl.routes.league.sub_requests import router as sub_requests_router

router = APIRouter(prefix="/api/dvhl")

router.include_router(seasons_router)
router.include_router(draft_router)
router.include_router(schedule_router)
router.include_router(sub_requests_router)
router.include_router(skill_ratings_router)
