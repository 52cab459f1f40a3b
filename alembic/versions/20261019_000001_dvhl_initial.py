"""Create DVHL league tables.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op  # type: ignore[attr-defined]
from sqlmodel import SQLModel

from dvhl.schemas.auth import User, UserPermission, UserSession
from dvhl.schemas.competitions import Game, Season, Team, TeamControl, TeamMember
from dvhl.schemas.drafts import DraftPick, DraftSession
from dvhl.schemas.notifications import NotificationRequest
from dvhl.schemas.season_plans import SeasonPlan, SignupIntent
from dvhl.schemas.skill_ratings import SkillRating
from dvhl.schemas.sub_requests import SubRequest

revision = "20261019_000001"
down_revision = None
branch_labels = None
depends_on = None

# Parents before children.
TABLES = [
    User.__table__,  # type: ignore[attr-defined]
    UserSession.__table__,  # type: ignore[attr-defined]
    UserPermission.__table__,  # type: ignore[attr-defined]
    Season.__table__,  # type: ignore[attr-defined]
    Team.__table__,  # type: ignore[attr-defined]
    TeamMember.__table__,  # type: ignore[attr-defined]
    TeamControl.__table__,  # type: ignore[attr-defined]
    Game.__table__,  # type: ignore[attr-defined]
    SeasonPlan.__table__,  # type: ignore[attr-defined]
    SignupIntent.__table__,  # type: ignore[attr-defined]
    DraftSession.__table__,  # type: ignore[attr-defined]
    DraftPick.__table__,  # type: ignore[attr-defined]
    SubRequest.__table__,  # type: ignore[attr-defined]
    SkillRating.__table__,  # type: ignore[attr-defined]
    NotificationRequest.__table__,  # type: ignore[attr-defined]
]


def upgrade() -> None:
    bind = op.get_bind()
    SQLModel.metadata.create_all(bind=bind, tables=TABLES)


def downgrade() -> None:
    bind = op.get_bind()
    SQLModel.metadata.drop_all(bind=bind, tables=list(reversed(TABLES)))
