"""
Enumerations shared by the DVHL tables, services and API models.
"""
from enum import Enum


class DraftMode(str, Enum):
    manual = "manual"
    snake = "snake"


class DraftStatus(str, Enum):
    open = "open"
    closed = "closed"
    complete = "complete"


class TeamOrderStrategy(str, Enum):
    manual = "manual"
    random = "random"


class PlayerPoolStrategy(str, Enum):
    ops_selected = "ops_selected"
    all_signups = "all_signups"
    all_eligible = "all_eligible"


class PlanPhase(str, Enum):
    plan_setup = "plan_setup"
    signup_open = "signup_open"
    captain_assignment = "captain_assignment"

    @property
    def label(self) -> str:
        return {
            "plan_setup": "Plan setup",
            "signup_open": "Signups open",
            "captain_assignment": "Captain assignment",
        }[self.value]


class SubRequestStatus(str, Enum):
    open = "open"
    accepted = "accepted"
    cancelled = "cancelled"


class SkillPosition(str, Enum):
    offense = "O"
    defense = "D"
    goalie = "G"


class PlayoffTag(str, Enum):
    defenders_cup = "playoff:defenders-cup"
    toilet_bowl = "playoff:toilet-bowl"


class NotificationKind(str, Enum):
    sub_request_created = "sub_request_created"
    sub_request_accepted = "sub_request_accepted"
    sub_request_cancelled = "sub_request_cancelled"
    draft_pick_saved = "draft_pick_saved"
    schedule_saved = "schedule_saved"


class NotificationAudience(str, Enum):
    user = "user"
    team_sub_pool = "team_sub_pool"
    season = "season"
