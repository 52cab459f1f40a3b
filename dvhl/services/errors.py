"""Failure kinds raised by the DVHL workflow services.

Every error carries a stable snake_case ``code`` (also its ``str()`` unless a
detail message is given) so the route layer can map it to a status and a
human-readable message without string matching on prose.
"""

from __future__ import annotations


class WorkflowError(ValueError):
    code = "workflow_error"
    status_code = 409

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(detail or self.code)


# Draft engine


class DraftNotFound(WorkflowError):
    code = "draft_not_found"
    status_code = 404


class DraftNotOpen(WorkflowError):
    code = "draft_not_open"


class DraftAlreadyOpen(WorkflowError):
    code = "draft_already_open"


class DraftComplete(WorkflowError):
    code = "draft_complete"


class DraftPickConflict(WorkflowError):
    code = "draft_pick_conflict"


class InvalidPickTeam(WorkflowError):
    code = "invalid_pick_team"
    status_code = 422


class PlayerNotInPool(WorkflowError):
    code = "player_not_in_draft_pool"
    status_code = 422


class PlayerAlreadyPicked(WorkflowError):
    code = "player_already_picked"


class NotThisTeamTurn(WorkflowError):
    code = "not_this_team_turn"


# Sub requests


class SubRequestNotFound(WorkflowError):
    code = "sub_request_not_found"
    status_code = 404


class SubRequestNotOpen(WorkflowError):
    code = "sub_request_not_open"


# Schedule and playoffs


class ScheduleTeamsInvalid(WorkflowError):
    code = "schedule_teams_invalid"
    status_code = 422


class SemifinalsNotReady(WorkflowError):
    code = "semifinals_not_ready"


class SemifinalTied(WorkflowError):
    code = "semifinal_tied"


class UnmappedSemifinalTeam(WorkflowError):
    code = "unmapped_semifinal_team"


# Aggregate and storage


class SeasonNotFound(WorkflowError):
    code = "season_not_found"
    status_code = 404


class GameNotFound(WorkflowError):
    code = "game_not_found"
    status_code = 404


class SaveFailed(WorkflowError):
    code = "save_failed"
    status_code = 500


class TeamNotFound(WorkflowError):
    code = "team_not_found"
    status_code = 404


class PlayerNotEligible(WorkflowError):
    code = "player_not_eligible"
    status_code = 422


class TeamHasDraftPicks(WorkflowError):
    code = "team_has_draft_picks"
