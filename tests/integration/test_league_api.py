"""HTTP-level tests for the DVHL league API."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from dvhl.config import settings
from dvhl.services import competition_service, team_control_service
from dvhl.services.auth_service import issue_session
from tests.integration.auth_helpers import (
    bearer_headers,
    create_players,
    create_user,
    grant_manage_permission,
    seed_season,
)

API = "/api/dvhl"


@pytest_asyncio.fixture
async def admin_headers(db_session: AsyncSession) -> dict[str, str]:
    admin_id = await create_user(db_session, email="ops@example.com", role="admin")
    return await bearer_headers(db_session, user_id=admin_id)


@pytest_asyncio.fixture
async def player(db_session: AsyncSession) -> tuple[int, dict[str, str]]:
    user_id = await create_user(db_session, email="skater@example.com")
    return user_id, await bearer_headers(db_session, user_id=user_id)


@pytest.mark.asyncio
async def test_health(app_client: AsyncClient) -> None:
    response = await app_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_season_creation_requires_manage_permission(
    app_client: AsyncClient, db_session: AsyncSession, admin_headers, player
) -> None:
    payload = {"title": "DVHL Winter 2026", "team_names": ["A", "B", "C", "D"]}
    player_id, player_headers = player

    assert (await app_client.post(f"{API}/seasons", json=payload)).status_code == 401
    assert (
        await app_client.post(f"{API}/seasons", json=payload, headers=player_headers)
    ).status_code == 403

    response = await app_client.post(f"{API}/seasons", json=payload, headers=admin_headers)
    assert response.status_code == 201
    body = response.json()
    assert [team["name"] for team in body["teams"]] == ["A", "B", "C", "D"]

    await grant_manage_permission(db_session, user_id=player_id)
    response = await app_client.post(
        f"{API}/seasons",
        json={**payload, "title": "DVHL Spring 2026"},
        headers=player_headers,
    )
    assert response.status_code == 201

    listed = await app_client.get(f"{API}/seasons")
    assert {s["title"] for s in listed.json()} == {"DVHL Winter 2026", "DVHL Spring 2026"}


@pytest.mark.asyncio
async def test_session_cookie_is_accepted(app_client: AsyncClient, db_session: AsyncSession) -> None:
    user_id = await create_user(db_session, email="cookie@example.com", role="admin")
    raw_token, _ = await issue_session(db_session, user_id=user_id)
    app_client.cookies.set(settings.session_cookie_name, raw_token)

    response = await app_client.post(
        f"{API}/seasons", json={"title": "Cookie Cup", "team_names": ["A", "B", "C", "D"]}
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_plan_phase_and_signup_windows(
    app_client: AsyncClient, db_session: AsyncSession, admin_headers, player
) -> None:
    season_id, _ = await seed_season(db_session)
    _, player_headers = player

    status = (await app_client.get(f"{API}/seasons/{season_id}/plan")).json()
    assert status["phase"] == "plan_setup"
    assert status["plan"] is None

    response = await app_client.put(
        f"{API}/seasons/{season_id}/plan",
        json={
            "signup_closes_at": "2999-01-01T00:00:00Z",
            "captain_signup_closes_at": "2000-01-01T00:00:00Z",
        },
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["phase"] == "signup_open"
    assert response.json()["captain_window_open"] is False

    response = await app_client.put(
        f"{API}/seasons/{season_id}/signup",
        json={"wants_captain": True, "note": "any night but Friday"},
        headers=player_headers,
    )
    assert response.status_code == 200
    assert response.json()["wants_captain"] is False

    await app_client.put(
        f"{API}/seasons/{season_id}/plan",
        json={"signup_closes_at": "2000-01-01T00:00:00Z"},
        headers=admin_headers,
    )
    status = (await app_client.get(f"{API}/seasons/{season_id}/plan")).json()
    assert status["phase"] == "captain_assignment"
    assert status["phase_label"] == "Captain assignment"

    response = await app_client.put(
        f"{API}/seasons/{season_id}/signup",
        json={"wants_captain": False},
        headers=player_headers,
    )
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "signup_window_closed"

    signups = await app_client.get(f"{API}/seasons/{season_id}/signups", headers=admin_headers)
    assert len(signups.json()) == 1


@pytest.mark.asyncio
async def test_captain_flag_is_locked_after_captain_window(
    app_client: AsyncClient, db_session: AsyncSession, admin_headers, player
) -> None:
    season_id, _ = await seed_season(db_session)
    _, player_headers = player
    signup_url = f"{API}/seasons/{season_id}/signup"

    response = await app_client.put(signup_url, json={"wants_captain": True}, headers=player_headers)
    assert response.json()["wants_captain"] is True

    await app_client.put(
        f"{API}/seasons/{season_id}/plan",
        json={"captain_signup_closes_at": "2000-01-01T00:00:00Z"},
        headers=admin_headers,
    )

    response = await app_client.put(
        signup_url, json={"wants_captain": False, "note": "changed my mind"}, headers=player_headers
    )
    assert response.status_code == 200
    assert response.json()["wants_captain"] is True
    assert response.json()["note"] == "changed my mind"

    response = await app_client.put(signup_url, json={"wants_captain": True}, headers=player_headers)
    assert response.status_code == 200
    assert response.json()["wants_captain"] is True


@pytest.mark.asyncio
async def test_draft_picks_over_http(
    app_client: AsyncClient, db_session: AsyncSession, admin_headers
) -> None:
    season_id, team_ids = await seed_season(db_session)
    captain_id, bystander_id, *pool = await create_players(db_session, 6)
    captain_headers = await bearer_headers(db_session, user_id=captain_id)
    bystander_headers = await bearer_headers(db_session, user_id=bystander_id)

    response = await app_client.put(
        f"{API}/seasons/{season_id}/captains",
        json={"team_ids": [team_ids[0]], "captain_user_ids": [captain_id]},
        headers=admin_headers,
    )
    assert response.status_code == 200

    start = {"team_ids": team_ids, "pool_user_ids": pool, "draft_mode": "snake", "rounds": 1}
    response = await app_client.post(
        f"{API}/seasons/{season_id}/draft/start", json=start, headers=admin_headers
    )
    assert response.status_code == 201
    assert response.json()["next_team_id"] == team_ids[0]
    assert response.json()["total_picks"] == 4

    again = await app_client.post(
        f"{API}/seasons/{season_id}/draft/start", json=start, headers=admin_headers
    )
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "draft_already_open"

    pick = {"team_id": team_ids[0], "user_id": pool[0]}
    denied = await app_client.post(
        f"{API}/seasons/{season_id}/draft/picks", json=pick, headers=bystander_headers
    )
    assert denied.status_code == 403
    assert denied.json()["detail"]["code"] == "draft_pick_not_authorized"

    response = await app_client.post(
        f"{API}/seasons/{season_id}/draft/picks", json=pick, headers=captain_headers
    )
    assert response.status_code == 200
    board = response.json()
    assert board["current_pick_index"] == 1
    assert board["next_team_id"] == team_ids[1]
    assert board["picks"][0]["user_id"] == pool[0]

    wrong_turn = await app_client.post(
        f"{API}/seasons/{season_id}/draft/picks",
        json={"team_id": team_ids[2], "user_id": pool[1]},
        headers=admin_headers,
    )
    assert wrong_turn.status_code == 409
    assert wrong_turn.json()["detail"]["code"] == "not_this_team_turn"

    reset = await app_client.post(
        f"{API}/seasons/{season_id}/draft/reset", json=start, headers=admin_headers
    )
    assert reset.status_code == 200
    assert reset.json()["picks"] == []


@pytest.mark.asyncio
async def test_sub_request_flow_over_http(
    app_client: AsyncClient, db_session: AsyncSession
) -> None:
    _, team_ids = await seed_season(db_session)
    captain_id, sub_id, outsider_id = await create_players(db_session, 3)
    team_id = team_ids[0]
    await team_control_service.set_team_captain(
        db_session, team_id=team_id, captain_user_id=captain_id, actor_id=None
    )
    await team_control_service.add_sub_pool_member(
        db_session, team_id=team_id, user_id=sub_id, actor_id=None
    )
    captain_headers = await bearer_headers(db_session, user_id=captain_id)
    sub_headers = await bearer_headers(db_session, user_id=sub_id)
    outsider_headers = await bearer_headers(db_session, user_id=outsider_id)

    denied = await app_client.post(
        f"{API}/sub-requests", json={"team_id": team_id}, headers=outsider_headers
    )
    assert denied.status_code == 403

    created = await app_client.post(
        f"{API}/sub-requests",
        json={"team_id": team_id, "message": "Need a goalie"},
        headers=captain_headers,
    )
    assert created.status_code == 201
    request_id = created.json()["id"]
    assert created.json()["status"] == "open"

    not_in_pool = await app_client.post(
        f"{API}/sub-requests/{request_id}/accept", headers=outsider_headers
    )
    assert not_in_pool.status_code == 403
    assert not_in_pool.json()["detail"]["code"] == "not_in_sub_pool"

    accepted = await app_client.post(f"{API}/sub-requests/{request_id}/accept", headers=sub_headers)
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"
    assert accepted.json()["accepted_by_user_id"] == sub_id

    again = await app_client.post(f"{API}/sub-requests/{request_id}/accept", headers=sub_headers)
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "sub_request_not_open"

    missing = await app_client.post(f"{API}/sub-requests/9999/cancel", headers=captain_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_schedule_results_and_standings_over_http(
    app_client: AsyncClient, db_session: AsyncSession, admin_headers
) -> None:
    season_id, team_ids = await seed_season(db_session)

    bad = await app_client.post(
        f"{API}/seasons/{season_id}/schedule/preset",
        json={"team_ids": team_ids[:3]},
        headers=admin_headers,
    )
    assert bad.status_code == 422

    response = await app_client.post(
        f"{API}/seasons/{season_id}/schedule/preset",
        json={"team_ids": team_ids, "base_starts_at": "2026-01-10T19:00:00"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    games = response.json()
    assert len(games) == 12

    result = await app_client.put(
        f"{API}/games/{games[0]['id']}/result",
        json={"home_score": 3, "away_score": 0},
        headers=admin_headers,
    )
    assert result.status_code == 200

    standings = (await app_client.get(f"{API}/seasons/{season_id}/standings")).json()
    assert standings[0]["team_id"] == team_ids[0]
    assert standings[0]["points"] == 2
    assert standings[0]["goal_differential"] == 3

    not_ready = await app_client.post(
        f"{API}/seasons/{season_id}/schedule/playoffs/resolve", json={}, headers=admin_headers
    )
    assert not_ready.status_code == 409
    assert not_ready.json()["detail"]["code"] == "semifinals_not_ready"

    missing = await app_client.get(f"{API}/seasons/404/standings")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_skill_rating_endpoints(app_client: AsyncClient, admin_headers, player) -> None:
    _, player_headers = player

    levels = (await app_client.get(f"{API}/skill-levels")).json()
    assert len(levels) == 10

    assert (await app_client.get(f"{API}/skill-ratings/me", headers=player_headers)).status_code == 404

    too_high = await app_client.put(
        f"{API}/skill-ratings/me", json={"rating": 150}, headers=player_headers
    )
    assert too_high.status_code == 422
    assert too_high.json()["detail"]["code"] == "invalid_skill_rating"

    saved = await app_client.put(
        f"{API}/skill-ratings/me",
        json={"rating": 55.7, "position": "d"},
        headers=player_headers,
    )
    assert saved.status_code == 200
    assert saved.json()["rating"] == 55
    assert saved.json()["level"] == 6
    assert saved.json()["position"] == "D"

    listed = await app_client.get(f"{API}/skill-ratings", headers=admin_headers)
    assert listed.status_code == 200
    assert listed.json()[0]["full_name"] == "skater"
    assert (await app_client.get(f"{API}/skill-ratings", headers=player_headers)).status_code == 403


@pytest.mark.asyncio
async def test_players_join_and_leave_sub_pools_themselves(
    app_client: AsyncClient, db_session: AsyncSession, admin_headers, player
) -> None:
    _, team_ids = await seed_season(db_session)
    player_id, player_headers = player
    (other_id,) = await create_players(db_session, 1)
    pool_url = f"{API}/teams/{team_ids[1]}/sub-pool"

    joined = await app_client.post(f"{pool_url}/{player_id}", headers=player_headers)
    assert joined.status_code == 200
    assert joined.json()["sub_pool_user_ids"] == [player_id]
    assert joined.json()["updated_by_user_id"] == player_id

    someone_else = await app_client.post(f"{pool_url}/{other_id}", headers=player_headers)
    assert someone_else.status_code == 403
    assert someone_else.json()["detail"]["code"] == "sub_pool_self_service_only"
    assert (
        await app_client.delete(f"{pool_url}/{other_id}", headers=player_headers)
    ).status_code == 403

    by_operator = await app_client.post(f"{pool_url}/{other_id}", headers=admin_headers)
    assert by_operator.json()["sub_pool_user_ids"] == [player_id, other_id]

    left = await app_client.delete(f"{pool_url}/{player_id}", headers=player_headers)
    assert left.status_code == 200
    assert left.json()["sub_pool_user_ids"] == [other_id]

    controls = await team_control_service.get_team_control_map(db_session, team_ids=[team_ids[1]])
    assert controls[team_ids[1]].sub_pool_user_ids == [other_id]


@pytest.mark.asyncio
async def test_sub_pool_of_unknown_team_is_not_found(
    app_client: AsyncClient, db_session: AsyncSession, admin_headers, player
) -> None:
    player_id, player_headers = player

    added = await app_client.post(f"{API}/teams/9999/sub-pool/{player_id}", headers=admin_headers)
    assert added.status_code == 404
    assert added.json()["detail"]["code"] == "team_not_found"

    joined = await app_client.post(f"{API}/teams/9999/sub-pool/{player_id}", headers=player_headers)
    assert joined.status_code == 404

    left = await app_client.delete(f"{API}/teams/9999/sub-pool/{player_id}", headers=player_headers)
    assert left.status_code == 404
    assert left.json()["detail"]["code"] == "team_not_found"

    controls = await team_control_service.get_team_control_map(db_session, team_ids=[9999])
    assert controls[9999].sub_pool_user_ids == []


@pytest.mark.asyncio
async def test_storage_failure_is_reported_as_save_failed(
    app_client: AsyncClient, db_session: AsyncSession, admin_headers, monkeypatch
) -> None:
    season_id, _ = await seed_season(db_session)

    async def failing_add_team(db, *, season_id, name):
        raise OperationalError("INSERT INTO teams", {}, Exception("disk I/O error"))

    monkeypatch.setattr(competition_service, "add_team", failing_add_team)

    response = await app_client.post(
        f"{API}/seasons/{season_id}/teams", json={"name": "Rink Rats"}, headers=admin_headers
    )
    assert response.status_code == 500
    assert response.json()["detail"] == {
        "code": "save_failed",
        "message": "Could not save changes",
    }
