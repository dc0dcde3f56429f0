import pytest
from fastapi.testclient import TestClient

import main
from cricket_api.service import ScoringService
from cricket_api.store import InMemoryMatchStore


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "service", ScoringService(InMemoryMatchStore()))
    with TestClient(main.app) as c:
        yield c


def _create(client):
    r = client.post(
        "/api/matches",
        json={
            "matchId": "m1",
            "team1Id": "team-a",
            "team2Id": "team-b",
            "config": {"totalOvers": 2, "maxOversPerBowler": 1, "tossWinnerTeamId": "team-a", "tossDecision": "bat"},
        },
    )
    assert r.status_code == 201
    return r.json()


def _ball(client, **fields):
    body = {
        "inningsNumber": 1,
        "overNumber": 0,
        "ballNumber": 1,
        "bowlerId": "bowler-a",
        "strikerId": "bat-1",
        "nonStrikerId": "bat-2",
    }
    body.update(fields)
    return client.post("/api/matches/m1/cricket/ball", json=body)


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_create_and_read_config(client):
    created = _create(client)
    assert created["config"]["elected_to_bat_first_team_id"] == "team-a"
    assert created["config"]["config_completed"] is True

    r = client.get("/api/matches/m1/cricket/config")
    assert r.status_code == 200
    assert r.json()["config"]["total_overs"] == 2


def test_snake_case_bodies_are_accepted(client):
    r = client.post("/api/matches", json={"match_id": "m9", "team1_id": "a", "team2_id": "b"})
    assert r.status_code == 201
    assert r.json()["config"]["total_overs"] == 20


def test_record_ball(client):
    _create(client)
    r = _ball(client, runsScored=4)

    assert r.status_code == 201
    body = r.json()
    assert body["delivery"]["sequence"] == 1
    assert body["live"]["innings"]["runs"] == 4

    listed = client.get("/api/matches/m1/cricket/ball", params={"innings": 1}).json()
    assert listed["count"] == 1


def test_validation_error_names_field(client):
    _create(client)
    r = _ball(client, strikerId=None)

    assert r.status_code == 400
    assert r.json()["detail"]["field"] == "striker_id"
    assert r.json()["detail"]["retryable"] is False


def test_unknown_match_is_404(client):
    assert client.get("/api/matches/nope/cricket/scorecard").status_code == 404
    assert _ball(client).status_code == 404


def test_full_match_flow(client):
    _create(client)
    _ball(client, runsScored=4)
    _ball(client, inningsNumber=2, bowlerId="bowler-x", strikerId="bat-7", nonStrikerId="bat-8", runsScored=6)

    scorecard = client.get("/api/matches/m1/cricket/scorecard").json()
    assert [i["runs"] for i in scorecard["innings"]] == [4, 6]

    live = client.get("/api/matches/m1/cricket/live").json()
    assert live["completion_reason"] == "target_chased"

    result = client.post("/api/matches/m1/cricket/result", json={"complete": True}).json()
    assert result["result"]["winner_team_id"] == "team-b"
    assert result["result"]["win_margin"] == "10 wickets"

    motm = client.get("/api/matches/m1/cricket/man-of-match").json()
    assert motm["suggestion"]["player_id"] == "bat-7"

    r = client.put("/api/matches/m1/cricket/man-of-match", json={"playerId": "bat-7"})
    assert r.status_code == 200
    assert r.json()["match_status"] == "completed"

    r = _ball(client, inningsNumber=2, ballNumber=2, bowlerId="bowler-x", strikerId="bat-7", nonStrikerId="bat-8")
    assert r.status_code == 409
    assert r.json()["detail"]["retryable"] is True


def test_rebuild(client):
    _create(client)
    _ball(client, runsScored=1)
    r = client.post("/api/matches/m1/cricket/rebuild")
    assert r.status_code == 200
    assert r.json()["deliveries"] == 1
