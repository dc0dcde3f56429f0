import threading

import pytest

from cricket_api import service as service_module
from cricket_api import sqlite_store
from cricket_api.errors import ConflictError, NotFoundError, PersistenceError
from cricket_api.models import MatchConfig, MatchSession, MatchSummary
from cricket_api.service import ScoringService
from cricket_api.sqlite_store import SQLiteMatchStore
from cricket_api.store import InMemoryMatchStore


@pytest.fixture
def store(tmp_path):
    return SQLiteMatchStore(tmp_path / "scoring.db")


def _play(service):
    service.create_match(
        "m1", "team-a", "team-b",
        config=MatchConfig(total_overs=2, max_overs_per_bowler=1, toss_winner_team_id="team-b", toss_decision="bowl"),
    )
    balls = [
        dict(innings_number=1, over_number=0, ball_number=1, runs_scored=4),
        dict(innings_number=1, over_number=0, ball_number=2, extra_type="wide", extra_runs=1),
        dict(innings_number=1, over_number=0, ball_number=2, extra_type="bye", extra_runs=2),
        dict(innings_number=1, over_number=0, ball_number=3, is_wicket=True, wicket_type="lbw", wicket_player_id="bat-1"),
    ]
    for b in balls:
        service.record_delivery("m1", bowler_id="bowler-a", striker_id="bat-1", non_striker_id="bat-2", **b)


def test_match_roundtrip(store):
    session = MatchSession("m1", "team-a", "team-b", MatchConfig(total_overs=10, max_overs_per_bowler=2))
    store.create_match(session)

    assert store.get_match("m1") == session
    assert store.get_match("nope") is None
    with pytest.raises(ConflictError):
        store.create_match(session)


def test_save_config_for_unknown_match(store):
    with pytest.raises(NotFoundError):
        store.save_config("nope", MatchConfig())


def test_summary_needs_a_match(store):
    with pytest.raises(NotFoundError):
        store.save_summary(MatchSummary("nope"))


def test_sqlite_and_memory_agree(store):
    on_disk = ScoringService(store)
    in_memory = ScoringService(InMemoryMatchStore())
    _play(on_disk)
    _play(in_memory)

    assert on_disk.get_scorecard("m1") == in_memory.get_scorecard("m1")
    assert [d.sequence for d in store.list_deliveries("m1")] == [1, 2, 3, 4]


def test_rows_survive_a_new_store(store, tmp_path):
    _play(ScoringService(store))

    reopened = SQLiteMatchStore(tmp_path / "scoring.db")
    innings = reopened.get_innings("m1", 1)
    assert innings.batting_team_id == "team-a"
    assert innings.runs == 7
    assert innings.byes == 2
    assert innings.legal_balls == 3
    assert innings.wickets == 1

    striker = reopened.batting_rows("m1", 1)[("m1", "bat-1", 1)]
    assert striker.is_out is True
    assert striker.wicket_type == "lbw"


def test_rebuild_on_sqlite(store):
    service = ScoringService(store)
    _play(service)
    before = service.get_scorecard("m1")
    service.rebuild_match("m1")
    assert service.get_scorecard("m1") == before


def test_two_services_on_one_file_do_not_lose_updates(tmp_path, monkeypatch):
    path = tmp_path / "shared.db"
    first = ScoringService(SQLiteMatchStore(path))
    second = ScoringService(SQLiteMatchStore(path))
    first.create_match("m1", "team-a", "team-b")

    inside = threading.Event()
    release = threading.Event()
    real_apply = service_module.apply_to_players
    paused = []

    def slow_apply(delivery, batting, bowling):
        # hold the first writer between its read and its write
        if not paused:
            paused.append(delivery)
            inside.set()
            release.wait(5)
        return real_apply(delivery, batting, bowling)

    monkeypatch.setattr(service_module, "apply_to_players", slow_apply)

    def bowl(svc, ball, runs):
        svc.record_delivery(
            "m1", innings_number=1, over_number=0, ball_number=ball,
            bowler_id="bowler-a", striker_id="bat-1", non_striker_id="bat-2", runs_scored=runs,
        )

    t1 = threading.Thread(target=bowl, args=(first, 1, 1))
    t1.start()
    assert inside.wait(5)
    t2 = threading.Thread(target=bowl, args=(second, 2, 4))
    t2.start()
    t2.join(0.3)
    release.set()
    t1.join(10)
    t2.join(10)

    log = first.list_deliveries("m1")
    innings = first.store.get_innings("m1", 1)
    assert sorted(d.sequence for d in log) == [1, 2]
    assert innings.runs == sum(d.runs_scored for d in log) == 5
    assert innings.legal_balls == 2
    assert first.store.bowling_rows("m1", 1)[("m1", "bowler-a", 1)].runs_conceded == 5
    assert first.store.batting_rows("m1", 1)[("m1", "bat-1", 1)].balls_faced == 2


def test_failed_commit_leaves_prior_state(store, monkeypatch):
    service = ScoringService(store)
    _play(service)
    before = (
        store.list_deliveries("m1"),
        store.list_innings("m1"),
        store.get_batting("m1"),
        store.get_bowling("m1"),
    )

    monkeypatch.setattr(sqlite_store, "_UPSERT_BOWLING", "INSERT INTO no_such_table VALUES (?)")
    with pytest.raises(PersistenceError) as exc:
        service.record_delivery(
            "m1", innings_number=1, over_number=0, ball_number=4,
            bowler_id="bowler-a", striker_id="bat-3", non_striker_id="bat-2", runs_scored=6,
        )
    assert exc.value.retryable

    after = (
        store.list_deliveries("m1"),
        store.list_innings("m1"),
        store.get_batting("m1"),
        store.get_bowling("m1"),
    )
    assert after == before
    assert service.get_scorecard("m1")["innings"][0]["runs"] == 7
