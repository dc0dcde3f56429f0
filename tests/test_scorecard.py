from cricket_api.innings import build_innings
from cricket_api.player_stats import rebuild_player_stats
from cricket_api.scorecard import build_scorecard, fall_of_wickets, over_summary


def _log(make_delivery):
    return [
        make_delivery(over_number=0, ball_number=1, runs_scored=4),
        make_delivery(over_number=0, ball_number=2, extra_type="wide", extra_runs=1),
        make_delivery(over_number=0, ball_number=2, is_wicket=True, wicket_type="caught", wicket_player_id="bat-1"),
        make_delivery(over_number=1, ball_number=1, bowler_id="bowler-b", striker_id="bat-3", runs_scored=2),
        make_delivery(
            over_number=1, ball_number=2, bowler_id="bowler-b", striker_id="bat-3",
            is_wicket=True, wicket_type="run_out", wicket_player_id="bat-2",
        ),
    ]


def test_fall_of_wickets(make_delivery):
    fow = fall_of_wickets(_log(make_delivery))

    assert [w["player_id"] for w in fow] == ["bat-1", "bat-2"]
    assert fow[0]["score_at_wicket"] == 5
    assert fow[0]["overs"] == "0.2"
    assert fow[1]["wicket_number"] == 2
    assert fow[1]["score_at_wicket"] == 7
    assert fow[1]["wicket_type"] == "run_out"


def test_over_summary(make_delivery):
    overs = over_summary(_log(make_delivery))

    assert len(overs) == 2
    first, second = overs
    assert first["runs"] == 5
    assert first["wickets"] == 1
    assert first["legal_balls"] == 2
    assert first["extras"] == 1
    assert first["bowler_id"] == "bowler-a"
    assert second["bowler_id"] == "bowler-b"
    assert second["cumulative_runs"] == 7
    assert second["cumulative_wickets"] == 2
    assert isinstance(second["runs"], int)


def test_over_summary_empty():
    assert over_summary([]) == []


def test_scorecard_is_idempotent(make_delivery, match):
    log = _log(make_delivery)
    innings = list(build_innings(log, match).values())
    batting, bowling = rebuild_player_stats(log)

    first = build_scorecard(match, log, innings, list(batting.values()), list(bowling.values()), None)
    second = build_scorecard(match, log, innings, list(batting.values()), list(bowling.values()), None)

    assert first == second
    assert first["innings"][0]["runs"] == 7
    assert first["extras"][0]["wides"] == 1
    assert first["batting"][0]["team_id"] == "team-a"
    assert first["bowling"][0]["team_id"] == "team-b"
    assert first["summary"] is None
