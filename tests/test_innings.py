import pytest

from cricket_api.errors import ValidationError
from cricket_api.innings import (
    apply_delivery,
    build_innings,
    check_innings_complete,
    innings_status_message,
    new_innings,
    next_batters,
)
from cricket_api.models import InningsState


def test_wide_adds_a_run_but_no_legal_ball(make_delivery):
    start = new_innings("m1", 1, "team-a")
    after = apply_delivery(start, make_delivery(extra_type="wide", extra_runs=1))

    assert after.runs == 1
    assert after.wides == 1
    assert after.legal_balls == 0
    assert after.deliveries == 1
    # input state untouched
    assert start.runs == 0


def test_boundary_off_a_legal_ball(make_delivery):
    after = apply_delivery(new_innings("m1", 1), make_delivery(runs_scored=4))
    assert after.runs == 4
    assert after.legal_balls == 1
    assert after.extras == 0


def test_byes_and_legbyes_count_as_legal_extras(make_delivery):
    state = new_innings("m1", 1)
    state = apply_delivery(state, make_delivery(extra_type="bye", extra_runs=2))
    state = apply_delivery(state, make_delivery(ball_number=2, extra_type="legbye", extra_runs=1))

    assert state.runs == 3
    assert state.byes == 2
    assert state.legbyes == 1
    assert state.legal_balls == 2


def test_mismatched_innings_is_rejected(make_delivery):
    with pytest.raises(ValidationError):
        apply_delivery(new_innings("m1", 2), make_delivery(innings_number=1))


def test_run_and_ball_conservation(make_delivery):
    log = [
        make_delivery(runs_scored=1),
        make_delivery(ball_number=2, extra_type="wide", extra_runs=1),
        make_delivery(ball_number=2, extra_type="noball", runs_scored=4, extra_runs=1),
        make_delivery(ball_number=2, runs_scored=6),
        make_delivery(ball_number=3, extra_type="legbye", extra_runs=1),
        make_delivery(ball_number=4, is_wicket=True, wicket_type="bowled", wicket_player_id="bat-1"),
    ]
    state = build_innings(log)[1]

    assert state.runs == sum(d.runs_scored + d.extra_runs for d in log)
    assert state.legal_balls == sum(1 for d in log if d.extra_type in ("none", "bye", "legbye"))
    assert state.wickets == 1
    assert state.overs == "0.4"


def test_wickets_are_not_capped(make_delivery):
    state = new_innings("m1", 1)
    for i in range(11):
        state = apply_delivery(state, make_delivery(ball_number=1 + i % 6, is_wicket=True, wicket_type="bowled"))
    assert state.wickets == 11


def test_build_innings_uses_session_teams(make_delivery, match):
    log = [make_delivery(), make_delivery(innings_number=2, bowler_id="bowler-x")]
    built = build_innings(log, match)
    assert built[1].batting_team_id == "team-a"
    assert built[2].batting_team_id == "team-b"


@pytest.mark.parametrize(
    "state, target, reason",
    [
        (InningsState("m1", 1, wickets=10, legal_balls=30), None, "all_out"),
        (InningsState("m1", 1, runs=150, legal_balls=120), None, "overs_complete"),
        (InningsState("m1", 2, runs=151, legal_balls=100), 150, "target_chased"),
        (InningsState("m1", 2, runs=10, legal_balls=114), 150, "target_impossible"),
    ],
)
def test_completion_reasons(state, target, reason):
    check = check_innings_complete(state, 20, target)
    assert check.is_complete
    assert check.reason == reason


def test_level_scores_mid_chase_are_not_complete():
    check = check_innings_complete(InningsState("m1", 2, runs=150, legal_balls=100), 20, 150)
    assert not check.is_complete
    assert innings_status_message(check, InningsState("m1", 2)) == "In progress"


def test_status_messages():
    state = InningsState("m1", 1, runs=98, wickets=10, legal_balls=100)
    assert innings_status_message(check_innings_complete(state, 20), state) == "All out for 98 (16.4 overs)"


def test_strike_stays_on_a_boundary(make_delivery):
    assert next_batters(make_delivery(runs_scored=4), 1) == ("bat-1", "bat-2")


def test_strike_rotates_on_odd_runs(make_delivery):
    assert next_batters(make_delivery(runs_scored=3), 1) == ("bat-2", "bat-1")


def test_strike_rotates_at_over_end(make_delivery):
    assert next_batters(make_delivery(ball_number=6, runs_scored=0), 6) == ("bat-2", "bat-1")
    # single off the last ball: two swaps cancel out
    assert next_batters(make_delivery(ball_number=6, runs_scored=1), 6) == ("bat-1", "bat-2")


def test_wide_penalty_run_is_not_run(make_delivery):
    assert next_batters(make_delivery(extra_type="wide", extra_runs=1), 0) == ("bat-1", "bat-2")
    assert next_batters(make_delivery(extra_type="wide", extra_runs=2), 0) == ("bat-2", "bat-1")


def test_dismissed_batter_slot_is_empty(make_delivery):
    d = make_delivery(is_wicket=True, wicket_type="bowled", wicket_player_id="bat-1")
    assert next_batters(d, 1) == (None, "bat-2")
