import pytest

from cricket_api.player_stats import apply_delivery, bowler_over_limit_reached, rebuild_player_stats


def _rows(update):
    return {r.player_id: r for r in update.batting}, update.bowling[0]


def test_wide_charges_bowler_not_striker(make_delivery):
    batting, bowler = _rows(apply_delivery(make_delivery(extra_type="wide", extra_runs=1), {}, {}))

    assert bowler.runs_conceded == 1
    assert bowler.legal_balls == 0
    assert bowler.wides == 1
    assert batting["bat-1"].balls_faced == 0
    assert batting["bat-1"].runs_scored == 0


def test_boundary_updates_striker(make_delivery):
    batting, bowler = _rows(apply_delivery(make_delivery(runs_scored=4), {}, {}))
    striker = batting["bat-1"]

    assert striker.runs_scored == 4
    assert striker.fours == 1
    assert striker.balls_faced == 1
    assert striker.strike_rate == pytest.approx(400.0)
    assert bowler.runs_conceded == 4
    assert bowler.economy_rate == pytest.approx(24.0)


def test_bowled_striker(make_delivery):
    d = make_delivery(is_wicket=True, wicket_type="bowled", wicket_player_id="bat-1")
    batting, bowler = _rows(apply_delivery(d, {}, {}))

    assert batting["bat-1"].is_out
    assert batting["bat-1"].wicket_type == "bowled"
    assert not batting["bat-1"].is_batting
    assert batting["bat-1"].balls_faced == 1
    assert bowler.wickets_taken == 1


def test_run_out_of_non_striker_not_credited_to_bowler(make_delivery):
    d = make_delivery(runs_scored=1, is_wicket=True, wicket_type="run_out", wicket_player_id="bat-2")
    batting, bowler = _rows(apply_delivery(d, {}, {}))

    assert batting["bat-2"].is_out
    assert not batting["bat-1"].is_out
    assert batting["bat-1"].runs_scored == 1
    assert bowler.wickets_taken == 0


def test_byes_are_nobodys_runs(make_delivery):
    batting, bowler = _rows(apply_delivery(make_delivery(extra_type="bye", extra_runs=4), {}, {}))

    assert batting["bat-1"].runs_scored == 0
    assert batting["bat-1"].balls_faced == 1
    assert bowler.runs_conceded == 0
    assert bowler.legal_balls == 1


def test_no_ball_hit_for_six(make_delivery):
    d = make_delivery(extra_type="noball", runs_scored=6, extra_runs=1)
    batting, bowler = _rows(apply_delivery(d, {}, {}))

    assert batting["bat-1"].runs_scored == 6
    assert batting["bat-1"].sixes == 1
    assert batting["bat-1"].balls_faced == 0
    assert bowler.runs_conceded == 7
    assert bowler.noballs == 1


def test_inputs_are_not_modified(make_delivery):
    batting, bowling = rebuild_player_stats([make_delivery(runs_scored=2)])
    before = dict(batting)
    apply_delivery(make_delivery(ball_number=2, runs_scored=4), batting, bowling)
    assert batting == before


def test_strike_rate_recomputed_from_totals(make_delivery):
    log = [make_delivery(ball_number=i + 1, runs_scored=r) for i, r in enumerate([0, 4, 1, 0, 6])]
    # only bat-1 faces in this log
    batting, bowling = rebuild_player_stats(log)
    striker = batting[("m1", "bat-1", 1)]

    assert striker.runs_scored == 11
    assert striker.balls_faced == 5
    assert striker.strike_rate == pytest.approx(220.0)
    assert bowling[("m1", "bowler-a", 1)].runs_conceded == 11


def test_bowler_over_limit(make_delivery):
    log = [make_delivery(ball_number=i + 1) for i in range(6)]
    _, bowling = rebuild_player_stats(log)
    row = bowling[("m1", "bowler-a", 1)]
    assert bowler_over_limit_reached(row, 1)
    assert not bowler_over_limit_reached(row, 2)
