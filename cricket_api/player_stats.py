# cricket_api/player_stats.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Tuple

from cricket_api.cricket_math import BALLS_PER_OVER, economy_rate, strike_rate
from cricket_api.deliveries import in_log_order
from cricket_api.models import (
    BOWLER_CREDITED_KINDS,
    BOWLER_EXTRA_TYPES,
    BattingRecord,
    BowlingRecord,
    Delivery,
)

# (match_id, player_id, innings_number)
RowKey = Tuple[str, str, int]


@dataclass(frozen=True)
class StatsUpdate:
    """Rows changed by one delivery, ready to be upserted by the store."""
    batting: List[BattingRecord] = field(default_factory=list)
    bowling: List[BowlingRecord] = field(default_factory=list)


def _key(delivery: Delivery, player_id: str) -> RowKey:
    return (delivery.match_id, player_id, delivery.innings_number)


def apply_delivery(
    delivery: Delivery,
    batting_rows: Mapping[RowKey, BattingRecord],
    bowling_rows: Mapping[RowKey, BowlingRecord],
) -> StatsUpdate:
    """
    Compute the batting and bowling rows one delivery touches.

    batting_rows/bowling_rows hold the current cumulative rows (any superset is fine);
    they are read, never modified. Missing rows are created.

    Striker:      runs (0 on byes/leg-byes), balls faced on legal balls, 4s/6s, strike rate
    Non-striker:  present and batting, otherwise untouched
    Dismissed:    the credited player id decides who is out (run-outs can take the non-striker)
    Bowler:       legal balls, runs conceded (no byes/leg-byes), creditable wickets, economy
    """
    staged: Dict[RowKey, BattingRecord] = {}

    def batting_row(player_id: str) -> BattingRecord:
        k = _key(delivery, player_id)
        if k in staged:
            return staged[k]
        existing = batting_rows.get(k)
        if existing is not None:
            return existing
        return BattingRecord(match_id=delivery.match_id, player_id=player_id, innings_number=delivery.innings_number)

    # 1) Striker
    striker = batting_row(delivery.striker_id)
    bat_runs = delivery.batting_runs
    runs = striker.runs_scored + bat_runs
    balls = striker.balls_faced + (1 if delivery.is_legal else 0)
    striker = replace(
        striker,
        runs_scored=runs,
        balls_faced=balls,
        fours=striker.fours + (1 if bat_runs == 4 else 0),
        sixes=striker.sixes + (1 if bat_runs == 6 else 0),
        strike_rate=strike_rate(runs, balls),
        is_batting=not striker.is_out,
    )
    staged[_key(delivery, delivery.striker_id)] = striker

    # 2) Non-striker
    if delivery.non_striker_id:
        ns = batting_row(delivery.non_striker_id)
        staged[_key(delivery, delivery.non_striker_id)] = replace(ns, is_batting=not ns.is_out)

    # 3) Dismissed player
    if delivery.is_wicket and delivery.wicket_player_id:
        out = batting_row(delivery.wicket_player_id)
        staged[_key(delivery, delivery.wicket_player_id)] = replace(
            out,
            is_out=True,
            wicket_type=delivery.wicket_type,
            is_batting=False,
        )

    # 4) Bowler
    bk = _key(delivery, delivery.bowler_id)
    bowler = bowling_rows.get(bk) or BowlingRecord(
        match_id=delivery.match_id,
        player_id=delivery.bowler_id,
        innings_number=delivery.innings_number,
    )
    conceded = bat_runs + (delivery.extra_runs if delivery.extra_type in BOWLER_EXTRA_TYPES else 0)
    legal_balls = bowler.legal_balls + (1 if delivery.is_legal else 0)
    runs_conceded = bowler.runs_conceded + conceded
    credited = delivery.is_wicket and delivery.wicket_type in BOWLER_CREDITED_KINDS
    bowler = replace(
        bowler,
        legal_balls=legal_balls,
        runs_conceded=runs_conceded,
        wickets_taken=bowler.wickets_taken + (1 if credited else 0),
        wides=bowler.wides + (1 if delivery.extra_type == "wide" else 0),
        noballs=bowler.noballs + (1 if delivery.extra_type == "noball" else 0),
        economy_rate=economy_rate(runs_conceded, legal_balls),
        is_bowling=True,
    )

    return StatsUpdate(batting=list(staged.values()), bowling=[bowler])


def rebuild_player_stats(
    deliveries: Iterable[Delivery],
) -> Tuple[Dict[RowKey, BattingRecord], Dict[RowKey, BowlingRecord]]:
    """Replay the whole log (submission order) into fresh batting/bowling rows."""
    batting: Dict[RowKey, BattingRecord] = {}
    bowling: Dict[RowKey, BowlingRecord] = {}

    for d in in_log_order(deliveries):
        upd = apply_delivery(d, batting, bowling)
        for row in upd.batting:
            batting[row.key] = row
        for row in upd.bowling:
            bowling[row.key] = row

    return batting, bowling


def bowler_over_limit_reached(row: BowlingRecord, max_overs_per_bowler: int) -> bool:
    return row.legal_balls >= max_overs_per_bowler * BALLS_PER_OVER
