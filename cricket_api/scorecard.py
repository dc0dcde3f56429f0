# cricket_api/scorecard.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from cricket_api.cricket_math import balls_to_overs
from cricket_api.deliveries import in_log_order
from cricket_api.models import (
    SCHEMA_VERSION,
    BattingRecord,
    BowlingRecord,
    Delivery,
    InningsState,
    MatchSession,
    MatchSummary,
)


def batting_table(session: MatchSession, rows: Iterable[BattingRecord]) -> List[dict]:
    """Innings order, then top scorer first."""
    ordered = sorted(rows, key=lambda r: (r.innings_number, -r.runs_scored, r.player_id))
    out: List[dict] = []
    for r in ordered:
        d = r.to_dict()
        d["team_id"] = session.batting_team(r.innings_number)
        out.append(d)
    return out


def bowling_table(session: MatchSession, rows: Iterable[BowlingRecord]) -> List[dict]:
    """Innings order, then most wickets, then cheapest economy."""
    ordered = sorted(rows, key=lambda r: (r.innings_number, -r.wickets_taken, r.economy_rate, r.player_id))
    out: List[dict] = []
    for r in ordered:
        d = r.to_dict()
        d["team_id"] = session.bowling_team(r.innings_number)
        out.append(d)
    return out


def fall_of_wickets(deliveries: Iterable[Delivery]) -> List[dict]:
    """
    Chronological dismissals with the team score (including the wicket ball)
    at the moment each one fell.
    """
    out: List[dict] = []
    score: Dict[int, int] = {}
    legal: Dict[int, int] = {}
    count: Dict[int, int] = {}

    for d in in_log_order(deliveries):
        inn = d.innings_number
        score[inn] = score.get(inn, 0) + d.total_runs
        legal[inn] = legal.get(inn, 0) + (1 if d.is_legal else 0)
        if not d.is_wicket:
            continue
        count[inn] = count.get(inn, 0) + 1
        out.append({
            "innings_number": inn,
            "wicket_number": count[inn],
            "over_number": d.over_number,
            "ball_number": d.ball_number,
            "overs": balls_to_overs(legal[inn]),
            "player_id": d.wicket_player_id,
            "wicket_type": d.wicket_type,
            "bowler_id": d.bowler_id,
            "score_at_wicket": score[inn],
        })

    out.sort(key=lambda w: (w["innings_number"], w["wicket_number"]))
    return out


def extras_table(innings: Iterable[InningsState]) -> List[dict]:
    return [
        {
            "innings_number": s.innings_number,
            "wides": s.wides,
            "noballs": s.noballs,
            "byes": s.byes,
            "legbyes": s.legbyes,
            "total_extras": s.extras,
        }
        for s in sorted(innings, key=lambda s: s.innings_number)
    ]


def over_summary(deliveries: Iterable[Delivery]) -> List[dict]:
    """
    Over-by-over breakdown per innings: runs, wickets, extras and the running total.
    The bowler shown is whoever bowled the first ball of that over.
    """
    rows = [
        {
            "innings_number": d.innings_number,
            "over_number": d.over_number,
            "sequence": d.sequence or 0,
            "bowler_id": d.bowler_id,
            "runs": d.total_runs,
            "wickets": 1 if d.is_wicket else 0,
            "legal": 1 if d.is_legal else 0,
            "extras": d.extra_runs,
        }
        for d in deliveries
    ]
    if not rows:
        return []

    df = pd.DataFrame(rows).sort_values(["innings_number", "sequence"])
    grouped = (
        df.groupby(["innings_number", "over_number"], sort=True)
        .agg(
            runs=("runs", "sum"),
            wickets=("wickets", "sum"),
            legal_balls=("legal", "sum"),
            extras=("extras", "sum"),
            bowler_id=("bowler_id", "first"),
        )
        .reset_index()
    )
    grouped["cumulative_runs"] = grouped.groupby("innings_number")["runs"].cumsum()
    grouped["cumulative_wickets"] = grouped.groupby("innings_number")["wickets"].cumsum()

    # plain ints so the projection serializes without numpy types
    return [
        {
            "innings_number": int(r.innings_number),
            "over_number": int(r.over_number),
            "bowler_id": str(r.bowler_id),
            "runs": int(r.runs),
            "wickets": int(r.wickets),
            "legal_balls": int(r.legal_balls),
            "extras": int(r.extras),
            "cumulative_runs": int(r.cumulative_runs),
            "cumulative_wickets": int(r.cumulative_wickets),
        }
        for r in grouped.itertuples(index=False)
    ]


def build_scorecard(
    session: MatchSession,
    deliveries: List[Delivery],
    innings: List[InningsState],
    batting: List[BattingRecord],
    bowling: List[BowlingRecord],
    summary: Optional[MatchSummary],
) -> Dict[str, Any]:
    """Read-only projection of everything recorded for one match."""
    return {
        "schema_version": SCHEMA_VERSION,
        "match_id": session.match_id,
        "innings": [s.to_dict() for s in sorted(innings, key=lambda s: s.innings_number)],
        "batting": batting_table(session, batting),
        "bowling": bowling_table(session, bowling),
        "fall_of_wickets": fall_of_wickets(deliveries),
        "extras": extras_table(innings),
        "overs": over_summary(deliveries),
        "config": session.config.to_dict(),
        "summary": summary.to_dict() if summary is not None else None,
    }
