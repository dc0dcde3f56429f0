# cricket_api/innings.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, Literal, Optional, Tuple

from cricket_api.cricket_math import BALLS_PER_OVER, balls_to_overs, run_rate
from cricket_api.deliveries import in_log_order
from cricket_api.errors import ValidationError
from cricket_api.models import Delivery, InningsState, MatchSession

MAX_WICKETS = 10

CompletionReason = Literal["all_out", "overs_complete", "target_chased", "target_impossible"]


@dataclass(frozen=True)
class InningsCompletion:
    is_complete: bool
    reason: Optional[CompletionReason] = None


def new_innings(match_id: str, innings_number: int, batting_team_id: Optional[str] = None) -> InningsState:
    return InningsState(match_id=match_id, innings_number=innings_number, batting_team_id=batting_team_id)


def apply_delivery(innings: InningsState, delivery: Delivery) -> InningsState:
    """
    Fold one ball into the innings totals and return the new totals.

    Rules:
    - team total += runs off bat + extra runs (every extra kind counts for the team)
    - wides/no-balls go to their own bucket; byes/leg-byes absorb any runs recorded
      on that ball because none of them belong to the striker
    - legal ball +1 only for none/bye/legbye (wides and no-balls are re-bowled)
    - wicket +1 whenever is_wicket, whatever the extra type; never capped here,
      stopping at 10 is the caller's decision

    The input state is not modified.
    """
    if delivery.match_id != innings.match_id or delivery.innings_number != innings.innings_number:
        raise ValidationError(
            f"Delivery for match {delivery.match_id} innings {delivery.innings_number} "
            f"cannot be applied to match {innings.match_id} innings {innings.innings_number}",
            field="innings_number",
        )

    et = delivery.extra_type
    return replace(
        innings,
        runs=innings.runs + delivery.total_runs,
        wickets=innings.wickets + (1 if delivery.is_wicket else 0),
        legal_balls=innings.legal_balls + (1 if delivery.is_legal else 0),
        deliveries=innings.deliveries + 1,
        wides=innings.wides + (delivery.extra_runs if et == "wide" else 0),
        noballs=innings.noballs + (delivery.extra_runs if et == "noball" else 0),
        byes=innings.byes + (delivery.total_runs if et == "bye" else 0),
        legbyes=innings.legbyes + (delivery.total_runs if et == "legbye" else 0),
    )


def build_innings(
    deliveries: Iterable[Delivery],
    session: Optional[MatchSession] = None,
) -> Dict[int, InningsState]:
    """
    Rebuild innings totals from the delivery log (submission order).
    Returns {innings_number: InningsState} for every innings that has at least one ball.
    """
    out: Dict[int, InningsState] = {}
    for d in in_log_order(deliveries):
        state = out.get(d.innings_number)
        if state is None:
            team = session.batting_team(d.innings_number) if session is not None else None
            state = new_innings(d.match_id, d.innings_number, team)
        out[d.innings_number] = apply_delivery(state, d)
    return out


# -----------------------
# Innings completion
# -----------------------
def check_innings_complete(
    innings: InningsState,
    total_overs: int,
    target: Optional[int] = None,
) -> InningsCompletion:
    """
    target is the first-innings total when checking a chase (win needs target + 1).

    Order matters: all-out and overs beat the chase checks.
    """
    if innings.wickets >= MAX_WICKETS:
        return InningsCompletion(True, "all_out")

    max_balls = total_overs * BALLS_PER_OVER
    if innings.legal_balls >= max_balls:
        return InningsCompletion(True, "overs_complete")

    if target is not None:
        if innings.runs > target:
            return InningsCompletion(True, "target_chased")

        balls_left = max_balls - innings.legal_balls
        runs_needed = target - innings.runs + 1
        # six an over is the most a side can score off the bat
        if runs_needed > balls_left * 6:
            return InningsCompletion(True, "target_impossible")

    return InningsCompletion(False)


def innings_status_message(check: InningsCompletion, innings: InningsState) -> str:
    if not check.is_complete:
        return "In progress"

    overs = balls_to_overs(innings.legal_balls)
    if check.reason == "all_out":
        return f"All out for {innings.runs} ({overs} overs)"
    if check.reason == "overs_complete":
        return f"{innings.runs}/{innings.wickets} ({overs} overs)"
    if check.reason == "target_chased":
        return f"Target chased in {overs} overs"
    if check.reason == "target_impossible":
        return "Target impossible to achieve"
    return "Innings complete"


def current_run_rate(innings: InningsState) -> float:
    return run_rate(innings.runs, innings.legal_balls)


# -----------------------
# Strike rotation
# -----------------------
def completed_runs(delivery: Delivery) -> int:
    """
    Runs the batters physically ran on this ball.
    The one-run penalty of a wide/no-ball is not run.
    """
    runs = delivery.runs_scored + delivery.extra_runs
    if delivery.extra_type in ("wide", "noball") and delivery.extra_runs > 0:
        runs -= 1
    return runs


def next_batters(delivery: Delivery, legal_balls_after: int) -> Tuple[Optional[str], Optional[str]]:
    """
    (striker, non_striker) for the next ball.

    - odd completed runs swap ends
    - the end of an over swaps ends
    - a dismissed batter's slot comes back as None (new batter to be picked)
    """
    striker: Optional[str] = delivery.striker_id
    non_striker: Optional[str] = delivery.non_striker_id

    if delivery.is_wicket and delivery.wicket_player_id:
        if delivery.wicket_player_id == striker:
            striker = None
        elif delivery.wicket_player_id == non_striker:
            non_striker = None

    if completed_runs(delivery) % 2 == 1:
        striker, non_striker = non_striker, striker

    if delivery.is_legal and legal_balls_after > 0 and legal_balls_after % BALLS_PER_OVER == 0:
        striker, non_striker = non_striker, striker

    return striker, non_striker
