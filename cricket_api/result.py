# cricket_api/result.py
from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, Literal, Optional

from cricket_api.cricket_math import plural
from cricket_api.innings import MAX_WICKETS
from cricket_api.models import InningsState, MatchSummary

ResultType = Literal["WIN", "TIE"]
MarginKind = Literal["runs", "wickets"]


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of a two-innings match.

    decided=False means the chase is still live; that is NOT a tie.
    A tie is decided=True, is_tie=True, winner_team_id=None.
    """
    decided: bool
    winner_team_id: Optional[str] = None
    margin_kind: Optional[MarginKind] = None
    margin_value: Optional[int] = None
    is_tie: bool = False

    @property
    def result_type(self) -> Optional[ResultType]:
        if not self.decided:
            return None
        return "TIE" if self.is_tie else "WIN"

    @property
    def win_margin(self) -> str:
        if not self.decided:
            return ""
        if self.is_tie:
            return "Match tied"
        noun = "run" if self.margin_kind == "runs" else "wicket"
        return plural(int(self.margin_value or 0), noun)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["result_type"] = self.result_type
        d["win_margin"] = self.win_margin
        return d


def resolve(first: InningsState, second: InningsState, *, complete: bool = True) -> MatchResult:
    """
    first  = innings of the side batting first (the target is its total)
    second = innings of the chasing side
    complete = the caller's decision that the second innings is closed
               (overs exhausted, all out or abandoned chase). This module never
               decides that on its own.

    Rules:
    - chasing side past the target -> chasing side wins by (10 - wickets lost) wickets
    - closed and short of the target -> first side wins by the run difference
    - closed and level -> tie
    - otherwise -> undecided
    """
    target = first.runs

    if second.runs > target:
        wickets_left = max(0, MAX_WICKETS - second.wickets)
        return MatchResult(
            decided=True,
            winner_team_id=second.batting_team_id,
            margin_kind="wickets",
            margin_value=wickets_left,
        )

    if not complete:
        return MatchResult(decided=False)

    if second.runs == target:
        return MatchResult(decided=True, is_tie=True)

    return MatchResult(
        decided=True,
        winner_team_id=first.batting_team_id,
        margin_kind="runs",
        margin_value=target - second.runs,
    )


def apply_result(summary: MatchSummary, result: MatchResult) -> MatchSummary:
    """Copy a decided result onto the match summary. Man of the match and status are kept."""
    if not result.decided:
        raise ValueError("Cannot write an undecided result to the match summary")

    return replace(
        summary,
        winner_team_id=result.winner_team_id,
        win_margin=result.win_margin,
        margin_kind=result.margin_kind,
        margin_value=result.margin_value,
        is_tie=result.is_tie,
    )
