# cricket_api/motm.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Literal, Optional

from cricket_api.cricket_math import balls_to_overs, economy_rate, plural, strike_rate
from cricket_api.models import BattingRecord, BowlingRecord

# Scoring weights
HIGH_STRIKE_RATE = 100.0
STRIKE_RATE_BONUS = 0.1  # fraction of runs added when SR > HIGH_STRIKE_RATE
WICKET_POINTS = 30
GOOD_ECONOMY = 6.0
ECONOMY_BONUS = 20


@dataclass(frozen=True)
class BattingCandidate:
    player_id: str
    runs: int
    balls: int

    @property
    def strike_rate(self) -> float:
        return strike_rate(self.runs, self.balls)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["strike_rate"] = round(self.strike_rate, 2)
        return d


@dataclass(frozen=True)
class BowlingCandidate:
    player_id: str
    wickets: int
    runs: int
    legal_balls: int

    @property
    def economy(self) -> float:
        return economy_rate(self.runs, self.legal_balls)

    @property
    def overs(self) -> str:
        return balls_to_overs(self.legal_balls)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["overs"] = self.overs
        d["economy"] = round(self.economy, 2)
        return d


@dataclass(frozen=True)
class Suggestion:
    player_id: str
    reason: str
    role: Literal["batting", "bowling"]
    score: float

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["score"] = round(self.score, 2)
        return d


def batting_candidates(rows: Iterable[BattingRecord]) -> List[BattingCandidate]:
    """
    One candidate per player (summed over both innings), only players who faced a ball.
    Sorted by runs desc, then strike rate desc.
    """
    runs: Dict[str, int] = {}
    balls: Dict[str, int] = {}
    for r in rows:
        runs[r.player_id] = runs.get(r.player_id, 0) + r.runs_scored
        balls[r.player_id] = balls.get(r.player_id, 0) + r.balls_faced

    out = [BattingCandidate(p, runs[p], balls[p]) for p in runs if balls[p] > 0]
    out.sort(key=lambda c: (-c.runs, -c.strike_rate, c.player_id))
    return out


def bowling_candidates(rows: Iterable[BowlingRecord]) -> List[BowlingCandidate]:
    """
    One candidate per player, only players who bowled a legal ball.
    Sorted by wickets desc, then economy asc.
    """
    wickets: Dict[str, int] = {}
    runs: Dict[str, int] = {}
    balls: Dict[str, int] = {}
    for r in rows:
        wickets[r.player_id] = wickets.get(r.player_id, 0) + r.wickets_taken
        runs[r.player_id] = runs.get(r.player_id, 0) + r.runs_conceded
        balls[r.player_id] = balls.get(r.player_id, 0) + r.legal_balls

    out = [BowlingCandidate(p, wickets[p], runs[p], balls[p]) for p in wickets if balls[p] > 0]
    out.sort(key=lambda c: (-c.wickets, c.economy, c.player_id))
    return out


def batting_score(c: BattingCandidate) -> float:
    bonus = c.runs * STRIKE_RATE_BONUS if c.strike_rate > HIGH_STRIKE_RATE else 0.0
    return c.runs + bonus


def bowling_score(c: BowlingCandidate) -> float:
    bonus = ECONOMY_BONUS if c.economy < GOOD_ECONOMY else 0
    return float(c.wickets * WICKET_POINTS + bonus)


def batting_reason(c: BattingCandidate) -> str:
    return f"{plural(c.runs, 'run')} off {plural(c.balls, 'ball')} (SR: {c.strike_rate:.2f})"


def bowling_reason(c: BowlingCandidate) -> str:
    return f"{plural(c.wickets, 'wicket')} for {plural(c.runs, 'run')} (Economy: {c.economy:.2f})"


def suggest(
    batting: Iterable[BattingRecord],
    bowling: Iterable[BowlingRecord],
) -> Optional[Suggestion]:
    """
    Best single performer, batting and bowling compared on one score:

    - batter: runs, +10% of runs when strike rate > 100
    - bowler: 30 per wicket, +20 when economy < 6

    Ties keep the earlier candidate (batters are walked first, each list in rank order).
    Advisory only; the final pick is confirmed by a person.
    """
    best: Optional[Suggestion] = None

    for c in batting_candidates(batting):
        score = batting_score(c)
        if best is None or score > best.score:
            best = Suggestion(c.player_id, batting_reason(c), "batting", score)

    for c in bowling_candidates(bowling):
        score = bowling_score(c)
        if best is None or score > best.score:
            best = Suggestion(c.player_id, bowling_reason(c), "bowling", score)

    return best
