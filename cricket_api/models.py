# cricket_api/models.py
from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional, Literal

from cricket_api.cricket_math import balls_to_overs

# Bumped whenever the serialized shape of any entity below changes
SCHEMA_VERSION = 1


# -----------------------------
# Enumerations
# -----------------------------
ExtraType = Literal["none", "wide", "noball", "bye", "legbye"]
EXTRA_TYPES = ("wide", "noball", "bye", "legbye")

# Deliveries that count towards the over
LEGAL_EXTRA_TYPES = frozenset({"none", "bye", "legbye"})

# Extras that are conceded by the bowler
BOWLER_EXTRA_TYPES = frozenset({"wide", "noball"})

WicketKind = Literal[
    "bowled",
    "caught",
    "lbw",
    "run_out",
    "stumped",
    "hit_wicket",
    "caught_and_bowled",
    "retired_hurt",
    "obstructing_field",
    "hit_ball_twice",
    "timed_out",
]
WICKET_KINDS = (
    "bowled",
    "caught",
    "lbw",
    "run_out",
    "stumped",
    "hit_wicket",
    "caught_and_bowled",
    "retired_hurt",
    "obstructing_field",
    "hit_ball_twice",
    "timed_out",
)

# Dismissals credited to the bowler's wickets column
BOWLER_CREDITED_KINDS = frozenset({
    "bowled",
    "caught",
    "lbw",
    "stumped",
    "hit_wicket",
    "caught_and_bowled",
})

MatchStatus = Literal["in_progress", "completed"]
TossDecision = Literal["bat", "bowl"]


# -----------------------------
# Delivery (one ball, immutable)
# -----------------------------
@dataclass(frozen=True)
class Delivery:
    match_id: str
    innings_number: int
    over_number: int
    ball_number: int
    bowler_id: str
    striker_id: str
    non_striker_id: Optional[str] = None

    runs_scored: int = 0
    extra_type: ExtraType = "none"
    extra_runs: int = 0

    is_wicket: bool = False
    wicket_type: Optional[WicketKind] = None
    wicket_player_id: Optional[str] = None

    # Assigned by the store on append; monotonic per match
    sequence: Optional[int] = None
    schema_version: int = SCHEMA_VERSION

    @property
    def is_legal(self) -> bool:
        return self.extra_type in LEGAL_EXTRA_TYPES

    @property
    def total_runs(self) -> int:
        return self.runs_scored + self.extra_runs

    @property
    def batting_runs(self) -> int:
        # byes and leg-byes are never the striker's runs
        if self.extra_type in ("bye", "legbye"):
            return 0
        return self.runs_scored

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -----------------------------
# Innings totals (derived from the delivery log)
# -----------------------------
@dataclass(frozen=True)
class InningsState:
    match_id: str
    innings_number: int
    batting_team_id: Optional[str] = None

    runs: int = 0
    wickets: int = 0
    legal_balls: int = 0
    deliveries: int = 0

    wides: int = 0
    noballs: int = 0
    byes: int = 0
    legbyes: int = 0

    schema_version: int = SCHEMA_VERSION

    @property
    def extras(self) -> int:
        return self.wides + self.noballs + self.byes + self.legbyes

    @property
    def overs(self) -> str:
        return balls_to_overs(self.legal_balls)

    @property
    def over_number(self) -> int:
        return self.legal_balls // 6

    @property
    def ball_in_over(self) -> int:
        return self.legal_balls % 6

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["overs"] = self.overs
        d["extras"] = self.extras
        return d


# -----------------------------
# Player-innings rows (upserted per delivery)
# -----------------------------
@dataclass(frozen=True)
class BattingRecord:
    match_id: str
    player_id: str
    innings_number: int

    runs_scored: int = 0
    balls_faced: int = 0
    fours: int = 0
    sixes: int = 0
    strike_rate: float = 0.0

    is_out: bool = False
    wicket_type: Optional[WicketKind] = None
    is_batting: bool = True

    schema_version: int = SCHEMA_VERSION

    @property
    def key(self):
        return (self.match_id, self.player_id, self.innings_number)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["strike_rate"] = round(self.strike_rate, 2)
        return d


@dataclass(frozen=True)
class BowlingRecord:
    """
    Bowling figures for one player in one innings.
    Overs are stored as LEGAL BALLS (not float overs) to avoid the 0.10 vs 0.1 mistake.
    """
    match_id: str
    player_id: str
    innings_number: int

    legal_balls: int = 0
    runs_conceded: int = 0
    wickets_taken: int = 0
    wides: int = 0
    noballs: int = 0
    economy_rate: float = 0.0
    is_bowling: bool = True

    schema_version: int = SCHEMA_VERSION

    @property
    def key(self):
        return (self.match_id, self.player_id, self.innings_number)

    @property
    def overs(self) -> str:
        return balls_to_overs(self.legal_balls)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["overs_bowled"] = self.overs
        d["economy_rate"] = round(self.economy_rate, 2)
        return d


# -----------------------------
# Match session & configuration
# -----------------------------
@dataclass(frozen=True)
class MatchConfig:
    total_overs: int = 20
    max_overs_per_bowler: int = 4
    toss_winner_team_id: Optional[str] = None
    toss_decision: Optional[TossDecision] = None
    elected_to_bat_first_team_id: Optional[str] = None

    @property
    def config_completed(self) -> bool:
        # Only true once the toss has actually happened
        return bool(self.toss_winner_team_id and self.toss_decision)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["config_completed"] = self.config_completed
        return d


@dataclass(frozen=True)
class MatchSession:
    """
    Everything the aggregators need to know about the match being scored.
    Passed explicitly into every call; there is no ambient "current match".
    """
    match_id: str
    team1_id: str
    team2_id: str
    config: MatchConfig = field(default_factory=MatchConfig)

    @property
    def bat_first_team_id(self) -> str:
        return self.config.elected_to_bat_first_team_id or self.team1_id

    def batting_team(self, innings_number: int) -> str:
        first = self.bat_first_team_id
        if innings_number == 1:
            return first
        return self.team2_id if first == self.team1_id else self.team1_id

    def bowling_team(self, innings_number: int) -> str:
        return self.batting_team(2 if innings_number == 1 else 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match_id": self.match_id,
            "team1_id": self.team1_id,
            "team2_id": self.team2_id,
            "config": self.config.to_dict(),
            "schema_version": SCHEMA_VERSION,
        }


# -----------------------------
# Match summary (produced once, then owned by result + human selection)
# -----------------------------
@dataclass(frozen=True)
class MatchSummary:
    match_id: str
    winner_team_id: Optional[str] = None
    win_margin: Optional[str] = None
    margin_kind: Optional[Literal["runs", "wickets"]] = None
    margin_value: Optional[int] = None
    is_tie: bool = False
    man_of_match_player_id: Optional[str] = None
    match_status: MatchStatus = "in_progress"

    schema_version: int = SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
