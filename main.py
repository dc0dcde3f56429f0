# main.py
from __future__ import annotations

import logging
import logging.config
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from cricket_api.config import (
    DEFAULT_MAX_OVERS_PER_BOWLER,
    DEFAULT_TOTAL_OVERS,
    LOGGING_CONFIG,
    STORE_BACKEND,
    validate_config,
)
from cricket_api.errors import ScoringError
from cricket_api.models import MatchConfig
from cricket_api.service import ScoringService, create_store

logger = logging.getLogger(__name__)

# -----------------------
# App
# -----------------------
app = FastAPI(
    title="Cricket Live Scoring API",
    version="0.1.0",
    description="Ball-by-ball cricket scoring: innings totals, player figures, scorecards, results and man of the match",
)

service = ScoringService(create_store())


@app.on_event("startup")
def on_startup():
    validate_config()
    logging.config.dictConfig(LOGGING_CONFIG)
    logger.info(f"Scoring API started (store={STORE_BACKEND})")


@app.get("/health")
def health_check():
    return {"status": "ok", "time": datetime.utcnow().isoformat() + "Z"}


# -----------------------
# Helpers
# -----------------------
def _http_error(e: ScoringError) -> HTTPException:
    detail: Dict[str, Any] = {"error": e.message, "retryable": e.retryable}
    if e.field:
        detail["field"] = e.field
    return HTTPException(status_code=e.status_code, detail=detail)


class _CamelModel(BaseModel):
    # scoring UIs send camelCase, scripts send snake_case; both are accepted
    model_config = ConfigDict(populate_by_name=True)


class MatchConfigIn(_CamelModel):
    total_overs: int = Field(DEFAULT_TOTAL_OVERS, alias="totalOvers", ge=1)
    max_overs_per_bowler: int = Field(DEFAULT_MAX_OVERS_PER_BOWLER, alias="maxOversPerBowler", ge=1)
    toss_winner_team_id: Optional[str] = Field(None, alias="tossWinnerTeamId")
    toss_decision: Optional[Literal["bat", "bowl"]] = Field(None, alias="tossDecision")
    elected_to_bat_first_team_id: Optional[str] = Field(None, alias="electedToBatFirstTeamId")

    def to_config(self) -> MatchConfig:
        return MatchConfig(**self.model_dump())


# -----------------------
# Matches
# -----------------------
class CreateMatchRequest(_CamelModel):
    match_id: str = Field(..., alias="matchId")
    team1_id: str = Field(..., alias="team1Id")
    team2_id: str = Field(..., alias="team2Id")
    config: Optional[MatchConfigIn] = None


@app.post("/api/matches", status_code=201)
def create_match(req: CreateMatchRequest):
    try:
        session = service.create_match(
            req.match_id,
            req.team1_id,
            req.team2_id,
            config=req.config.to_config() if req.config is not None else None,
        )
    except ScoringError as e:
        raise _http_error(e)
    return session.to_dict()


@app.post("/api/matches/{match_id}/cricket/config")
def configure_match(match_id: str, req: MatchConfigIn):
    try:
        session = service.configure_match(match_id, req.to_config())
    except ScoringError as e:
        raise _http_error(e)
    return session.to_dict()


@app.get("/api/matches/{match_id}/cricket/config")
def get_match_config(match_id: str):
    try:
        session = service.get_match(match_id)
    except ScoringError as e:
        raise _http_error(e)
    return session.to_dict()


# -----------------------
# Ball-by-ball
# -----------------------
class DeliveryIn(_CamelModel):
    # presence and ranges are checked by the scoring core so errors name the field
    innings_number: Optional[int] = Field(None, alias="inningsNumber")
    over_number: Optional[int] = Field(None, alias="overNumber")
    ball_number: Optional[int] = Field(None, alias="ballNumber")
    bowler_id: Optional[str] = Field(None, alias="bowlerId")
    striker_id: Optional[str] = Field(None, alias="strikerId")
    non_striker_id: Optional[str] = Field(None, alias="nonStrikerId")
    runs_scored: int = Field(0, alias="runsScored")
    extra_type: Optional[str] = Field(None, alias="extraType")
    extra_runs: int = Field(0, alias="extraRuns")
    is_wicket: bool = Field(False, alias="isWicket")
    wicket_type: Optional[str] = Field(None, alias="wicketType")
    wicket_player_id: Optional[str] = Field(None, alias="wicketPlayerId")


@app.post("/api/matches/{match_id}/cricket/ball", status_code=201)
def record_ball(match_id: str, req: DeliveryIn):
    try:
        stored = service.record_delivery(match_id, **req.model_dump())
        live = service.get_live_state(match_id)
    except ScoringError as e:
        raise _http_error(e)
    return {"delivery": stored.to_dict(), "live": live}


@app.get("/api/matches/{match_id}/cricket/ball")
def list_balls(match_id: str, innings: Optional[int] = None):
    try:
        deliveries = service.list_deliveries(match_id, innings)
    except ScoringError as e:
        raise _http_error(e)
    return {
        "match_id": match_id,
        "innings_number": innings,
        "count": len(deliveries),
        "deliveries": [d.to_dict() for d in deliveries],
    }


# -----------------------
# Projections
# -----------------------
@app.get("/api/matches/{match_id}/cricket/scorecard")
def get_scorecard(match_id: str):
    try:
        return service.get_scorecard(match_id)
    except ScoringError as e:
        raise _http_error(e)


@app.get("/api/matches/{match_id}/cricket/live")
def get_live(match_id: str):
    try:
        return service.get_live_state(match_id)
    except ScoringError as e:
        raise _http_error(e)


# -----------------------
# Result & man of the match
# -----------------------
class ResolveRequest(_CamelModel):
    complete: bool = Field(True, description="False while the second innings is still in progress")


@app.post("/api/matches/{match_id}/cricket/result")
def resolve_result(match_id: str, req: Optional[ResolveRequest] = None):
    complete = req.complete if req is not None else True
    try:
        result = service.resolve_match(match_id, complete=complete)
    except ScoringError as e:
        raise _http_error(e)
    return {"match_id": match_id, "result": result.to_dict()}


@app.get("/api/matches/{match_id}/cricket/man-of-match")
def get_man_of_match(match_id: str):
    try:
        return service.suggest_man_of_match(match_id)
    except ScoringError as e:
        raise _http_error(e)


class ConfirmManOfMatchRequest(_CamelModel):
    player_id: str = Field(..., alias="playerId")


@app.put("/api/matches/{match_id}/cricket/man-of-match")
def confirm_man_of_match(match_id: str, req: ConfirmManOfMatchRequest):
    try:
        summary = service.confirm_man_of_match(match_id, req.player_id)
    except ScoringError as e:
        raise _http_error(e)
    return summary.to_dict()


# -----------------------
# Maintenance
# -----------------------
@app.post("/api/matches/{match_id}/cricket/rebuild")
def rebuild(match_id: str):
    try:
        return service.rebuild_match(match_id)
    except ScoringError as e:
        raise _http_error(e)
