# cricket_api/service.py
from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Optional, Set, Tuple

from cricket_api import cache
from cricket_api.config import (
    DATABASE_PATH,
    DEFAULT_MAX_OVERS_PER_BOWLER,
    DEFAULT_TOTAL_OVERS,
    MATCH_LOCK_TIMEOUT_SECONDS,
    SCORECARD_CACHE_TTL_SECONDS,
    STORE_BACKEND,
)
from cricket_api.cricket_math import balls_to_overs, required_run_rate
from cricket_api.deliveries import build_delivery
from cricket_api.errors import ConflictError, NotFoundError, ValidationError
from cricket_api.innings import (
    apply_delivery as apply_to_innings,
    build_innings,
    check_innings_complete,
    current_run_rate,
    innings_status_message,
    new_innings,
    next_batters,
)
from cricket_api.locks import MatchLocks
from cricket_api.models import Delivery, InningsState, MatchConfig, MatchSession, MatchSummary
from cricket_api.motm import batting_candidates, bowling_candidates, suggest
from cricket_api.player_stats import (
    StatsUpdate,
    apply_delivery as apply_to_players,
    bowler_over_limit_reached,
    rebuild_player_stats,
)
from cricket_api.result import MatchResult, apply_result, resolve
from cricket_api.scorecard import build_scorecard
from cricket_api.store import DeliveryContext, InMemoryMatchStore, MatchStore

logger = logging.getLogger(__name__)


def _require_text(name: str, value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required field: {name}", field=name)
    return str(value).strip()


def _check_config(session: MatchSession, config: MatchConfig) -> MatchConfig:
    """
    Validate a match config against the two teams and fill the bat-first team
    from the toss when the caller left it out.
    """
    if config.total_overs is None or int(config.total_overs) < 1:
        raise ValidationError("total_overs must be >= 1", field="total_overs")
    if config.max_overs_per_bowler is None or not 1 <= int(config.max_overs_per_bowler) <= int(config.total_overs):
        raise ValidationError("max_overs_per_bowler must be between 1 and total_overs", field="max_overs_per_bowler")

    teams = (session.team1_id, session.team2_id)
    if config.toss_winner_team_id is not None and config.toss_winner_team_id not in teams:
        raise ValidationError("toss_winner_team_id must be one of the match teams", field="toss_winner_team_id")
    if config.toss_decision is not None and config.toss_decision not in ("bat", "bowl"):
        raise ValidationError("toss_decision must be 'bat' or 'bowl'", field="toss_decision")
    if config.elected_to_bat_first_team_id is not None and config.elected_to_bat_first_team_id not in teams:
        raise ValidationError(
            "elected_to_bat_first_team_id must be one of the match teams",
            field="elected_to_bat_first_team_id",
        )

    if config.elected_to_bat_first_team_id is None and config.toss_winner_team_id and config.toss_decision:
        winner = config.toss_winner_team_id
        other = teams[1] if winner == teams[0] else teams[0]
        config = replace(config, elected_to_bat_first_team_id=winner if config.toss_decision == "bat" else other)

    return config


class ScoringService:
    """
    Live scoring operations for cricket matches.

    All writes for one match are serialized through a per-match lock and applied
    in the order they acquire it; reads never take the lock.
    """

    def __init__(
        self,
        store: MatchStore,
        *,
        lock_timeout_seconds: float = MATCH_LOCK_TIMEOUT_SECONDS,
        scorecard_ttl_seconds: int = SCORECARD_CACHE_TTL_SECONDS,
    ) -> None:
        self.store = store
        self.locks = MatchLocks(lock_timeout_seconds)
        self.scorecard_ttl_seconds = scorecard_ttl_seconds
        # per-instance namespace: two services never share cached projections
        self._cache_ns = f"scorecard-{uuid.uuid4().hex}"
        # bumped under the match lock on every write
        self._versions: Dict[str, int] = {}

    # -----------------------
    # Helpers
    # -----------------------
    def _session(self, match_id: str) -> MatchSession:
        session = self.store.get_match(match_id)
        if session is None:
            raise NotFoundError(f"Match not found: {match_id}")
        return session

    def _summary(self, match_id: str) -> MatchSummary:
        return self.store.get_summary(match_id) or MatchSummary(match_id=match_id)

    def _innings(self, session: MatchSession, innings_number: int) -> InningsState:
        state = self.store.get_innings(session.match_id, innings_number)
        if state is None:
            state = new_innings(session.match_id, innings_number, session.batting_team(innings_number))
        return state

    def _scorecard_key(self, match_id: str) -> str:
        # the write version is part of the key, so a projection built before a
        # write can never be served after it
        version = self._versions.get(match_id, 0)
        return cache.make_key(self._cache_ns, f"{match_id}:v{version}")

    def _invalidate(self, match_id: str) -> None:
        cache.invalidate(self._scorecard_key(match_id))
        self._versions[match_id] = self._versions.get(match_id, 0) + 1

    # -----------------------
    # Match setup
    # -----------------------
    def create_match(
        self,
        match_id: str,
        team1_id: str,
        team2_id: str,
        config: Optional[MatchConfig] = None,
    ) -> MatchSession:
        match_id = _require_text("match_id", match_id)
        team1_id = _require_text("team1_id", team1_id)
        team2_id = _require_text("team2_id", team2_id)
        if team1_id == team2_id:
            raise ValidationError("team1_id and team2_id must be different", field="team2_id")

        session = MatchSession(match_id=match_id, team1_id=team1_id, team2_id=team2_id)
        config = config or MatchConfig(
            total_overs=DEFAULT_TOTAL_OVERS,
            max_overs_per_bowler=DEFAULT_MAX_OVERS_PER_BOWLER,
        )
        session = replace(session, config=_check_config(session, config))

        created = self.store.create_match(session)
        logger.info(f"Created match {match_id}: {team1_id} vs {team2_id}")
        return created

    def get_match(self, match_id: str) -> MatchSession:
        return self._session(match_id)

    def configure_match(self, match_id: str, config: MatchConfig) -> MatchSession:
        with self.locks.hold(match_id):
            session = self._session(match_id)
            config = _check_config(session, config)

            started = bool(self.store.list_innings(match_id))
            if started and replace(session, config=config).bat_first_team_id != session.bat_first_team_id:
                raise ConflictError("Cannot change the batting order once deliveries have been recorded")

            updated = self.store.save_config(match_id, config)
            self._invalidate(match_id)

        logger.info(f"Configured match {match_id}: {config}")
        return updated

    # -----------------------
    # Deliveries
    # -----------------------
    def record_delivery(self, match_id: str, **fields: Any) -> Delivery:
        """
        Validate, append and aggregate one ball.

        Not idempotent: submitting the same ball twice counts it twice.
        """
        try:
            delivery = build_delivery(match_id, **fields)
        except ValidationError as e:
            logger.warning(f"Rejected delivery for match {match_id}: {e.message}")
            raise

        with self.locks.hold(match_id):
            n = delivery.innings_number

            def fold(context: DeliveryContext) -> Tuple[InningsState, StatsUpdate]:
                # runs inside the store's write transaction, on the rows it just read
                summary = context.summary or MatchSummary(match_id=match_id)
                if summary.match_status == "completed":
                    raise ConflictError(f"Match {match_id} is completed; no more deliveries can be recorded")

                striker_row = context.batting.get((match_id, delivery.striker_id, n))
                if striker_row is not None and striker_row.is_out:
                    raise ValidationError(
                        f"Striker {delivery.striker_id} is already out in innings {n}",
                        field="striker_id",
                    )

                innings = context.innings or new_innings(match_id, n, context.session.batting_team(n))
                return (
                    apply_to_innings(innings, delivery),
                    apply_to_players(delivery, context.batting, context.bowling),
                )

            stored, new_state = self.store.commit_delivery(delivery, fold)
            self._invalidate(match_id)

        logger.info(
            f"Match {match_id} inns {n} ball {stored.over_number}.{stored.ball_number} "
            f"(seq {stored.sequence}): {new_state.runs}/{new_state.wickets} in {new_state.overs}"
        )
        return stored

    def list_deliveries(self, match_id: str, innings_number: Optional[int] = None) -> List[Delivery]:
        self._session(match_id)
        if innings_number is not None and innings_number not in (1, 2):
            raise ValidationError("innings_number must be 1 or 2", field="innings_number")
        return self.store.list_deliveries(match_id, innings_number)

    # -----------------------
    # Read projections
    # -----------------------
    def get_scorecard(self, match_id: str) -> Dict[str, Any]:
        # the key is taken before the read: a write that lands after it bumps the
        # version, so whatever this call caches is never served again
        key = self._scorecard_key(match_id)
        cached = cache.get(key)
        if cached is not None:
            return copy.deepcopy(cached)

        snap = self.store.snapshot(match_id)
        if snap is None:
            raise NotFoundError(f"Match not found: {match_id}")
        card = build_scorecard(
            snap.session,
            deliveries=snap.deliveries,
            innings=snap.innings,
            batting=snap.batting,
            bowling=snap.bowling,
            summary=snap.summary,
        )
        cache.set(key, card, ttl_seconds=self.scorecard_ttl_seconds)
        return copy.deepcopy(card)

    def get_live_state(self, match_id: str) -> Dict[str, Any]:
        """Scoreboard view of the innings in progress (the latest innings with a ball)."""
        session = self._session(match_id)
        cfg = session.config

        recorded = self.store.list_innings(match_id)
        current = recorded[-1] if recorded else self._innings(session, 1)
        n = current.innings_number

        target: Optional[int] = None
        if n == 2:
            target = self._innings(session, 1).runs

        completion = check_innings_complete(current, cfg.total_overs, target)

        bowlers = [
            {
                "player_id": r.player_id,
                "overs": r.overs,
                "runs_conceded": r.runs_conceded,
                "wickets_taken": r.wickets_taken,
                "over_limit_reached": bowler_over_limit_reached(r, cfg.max_overs_per_bowler),
            }
            for r in self.store.get_bowling(match_id, n)
        ]

        striker: Optional[str] = None
        non_striker: Optional[str] = None
        innings_log = self.store.list_deliveries(match_id, n)
        if innings_log:
            last = max(innings_log, key=lambda d: d.sequence or 0)
            striker, non_striker = next_batters(last, current.legal_balls)

        return {
            "match_id": match_id,
            "innings_number": n,
            "batting_team_id": session.batting_team(n),
            "bowling_team_id": session.bowling_team(n),
            "innings": current.to_dict(),
            "run_rate": round(current_run_rate(current), 2),
            "target": target,
            "runs_needed": max(0, target - current.runs + 1) if target is not None else None,
            "required_run_rate": (
                round(required_run_rate(target, current.runs, current.legal_balls, cfg.total_overs), 2)
                if target is not None else None
            ),
            "balls_remaining": max(0, cfg.total_overs * 6 - current.legal_balls),
            "overs_limit": balls_to_overs(cfg.total_overs * 6),
            "is_complete": completion.is_complete,
            "completion_reason": completion.reason,
            "status_message": innings_status_message(completion, current),
            "next_striker_id": striker,
            "next_non_striker_id": non_striker,
            "bowlers": bowlers,
        }

    # -----------------------
    # Result & man of the match
    # -----------------------
    def resolve_match(self, match_id: str, *, complete: bool = True) -> MatchResult:
        """
        Work out the result from the two innings and store it on the summary.
        `complete` is the caller's call that the second innings is over.
        """
        with self.locks.hold(match_id):
            session = self._session(match_id)
            summary = self._summary(match_id)
            if summary.match_status == "completed":
                raise ConflictError(f"Match {match_id} is already completed")

            result = resolve(self._innings(session, 1), self._innings(session, 2), complete=complete)
            if result.decided:
                self.store.save_summary(apply_result(summary, result))
                self._invalidate(match_id)

        if result.decided:
            logger.info(f"Match {match_id} result: winner={result.winner_team_id} margin={result.win_margin}")
        else:
            logger.info(f"Match {match_id} not decided yet")
        return result

    def suggest_man_of_match(self, match_id: str) -> Dict[str, Any]:
        self._session(match_id)
        batting = self.store.get_batting(match_id)
        bowling = self.store.get_bowling(match_id)

        suggestion = suggest(batting, bowling)
        return {
            "suggestion": suggestion.to_dict() if suggestion is not None else None,
            "candidates": {
                "batting": [c.to_dict() for c in batting_candidates(batting)],
                "bowling": [c.to_dict() for c in bowling_candidates(bowling)],
            },
        }

    def _known_players(self, match_id: str) -> Set[str]:
        players = {r.player_id for r in self.store.get_batting(match_id)}
        players.update(r.player_id for r in self.store.get_bowling(match_id))
        for d in self.store.list_deliveries(match_id):
            players.update(p for p in (d.striker_id, d.non_striker_id, d.bowler_id, d.wicket_player_id) if p)
        return players

    def confirm_man_of_match(self, match_id: str, player_id: str) -> MatchSummary:
        """
        Record the human pick (which may differ from the suggestion) and close the match.
        If no result has been stored yet and the chase has started, closing the match
        closes the second innings and the result is resolved from the stored totals.
        Before the chase starts there is nothing to resolve; winner and margin stay empty.
        """
        player_id = _require_text("player_id", player_id)

        with self.locks.hold(match_id):
            session = self._session(match_id)
            if player_id not in self._known_players(match_id):
                raise NotFoundError(f"Player {player_id} has no record in match {match_id}")

            summary = self._summary(match_id)
            chase = self.store.get_innings(match_id, 2)
            if summary.win_margin is None and not summary.is_tie and chase is not None:
                result = resolve(self._innings(session, 1), chase, complete=True)
                summary = apply_result(summary, result)

            summary = replace(summary, man_of_match_player_id=player_id, match_status="completed")
            saved = self.store.save_summary(summary)
            self._invalidate(match_id)

        logger.info(f"Match {match_id} completed; man of the match {player_id}")
        return saved

    # -----------------------
    # Maintenance
    # -----------------------
    def rebuild_match(self, match_id: str) -> Dict[str, Any]:
        """Recompute innings and player rows from the delivery log alone."""
        with self.locks.hold(match_id):
            session = self._session(match_id)
            rebuilt: Dict[str, Any] = {}

            def build(log: List[Delivery]):
                rebuilt["innings"] = build_innings(log, session)
                rebuilt["batting"], rebuilt["bowling"] = rebuild_player_stats(log)
                return rebuilt["innings"].values(), rebuilt["batting"].values(), rebuilt["bowling"].values()

            deliveries = self.store.rebuild_derived(match_id, build)
            self._invalidate(match_id)

        innings = rebuilt["innings"]
        logger.info(f"Rebuilt match {match_id} from {len(deliveries)} deliveries")
        return {
            "match_id": match_id,
            "deliveries": len(deliveries),
            "innings": [s.to_dict() for s in sorted(innings.values(), key=lambda s: s.innings_number)],
            "batting_rows": len(rebuilt["batting"]),
            "bowling_rows": len(rebuilt["bowling"]),
        }


def create_store() -> MatchStore:
    if STORE_BACKEND == "sqlite":
        # imported lazily so the memory backend never touches sqlite
        from cricket_api.sqlite_store import SQLiteMatchStore

        return SQLiteMatchStore(DATABASE_PATH)
    return InMemoryMatchStore()
