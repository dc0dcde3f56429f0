# cricket_api/store.py
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from cricket_api.deliveries import sort_deliveries
from cricket_api.errors import ConflictError, NotFoundError
from cricket_api.models import (
    BattingRecord,
    BowlingRecord,
    Delivery,
    InningsState,
    MatchConfig,
    MatchSession,
    MatchSummary,
)
from cricket_api.player_stats import RowKey, StatsUpdate


@dataclass(frozen=True)
class DeliveryContext:
    """Rows a delivery is folded into, read inside the commit."""
    session: MatchSession
    innings: Optional[InningsState]
    batting: Dict[RowKey, BattingRecord] = field(default_factory=dict)
    bowling: Dict[RowKey, BowlingRecord] = field(default_factory=dict)
    summary: Optional[MatchSummary] = None


@dataclass(frozen=True)
class MatchSnapshot:
    """Everything recorded for one match, read as one consistent view."""
    session: MatchSession
    deliveries: List[Delivery]
    innings: List[InningsState]
    batting: List[BattingRecord]
    bowling: List[BowlingRecord]
    summary: Optional[MatchSummary]


# fold(context) -> (new innings totals, changed player rows); may raise to abort
DeliveryFold = Callable[[DeliveryContext], Tuple[InningsState, StatsUpdate]]

# build(log) -> (innings, batting, bowling) recomputed from the log alone
DerivedBuild = Callable[
    [List[Delivery]],
    Tuple[Iterable[InningsState], Iterable[BattingRecord], Iterable[BowlingRecord]],
]


class MatchStore(ABC):
    """
    Persistence contract the scoring service relies on.

    - deliveries are append-only; each gets the next per-match sequence number
    - batting/bowling rows are unique per (match_id, player_id, innings_number)
    - commit_delivery reads the rows it folds into and writes the result in one
      unit, so concurrent writers (threads or processes) never lose an update
    """

    # -------- matches --------
    @abstractmethod
    def create_match(self, session: MatchSession) -> MatchSession: ...

    @abstractmethod
    def get_match(self, match_id: str) -> Optional[MatchSession]: ...

    @abstractmethod
    def save_config(self, match_id: str, config: MatchConfig) -> MatchSession: ...

    # -------- delivery log --------
    @abstractmethod
    def list_deliveries(self, match_id: str, innings_number: Optional[int] = None) -> List[Delivery]: ...

    @abstractmethod
    def commit_delivery(self, delivery: Delivery, fold: DeliveryFold) -> Tuple[Delivery, InningsState]: ...

    # -------- derived rows --------
    @abstractmethod
    def get_innings(self, match_id: str, innings_number: int) -> Optional[InningsState]: ...

    @abstractmethod
    def list_innings(self, match_id: str) -> List[InningsState]: ...

    @abstractmethod
    def get_batting(self, match_id: str, innings_number: Optional[int] = None) -> List[BattingRecord]: ...

    @abstractmethod
    def get_bowling(self, match_id: str, innings_number: Optional[int] = None) -> List[BowlingRecord]: ...

    @abstractmethod
    def rebuild_derived(self, match_id: str, build: DerivedBuild) -> List[Delivery]: ...

    @abstractmethod
    def snapshot(self, match_id: str) -> Optional[MatchSnapshot]: ...

    # -------- summary --------
    @abstractmethod
    def get_summary(self, match_id: str) -> Optional[MatchSummary]: ...

    @abstractmethod
    def save_summary(self, summary: MatchSummary) -> MatchSummary: ...

    # -------- helpers shared by backends --------
    def batting_rows(self, match_id: str, innings_number: int) -> Dict[RowKey, BattingRecord]:
        return {r.key: r for r in self.get_batting(match_id, innings_number)}

    def bowling_rows(self, match_id: str, innings_number: int) -> Dict[RowKey, BowlingRecord]:
        return {r.key: r for r in self.get_bowling(match_id, innings_number)}


class InMemoryMatchStore(MatchStore):
    """
    Dict-backed store for a single process (dev server, tests).
    A store-wide lock keeps each call consistent; ordering between calls for one
    match is the service's job.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._matches: Dict[str, MatchSession] = {}
        self._deliveries: Dict[str, List[Delivery]] = {}
        self._innings: Dict[Tuple[str, int], InningsState] = {}
        self._batting: Dict[RowKey, BattingRecord] = {}
        self._bowling: Dict[RowKey, BowlingRecord] = {}
        self._summaries: Dict[str, MatchSummary] = {}

    # -------- matches --------
    def create_match(self, session: MatchSession) -> MatchSession:
        with self._lock:
            if session.match_id in self._matches:
                raise ConflictError(f"Match already exists: {session.match_id}")
            self._matches[session.match_id] = session
            self._deliveries[session.match_id] = []
            return session

    def get_match(self, match_id: str) -> Optional[MatchSession]:
        with self._lock:
            return self._matches.get(match_id)

    def save_config(self, match_id: str, config: MatchConfig) -> MatchSession:
        with self._lock:
            session = self._matches.get(match_id)
            if session is None:
                raise NotFoundError(f"Match not found: {match_id}")
            updated = replace(session, config=config)
            self._matches[match_id] = updated
            return updated

    # -------- delivery log --------
    def list_deliveries(self, match_id: str, innings_number: Optional[int] = None) -> List[Delivery]:
        with self._lock:
            log = list(self._deliveries.get(match_id, []))
        if innings_number is not None:
            log = [d for d in log if d.innings_number == innings_number]
        return sort_deliveries(log)

    def commit_delivery(self, delivery: Delivery, fold: DeliveryFold) -> Tuple[Delivery, InningsState]:
        with self._lock:
            session = self._matches.get(delivery.match_id)
            if session is None:
                raise NotFoundError(f"Match not found: {delivery.match_id}")

            n = delivery.innings_number
            context = DeliveryContext(
                session=session,
                innings=self._innings.get((delivery.match_id, n)),
                batting=self.batting_rows(delivery.match_id, n),
                bowling=self.bowling_rows(delivery.match_id, n),
                summary=self._summaries.get(delivery.match_id),
            )
            innings, update = fold(context)

            log = self._deliveries[delivery.match_id]
            stored = replace(delivery, sequence=len(log) + 1)

            # nothing below can fail, so the commit is all-or-nothing
            log.append(stored)
            self._innings[(innings.match_id, innings.innings_number)] = innings
            for row in update.batting:
                self._batting[row.key] = row
            for row in update.bowling:
                self._bowling[row.key] = row
            return stored, innings

    # -------- derived rows --------
    def get_innings(self, match_id: str, innings_number: int) -> Optional[InningsState]:
        with self._lock:
            return self._innings.get((match_id, innings_number))

    def list_innings(self, match_id: str) -> List[InningsState]:
        with self._lock:
            rows = [s for (m, _), s in self._innings.items() if m == match_id]
        return sorted(rows, key=lambda s: s.innings_number)

    def get_batting(self, match_id: str, innings_number: Optional[int] = None) -> List[BattingRecord]:
        with self._lock:
            rows = [
                r for (m, _, inn), r in self._batting.items()
                if m == match_id and (innings_number is None or inn == innings_number)
            ]
        return sorted(rows, key=lambda r: (r.innings_number, r.player_id))

    def get_bowling(self, match_id: str, innings_number: Optional[int] = None) -> List[BowlingRecord]:
        with self._lock:
            rows = [
                r for (m, _, inn), r in self._bowling.items()
                if m == match_id and (innings_number is None or inn == innings_number)
            ]
        return sorted(rows, key=lambda r: (r.innings_number, r.player_id))

    def rebuild_derived(self, match_id: str, build: DerivedBuild) -> List[Delivery]:
        with self._lock:
            if match_id not in self._matches:
                raise NotFoundError(f"Match not found: {match_id}")
            log = self.list_deliveries(match_id)
            innings, batting, bowling = (list(rows) for rows in build(log))

            self._innings = {k: v for k, v in self._innings.items() if k[0] != match_id}
            self._batting = {k: v for k, v in self._batting.items() if k[0] != match_id}
            self._bowling = {k: v for k, v in self._bowling.items() if k[0] != match_id}
            for s in innings:
                self._innings[(s.match_id, s.innings_number)] = s
            for r in batting:
                self._batting[r.key] = r
            for r in bowling:
                self._bowling[r.key] = r
            return log

    def snapshot(self, match_id: str) -> Optional[MatchSnapshot]:
        with self._lock:
            session = self._matches.get(match_id)
            if session is None:
                return None
            return MatchSnapshot(
                session=session,
                deliveries=self.list_deliveries(match_id),
                innings=self.list_innings(match_id),
                batting=self.get_batting(match_id),
                bowling=self.get_bowling(match_id),
                summary=self._summaries.get(match_id),
            )

    # -------- summary --------
    def get_summary(self, match_id: str) -> Optional[MatchSummary]:
        with self._lock:
            return self._summaries.get(match_id)

    def save_summary(self, summary: MatchSummary) -> MatchSummary:
        with self._lock:
            if summary.match_id not in self._matches:
                raise NotFoundError(f"Match not found: {summary.match_id}")
            self._summaries[summary.match_id] = summary
            return summary
