"""
SQLite-backed match store.

Handles schema setup and provides connection utilities. Every write runs in
one explicit transaction, so a delivery and the rows it changes land together
or not at all.
"""

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Generator, List, Optional, Tuple, Union

from cricket_api.config import DATABASE_PATH, SQLITE_TIMEOUT_SECONDS
from cricket_api.errors import ConflictError, NotFoundError, PersistenceError
from cricket_api.models import (
    BattingRecord,
    BowlingRecord,
    Delivery,
    InningsState,
    MatchConfig,
    MatchSession,
    MatchSummary,
)
from cricket_api.store import DeliveryContext, DeliveryFold, DerivedBuild, MatchSnapshot, MatchStore

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS matches (
    match_id TEXT PRIMARY KEY,
    team1_id TEXT NOT NULL,
    team2_id TEXT NOT NULL,
    total_overs INTEGER NOT NULL,
    max_overs_per_bowler INTEGER NOT NULL,
    toss_winner_team_id TEXT,
    toss_decision TEXT,
    elected_to_bat_first_team_id TEXT
);

CREATE TABLE IF NOT EXISTS deliveries (
    match_id TEXT NOT NULL REFERENCES matches(match_id),
    sequence INTEGER NOT NULL,
    innings_number INTEGER NOT NULL,
    over_number INTEGER NOT NULL,
    ball_number INTEGER NOT NULL,
    bowler_id TEXT NOT NULL,
    striker_id TEXT NOT NULL,
    non_striker_id TEXT,
    runs_scored INTEGER NOT NULL DEFAULT 0,
    extra_type TEXT NOT NULL DEFAULT 'none',
    extra_runs INTEGER NOT NULL DEFAULT 0,
    is_wicket INTEGER NOT NULL DEFAULT 0,
    wicket_type TEXT,
    wicket_player_id TEXT,
    schema_version INTEGER NOT NULL,
    PRIMARY KEY (match_id, sequence)
);

CREATE INDEX IF NOT EXISTS idx_deliveries_order
    ON deliveries (match_id, innings_number, over_number, ball_number, sequence);

CREATE TABLE IF NOT EXISTS innings (
    match_id TEXT NOT NULL REFERENCES matches(match_id),
    innings_number INTEGER NOT NULL,
    batting_team_id TEXT,
    runs INTEGER NOT NULL DEFAULT 0,
    wickets INTEGER NOT NULL DEFAULT 0,
    legal_balls INTEGER NOT NULL DEFAULT 0,
    deliveries INTEGER NOT NULL DEFAULT 0,
    wides INTEGER NOT NULL DEFAULT 0,
    noballs INTEGER NOT NULL DEFAULT 0,
    byes INTEGER NOT NULL DEFAULT 0,
    legbyes INTEGER NOT NULL DEFAULT 0,
    schema_version INTEGER NOT NULL,
    PRIMARY KEY (match_id, innings_number)
);

CREATE TABLE IF NOT EXISTS player_batting (
    match_id TEXT NOT NULL REFERENCES matches(match_id),
    player_id TEXT NOT NULL,
    innings_number INTEGER NOT NULL,
    runs_scored INTEGER NOT NULL DEFAULT 0,
    balls_faced INTEGER NOT NULL DEFAULT 0,
    fours INTEGER NOT NULL DEFAULT 0,
    sixes INTEGER NOT NULL DEFAULT 0,
    strike_rate REAL NOT NULL DEFAULT 0,
    is_out INTEGER NOT NULL DEFAULT 0,
    wicket_type TEXT,
    is_batting INTEGER NOT NULL DEFAULT 1,
    schema_version INTEGER NOT NULL,
    PRIMARY KEY (match_id, player_id, innings_number)
);

CREATE TABLE IF NOT EXISTS player_bowling (
    match_id TEXT NOT NULL REFERENCES matches(match_id),
    player_id TEXT NOT NULL,
    innings_number INTEGER NOT NULL,
    legal_balls INTEGER NOT NULL DEFAULT 0,
    runs_conceded INTEGER NOT NULL DEFAULT 0,
    wickets_taken INTEGER NOT NULL DEFAULT 0,
    wides INTEGER NOT NULL DEFAULT 0,
    noballs INTEGER NOT NULL DEFAULT 0,
    economy_rate REAL NOT NULL DEFAULT 0,
    is_bowling INTEGER NOT NULL DEFAULT 1,
    schema_version INTEGER NOT NULL,
    PRIMARY KEY (match_id, player_id, innings_number)
);

CREATE TABLE IF NOT EXISTS match_summary (
    match_id TEXT PRIMARY KEY REFERENCES matches(match_id),
    winner_team_id TEXT,
    win_margin TEXT,
    margin_kind TEXT,
    margin_value INTEGER,
    is_tie INTEGER NOT NULL DEFAULT 0,
    man_of_match_player_id TEXT,
    match_status TEXT NOT NULL DEFAULT 'in_progress',
    schema_version INTEGER NOT NULL
);
"""

_DELIVERY_COLUMNS = (
    "match_id", "sequence", "innings_number", "over_number", "ball_number",
    "bowler_id", "striker_id", "non_striker_id", "runs_scored", "extra_type",
    "extra_runs", "is_wicket", "wicket_type", "wicket_player_id", "schema_version",
)
_INNINGS_COLUMNS = (
    "match_id", "innings_number", "batting_team_id", "runs", "wickets", "legal_balls",
    "deliveries", "wides", "noballs", "byes", "legbyes", "schema_version",
)
_BATTING_COLUMNS = (
    "match_id", "player_id", "innings_number", "runs_scored", "balls_faced", "fours",
    "sixes", "strike_rate", "is_out", "wicket_type", "is_batting", "schema_version",
)
_BOWLING_COLUMNS = (
    "match_id", "player_id", "innings_number", "legal_balls", "runs_conceded",
    "wickets_taken", "wides", "noballs", "economy_rate", "is_bowling", "schema_version",
)
_SUMMARY_COLUMNS = (
    "match_id", "winner_team_id", "win_margin", "margin_kind", "margin_value",
    "is_tie", "man_of_match_player_id", "match_status", "schema_version",
)

_BOOL_COLUMNS = {"is_wicket", "is_out", "is_batting", "is_bowling", "is_tie"}


def _upsert_sql(table: str, columns: tuple, key: tuple) -> str:
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c not in key)
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
        f"ON CONFLICT ({', '.join(key)}) DO UPDATE SET {updates}"
    )


_UPSERT_INNINGS = _upsert_sql("innings", _INNINGS_COLUMNS, ("match_id", "innings_number"))
_UPSERT_BATTING = _upsert_sql("player_batting", _BATTING_COLUMNS, ("match_id", "player_id", "innings_number"))
_UPSERT_BOWLING = _upsert_sql("player_bowling", _BOWLING_COLUMNS, ("match_id", "player_id", "innings_number"))
_UPSERT_SUMMARY = _upsert_sql("match_summary", _SUMMARY_COLUMNS, ("match_id",))


def _values(obj, columns: tuple) -> tuple:
    return tuple(getattr(obj, c) for c in columns)


def _row_kwargs(row: sqlite3.Row, columns: tuple) -> dict:
    out = {}
    for c in columns:
        v = row[c]
        out[c] = bool(v) if c in _BOOL_COLUMNS else v
    return out


def get_connection(db_path: Optional[Union[str, Path]] = None) -> sqlite3.Connection:
    """
    Get a database connection with the settings the store expects.

    Args:
        db_path: Optional path to database file. Uses DATABASE_PATH if not provided.

    Returns:
        SQLite connection in autocommit mode; transactions are opened explicitly.
    """
    if db_path is None:
        db_path = DATABASE_PATH

    conn = sqlite3.connect(str(db_path), timeout=SQLITE_TIMEOUT_SECONDS, isolation_level=None)

    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")

    # Return rows as dictionaries
    conn.row_factory = sqlite3.Row

    return conn


class SQLiteMatchStore(MatchStore):
    def __init__(self, db_path: Optional[Union[str, Path]] = None) -> None:
        self.db_path = Path(db_path or DATABASE_PATH)
        self.init_database()

    @contextmanager
    def _connect(self, write: bool = False, snapshot: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        write=True wraps the block in BEGIN IMMEDIATE ... COMMIT, taking the
        database write lock before the first read; any error rolls back.
        snapshot=True wraps the block in a read transaction so every query
        sees the same committed state.
        sqlite3 errors surface as PersistenceError.
        """
        try:
            conn = get_connection(self.db_path)
        except sqlite3.Error as e:
            logger.error(f"Cannot open database {self.db_path}: {e}")
            raise PersistenceError(f"Database unavailable: {e}") from e

        in_tx = write or snapshot
        try:
            if write:
                conn.execute("BEGIN IMMEDIATE")
            elif snapshot:
                conn.execute("BEGIN")
            yield conn
            if in_tx:
                conn.execute("COMMIT")
        except sqlite3.Error as e:
            if in_tx and conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error(f"Database error: {e}")
            raise PersistenceError(f"Database error: {e}") from e
        except Exception:
            if in_tx and conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def init_database(self) -> None:
        """Create tables if missing. Safe to call on every start."""
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
        logger.info(f"Database ready at {self.db_path}")

    # -------- matches --------
    @staticmethod
    def _session_from_row(row: sqlite3.Row) -> MatchSession:
        return MatchSession(
            match_id=row["match_id"],
            team1_id=row["team1_id"],
            team2_id=row["team2_id"],
            config=MatchConfig(
                total_overs=row["total_overs"],
                max_overs_per_bowler=row["max_overs_per_bowler"],
                toss_winner_team_id=row["toss_winner_team_id"],
                toss_decision=row["toss_decision"],
                elected_to_bat_first_team_id=row["elected_to_bat_first_team_id"],
            ),
        )

    def create_match(self, session: MatchSession) -> MatchSession:
        cfg = session.config
        with self._connect(write=True) as conn:
            exists = conn.execute("SELECT 1 FROM matches WHERE match_id = ?", (session.match_id,)).fetchone()
            if exists:
                raise ConflictError(f"Match already exists: {session.match_id}")
            conn.execute(
                """INSERT INTO matches
                   (match_id, team1_id, team2_id, total_overs, max_overs_per_bowler,
                    toss_winner_team_id, toss_decision, elected_to_bat_first_team_id)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    session.match_id, session.team1_id, session.team2_id,
                    cfg.total_overs, cfg.max_overs_per_bowler,
                    cfg.toss_winner_team_id, cfg.toss_decision, cfg.elected_to_bat_first_team_id,
                ),
            )
        return session

    def get_match(self, match_id: str) -> Optional[MatchSession]:
        with self._connect() as conn:
            return self._fetch_session(conn, match_id)

    def save_config(self, match_id: str, config: MatchConfig) -> MatchSession:
        with self._connect(write=True) as conn:
            cur = conn.execute(
                """UPDATE matches SET
                     total_overs = ?, max_overs_per_bowler = ?, toss_winner_team_id = ?,
                     toss_decision = ?, elected_to_bat_first_team_id = ?
                   WHERE match_id = ?""",
                (
                    config.total_overs, config.max_overs_per_bowler, config.toss_winner_team_id,
                    config.toss_decision, config.elected_to_bat_first_team_id, match_id,
                ),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Match not found: {match_id}")
            row = conn.execute("SELECT * FROM matches WHERE match_id = ?", (match_id,)).fetchone()
        return self._session_from_row(row)

    # -------- row readers (run on the caller's connection) --------
    @staticmethod
    def _fetch_deliveries(
        conn: sqlite3.Connection, match_id: str, innings_number: Optional[int] = None
    ) -> List[Delivery]:
        sql = "SELECT * FROM deliveries WHERE match_id = ?"
        params: list = [match_id]
        if innings_number is not None:
            sql += " AND innings_number = ?"
            params.append(innings_number)
        sql += " ORDER BY innings_number, over_number, ball_number, sequence"
        rows = conn.execute(sql, params).fetchall()
        return [Delivery(**_row_kwargs(r, _DELIVERY_COLUMNS)) for r in rows]

    @staticmethod
    def _fetch_innings(
        conn: sqlite3.Connection, match_id: str, innings_number: Optional[int] = None
    ) -> List[InningsState]:
        sql = "SELECT * FROM innings WHERE match_id = ?"
        params: list = [match_id]
        if innings_number is not None:
            sql += " AND innings_number = ?"
            params.append(innings_number)
        sql += " ORDER BY innings_number"
        rows = conn.execute(sql, params).fetchall()
        return [InningsState(**_row_kwargs(r, _INNINGS_COLUMNS)) for r in rows]

    @staticmethod
    def _fetch_players(
        conn: sqlite3.Connection, table: str, match_id: str, innings_number: Optional[int]
    ) -> List[sqlite3.Row]:
        sql = f"SELECT * FROM {table} WHERE match_id = ?"
        params: list = [match_id]
        if innings_number is not None:
            sql += " AND innings_number = ?"
            params.append(innings_number)
        sql += " ORDER BY innings_number, player_id"
        return conn.execute(sql, params).fetchall()

    def _fetch_batting(
        self, conn: sqlite3.Connection, match_id: str, innings_number: Optional[int] = None
    ) -> List[BattingRecord]:
        rows = self._fetch_players(conn, "player_batting", match_id, innings_number)
        return [BattingRecord(**_row_kwargs(r, _BATTING_COLUMNS)) for r in rows]

    def _fetch_bowling(
        self, conn: sqlite3.Connection, match_id: str, innings_number: Optional[int] = None
    ) -> List[BowlingRecord]:
        rows = self._fetch_players(conn, "player_bowling", match_id, innings_number)
        return [BowlingRecord(**_row_kwargs(r, _BOWLING_COLUMNS)) for r in rows]

    @staticmethod
    def _fetch_session(conn: sqlite3.Connection, match_id: str) -> Optional[MatchSession]:
        row = conn.execute("SELECT * FROM matches WHERE match_id = ?", (match_id,)).fetchone()
        return SQLiteMatchStore._session_from_row(row) if row else None

    @staticmethod
    def _fetch_summary(conn: sqlite3.Connection, match_id: str) -> Optional[MatchSummary]:
        row = conn.execute("SELECT * FROM match_summary WHERE match_id = ?", (match_id,)).fetchone()
        return MatchSummary(**_row_kwargs(row, _SUMMARY_COLUMNS)) if row else None

    # -------- delivery log --------
    def list_deliveries(self, match_id: str, innings_number: Optional[int] = None) -> List[Delivery]:
        with self._connect() as conn:
            return self._fetch_deliveries(conn, match_id, innings_number)

    def commit_delivery(self, delivery: Delivery, fold: DeliveryFold) -> Tuple[Delivery, InningsState]:
        """
        Read the rows the ball lands on, fold it in and write everything back
        inside one BEGIN IMMEDIATE transaction. A second writer on the same file
        waits for the lock and then reads the committed totals.
        """
        n = delivery.innings_number
        with self._connect(write=True) as conn:
            session = self._fetch_session(conn, delivery.match_id)
            if session is None:
                raise NotFoundError(f"Match not found: {delivery.match_id}")

            current = self._fetch_innings(conn, delivery.match_id, n)
            context = DeliveryContext(
                session=session,
                innings=current[0] if current else None,
                batting={r.key: r for r in self._fetch_batting(conn, delivery.match_id, n)},
                bowling={r.key: r for r in self._fetch_bowling(conn, delivery.match_id, n)},
                summary=self._fetch_summary(conn, delivery.match_id),
            )
            innings, update = fold(context)

            seq = conn.execute(
                "SELECT COALESCE(MAX(sequence), 0) + 1 FROM deliveries WHERE match_id = ?",
                (delivery.match_id,),
            ).fetchone()[0]
            stored = replace(delivery, sequence=int(seq))

            conn.execute(
                f"INSERT INTO deliveries ({', '.join(_DELIVERY_COLUMNS)}) "
                f"VALUES ({', '.join('?' for _ in _DELIVERY_COLUMNS)})",
                _values(stored, _DELIVERY_COLUMNS),
            )
            conn.execute(_UPSERT_INNINGS, _values(innings, _INNINGS_COLUMNS))
            for row in update.batting:
                conn.execute(_UPSERT_BATTING, _values(row, _BATTING_COLUMNS))
            for row in update.bowling:
                conn.execute(_UPSERT_BOWLING, _values(row, _BOWLING_COLUMNS))
        return stored, innings

    # -------- derived rows --------
    def get_innings(self, match_id: str, innings_number: int) -> Optional[InningsState]:
        with self._connect() as conn:
            rows = self._fetch_innings(conn, match_id, innings_number)
        return rows[0] if rows else None

    def list_innings(self, match_id: str) -> List[InningsState]:
        with self._connect() as conn:
            return self._fetch_innings(conn, match_id)

    def get_batting(self, match_id: str, innings_number: Optional[int] = None) -> List[BattingRecord]:
        with self._connect() as conn:
            return self._fetch_batting(conn, match_id, innings_number)

    def get_bowling(self, match_id: str, innings_number: Optional[int] = None) -> List[BowlingRecord]:
        with self._connect() as conn:
            return self._fetch_bowling(conn, match_id, innings_number)

    def rebuild_derived(self, match_id: str, build: DerivedBuild) -> List[Delivery]:
        with self._connect(write=True) as conn:
            if self._fetch_session(conn, match_id) is None:
                raise NotFoundError(f"Match not found: {match_id}")
            log = self._fetch_deliveries(conn, match_id)
            innings, batting, bowling = build(log)

            for table in ("innings", "player_batting", "player_bowling"):
                conn.execute(f"DELETE FROM {table} WHERE match_id = ?", (match_id,))
            for s in innings:
                conn.execute(_UPSERT_INNINGS, _values(s, _INNINGS_COLUMNS))
            for r in batting:
                conn.execute(_UPSERT_BATTING, _values(r, _BATTING_COLUMNS))
            for r in bowling:
                conn.execute(_UPSERT_BOWLING, _values(r, _BOWLING_COLUMNS))
        return log

    def snapshot(self, match_id: str) -> Optional[MatchSnapshot]:
        with self._connect(snapshot=True) as conn:
            session = self._fetch_session(conn, match_id)
            if session is None:
                return None
            return MatchSnapshot(
                session=session,
                deliveries=self._fetch_deliveries(conn, match_id),
                innings=self._fetch_innings(conn, match_id),
                batting=self._fetch_batting(conn, match_id),
                bowling=self._fetch_bowling(conn, match_id),
                summary=self._fetch_summary(conn, match_id),
            )

    # -------- summary --------
    def get_summary(self, match_id: str) -> Optional[MatchSummary]:
        with self._connect() as conn:
            return self._fetch_summary(conn, match_id)

    def save_summary(self, summary: MatchSummary) -> MatchSummary:
        with self._connect(write=True) as conn:
            exists = conn.execute("SELECT 1 FROM matches WHERE match_id = ?", (summary.match_id,)).fetchone()
            if not exists:
                raise NotFoundError(f"Match not found: {summary.match_id}")
            conn.execute(_UPSERT_SUMMARY, _values(summary, _SUMMARY_COLUMNS))
        return summary
