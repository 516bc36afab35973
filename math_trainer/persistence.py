"""Session history on SQLite.

History is a nice-to-have: any storage failure is logged and degrades to an
empty result or a skipped write, never an exception for the caller.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from .results import SessionSummary
from .settings import ModeKind, default_history_path

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
HISTORY_LIMIT = 100


def open_db(path: Path | str) -> sqlite3.Connection:
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        _migrate(conn)
    except sqlite3.Error:
        conn.close()
        raise
    return conn


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS session_summary (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                mode TEXT NOT NULL,
                score INTEGER NOT NULL,
                total_questions INTEGER NOT NULL,
                avg_time_s REAL NOT NULL,
                timestamp REAL NOT NULL
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_session_summary_mode ON session_summary(mode, id);")
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


class HistoryStore:
    """Bounded log of session summaries, oldest first.

    ``append`` keeps only the newest ``limit`` rows across all modes.
    """

    def __init__(self, path: Path | str, *, limit: int = HISTORY_LIMIT) -> None:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self._path = path
        self._limit = int(limit)
        # Keep one connection for in-memory databases; each connect() would
        # otherwise see a fresh, empty database.
        self._memory_conn: sqlite3.Connection | None = None
        if str(path) == ":memory:":
            self._memory_conn = open_db(path)

    @classmethod
    def default_path(cls) -> Path:
        return default_history_path()

    @property
    def path(self) -> Path | str:
        return self._path

    def append(self, summary: SessionSummary) -> None:
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO session_summary(mode, score, total_questions, avg_time_s, timestamp)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (
                            str(summary.mode),
                            int(summary.score),
                            int(summary.total_questions),
                            float(summary.avg_time_s),
                            float(summary.timestamp),
                        ),
                    )
                    conn.execute(
                        """
                        DELETE FROM session_summary
                        WHERE id NOT IN (
                            SELECT id FROM session_summary ORDER BY id DESC LIMIT ?
                        )
                        """,
                        (self._limit,),
                    )
            finally:
                self._release(conn)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("could not save session summary to %s: %s", self._path, exc)

    def query(self, mode: ModeKind | str) -> list[SessionSummary]:
        mode_value = mode.value if isinstance(mode, ModeKind) else str(mode)
        return self._select("WHERE mode = ?", (mode_value,))

    def clear(self) -> None:
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute("DELETE FROM session_summary")
            finally:
                self._release(conn)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("could not clear history at %s: %s", self._path, exc)

    def close(self) -> None:
        if self._memory_conn is not None:
            self._memory_conn.close()
            self._memory_conn = None

    def _select(self, where: str, params: tuple[str, ...]) -> list[SessionSummary]:
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    f"""
                    SELECT mode, score, total_questions, avg_time_s, timestamp
                    FROM session_summary {where}
                    ORDER BY id ASC
                    """,
                    params,
                ).fetchall()
            finally:
                self._release(conn)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("could not read history from %s: %s", self._path, exc)
            return []

        return [
            SessionSummary(
                mode=str(mode),
                score=int(score),
                total_questions=int(total),
                avg_time_s=float(avg),
                timestamp=float(ts),
            )
            for mode, score, total, avg, ts in rows
        ]

    def _connect(self) -> sqlite3.Connection:
        if self._memory_conn is not None:
            return self._memory_conn
        return open_db(self._path)

    def _release(self, conn: sqlite3.Connection) -> None:
        if conn is not self._memory_conn:
            conn.close()
