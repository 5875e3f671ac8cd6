"""SQLite-backed cache of aggregated pull requests and their reviews."""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from reviewpulse.core.errors import CacheUnavailable
from reviewpulse.models.domain import (
    AggregationResult,
    GitHubUser,
    PullRequest,
    PullRequestWithReviews,
    Review,
)
from reviewpulse.services.reconciler import with_lifecycle

_logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS pull_requests (
        id          INTEGER PRIMARY KEY,
        number      INTEGER NOT NULL,
        title       TEXT    NOT NULL,
        state       TEXT    NOT NULL,
        created_at  TEXT    NOT NULL,
        updated_at  TEXT    NOT NULL,
        closed_at   TEXT,
        merged_at   TEXT,
        user_login  TEXT    NOT NULL,
        user_id     INTEGER NOT NULL,
        html_url    TEXT    NOT NULL,
        repository  TEXT    NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reviews (
        id           INTEGER PRIMARY KEY,
        pr_id        INTEGER NOT NULL REFERENCES pull_requests (id),
        user_login   TEXT    NOT NULL,
        user_id      INTEGER NOT NULL,
        body         TEXT,
        state        TEXT    NOT NULL,
        submitted_at TEXT    NOT NULL,
        repository   TEXT    NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_pr_user ON pull_requests (user_login, repository)",
    "CREATE INDEX IF NOT EXISTS idx_review_user ON reviews (user_login, repository)",
    "CREATE INDEX IF NOT EXISTS idx_review_pr ON reviews (pr_id)",
)

UPSERT_PULL_REQUEST = """
    INSERT INTO pull_requests
        (id, number, title, state, created_at, updated_at, closed_at, merged_at,
         user_login, user_id, html_url, repository)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT (id) DO UPDATE SET
        number     = excluded.number,
        title      = excluded.title,
        state      = excluded.state,
        created_at = excluded.created_at,
        updated_at = excluded.updated_at,
        closed_at  = excluded.closed_at,
        merged_at  = excluded.merged_at,
        user_login = excluded.user_login,
        user_id    = excluded.user_id,
        html_url   = excluded.html_url,
        repository = excluded.repository
"""

UPSERT_REVIEW = """
    INSERT INTO reviews
        (id, pr_id, user_login, user_id, body, state, submitted_at, repository)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT (id) DO UPDATE SET
        pr_id        = excluded.pr_id,
        user_login   = excluded.user_login,
        user_id      = excluded.user_id,
        body         = excluded.body,
        state        = excluded.state,
        submitted_at = excluded.submitted_at,
        repository   = excluded.repository
"""


def _to_text(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_text(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SqliteCacheStore:
    """Relational cache over a single SQLite connection guarded by a lock."""

    def __init__(self, path: str = "github_data.db") -> None:
        self._path = path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def init(self) -> None:
        """Open the connection and create the schema. Safe to call repeatedly."""

        with self._lock:
            try:
                if self._conn is None:
                    if self._path != MEMORY_PATH:
                        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
                    conn = sqlite3.connect(self._path, check_same_thread=False)
                    conn.row_factory = sqlite3.Row
                    conn.execute("PRAGMA foreign_keys = ON")
                    conn.execute("PRAGMA busy_timeout = 5000")
                    self._conn = conn
                with self._conn:
                    for statement in SCHEMA:
                        self._conn.execute(statement)
            except sqlite3.Error as exc:
                raise CacheUnavailable(f"Could not initialise cache at {self._path}: {exc}") from exc
        _logger.info("Cache store initialised at %s", self._path)

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def upsert(self, pull_request: PullRequestWithReviews, repository: str) -> None:
        pr = pull_request
        with self._lock:
            conn = self._connection()
            try:
                with conn:
                    conn.execute(
                        UPSERT_PULL_REQUEST,
                        (
                            pr.id,
                            pr.number,
                            pr.title,
                            pr.state.value,
                            _to_text(pr.created_at),
                            _to_text(pr.updated_at),
                            _to_text(pr.closed_at),
                            _to_text(pr.merged_at),
                            pr.user.login,
                            pr.user.id,
                            pr.html_url,
                            repository,
                        ),
                    )
                    conn.executemany(
                        UPSERT_REVIEW,
                        [
                            (
                                review.id,
                                pr.id,
                                review.user.login,
                                review.user.id,
                                review.body,
                                review.state.value,
                                _to_text(review.submitted_at),
                                repository,
                            )
                            for review in pr.reviews
                        ],
                    )
            except sqlite3.Error as exc:
                raise CacheUnavailable(f"Could not store pull request {pr.id}: {exc}") from exc
        _logger.debug("Upserted pull request %s#%d with %d reviews", repository, pr.number, len(pr.reviews))

    def has_cached_data(self, user: str, repository: str) -> bool:
        with self._lock:
            conn = self._connection()
            try:
                created = conn.execute(
                    "SELECT COUNT(*) AS count FROM pull_requests WHERE user_login = ? AND repository = ?",
                    (user, repository),
                ).fetchone()
                reviewed = conn.execute(
                    "SELECT COUNT(DISTINCT pr_id) AS count FROM reviews WHERE user_login = ? AND repository = ?",
                    (user, repository),
                ).fetchone()
            except sqlite3.Error as exc:
                raise CacheUnavailable(f"Could not query cache: {exc}") from exc
        return created["count"] > 0 or reviewed["count"] > 0

    def get_cached_data(self, user: str, repository: str) -> AggregationResult:
        with self._lock:
            conn = self._connection()
            try:
                created_rows = conn.execute(
                    """
                    SELECT * FROM pull_requests
                    WHERE user_login = ? AND repository = ?
                    ORDER BY created_at DESC, id DESC
                    """,
                    (user, repository),
                ).fetchall()
                reviewed_rows = conn.execute(
                    """
                    SELECT * FROM pull_requests
                    WHERE repository = ? AND user_login != ?
                      AND id IN (SELECT pr_id FROM reviews WHERE user_login = ? AND repository = ?)
                    ORDER BY created_at DESC, id DESC
                    """,
                    (repository, user, user, repository),
                ).fetchall()
                created = [
                    with_lifecycle(self._pull_request(row), self._reviews(conn, row["id"], repository))
                    for row in created_rows
                ]
                reviewed = [
                    with_lifecycle(
                        self._pull_request(row),
                        self._reviews(conn, row["id"], repository),
                        viewpoint_user=user,
                    )
                    for row in reviewed_rows
                ]
            except sqlite3.Error as exc:
                raise CacheUnavailable(f"Could not read cached data: {exc}") from exc
        return AggregationResult(created=created, reviewed=reviewed, cached=True)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise CacheUnavailable("Cache store used before init()")
        return self._conn

    @staticmethod
    def _reviews(conn: sqlite3.Connection, pr_id: int, repository: str) -> list[Review]:
        rows = conn.execute(
            "SELECT * FROM reviews WHERE pr_id = ? AND repository = ? ORDER BY submitted_at ASC, id ASC",
            (pr_id, repository),
        ).fetchall()
        return [
            Review(
                id=row["id"],
                user=GitHubUser(login=row["user_login"], id=row["user_id"]),
                body=row["body"],
                state=row["state"],
                submitted_at=_from_text(row["submitted_at"]),
            )
            for row in rows
        ]

    @staticmethod
    def _pull_request(row: sqlite3.Row) -> PullRequest:
        return PullRequest(
            id=row["id"],
            number=row["number"],
            title=row["title"],
            state=row["state"],
            created_at=_from_text(row["created_at"]),
            updated_at=_from_text(row["updated_at"]),
            closed_at=_from_text(row["closed_at"]),
            merged_at=_from_text(row["merged_at"]),
            user=GitHubUser(login=row["user_login"], id=row["user_id"]),
            html_url=row["html_url"],
        )
