"""
SQLite visit store (VisitRepoPort).

Key behaviors:
- One short-lived connection per operation (safe across worker threads)
- Timestamps stored as UTC ISO-8601 text with microsecond precision,
  so range filters and ordering work on the raw column
- Aggregate reads always exclude bot rows; raw listings include them
- Accumulator and conversion updates target the latest matching row in
  a single UPDATE statement (last write wins)
- sqlite3 errors surface as VisitStoreError
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from visitlab.core.entities import VisitRecord
from visitlab.core.ports.db import BucketUnit, VisitFilter, VisitStoreError

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def to_db_dt(dt: datetime) -> str:
    """Serialize a datetime as sortable UTC text (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


# Dimensions that may be grouped on; keys are the public names.
GROUP_DIMENSIONS: dict[str, str] = {
    "country": "country",
    "region": "region",
    "city": "city",
    "device": "device_class",
    "browser": "browser",
    "os": "os",
    "page": "page",
    "utm_source": "utm_source",
    "utm_medium": "utm_medium",
    "utm_campaign": "utm_campaign",
}

BUCKET_EXPRESSIONS: dict[str, str] = {
    "day": "substr(visit_date, 1, 10)",
    "hour": "substr(visit_date, 1, 13)",
}

RECORD_COLUMNS = (
    "id",
    "session_id",
    "ip",
    "user_agent",
    "country",
    "region",
    "city",
    "timezone",
    "latitude",
    "longitude",
    "browser",
    "browser_version",
    "os",
    "os_version",
    "device_class",
    "screen_resolution",
    "language",
    "client_timezone",
    "referrer",
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "page",
    "page_title",
    "article_id",
    "visit_duration",
    "page_views",
    "is_new_visitor",
    "is_returning_visitor",
    "is_bot",
    "first_visit",
    "last_visit",
    "visit_date",
    "client_timestamp",
    "conversion",
    "conversion_value",
    "created_at",
    "updated_at",
)

_BOOL_COLUMNS = ("is_new_visitor", "is_returning_visitor", "is_bot")
_DT_COLUMNS = (
    "first_visit",
    "last_visit",
    "visit_date",
    "client_timestamp",
    "created_at",
    "updated_at",
)

_AGGREGATE_SELECT = """
    COUNT(*) AS total_visitors,
    COUNT(DISTINCT session_id) AS unique_visitors,
    COALESCE(SUM(page_views), 0) AS total_page_views,
    AVG(visit_duration) AS avg_visit_duration,
    COALESCE(SUM(is_new_visitor), 0) AS new_visitors,
    COALESCE(SUM(is_returning_visitor), 0) AS returning_visitors
"""


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    @contextmanager
    def _connection(self, write: bool = False) -> Iterator[sqlite3.Connection]:
        """Yield a connection, committing writes and mapping sqlite3 errors."""
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise VisitStoreError(f"Cannot open visit store: {e}") from e
        try:
            yield conn
            if write and self._should_close():
                conn.commit()
        except sqlite3.Error as e:
            if write and self._should_close():
                conn.rollback()
            raise VisitStoreError(str(e)) from e
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Visit Repository
# -----------------------------------------------------------------------------


class SQLiteVisitRepo(SQLiteRepoBase):
    """SQLite implementation of VisitRepoPort."""

    # --- Write side ---

    def add(self, record: VisitRecord) -> VisitRecord:
        row = self._to_row(record)
        placeholders = ", ".join("?" for _ in RECORD_COLUMNS)
        with self._connection(write=True) as conn:
            conn.execute(
                f"INSERT INTO visits ({', '.join(RECORD_COLUMNS)}) VALUES ({placeholders})",
                tuple(row[c] for c in RECORD_COLUMNS),
            )
        return record

    def get_by_id(self, record_id: UUID) -> VisitRecord | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM visits WHERE id = ?", (str(record_id),)).fetchone()
        return self._map_row(row) if row else None

    def latest_for_session(self, session_id: str, ip: str) -> VisitRecord | None:
        with self._connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM visits
                WHERE session_id = ? AND ip = ?
                ORDER BY visit_date DESC
                LIMIT 1
                """,
                (session_id, ip),
            ).fetchone()
        return self._map_row(row) if row else None

    def accumulate(
        self,
        session_id: str,
        page: str,
        page_views: int,
        duration_seconds: int,
        seen_at: datetime,
    ) -> bool:
        if page_views < 0 or duration_seconds < 0:
            raise ValueError("Accumulators can only increase")

        seen = to_db_dt(seen_at)
        with self._connection(write=True) as conn:
            result = conn.execute(
                """
                UPDATE visits
                SET page_views = page_views + ?,
                    visit_duration = visit_duration + ?,
                    last_visit = ?,
                    updated_at = ?
                WHERE id = (
                    SELECT id FROM visits
                    WHERE session_id = ? AND page = ?
                    ORDER BY visit_date DESC
                    LIMIT 1
                )
                """,
                (page_views, duration_seconds, seen, seen, session_id, page),
            )
            return result.rowcount > 0

    def set_conversion(
        self,
        session_id: str,
        conversion: str,
        conversion_value: str | None,
        updated_at: datetime,
    ) -> int:
        with self._connection(write=True) as conn:
            result = conn.execute(
                """
                UPDATE visits
                SET conversion = ?, conversion_value = ?, updated_at = ?
                WHERE id = (
                    SELECT id FROM visits
                    WHERE session_id = ?
                    ORDER BY visit_date DESC
                    LIMIT 1
                )
                """,
                (conversion, conversion_value, to_db_dt(updated_at), session_id),
            )
            return result.rowcount

    # --- Read side ---

    def summarize(self, start: datetime, end: datetime) -> dict[str, Any]:
        """Totals for non-bot visits with visit_date in [start, end)."""
        with self._connection() as conn:
            row = conn.execute(
                f"""
                SELECT {_AGGREGATE_SELECT}
                FROM visits
                WHERE is_bot = 0 AND visit_date >= ? AND visit_date < ?
                """,
                (to_db_dt(start), to_db_dt(end)),
            ).fetchone()
        return row or {}

    def summarize_by_bucket(
        self, unit: BucketUnit, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        """Totals per day/hour bucket for non-bot visits in [start, end), ascending."""
        bucket = BUCKET_EXPRESSIONS.get(unit)
        if bucket is None:
            raise ValueError(f"Unsupported bucket unit: {unit}")

        with self._connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {bucket} AS bucket, {_AGGREGATE_SELECT}
                FROM visits
                WHERE is_bot = 0 AND visit_date >= ? AND visit_date < ?
                GROUP BY bucket
                ORDER BY bucket
                """,
                (to_db_dt(start), to_db_dt(end)),
            ).fetchall()
        return list(rows)

    def group_counts(
        self,
        dimensions: tuple[str, ...],
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Group non-bot visits in [start, end) by the given dimensions.

        Ordered by visitors descending; ties by the dimension values ascending.
        """
        if not dimensions:
            raise ValueError("At least one dimension is required")
        unknown = [d for d in dimensions if d not in GROUP_DIMENSIONS]
        if unknown:
            raise ValueError(f"Unsupported dimensions: {', '.join(unknown)}")

        columns = ", ".join(f"{GROUP_DIMENSIONS[d]} AS {d}" for d in dimensions)
        group_by = ", ".join(GROUP_DIMENSIONS[d] for d in dimensions)

        query = f"""
            SELECT {columns},
                   COUNT(*) AS visitors,
                   COUNT(DISTINCT session_id) AS unique_visitors,
                   COALESCE(SUM(page_views), 0) AS page_views,
                   AVG(visit_duration) AS avg_duration
            FROM visits
            WHERE is_bot = 0
        """
        params: list[Any] = []

        if start is not None:
            query += " AND visit_date >= ?"
            params.append(to_db_dt(start))

        if end is not None:
            query += " AND visit_date < ?"
            params.append(to_db_dt(end))

        query += f" GROUP BY {group_by} ORDER BY visitors DESC, {group_by}"

        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return list(rows)

    def list_visits(
        self, filters: VisitFilter, limit: int = 100
    ) -> tuple[list[VisitRecord], int]:
        """Raw records (bots included) matching filters, newest first, plus total count."""
        where = " WHERE 1=1"
        params: list[Any] = []

        if filters.start is not None:
            where += " AND visit_date >= ?"
            params.append(to_db_dt(filters.start))

        if filters.end is not None:
            where += " AND visit_date < ?"
            params.append(to_db_dt(filters.end))

        for column, value in (
            ("country", filters.country),
            ("region", filters.region),
            ("device_class", filters.device_class),
            ("browser", filters.browser),
        ):
            if value:
                where += f" AND {column} = ?"
                params.append(value)

        with self._connection() as conn:
            total_row = conn.execute(f"SELECT COUNT(*) AS total FROM visits{where}", params).fetchone()
            rows = conn.execute(
                f"SELECT * FROM visits{where} ORDER BY visit_date DESC LIMIT ?",
                [*params, limit],
            ).fetchall()

        total = total_row["total"] if total_row else 0
        return [self._map_row(r) for r in rows], total

    # --- Mapping ---

    def _to_row(self, record: VisitRecord) -> dict[str, Any]:
        row = record.model_dump()
        row["id"] = str(record.id)
        for column in _BOOL_COLUMNS:
            row[column] = 1 if row[column] else 0
        for column in _DT_COLUMNS:
            value = row[column]
            row[column] = to_db_dt(value) if value is not None else None
        return row

    def _map_row(self, row: dict[str, Any]) -> VisitRecord:
        data = dict(row)
        data["id"] = UUID(data["id"])
        for column in _BOOL_COLUMNS:
            data[column] = bool(data[column])
        for column in _DT_COLUMNS:
            data[column] = parse_dt(data[column])
        return VisitRecord.model_validate(data)
