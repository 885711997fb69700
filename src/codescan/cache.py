"""Resolution cache with lazy TTL expiry.

Backed by an aiosqlite connection that the server opens on ``:memory:``, so
the cache starts empty with the process and vanishes with it. One row per
(year, measure_id); a fresh store replaces the row.

All cache operations catch ``aiosqlite.Error`` internally and degrade
gracefully: read failures return ``None`` (treated as cache miss by callers),
write failures are logged and ignored (the resolved result is still returned).
A stored row that no longer validates is also treated as a miss.
Infrastructure errors never cross the cache boundary.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import aiosqlite
import structlog
from pydantic import ValidationError

from codescan.models.cache import CacheEntry
from codescan.models.measure import ResolutionResult

log = structlog.get_logger()

Clock = Callable[[], datetime]

_CREATE_MEASURE_TABLE = """
CREATE TABLE IF NOT EXISTS measure_cache (
    year        TEXT NOT NULL,
    measure_id  TEXT NOT NULL,
    result      TEXT NOT NULL,
    stored_at   INTEGER NOT NULL,  -- microseconds since the Unix epoch
    PRIMARY KEY (year, measure_id)
)
"""


_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MICROSECOND = timedelta(microseconds=1)


def utc_now() -> datetime:
    return datetime.now(UTC)


def _to_micros(moment: datetime) -> int:
    return (moment - _EPOCH) // _MICROSECOND


def _from_micros(value: int) -> datetime:
    return _EPOCH + value * _MICROSECOND


class MeasureCache:
    """SQLite-backed resolution cache implementing CacheProtocol."""

    def __init__(
        self,
        db: aiosqlite.Connection,
        ttl: timedelta = timedelta(days=7),
        clock: Clock = utc_now,
    ) -> None:
        self._db = db
        self._ttl = ttl
        self._clock = clock

    async def init_db(self) -> None:
        """Create the table. Called once at startup."""
        await self._db.execute(_CREATE_MEASURE_TABLE)
        await self._db.commit()

    def _is_live(self, stored_at: datetime) -> bool:
        return self._clock() - stored_at < self._ttl

    async def get_entry(self, year: str, measure_id: str) -> CacheEntry | None:
        """Read the raw entry regardless of age. Returns ``None`` on miss or read failure."""
        key = f"measure:{year}:{measure_id}"
        try:
            cursor = await self._db.execute(
                "SELECT result, stored_at FROM measure_cache WHERE year = ? AND measure_id = ?",
                (year, measure_id),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("cache_read_error", key=key, exc_info=True)
            return None

        if row is None:
            return None

        try:
            result = ResolutionResult.model_validate_json(row[0])
        except ValidationError:
            log.warning("cache_read_error", key=key, exc_info=True)
            return None

        return CacheEntry(result=result, stored_at=_from_micros(row[1]))

    async def lookup(self, year: str, measure_id: str) -> ResolutionResult | None:
        """Return the stored result if it is younger than the TTL, else ``None``.

        An expired entry is indistinguishable from a missing one.
        """
        entry = await self.get_entry(year, measure_id)
        if entry is None or not self._is_live(entry.stored_at):
            return None
        return entry.result

    async def store(self, year: str, measure_id: str, result: ResolutionResult) -> None:
        """Insert or replace the entry for (year, measure_id). Non-fatal on failure."""
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO measure_cache (year, measure_id, result, stored_at) "
                "VALUES (?, ?, ?, ?)",
                (
                    year,
                    measure_id,
                    result.model_dump_json(by_alias=True),
                    _to_micros(self._clock()),
                ),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=f"measure:{year}:{measure_id}", exc_info=True)

    async def count_live(self) -> int:
        """Number of entries that a lookup would currently serve. ``0`` on read failure."""
        cutoff = _to_micros(self._clock() - self._ttl)
        try:
            cursor = await self._db.execute(
                "SELECT COUNT(*) FROM measure_cache WHERE stored_at > ?", (cutoff,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("cache_count_error", exc_info=True)
            return 0
        return row[0] if row is not None else 0
