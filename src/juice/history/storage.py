"""
SQLite storage layer for battery history.

This module implements the HistoryStore class that handles:
- Opening the database file (creating its parent directory)
- Idempotent schema initialization
- Append-only inserts of battery readings
- Inclusive time range queries, streamed in batches
- Row count and first/last timestamp lookups for the status command

SQLite Schema:
    CREATE TABLE readings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp INTEGER NOT NULL,     -- Unix timestamp (seconds)
        battery TEXT NOT NULL,          -- 'BAT0', 'BAT1', ...
        status TEXT,                    -- 'Charging', 'Not charging', ...
        capacity INTEGER,
        power_now REAL,                 -- W
        energy_now REAL,                -- Wh
        energy_full REAL,               -- Wh
        energy_full_design REAL         -- Wh
    );
    CREATE INDEX idx_readings_timestamp ON readings(timestamp);
    CREATE INDEX idx_readings_battery_time ON readings(battery, timestamp);

Rows are never updated or deleted. Queries return rows ordered by
(timestamp, id) so readings sharing a timestamp keep their insertion order.
"""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import AsyncIterator, Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from juice.battery import BatteryInfo, BatteryStatus
from juice.errors import (
    InvalidArgumentError,
    ReadError,
    SchemaError,
    StorageUnavailableError,
    WriteError,
)
from juice.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# =============================================================================
# Data Models
# =============================================================================


@dataclass
class Reading:
    """One observation of one battery at one instant.

    Attributes:
        battery: Battery identifier (device name).
        timestamp: Unix timestamp (seconds) assigned by the sampler.
        status: Charging status.
        capacity: Charge level in percent.
        power_now: Power draw in watts.
        energy_now: Stored energy in watt-hours.
        energy_full: Energy when last fully charged, in watt-hours.
        energy_full_design: Design energy capacity, in watt-hours.
        id: Database ID (set after insertion).
    """

    battery: str
    timestamp: int
    status: BatteryStatus = BatteryStatus.UNKNOWN
    capacity: int | None = None
    power_now: float | None = None
    energy_now: float | None = None
    energy_full: float | None = None
    energy_full_design: float | None = None
    id: int | None = None

    @classmethod
    def from_info(cls, info: BatteryInfo, timestamp: int) -> Reading:
        """Build a reading from a sensor snapshot taken at ``timestamp``."""
        return cls(
            battery=info.name,
            timestamp=timestamp,
            status=info.status,
            capacity=info.capacity,
            power_now=info.power_now,
            energy_now=info.energy_now,
            energy_full=info.energy_full,
            energy_full_design=info.energy_full_design,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "battery": self.battery,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "capacity": self.capacity,
            "power_now": self.power_now,
            "energy_now": self.energy_now,
            "energy_full": self.energy_full,
            "energy_full_design": self.energy_full_design,
        }


# =============================================================================
# Constants
# =============================================================================

# Rows fetched per round trip when streaming a range
DEFAULT_BATCH_SIZE = 500

# Seconds SQLite waits on a locked database before failing
BUSY_TIMEOUT_SECONDS = 30.0


# =============================================================================
# SQLite Schema
# =============================================================================

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS readings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp INTEGER NOT NULL,
    battery TEXT NOT NULL,
    status TEXT,
    capacity INTEGER,
    power_now REAL,
    energy_now REAL,
    energy_full REAL,
    energy_full_design REAL
);

CREATE INDEX IF NOT EXISTS idx_readings_timestamp ON readings(timestamp);
CREATE INDEX IF NOT EXISTS idx_readings_battery_time ON readings(battery, timestamp);
"""

_SELECT_COLUMNS = (
    "id, timestamp, battery, status, capacity, "
    "power_now, energy_now, energy_full, energy_full_design"
)


def _row_to_reading(row: sqlite3.Row) -> Reading:
    return Reading(
        id=row["id"],
        timestamp=row["timestamp"],
        battery=row["battery"],
        status=BatteryStatus.from_text(row["status"]),
        capacity=row["capacity"],
        power_now=row["power_now"],
        energy_now=row["energy_now"],
        energy_full=row["energy_full"],
        energy_full_design=row["energy_full_design"],
    )


# =============================================================================
# HistoryStore Class
# =============================================================================


class HistoryStore:
    """
    SQLite-backed, append-only store of battery readings.

    Each operation opens its own short-lived connection and runs in the
    default executor so the event loop is never blocked by disk I/O. The
    database runs in WAL mode: a status or export command can read while
    the daemon is writing.

    Example:
        >>> store = HistoryStore("~/.local/share/juice/history.db")
        >>> await store.initialize()
        >>> await store.insert(Reading(battery="BAT0", timestamp=1000))
        >>> readings = await store.query_range(start=900, end=1100)
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize the HistoryStore.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path).expanduser()
        self._opened = False
        self._initialized = False
        self._lock = asyncio.Lock()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a database connection with proper settings.

        Yields:
            SQLite connection returning sqlite3.Row rows.
        """
        conn = sqlite3.connect(str(self.db_path), timeout=BUSY_TIMEOUT_SECONDS)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            yield conn
        finally:
            conn.close()

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.get_event_loop().run_in_executor(None, func, *args)

    async def open(self) -> None:
        """
        Open the backing database, creating its parent directory if absent.

        Raises:
            StorageUnavailableError: If the directory or file cannot be opened.
        """
        if self._opened:
            return

        def _open() -> None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._get_connection() as conn:
                conn.execute("SELECT 1")

        try:
            await self._run(_open)
        except (OSError, sqlite3.Error) as e:
            logger.error(
                "Failed to open history database",
                extra={"db_path": str(self.db_path), "error": str(e)},
            )
            raise StorageUnavailableError(
                f"Failed to open history database: {e}",
                details={"db_path": str(self.db_path)},
            ) from e

        self._opened = True

    async def initialize(self) -> None:
        """
        Initialize the database schema.

        Creates the readings table and its indices if they don't exist.
        This method is idempotent and safe to call multiple times.

        Raises:
            StorageUnavailableError: If the database cannot be opened.
            SchemaError: If the schema cannot be created.
        """
        if self._initialized:
            return

        async with self._lock:
            if self._initialized:
                return

            await self.open()

            def _init_db() -> None:
                with self._get_connection() as conn:
                    conn.executescript(SCHEMA_SQL)
                    conn.commit()

            try:
                await self._run(_init_db)
            except sqlite3.Error as e:
                logger.error(
                    "Failed to initialize history schema",
                    extra={"db_path": str(self.db_path), "error": str(e)},
                )
                raise SchemaError(
                    f"Failed to initialize history schema: {e}",
                    details={"db_path": str(self.db_path)},
                ) from e

            self._initialized = True
            logger.info(
                "History database initialized",
                extra={"db_path": str(self.db_path)},
            )

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    async def insert(self, reading: Reading) -> int:
        """
        Append one reading.

        No deduplication is done: a reading with the same battery and
        timestamp as an existing row is stored as a new row.

        Args:
            reading: The Reading to insert.

        Returns:
            The database ID of the inserted row (also set on ``reading.id``).

        Raises:
            WriteError: If the write fails.
        """
        await self._ensure_initialized()

        def _insert() -> int:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO readings (
                        timestamp, battery, status, capacity, power_now,
                        energy_now, energy_full, energy_full_design
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        reading.timestamp,
                        reading.battery,
                        reading.status.value,
                        reading.capacity,
                        reading.power_now,
                        reading.energy_now,
                        reading.energy_full,
                        reading.energy_full_design,
                    ),
                )
                conn.commit()
                return cursor.lastrowid or 0

        try:
            reading_id = await self._run(_insert)
        except sqlite3.Error as e:
            logger.error(
                "Failed to insert reading",
                extra={"battery": reading.battery, "error": str(e)},
            )
            raise WriteError(
                f"Failed to insert reading: {e}",
                details={"battery": reading.battery, "timestamp": reading.timestamp},
            ) from e

        reading.id = reading_id
        return reading_id

    async def _scalar(self, sql: str, what: str) -> Any:
        """Run a single-value query, wrapping failures in ReadError."""
        await self._ensure_initialized()

        def _query() -> Any:
            with self._get_connection() as conn:
                return conn.execute(sql).fetchone()[0]

        try:
            return await self._run(_query)
        except sqlite3.Error as e:
            logger.error(
                f"Failed to read {what}",
                extra={"db_path": str(self.db_path), "error": str(e)},
            )
            raise ReadError(
                f"Failed to read {what}: {e}",
                details={"db_path": str(self.db_path)},
            ) from e

    async def count(self) -> int:
        """Total number of stored readings (0 for an empty store)."""
        return await self._scalar("SELECT COUNT(*) FROM readings", "reading count")

    async def first_timestamp(self) -> int | None:
        """Earliest stored timestamp, or None if the store is empty."""
        return await self._scalar("SELECT MIN(timestamp) FROM readings", "first timestamp")

    async def last_timestamp(self) -> int | None:
        """Latest stored timestamp, or None if the store is empty."""
        return await self._scalar("SELECT MAX(timestamp) FROM readings", "last timestamp")

    def _fetch_batch(
        self,
        start: int | None,
        end: int | None,
        after: tuple[int, int] | None,
        limit: int,
    ) -> list[Reading]:
        conditions = []
        params: list[Any] = []

        if start is not None:
            conditions.append("timestamp >= ?")
            params.append(start)

        if end is not None:
            conditions.append("timestamp <= ?")
            params.append(end)

        # Keyset pagination on (timestamp, id)
        if after is not None:
            conditions.append("(timestamp > ? OR (timestamp = ? AND id > ?))")
            params.extend([after[0], after[0], after[1]])

        where_clause = " WHERE " + " AND ".join(conditions) if conditions else ""
        params.append(limit)

        query = f"""
            SELECT {_SELECT_COLUMNS}
            FROM readings
            {where_clause}
            ORDER BY timestamp ASC, id ASC
            LIMIT ?
        """

        with self._get_connection() as conn:
            return [_row_to_reading(row) for row in conn.execute(query, params)]

    async def iter_range(
        self,
        start: int | None = None,
        end: int | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> AsyncIterator[Reading]:
        """
        Stream readings with ``start <= timestamp <= end``.

        Both bounds are inclusive; a None bound is unconstrained. Rows are
        yielded in (timestamp, id) order and fetched ``batch_size`` at a time.

        Raises:
            InvalidArgumentError: If batch_size is not positive.
            ReadError: If a query fails.
        """
        if batch_size < 1:
            raise InvalidArgumentError(
                "batch_size must be positive",
                details={"batch_size": batch_size},
            )

        await self._ensure_initialized()

        after: tuple[int, int] | None = None
        while True:
            try:
                batch = await self._run(self._fetch_batch, start, end, after, batch_size)
            except sqlite3.Error as e:
                logger.error(
                    "Failed to query readings",
                    extra={"start": start, "end": end, "error": str(e)},
                )
                raise ReadError(
                    f"Failed to query readings: {e}",
                    details={"start": start, "end": end},
                ) from e

            for reading in batch:
                yield reading

            if len(batch) < batch_size:
                return

            last = batch[-1]
            after = (last.timestamp, last.id or 0)

    async def query_range(
        self,
        start: int | None = None,
        end: int | None = None,
    ) -> list[Reading]:
        """
        Return every reading with ``start <= timestamp <= end``.

        Both bounds are inclusive and default to unconstrained. An empty
        range returns an empty list.

        Raises:
            ReadError: If the query fails.
        """
        return [reading async for reading in self.iter_range(start, end)]

    def size_bytes(self) -> int | None:
        """Size of the database file on disk, or None if it does not exist."""
        try:
            return self.db_path.stat().st_size
        except FileNotFoundError:
            return None

    async def close(self) -> None:
        """
        Close the store (no-op for the connection-per-operation model).
        """
        self._opened = False
        self._initialized = False
        logger.debug("History store closed")
