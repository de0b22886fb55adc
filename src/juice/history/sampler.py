"""
Periodic battery sampling loop using asyncio.

The HistorySampler wakes up every ``interval_seconds``, reads every battery
through the sensor reader and appends one Reading per battery to the
HistoryStore. It runs until the cancellation event passed to ``run()`` is set.

- The first tick happens after one full interval, not at start-up.
- All readings of a tick share a single timestamp.
- A storage failure ends the run; there is no per-battery retry.
- Cancellation is observed between ticks, never in the middle of one.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from juice.battery import BatteryInfo, read_battery
from juice.errors import InvalidArgumentError, NoBatteriesFoundError
from juice.history.storage import HistoryStore, Reading
from juice.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SAMPLING_INTERVAL = 30  # seconds

SensorReader = Callable[[str], BatteryInfo]


class SamplerStatus(str, Enum):
    """Status of the history sampler."""

    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class SamplerState:
    """
    Current state of the history sampler.

    Attributes:
        status: Current sampler status.
        batteries: Battery ids being sampled.
        interval_seconds: Sampling interval.
        started_at: When the run started.
        last_tick_at: When the last tick completed.
        tick_count: Number of completed ticks.
        reading_count: Number of readings written.
    """

    status: SamplerStatus = SamplerStatus.STOPPED
    batteries: tuple[str, ...] = ()
    interval_seconds: float = DEFAULT_SAMPLING_INTERVAL
    started_at: datetime | None = None
    last_tick_at: datetime | None = None
    tick_count: int = 0
    reading_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status.value,
            "batteries": list(self.batteries),
            "interval_seconds": self.interval_seconds,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "tick_count": self.tick_count,
            "reading_count": self.reading_count,
        }


def collect_readings(
    batteries: Sequence[str],
    reader: SensorReader,
    timestamp: int,
) -> list[Reading]:
    """Read every battery and stamp all readings with the same timestamp."""
    return [Reading.from_info(reader(battery), timestamp) for battery in batteries]


class HistorySampler:
    """
    Periodic sampler writing battery readings to a HistoryStore.

    Example:
        >>> store = HistoryStore(db_path)
        >>> sampler = HistorySampler(store, ["BAT0"], interval_seconds=30)
        >>> cancel = asyncio.Event()
        >>> await sampler.run(cancel)  # returns once cancel is set
    """

    def __init__(
        self,
        store: HistoryStore,
        batteries: Sequence[str],
        *,
        interval_seconds: float = DEFAULT_SAMPLING_INTERVAL,
        reader: SensorReader = read_battery,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the HistorySampler.

        Args:
            store: HistoryStore receiving the readings.
            batteries: Battery ids to sample on every tick.
            interval_seconds: Seconds between ticks (must be positive).
            reader: Callable returning a BatteryInfo for a battery id.
            clock: Wall-clock source for tick timestamps.

        Raises:
            NoBatteriesFoundError: If ``batteries`` is empty.
            InvalidArgumentError: If ``interval_seconds`` is not positive.
        """
        if not batteries:
            raise NoBatteriesFoundError("No battery found")
        if interval_seconds <= 0:
            raise InvalidArgumentError(
                "interval_seconds must be positive",
                details={"interval_seconds": interval_seconds},
            )

        self._store = store
        self._reader = reader
        self._clock = clock
        self._state = SamplerState(
            batteries=tuple(batteries),
            interval_seconds=interval_seconds,
        )

    @property
    def is_running(self) -> bool:
        """Check if the sampler is currently running."""
        return self._state.status == SamplerStatus.RUNNING

    def get_status(self) -> SamplerState:
        """Return a copy of the current SamplerState."""
        return SamplerState(**vars(self._state))

    async def tick(self) -> list[Reading]:
        """
        Sample every battery once and persist the readings.

        Returns:
            The readings written, with their database ids set.

        Raises:
            WriteError: If any reading cannot be stored.
        """
        timestamp = int(self._clock())
        readings = await asyncio.get_event_loop().run_in_executor(
            None, collect_readings, self._state.batteries, self._reader, timestamp
        )

        for reading in readings:
            await self._store.insert(reading)

        self._state.tick_count += 1
        self._state.reading_count += len(readings)
        self._state.last_tick_at = datetime.now()
        logger.debug(
            "Sampling tick completed",
            extra={"timestamp": timestamp, "readings": len(readings)},
        )
        return readings

    async def run(self, cancel: asyncio.Event) -> SamplerState:
        """
        Sample every interval until ``cancel`` is set.

        Args:
            cancel: Event that stops the loop at the next scheduling point.

        Returns:
            Final SamplerState.

        Raises:
            StorageUnavailableError: If the store cannot be opened.
            SchemaError: If the schema cannot be created.
            WriteError: If a reading cannot be stored.
        """
        await self._store.initialize()

        self._state.status = SamplerStatus.RUNNING
        self._state.started_at = datetime.now()
        logger.info(
            "History sampler started",
            extra={
                "batteries": list(self._state.batteries),
                "interval_seconds": self._state.interval_seconds,
            },
        )

        try:
            while True:
                try:
                    await asyncio.wait_for(
                        cancel.wait(), timeout=float(self._state.interval_seconds)
                    )
                    break
                except TimeoutError:
                    pass

                await self.tick()
        finally:
            self._state.status = SamplerStatus.STOPPED
            logger.info(
                "History sampler stopped",
                extra={
                    "tick_count": self._state.tick_count,
                    "reading_count": self._state.reading_count,
                },
            )

        return self.get_status()


async def run_sampler(
    store: HistoryStore,
    batteries: Sequence[str],
    interval_seconds: float,
    cancel: asyncio.Event,
    *,
    reader: SensorReader = read_battery,
) -> SamplerState:
    """
    Run a HistorySampler until ``cancel`` is set.

    Raises:
        NoBatteriesFoundError: If ``batteries`` is empty (the store is not
            touched).
    """
    sampler = HistorySampler(
        store, batteries, interval_seconds=interval_seconds, reader=reader
    )
    return await sampler.run(cancel)
