"""
CSV export of stored battery readings.

Rows are streamed from HistoryStore.iter_range and written one at a time, so
exporting a long history never holds the whole result in memory.

Format:
    timestamp,datetime,battery,status,capacity,power_now,energy_now
    1700000000,2023-11-14 22:13:20,BAT0,Discharging,85,12.50,40.00,

Every data row ends with a trailing comma; the header does not.
"""

from __future__ import annotations

import csv
from datetime import date
from typing import TextIO

from juice.errors import WriteError
from juice.formatting import date_to_timestamp, format_timestamp
from juice.history.storage import HistoryStore, Reading
from juice.logging import get_logger

logger = get_logger(__name__)

CSV_HEADER = (
    "timestamp",
    "datetime",
    "battery",
    "status",
    "capacity",
    "power_now",
    "energy_now",
)


def _fixed(value: float | None) -> str:
    return f"{value:.2f}" if value is not None else ""


def reading_to_row(reading: Reading) -> list[str]:
    """Render a reading as CSV fields, including the trailing empty field."""
    return [
        str(reading.timestamp),
        format_timestamp(reading.timestamp),
        reading.battery,
        reading.status.value,
        str(reading.capacity) if reading.capacity is not None else "",
        _fixed(reading.power_now),
        _fixed(reading.energy_now),
        "",
    ]


async def export_csv(
    store: HistoryStore,
    sink: TextIO,
    start: date | None = None,
    end: date | None = None,
) -> int:
    """
    Write stored readings as CSV.

    Args:
        store: HistoryStore to read from.
        sink: Text stream opened for writing (UTF-8, newline="" for files).
        start: Include readings from local midnight of this date.
        end: Include readings up to local midnight of this date.

    Returns:
        Number of data rows written.

    Raises:
        ReadError: If the store cannot be queried.
        WriteError: If the sink cannot be written.
    """
    start_ts = date_to_timestamp(start) if start is not None else None
    end_ts = date_to_timestamp(end) if end is not None else None

    writer = csv.writer(sink, lineterminator="\n")
    rows = 0
    try:
        writer.writerow(CSV_HEADER)
        async for reading in store.iter_range(start_ts, end_ts):
            writer.writerow(reading_to_row(reading))
            rows += 1
        sink.flush()
    except OSError as e:
        logger.error(
            "Failed to write export",
            extra={"rows_written": rows, "error": str(e)},
        )
        raise WriteError(
            f"Failed to write export: {e}",
            details={"rows_written": rows},
        ) from e

    logger.info(
        "Export completed",
        extra={"rows": rows, "start": start_ts, "end": end_ts},
    )
    return rows
