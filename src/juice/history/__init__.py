"""
Battery history: time-series storage, periodic sampling and CSV export.

Components:
- storage: SQLite storage layer for readings
- sampler: asyncio sampling loop driven by a cancellation event
- export: streaming CSV export of a stored range
"""

from juice.history.export import export_csv
from juice.history.sampler import HistorySampler, run_sampler
from juice.history.storage import HistoryStore, Reading

__all__ = [
    "HistorySampler",
    "HistoryStore",
    "Reading",
    "export_csv",
    "run_sampler",
]
