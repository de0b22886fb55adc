"""
Pytest configuration for the juice tests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import patch

import pytest

from juice.history.storage import HistoryStore


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (deselect with '-m \"not integration\"')",
    )


@pytest.fixture(autouse=True)
def _no_host_battery() -> Iterator[None]:
    """Keep the psutil capacity fallback from reading the test host's battery."""
    with patch("juice.battery.psutil.sensors_battery", return_value=None):
        yield


@pytest.fixture(autouse=True)
def _cleanup_loggers() -> Iterator[None]:
    """Remove handlers installed by setup_logging during a test."""
    yield
    logging.getLogger("juice").handlers.clear()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path to a not-yet-created history database."""
    return tmp_path / "data" / "history.db"


@pytest.fixture
async def store(db_path: Path) -> HistoryStore:
    """An initialized, empty HistoryStore."""
    store = HistoryStore(db_path)
    await store.initialize()
    return store


@pytest.fixture
def power_supply(tmp_path: Path) -> Callable[..., Path]:
    """
    Build a fake /sys/class/power_supply tree.

    Returns a factory: ``power_supply("BAT0", type="Battery", capacity="85")``
    creates one device directory with one file per keyword argument and
    returns the class directory.
    """
    root = tmp_path / "power_supply"
    root.mkdir()

    def _add(name: str, **attrs: str) -> Path:
        device = root / name
        device.mkdir()
        for attr, value in attrs.items():
            (device / attr).write_text(f"{value}\n")
        return root

    return _add
