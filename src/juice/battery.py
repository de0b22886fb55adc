"""
Battery sensor reader.

Reads battery telemetry from the Linux power_supply class in sysfs
(/sys/class/power_supply/<name>/...). Every attribute is read independently:
a missing or unparseable file yields None for that field only.

The power_supply class reports values in micro units (uW, uWh, uA, uV).
Depending on the driver a battery exposes either energy_* (uWh) or
charge_* (uAh) attributes, and either power_now or current_now/voltage_now.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import psutil

from juice.config import DEFAULT_POWER_SUPPLY_PATH
from juice.logging import get_logger

logger = get_logger(__name__)

MICRO = 1e-6
PICO = 1e-12


class BatteryStatus(str, Enum):
    """Charging status as reported by the power_supply ``status`` attribute."""

    CHARGING = "Charging"
    DISCHARGING = "Discharging"
    FULL = "Full"
    NOT_CHARGING = "Not charging"
    UNKNOWN = "Unknown"

    @classmethod
    def from_text(cls, text: str | None) -> BatteryStatus:
        """Decode status text, mapping anything unrecognized to UNKNOWN."""
        if text is None:
            return cls.UNKNOWN
        try:
            return cls(text.strip())
        except ValueError:
            return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


@dataclass
class BatteryInfo:
    """Instantaneous snapshot of one battery.

    Attributes:
        name: Device name (e.g. 'BAT0').
        status: Charging status.
        capacity: Charge level in percent.
        cycle_count: Charge cycle count.
        power_now: Power draw in watts.
        energy_now: Stored energy in watt-hours.
        energy_full: Energy when last fully charged, in watt-hours.
        energy_full_design: Design energy capacity, in watt-hours.
        technology: Cell chemistry string (e.g. 'Li-ion').
    """

    name: str
    status: BatteryStatus = BatteryStatus.UNKNOWN
    capacity: int | None = None
    cycle_count: int | None = None
    power_now: float | None = None
    energy_now: float | None = None
    energy_full: float | None = None
    energy_full_design: float | None = None
    technology: str | None = None

    @property
    def health(self) -> float | None:
        """Current full energy as a percentage of the design energy."""
        if self.energy_full is None or not self.energy_full_design:
            return None
        return self.energy_full / self.energy_full_design * 100.0

    def remaining_time(self) -> tuple[int, int] | None:
        """
        Estimate time to empty (discharging) or to full (charging).

        Returns:
            (hours, minutes), or None when power or energy is unknown.
        """
        if not self.power_now or self.energy_now is None:
            return None
        # Some drivers report discharge as negative power.
        power = abs(self.power_now)

        if self.status == BatteryStatus.CHARGING:
            if self.energy_full is None:
                return None
            energy = self.energy_full - self.energy_now
        else:
            energy = self.energy_now

        hours = max(energy, 0.0) / power
        whole_hours = int(hours)
        return whole_hours, int((hours - whole_hours) * 60)


# =============================================================================
# sysfs helpers
# =============================================================================


def _read_attr(device: Path, attr: str) -> str | None:
    """Read one sysfs attribute as stripped text."""
    try:
        return (device / attr).read_text().strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(
            "Battery attribute unreadable",
            extra={"device": device.name, "attr": attr, "error": str(e)},
        )
        return None


def _read_number(device: Path, attr: str) -> float | None:
    raw = _read_attr(device, attr)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.debug(
            "Battery attribute not numeric",
            extra={"device": device.name, "attr": attr, "value": raw},
        )
        return None


def _read_int(device: Path, attr: str) -> int | None:
    value = _read_number(device, attr)
    return int(value) if value is not None else None


def _clamp_percent(value: float) -> int:
    return min(max(int(round(value)), 0), 100)


def _read_capacity(device: Path) -> int | None:
    value = _read_number(device, "capacity")
    return _clamp_percent(value) if value is not None else None


def _read_power(device: Path) -> float | None:
    """Read power draw in watts, deriving it from current x voltage if needed."""
    power = _read_number(device, "power_now")
    if power is not None:
        return power * MICRO

    current = _read_number(device, "current_now")
    voltage = _read_number(device, "voltage_now")
    if current is None or voltage is None:
        return None
    return current * voltage * PICO


def _read_energy_or_charge(device: Path, suffix: str) -> float | None:
    """Read energy_<suffix>, falling back to charge_<suffix>."""
    value = _read_number(device, f"energy_{suffix}")
    if value is None:
        value = _read_number(device, f"charge_{suffix}")
    return value * MICRO if value is not None else None


def _psutil_capacity() -> int | None:
    """System-wide battery percentage from psutil, if available.

    Only meaningful on hosts with a single battery.
    """
    try:
        battery = psutil.sensors_battery()
    except (AttributeError, NotImplementedError, RuntimeError):
        return None
    if battery is None:
        return None
    return _clamp_percent(battery.percent)


# =============================================================================
# Public API
# =============================================================================


def find_batteries(power_supply_path: str | Path = DEFAULT_POWER_SUPPLY_PATH) -> list[str]:
    """
    List battery devices.

    Args:
        power_supply_path: sysfs power_supply class directory.

    Returns:
        Sorted device names whose ``type`` attribute is "Battery". Empty if the
        directory cannot be listed.
    """
    root = Path(power_supply_path)
    try:
        entries = sorted(root.iterdir())
    except OSError as e:
        logger.warning(
            "Cannot list power supplies",
            extra={"path": str(root), "error": str(e)},
        )
        return []

    return [entry.name for entry in entries if _read_attr(entry, "type") == "Battery"]


def read_battery(
    name: str,
    power_supply_path: str | Path = DEFAULT_POWER_SUPPLY_PATH,
) -> BatteryInfo:
    """
    Read a best-effort snapshot of one battery.

    Args:
        name: Device name as returned by find_batteries().
        power_supply_path: sysfs power_supply class directory.

    Returns:
        BatteryInfo with every unreadable field set to None. A missing
        capacity is derived from this device's own energy readings, and
        falls back to psutil only when this is the sole battery.
    """
    device = Path(power_supply_path) / name
    energy_now = _read_energy_or_charge(device, "now")
    energy_full = _read_energy_or_charge(device, "full")

    capacity = _read_capacity(device)
    if capacity is None and energy_now is not None and energy_full:
        capacity = _clamp_percent(energy_now / energy_full * 100.0)
    if capacity is None and find_batteries(power_supply_path) == [name]:
        capacity = _psutil_capacity()

    return BatteryInfo(
        name=name,
        status=BatteryStatus.from_text(_read_attr(device, "status")),
        capacity=capacity,
        cycle_count=_read_int(device, "cycle_count"),
        power_now=_read_power(device),
        energy_now=energy_now,
        energy_full=energy_full,
        energy_full_design=_read_energy_or_charge(device, "full_design"),
        technology=_read_attr(device, "technology"),
    )
