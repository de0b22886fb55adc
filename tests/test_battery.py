"""
Tests for the battery sensor reader.

This test module validates:
- Battery discovery in a power_supply tree
- Status decoding (total, never failing)
- Independent handling of missing or malformed attributes
- Unit conversion for power, energy and charge attributes
- Derived health and remaining-time values
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from juice.battery import BatteryInfo, BatteryStatus, find_batteries, read_battery

# =============================================================================
# Tests for BatteryStatus
# =============================================================================


class TestBatteryStatus:
    """Tests for BatteryStatus decoding."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Charging", BatteryStatus.CHARGING),
            ("Discharging", BatteryStatus.DISCHARGING),
            ("Full", BatteryStatus.FULL),
            ("Not charging", BatteryStatus.NOT_CHARGING),
            ("Unknown", BatteryStatus.UNKNOWN),
            (" Full\n", BatteryStatus.FULL),
        ],
    )
    def test_known_values(self, text: str, expected: BatteryStatus) -> None:
        assert BatteryStatus.from_text(text) is expected

    @pytest.mark.parametrize("text", ["Balancing", "", "charging", None])
    def test_unrecognized_values_decode_to_unknown(self, text: str | None) -> None:
        assert BatteryStatus.from_text(text) is BatteryStatus.UNKNOWN

    def test_str_is_sysfs_text(self) -> None:
        assert str(BatteryStatus.NOT_CHARGING) == "Not charging"


# =============================================================================
# Tests for find_batteries
# =============================================================================


class TestFindBatteries:
    """Tests for battery discovery."""

    def test_only_battery_type_devices(self, power_supply: Callable[..., Path]) -> None:
        power_supply("BAT1", type="Battery")
        power_supply("AC", type="Mains")
        root = power_supply("BAT0", type="Battery")
        power_supply("hidpp_battery_0")  # no type attribute

        assert find_batteries(root) == ["BAT0", "BAT1"]

    def test_undecodable_type_is_skipped(self, power_supply: Callable[..., Path]) -> None:
        power_supply("AC")
        root = power_supply("BAT0", type="Battery")
        (root / "AC" / "type").write_bytes(b"\xff\n")

        assert find_batteries(root) == ["BAT0"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert find_batteries(tmp_path / "nope") == []


# =============================================================================
# Tests for read_battery
# =============================================================================


class TestReadBattery:
    """Tests for reading one battery snapshot."""

    def test_energy_based_battery(self, power_supply: Callable[..., Path]) -> None:
        root = power_supply(
            "BAT0",
            type="Battery",
            status="Discharging",
            capacity="85",
            cycle_count="412",
            power_now="12500000",
            energy_now="40000000",
            energy_full="50000000",
            energy_full_design="57000000",
            technology="Li-ion",
        )

        info = read_battery("BAT0", root)

        assert info.name == "BAT0"
        assert info.status is BatteryStatus.DISCHARGING
        assert info.capacity == 85
        assert info.cycle_count == 412
        assert info.power_now == pytest.approx(12.5)
        assert info.energy_now == pytest.approx(40.0)
        assert info.energy_full == pytest.approx(50.0)
        assert info.energy_full_design == pytest.approx(57.0)
        assert info.technology == "Li-ion"

    def test_power_derived_from_current_and_voltage(
        self, power_supply: Callable[..., Path]
    ) -> None:
        root = power_supply(
            "BAT0",
            current_now="1000000",  # 1 A
            voltage_now="12000000",  # 12 V
            charge_now="3000000",
        )

        info = read_battery("BAT0", root)

        assert info.power_now == pytest.approx(12.0)
        assert info.energy_now == pytest.approx(3.0)

    def test_fields_fail_independently(self, power_supply: Callable[..., Path]) -> None:
        root = power_supply(
            "BAT0",
            status="Weird",
            capacity="n/a",
            energy_now="40000000",
        )

        info = read_battery("BAT0", root)

        assert info.status is BatteryStatus.UNKNOWN
        assert info.capacity is None
        assert info.power_now is None
        assert info.energy_now == pytest.approx(40.0)
        assert info.energy_full is None
        assert info.cycle_count is None
        assert info.technology is None

    def test_missing_device_yields_empty_snapshot(self, tmp_path: Path) -> None:
        info = read_battery("BAT9", tmp_path)

        assert info == BatteryInfo(name="BAT9")

    def test_capacity_falls_back_to_psutil(self, power_supply: Callable[..., Path]) -> None:
        root = power_supply("BAT0", type="Battery", status="Charging")

        with patch(
            "juice.battery.psutil.sensors_battery",
            return_value=SimpleNamespace(percent=66.6, power_plugged=True),
        ):
            info = read_battery("BAT0", root)

        assert info.capacity == 67

    def test_no_psutil_capacity_with_several_batteries(
        self, power_supply: Callable[..., Path]
    ) -> None:
        power_supply("BAT0", type="Battery", capacity="20")
        root = power_supply("BAT1", type="Battery", status="Discharging")

        with patch(
            "juice.battery.psutil.sensors_battery",
            return_value=SimpleNamespace(percent=20.0, power_plugged=False),
        ):
            info = read_battery("BAT1", root)

        assert info.capacity is None

    def test_capacity_derived_from_own_energy(
        self, power_supply: Callable[..., Path]
    ) -> None:
        power_supply("BAT0", type="Battery", capacity="90")
        root = power_supply(
            "BAT1",
            type="Battery",
            energy_now="30000000",
            energy_full="40000000",
        )

        with patch(
            "juice.battery.psutil.sensors_battery",
            return_value=SimpleNamespace(percent=90.0, power_plugged=False),
        ):
            info = read_battery("BAT1", root)

        assert info.capacity == 75

    @pytest.mark.parametrize(("raw", "expected"), [("101", 100), ("-3", 0), ("100", 100)])
    def test_capacity_clamped_to_percent_range(
        self, power_supply: Callable[..., Path], raw: str, expected: int
    ) -> None:
        root = power_supply("BAT0", capacity=raw)

        assert read_battery("BAT0", root).capacity == expected

    def test_negative_power_keeps_sign(self, power_supply: Callable[..., Path]) -> None:
        root = power_supply(
            "BAT0",
            status="Discharging",
            current_now="-1000000",
            voltage_now="12000000",
            energy_now="24000000",
        )

        info = read_battery("BAT0", root)

        assert info.power_now == pytest.approx(-12.0)
        assert info.remaining_time() == (2, 0)

    def test_undecodable_attributes_are_absent(
        self, power_supply: Callable[..., Path]
    ) -> None:
        root = power_supply("BAT0", type="Battery", capacity="50")
        device = root / "BAT0"
        (device / "technology").write_bytes(b"Li-\xff\xfeion\n")
        (device / "status").write_bytes(b"\xc3\x28\n")

        info = read_battery("BAT0", root)

        assert info.technology is None
        assert info.status is BatteryStatus.UNKNOWN
        assert info.capacity == 50


# =============================================================================
# Tests for derived values
# =============================================================================


class TestDerivedValues:
    """Tests for BatteryInfo.health and remaining_time."""

    def test_health(self) -> None:
        info = BatteryInfo(name="BAT0", energy_full=45.0, energy_full_design=50.0)
        assert info.health == pytest.approx(90.0)

    def test_health_unknown(self) -> None:
        assert BatteryInfo(name="BAT0", energy_full=45.0).health is None

    def test_remaining_when_discharging(self) -> None:
        info = BatteryInfo(
            name="BAT0",
            status=BatteryStatus.DISCHARGING,
            power_now=10.0,
            energy_now=25.0,
        )
        assert info.remaining_time() == (2, 30)

    def test_remaining_when_charging(self) -> None:
        info = BatteryInfo(
            name="BAT0",
            status=BatteryStatus.CHARGING,
            power_now=20.0,
            energy_now=40.0,
            energy_full=50.0,
        )
        assert info.remaining_time() == (0, 30)

    @pytest.mark.parametrize("power", [None, 0.0])
    def test_remaining_unknown_without_power(self, power: float | None) -> None:
        info = BatteryInfo(name="BAT0", power_now=power, energy_now=10.0)
        assert info.remaining_time() is None
