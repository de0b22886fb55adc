"""
Terminal rendering of live battery snapshots.

Colors are plain ANSI escape sequences and can be turned off (for example
when stdout is not a terminal).
"""

from __future__ import annotations

from juice.battery import BatteryInfo, BatteryStatus

RESET = "\033[0m"
BOLD = "\033[1m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
CYAN = "\033[36m"
WHITE = "\033[37m"
GREY = "\033[90m"

STATUS_SYMBOLS = {
    BatteryStatus.CHARGING: "⚡",
    BatteryStatus.DISCHARGING: "↓",
    BatteryStatus.NOT_CHARGING: "↓",
    BatteryStatus.FULL: "✓",
}


def paint(text: str, *codes: str, color: bool = True) -> str:
    """Wrap text in ANSI codes when color is enabled."""
    if not color or not codes:
        return text
    return "".join(codes) + text + RESET


def status_color(info: BatteryInfo) -> str:
    """Pick a color from the charging status, or the charge level when discharging."""
    if info.status == BatteryStatus.CHARGING:
        return CYAN
    if info.status == BatteryStatus.FULL:
        return BLUE
    if info.status == BatteryStatus.UNKNOWN:
        return WHITE

    capacity = info.capacity or 0
    if capacity <= 20:
        return RED
    if capacity <= 50:
        return YELLOW
    return GREEN


def progress_bar(percent: int, width: int) -> str:
    """Render a filled/empty block bar for a percentage."""
    filled = min(max(percent, 0) * width // 100, width)
    return "█" * filled + "░" * (width - filled)


def format_remaining(info: BatteryInfo) -> str:
    remaining = info.remaining_time()
    if remaining is None:
        return "--:--"
    hours, minutes = remaining
    return f"{hours}h{minutes:02d}m"


def format_power(info: BatteryInfo) -> str:
    return f"{info.power_now:.1f}W" if info.power_now is not None else "--W"


def render_normal(info: BatteryInfo, *, color: bool = True) -> str:
    """One-line summary: name, bar, capacity, status symbol, power, time left."""
    tint = status_color(info)
    capacity = info.capacity or 0
    symbol = STATUS_SYMBOLS.get(info.status, "?")

    return "{:<6} {} {:>4} {}  {}  {}".format(
        paint(info.name, BOLD, color=color),
        paint(progress_bar(capacity, 10), tint, color=color),
        paint(f"{capacity}%", tint, BOLD, color=color),
        paint(symbol, tint, color=color),
        paint(format_power(info), WHITE, color=color),
        format_remaining(info),
    )


def render_verbose(info: BatteryInfo, *, color: bool = True) -> str:
    """Multi-line detail view of one battery."""
    tint = status_color(info)
    capacity = info.capacity or 0

    def row(label: str, value: str) -> str:
        return f"  {paint(label, GREY, color=color):<12} {value}"

    def val(text: str) -> str:
        return paint(text, WHITE, BOLD, color=color)

    lines = [
        "{} {} {}".format(
            paint(info.name, WHITE, BOLD, color=color),
            paint(progress_bar(capacity, 20), tint, color=color),
            paint(str(info.status), tint, BOLD, color=color),
        ),
        row(
            "Power:",
            val(f"{info.power_now:.1f} W" if info.power_now is not None else "--"),
        ),
        row("Remaining:", val(format_remaining(info))),
        row("Capacity:", val(f"{capacity} %")),
    ]

    if info.energy_now is not None and info.energy_full is not None:
        lines.append(
            row("Energy:", f"{val(f'{info.energy_now:.1f}')} / {val(f'{info.energy_full:.1f}')} Wh")
        )

    if info.cycle_count is not None:
        lines.append(row("Cycle count:", val(str(info.cycle_count))))

    health = info.health
    if health is not None:
        lines.append(
            row("Health:", paint(f"{health:.1f} %", GREEN if health > 80 else RED, color=color))
        )

    lines.append(row("Technology:", info.technology or "Unknown"))
    return "\n".join(lines)
