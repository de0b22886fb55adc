"""
juice: battery status and history for Linux.

Reads battery telemetry from sysfs, records it periodically in a SQLite
database and exports recorded ranges as CSV.
"""

__version__ = "0.1.0"
