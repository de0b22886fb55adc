"""
Error types for juice.

This module defines the JuiceError base class and its subclasses. Storage and
scheduler failures are always raised as one of these so the CLI can report a
consistent message and exit code.

Sensor-level failures are not errors: an unreadable sysfs attribute is
reported as a missing (None) field on the reading instead.
"""

from __future__ import annotations

from typing import Any


class JuiceError(Exception):
    """
    Base exception class for juice errors.

    Attributes:
        error_code: Internal error code string (e.g., "invalid_argument",
            "storage_unavailable", "write_error").
        message: Human-readable error message.
        details: Optional structured details (e.g., database path, battery).

    Example:
        >>> raise JuiceError(
        ...     error_code="write_error",
        ...     message="Failed to insert reading",
        ...     details={"battery": "BAT0"},
        ... )
    """

    def __init__(
        self,
        error_code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize a JuiceError.

        Args:
            error_code: Internal error code string identifying the error category.
            message: Human-readable error message.
            details: Optional dictionary with structured error details.
        """
        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        """Return a detailed string representation."""
        return (
            f"{self.__class__.__name__}("
            f"error_code={self.error_code!r}, "
            f"message={self.message!r}, "
            f"details={self.details!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the error to a dictionary for serialization.

        Returns:
            Dictionary with error_code, message, and details.
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidArgumentError(JuiceError):
    """Error raised when an operation receives an invalid argument."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize an InvalidArgumentError."""
        super().__init__(
            error_code="invalid_argument", message=message, details=details
        )


class NoBatteriesFoundError(JuiceError):
    """
    Error raised when no battery-type power supply is present.

    Fatal for the daemon; one-shot commands print a notice instead.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a NoBatteriesFoundError."""
        super().__init__(
            error_code="no_batteries_found", message=message, details=details
        )


class StorageUnavailableError(JuiceError):
    """Error raised when the history database cannot be opened."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a StorageUnavailableError."""
        super().__init__(
            error_code="storage_unavailable", message=message, details=details
        )


class SchemaError(JuiceError):
    """Error raised when the history schema cannot be created."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a SchemaError."""
        super().__init__(error_code="schema_error", message=message, details=details)


class WriteError(JuiceError):
    """
    Error raised when a reading or an exported row cannot be written.

    Used both for database inserts and for export sink failures.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a WriteError."""
        super().__init__(error_code="write_error", message=message, details=details)


class ReadError(JuiceError):
    """Error raised when stored readings cannot be queried."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a ReadError."""
        super().__init__(error_code="read_error", message=message, details=details)
