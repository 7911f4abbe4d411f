"""Reporting abstractions for netspeed-testkit.

Contains:
- Report ABC: Base class for all reports
- HandshakeReport: Report after negotiation completes
- format_speed, format_size: Human-friendly units
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from common.connection import Role


def format_speed(bytes_per_ms: float) -> str:
    """Format a bytes/ms rate as bits per second with a 1024-based unit.

    Picks the largest unit whose integral value is non-zero.
    """
    bits_per_sec = bytes_per_ms * 1000 * 8
    for unit, scale in (("Gb/s", 1024**3), ("Mb/s", 1024**2), ("Kb/s", 1024)):
        value = int(bits_per_sec / scale)
        if value != 0:
            return f"{value} {unit}"
    return f"{int(bits_per_sec)} b/s"


def format_size(nbytes: int) -> str:
    """Format a byte count with a 1024-based unit."""
    for unit, scale in (("GB", 1024**3), ("MB", 1024**2), ("KB", 1024)):
        value = nbytes // scale
        if value != 0:
            return f"{value} {unit}"
    return f"{nbytes} B"


class Report(ABC):
    """Abstract base class for test reports."""

    @abstractmethod
    def print(self) -> None:
        """Print the report to stdout."""
        pass

    @abstractmethod
    def success(self) -> bool:
        """Return True if the report indicates success."""
        pass


@dataclass
class HandshakeReport(Report):
    """Report after hello exchange and buffer planning.

    When negotiated=True, role, unit_size and rounds are required.
    When negotiated=False, error should be set.
    """

    negotiated: bool
    role: Role | None = None
    peer: str = ""
    unit_size: int | None = None
    rounds: int | None = None
    calibrated: bool = False
    error: Exception | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.negotiated:
            if self.role is None:
                raise ValueError("role is required when negotiated=True")
            if self.unit_size is None or self.rounds is None:
                raise ValueError("unit_size and rounds are required when negotiated=True")

    def print(self) -> None:
        """Print the handshake report."""
        if self.negotiated:
            assert self.role is not None
            assert self.unit_size is not None
            source = "calibrated" if self.calibrated else "fixed"
            print(f"Handshake: SUCCESS (peer={self.peer or '-'}, role={self.role.value})")
            print(
                f"[Condition] transfer_size: {format_size(self.unit_size)} ({source}), "
                f"test_times: {self.rounds}"
            )
        else:
            print(f"Handshake: FAILED ({self.error})")

    def success(self) -> bool:
        """Return True if negotiation succeeded."""
        return self.negotiated
