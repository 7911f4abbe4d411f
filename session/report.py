"""Session reporting for netspeed-testkit.

Contains:
- SessionReport: Report after the measurement phase completes
"""

from dataclasses import dataclass

from common.connection import Role
from common.report import Report, format_size, format_speed
from session.result import SessionResult


@dataclass
class SessionReport(Report):
    """Report after a session completes or fails."""

    result: SessionResult

    def print(self) -> None:
        """Print the session report."""
        r = self.result

        if r.version_mismatch:
            print(f"Session: REJECTED (peer {r.peer or '-'} runs another protocol version)")
            return

        if not r.success:
            print(f"Session: FAILED ({r.error})")
            return

        print(
            f"Session: SUCCESS ({r.rounds} rounds x {format_size(r.unit_size or 0)}, "
            f"{format_size(r.measured_bytes)} measured)"
        )

        # Only the initiator times rounds
        if r.role is not Role.INITIATOR:
            return

        if r.calibration_bytes_per_ms is not None:
            print(f"Calibration: {format_speed(r.calibration_bytes_per_ms)}")

        stats = r.throughput_stats
        if stats:
            print(
                f"Throughput: min={format_speed(stats.min)} max={format_speed(stats.max)} "
                f"(n={stats.count})"
            )
        print(f"average: {format_speed(r.average_bytes_per_ms)}")

    def success(self) -> bool:
        """Return True if the session completed."""
        return self.result.success
