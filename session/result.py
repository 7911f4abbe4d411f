"""Session result types for netspeed-testkit.

Contains:
- SessionError: Wraps the failure that ended a session
- ThroughputStats: Computed throughput statistics in bytes/ms
- compute_throughput_stats: Compute stats from per-round samples
- SessionResult: Result from one session
"""

from dataclasses import dataclass, field

from common.connection import Role, Session


class SessionError(Exception):
    """Raised when session exchange fails."""

    pass


@dataclass
class ThroughputStats:
    """Computed throughput statistics in bytes/ms."""

    count: int
    min: float
    max: float
    avg: float


def compute_throughput_stats(samples: list[float]) -> ThroughputStats | None:
    """Compute throughput statistics from per-round samples.

    Args:
        samples: Per-round throughput in bytes/ms.

    Returns:
        ThroughputStats, or None if empty.
    """
    if not samples:
        return None

    count = len(samples)
    return ThroughputStats(
        count=count,
        min=min(samples),
        max=max(samples),
        avg=sum(samples) / count,
    )


@dataclass
class SessionResult:
    """Result from one session.

    Attributes:
        success: True if the session reached completion.
        role: Which side produced this result.
        peer: Peer identifier.
        unit_size: Negotiated bytes per round (None if never planned).
        rounds: Negotiated round count.
        calibrated: True if the unit size came from calibration.
        calibration_bytes_per_ms: Calibrated speed (initiator only).
        samples: Per-round throughput in bytes/ms (initiator only).
        bytes_sent: Total bulk bytes written, calibration included.
        bytes_received: Total bulk bytes drained, calibration included.
        elapsed_s: Total session duration in seconds.
        version_mismatch: Responder: peer announced another version.
        error: Error if the session failed.
    """

    success: bool
    role: Role | None = None
    peer: str = ""
    unit_size: int | None = None
    rounds: int = 0
    calibrated: bool = False
    calibration_bytes_per_ms: float | None = None
    samples: list[float] = field(default_factory=list)
    bytes_sent: int = 0
    bytes_received: int = 0
    elapsed_s: float = 0.0
    version_mismatch: bool = False
    error: Exception | None = None

    @classmethod
    def from_session(cls, session: Session, success: bool, **kwargs: object) -> "SessionResult":
        """Snapshot session state into a result."""
        return cls(
            success=success,
            role=session.role,
            peer=session.peer,
            unit_size=session.unit_size,
            rounds=session.rounds,
            calibrated=session.calibrated,
            calibration_bytes_per_ms=session.calibration_bytes_per_ms,
            samples=list(session.samples),
            bytes_sent=session.bytes_sent,
            bytes_received=session.bytes_received,
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def throughput_stats(self) -> ThroughputStats | None:
        """Compute throughput statistics from samples."""
        return compute_throughput_stats(self.samples)

    @property
    def average_bytes_per_ms(self) -> float:
        """Mean of the per-round samples, 0.0 when no rounds ran."""
        stats = self.throughput_stats
        return stats.avg if stats else 0.0

    @property
    def measured_bytes(self) -> int:
        """Bytes moved by measurement rounds only."""
        return (self.unit_size or 0) * self.rounds if self.success else 0
