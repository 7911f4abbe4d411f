"""Session state and error taxonomy for netspeed-testkit.

Contains:
- Role: Enum for initiator/responder role
- SessionState: Enum for the negotiation and measurement sequence
- TransportError, PeerClosedError: I/O failures on the connection
- ProtocolViolationError, UnexpectedMessageError: out-of-order messages
- VersionMismatchError: peer announced a different protocol version
- Session: Per-connection state owning the control and data handles
"""

from dataclasses import dataclass, field
from enum import Enum

from common.protocol import Stream


class Role(Enum):
    """Role in the initiator/responder protocol."""

    INITIATOR = "initiator"
    RESPONDER = "responder"


class SessionState(Enum):
    """States of one session, shared by both roles."""

    HELLO_EXCHANGE = "HelloExchange"
    SIZING_DECISION = "SizingDecision"
    CALIBRATION = "Calibration"
    PLAN = "Plan"
    MEASUREMENT = "Measurement"
    COMPLETION = "Completion"
    DONE = "Done"
    REJECTED = "Rejected"  # Responder only: peer announced another version

    @property
    def terminal(self) -> bool:
        return self in (SessionState.DONE, SessionState.REJECTED)


class TransportError(Exception):
    """Raised when the underlying connection fails (reset, truncation, write error)."""

    pass


class PeerClosedError(TransportError):
    """Raised when the peer closes the connection in the middle of a transfer."""

    pass


class ProtocolViolationError(Exception):
    """Raised when the peer breaks the message sequence. Fatal to the session."""

    pass


class UnexpectedMessageError(ProtocolViolationError):
    """Raised when received message type is unexpected in current state."""

    pass


class VersionMismatchError(Exception):
    """Raised by the initiator when the responder runs another protocol version."""

    def __init__(self, local: int, peer: int) -> None:
        super().__init__(
            f"Protocol version mismatch: local={local:#x}, peer={peer:#x}"
        )
        self.local = local
        self.peer = peer


@dataclass
class Session:
    """Per-connection session state.

    The data handle is a duplicate of the control handle: both refer to the
    same connection, so closing the session closes the connection once both
    handles are released.
    """

    role: Role
    control: Stream
    data: Stream
    peer: str = ""
    unit_size: int | None = None
    rounds: int = 0
    calibrated: bool = False
    calibration_bytes_per_ms: float | None = None
    samples: list[float] = field(default_factory=list)  # bytes/ms per round
    bytes_sent: int = 0
    bytes_received: int = 0

    @classmethod
    def open(cls, role: Role, stream: Stream, peer: str = "") -> "Session":
        """Create a session over stream, duplicating it for the bulk data path."""
        return cls(role=role, control=stream, data=stream.duplicate(), peer=peer or stream.peer)

    def close(self) -> None:
        self.data.close()
        self.control.close()
