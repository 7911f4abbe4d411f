"""Common modules for netspeed-testkit.

This package contains shared code used by both client and server:
- protocol: PROTOCOL_VERSION, sizing constants, Stream Protocol
- connection: Session dataclass, SessionState, error taxonomy
- message: Frame encoding/decoding
- encoding: Control message set and msgpack encoding
- transport: TCP and Unix socket streams and listeners
- io: Control-channel helpers (send_message, recv_message, expect_message)
- config: Client and server configuration
- report: Reporting abstractions
"""

from common.connection import (
    PeerClosedError,
    ProtocolViolationError,
    Role,
    Session,
    SessionState,
    TransportError,
    UnexpectedMessageError,
    VersionMismatchError,
)
from common.encoding import EncodingError, MalformedMessageError, UnknownMessageError
from common.protocol import (
    BUF_SIZE,
    CALIBRATION_BYTES,
    MAX_UNIT_SIZE,
    PROTOCOL_VERSION,
    Stream,
)

__all__ = [
    # Protocol
    "PROTOCOL_VERSION",
    "Stream",
    "BUF_SIZE",
    "CALIBRATION_BYTES",
    "MAX_UNIT_SIZE",
    # Connection
    "Role",
    "Session",
    "SessionState",
    # Exceptions
    "EncodingError",
    "MalformedMessageError",
    "PeerClosedError",
    "ProtocolViolationError",
    "TransportError",
    "UnexpectedMessageError",
    "UnknownMessageError",
    "VersionMismatchError",
]
