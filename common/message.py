"""Frame encoding/decoding for the control channel.

Frames use a simple length-prefixed layout:
  [8-byte length][payload]

The length is an unsigned 64-bit little-endian integer. Payloads may be
empty. Bulk measurement data is never framed.
"""

from typing import Literal, Protocol

from common.connection import TransportError
from common.protocol import BUF_SIZE

UINT64_SIZE = 8
LENGTH_SIZE = UINT64_SIZE
BYTE_ORDER: Literal["little", "big"] = "little"


class TruncatedHeaderError(TransportError):
    """Raised when the stream ends before a full length header was read."""

    pass


class TruncatedPayloadError(TransportError):
    """Raised when the stream ends before the full payload was read."""

    pass


class Reader(Protocol):
    """Protocol for objects that can read bytes into a buffer."""

    def readinto(self, buf: bytearray | memoryview, /) -> int: ...


def uint64_to_bytes(value: int) -> bytes:
    """Encode unsigned 64-bit int as little-endian bytes."""
    return value.to_bytes(UINT64_SIZE, BYTE_ORDER, signed=False)


def uint64_from_bytes(data: bytes) -> int:
    """Decode little-endian bytes to unsigned 64-bit int."""
    return int.from_bytes(data, BYTE_ORDER, signed=False)


def read_exact(reader: Reader, size: int) -> bytes:
    """Read exactly size bytes, or fewer if the stream ends first.

    Never requests more than the bytes still missing, so whatever follows on
    the stream stays unread. Memory grows with the bytes actually received,
    not with size.
    """
    view = memoryview(bytearray(min(size, BUF_SIZE)))
    out = bytearray()
    while len(out) < size:
        n = reader.readinto(view[: min(len(view), size - len(out))])
        if not n:
            break
        out += view[:n]
    return bytes(out)


def encode(payload: bytes) -> bytes:
    """Encode a byte payload with its length prefix."""
    return uint64_to_bytes(len(payload)) + payload


def decode(reader: Reader) -> bytes:
    """Decode one frame from reader and return its payload.

    Raises:
        TruncatedHeaderError: Stream ended inside the length header.
        TruncatedPayloadError: Stream ended inside the payload.
    """
    header = read_exact(reader, LENGTH_SIZE)
    if len(header) < LENGTH_SIZE:
        raise TruncatedHeaderError(
            f"Frame header truncated: got {len(header)} of {LENGTH_SIZE} bytes"
        )

    length = uint64_from_bytes(header)
    payload = read_exact(reader, length)
    if len(payload) < length:
        raise TruncatedPayloadError(
            f"Frame payload truncated: got {len(payload)} of {length} bytes"
        )

    return payload
