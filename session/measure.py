"""Bulk transfer primitives for calibration and measurement rounds.

Contains:
- make_pattern: Fixed random buffer reused for every bulk write
- send_volume: Write exactly N unframed bytes
- drain_volume: Read exactly N unframed bytes, tolerating short reads
- bytes_per_ms: Throughput with a floor on elapsed time
- timed_send: Time one send_volume call
"""

import os
import time
from collections.abc import Callable

from common.connection import PeerClosedError
from common.protocol import BUF_SIZE, MIN_ELAPSED_MS, Stream

Clock = Callable[[], float]


def make_pattern(size: int = BUF_SIZE) -> bytes:
    """Return a random buffer; contents do not affect timing."""
    return os.urandom(size)


def send_volume(stream: Stream, total: int, pattern: bytes) -> int:
    """Write exactly total bytes by repeating pattern. Returns bytes written."""
    view = memoryview(pattern)
    written = 0
    while written < total:
        chunk = view[: min(len(view), total - written)]
        stream.write_all(chunk)
        written += len(chunk)
    return written


def drain_volume(stream: Stream, total: int, buf: bytearray) -> int:
    """Read exactly total bytes from stream. Returns bytes read.

    Each read is bounded by the bytes still missing, so bytes belonging to
    the next round are left on the stream.

    Raises:
        PeerClosedError: If the stream ends before total bytes arrived.
    """
    view = memoryview(buf)
    remaining = total
    while remaining > 0:
        n = stream.readinto(view[: min(len(view), remaining)])
        if n == 0:
            raise PeerClosedError(
                f"Connection closed unexpectedly ({total - remaining} of {total} bytes read)"
            )
        remaining -= n
    return total


def bytes_per_ms(nbytes: int, elapsed_ms: float) -> float:
    """Throughput in bytes/ms. Elapsed times below MIN_ELAPSED_MS are floored."""
    return nbytes / max(elapsed_ms, MIN_ELAPSED_MS)


def timed_send(
    stream: Stream,
    total: int,
    pattern: bytes,
    clock: Clock = time.monotonic,
) -> float:
    """Send total bytes and return elapsed milliseconds."""
    start = clock()
    send_volume(stream, total, pattern)
    return (clock() - start) * 1000
