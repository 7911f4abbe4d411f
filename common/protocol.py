"""Protocol definitions for netspeed-testkit.

Contains:
- PROTOCOL_VERSION compiled into both endpoints
- Stream Protocol for type checking
- Transfer sizing and calibration constants
- Default endpoints and logging configuration
"""

import logging
import os
from typing import Protocol

# TRACE logging level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def log_progress_interval(default: int = 10) -> int:
    """Progress logging interval in rounds from NSPT_LOG_INTERVAL.

    Values <= 0 disable progress logging. Non-integer values fall back to
    default.
    """
    try:
        return int(os.environ.get("NSPT_LOG_INTERVAL", str(default)))
    except ValueError:
        return default


# Progress logging interval in rounds (configurable via envvar)
LOG_PROGRESS_INTERVAL = log_progress_interval()

# Compared on hello exchange, never negotiated
PROTOCOL_VERSION = 0x0000_0000_0000_0001


class Stream(Protocol):
    """Protocol for a blocking byte stream used by a session."""

    def readinto(self, buf: bytearray | memoryview, /) -> int: ...
    def write_all(self, data: bytes | bytearray | memoryview, /) -> None: ...
    def duplicate(self) -> "Stream": ...
    def close(self) -> None: ...
    @property
    def peer(self) -> str: ...


MIB = 1024 * 1024

# Total bytes written during calibration (independent of final unit size)
CALIBRATION_BYTES = 24 * MIB

# Upper bound on the per-round unit size chosen by calibration
MAX_UNIT_SIZE = 24 * MIB

# Target measurement rounds per second of calibrated throughput
SIZING_DIVISOR = 200

# Chunk size for bulk writes and reads
BUF_SIZE = 64 * 1024

# Elapsed times below this are floored when computing throughput
MIN_ELAPSED_MS = 1.0

# Default endpoints
DEFAULT_SERVER_IP = "127.0.0.1"
DEFAULT_LISTEN_IP = "0.0.0.0"
DEFAULT_PORT = 12845
DEFAULT_SOCK_FILE = "/tmp/nspt.sock"
DEFAULT_ROUNDS = 10

# Accept loop polls at this interval so shutdown signals are observed
ACCEPT_POLL_S = 1.0
