"""pytest configuration and fixtures for netspeed-testkit tests.

Provides:
- MockStream: Scripted in-memory stream for unit tests
- StepClock: Deterministic monotonic clock
- socketpair fixture: Two connected SocketStreams
- run_session_pair fixture: Run initiator and responder machines to completion
- Markers for unit vs integration tests
"""

import io
import socket
import threading
import time
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from common.connection import Role, Session
from common.protocol import CALIBRATION_BYTES, PROTOCOL_VERSION, Stream
from common.transport import SocketStream
from session.machine import InitiatorMachine, ResponderMachine
from session.result import SessionResult


class MockStream:
    """Mock stream for unit testing.

    Reads come from a scripted receive buffer; writes are recorded in
    `written`. duplicate() returns the same object, so control and data
    handles share one read cursor as they do on a real connection.

    chunk_sizes caps successive reads to simulate short reads.
    """

    def __init__(
        self,
        rx: bytes = b"",
        chunk_sizes: list[int] | None = None,
        peer: str = "mock",
    ) -> None:
        self._rx = io.BytesIO(rx)
        self._chunk_sizes = list(chunk_sizes or [])
        self._peer = peer
        self.written = bytearray()
        self.reads = 0
        self.closed = False

    @property
    def peer(self) -> str:
        return self._peer

    def readinto(self, buf: bytearray | memoryview, /) -> int:
        self.reads += 1
        size = len(buf)
        if self._chunk_sizes:
            size = min(size, self._chunk_sizes.pop(0))
        data = self._rx.read(size)
        buf[: len(data)] = data
        return len(data)

    def write_all(self, data: bytes | bytearray | memoryview, /) -> None:
        self.written += data

    def duplicate(self) -> "MockStream":
        return self

    def close(self) -> None:
        self.closed = True

    def inject(self, data: bytes) -> None:
        """Append data to the receive buffer as if sent by the peer."""
        pos = self._rx.tell()
        self._rx.seek(0, 2)  # Seek to end
        self._rx.write(data)
        self._rx.seek(pos)

    @property
    def remaining(self) -> bytes:
        """Unread bytes, without consuming them."""
        return self._rx.getvalue()[self._rx.tell() :]


class StepClock:
    """Clock advancing by a fixed step on every call. Records each reading."""

    def __init__(self, step_s: float, start: float = 0.0) -> None:
        self.step_s = step_s
        self.now = start
        self.readings: list[float] = []

    def __call__(self) -> float:
        value = self.now
        self.readings.append(value)
        self.now += self.step_s
        return value


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test (real sockets)")


@pytest.fixture
def socketpair() -> Generator[tuple[SocketStream, SocketStream], None, None]:
    """Yield two connected SocketStreams (initiator end, responder end)."""
    a, b = socket.socketpair()
    left = SocketStream.from_socket(a, "left")
    right = SocketStream.from_socket(b, "right")
    yield left, right
    left.close()
    right.close()


SessionPairRunner = Callable[..., tuple[SessionResult, SessionResult]]


@pytest.fixture
def run_session_pair() -> SessionPairRunner:
    """Return a function running both roles over a pair of streams.

    The responder runs in a thread; the initiator runs in the caller. Both
    sessions are closed afterwards. Returns (initiator_result, responder_result).
    """

    def run(
        initiator_stream: Stream,
        responder_stream: Stream,
        rounds: int,
        fixed_size: int | None = None,
        calibration_bytes: int = CALIBRATION_BYTES,
        clock: Callable[[], float] = time.monotonic,
        initiator_version: int = PROTOCOL_VERSION,
        responder_version: int = PROTOCOL_VERSION,
    ) -> tuple[SessionResult, SessionResult]:
        responder_session = Session.open(Role.RESPONDER, responder_stream)
        responder = ResponderMachine(
            responder_session,
            version=responder_version,
            calibration_bytes=calibration_bytes,
        )
        results: dict[str, SessionResult] = {}

        def respond() -> None:
            try:
                results["responder"] = responder.run()
            finally:
                responder_session.close()

        thread = threading.Thread(target=respond, daemon=True)
        thread.start()

        initiator_session = Session.open(Role.INITIATOR, initiator_stream)
        initiator = InitiatorMachine(
            initiator_session,
            rounds=rounds,
            fixed_size=fixed_size,
            version=initiator_version,
            clock=clock,
            calibration_bytes=calibration_bytes,
        )
        try:
            initiator_result = initiator.run()
        finally:
            initiator_session.close()

        thread.join(timeout=10)
        assert not thread.is_alive(), "responder did not finish"
        return initiator_result, results["responder"]

    return run


@pytest.fixture
def script_dir() -> Path:
    """Return path to the main script directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def nspt_path(script_dir: Path) -> Path:
    """Return path to nspt.py."""
    return script_dir / "nspt.py"
