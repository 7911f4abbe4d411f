"""Unit tests for sizing and bulk transfer primitives."""

import logging
import math

import pytest
from conftest import MockStream, StepClock

from common.connection import PeerClosedError, Role, Session, TransportError
from common.protocol import (
    BUF_SIZE,
    MAX_UNIT_SIZE,
    MIB,
    MIN_ELAPSED_MS,
    TRACE,
    log_progress_interval,
)
from session import exchange
from session.measure import bytes_per_ms, drain_volume, make_pattern, send_volume, timed_send
from session.sizing import next_power_of_two, transfer_size_for


def _is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


@pytest.mark.unit
class TestNextPowerOfTwo:
    """Tests for next_power_of_two."""

    @pytest.mark.parametrize(
        ("n", "expected"),
        [(0, 1), (1, 1), (2, 2), (3, 4), (1000, 1024), (1024, 1024), (1025, 2048)],
    )
    def test_values(self, n: int, expected: int) -> None:
        assert next_power_of_two(n) == expected


@pytest.mark.unit
class TestTransferSize:
    """Tests for transfer_size_for."""

    def test_calibration_example(self) -> None:
        # 24 MiB in 100 ms -> 251658.24 bytes/ms -> 1258291 bytes -> 2 MiB
        assert transfer_size_for(24 * MIB / 100) == 2 * MIB

    def test_power_of_two_or_cap(self) -> None:
        for bpm in (0.001, 0.5, 1.0, 7.3, 200.0, 1234.5, 99999.0, 1e6, 1e9):
            size = transfer_size_for(bpm)
            assert _is_power_of_two(size) or size == MAX_UNIT_SIZE
            assert 1 <= size <= MAX_UNIT_SIZE

    def test_monotonic(self) -> None:
        speeds = [0.1 * 1.7**k for k in range(40)]
        sizes = [transfer_size_for(s) for s in speeds]
        assert sizes == sorted(sizes)

    def test_capped(self) -> None:
        assert transfer_size_for(1e12) == MAX_UNIT_SIZE

    def test_slow_link_minimum(self) -> None:
        assert transfer_size_for(0.1) == 1

    @pytest.mark.parametrize("bpm", [0.0, -5.0, math.nan, -math.inf])
    def test_degenerate_inputs(self, bpm: float) -> None:
        assert transfer_size_for(bpm) == 1

    def test_infinite(self) -> None:
        assert transfer_size_for(math.inf) == MAX_UNIT_SIZE

    def test_deterministic(self) -> None:
        assert transfer_size_for(4321.0) == transfer_size_for(4321.0)


@pytest.mark.unit
class TestBytesPerMs:
    """Tests for the throughput computation and its elapsed-time floor."""

    def test_normal(self) -> None:
        assert bytes_per_ms(1000, 2.0) == 500.0

    def test_zero_elapsed_floored(self) -> None:
        assert bytes_per_ms(1000, 0.0) == 1000 / MIN_ELAPSED_MS

    def test_sub_millisecond_floored(self) -> None:
        assert bytes_per_ms(1000, 0.25) == bytes_per_ms(1000, MIN_ELAPSED_MS)

    def test_always_finite(self) -> None:
        assert math.isfinite(bytes_per_ms(MAX_UNIT_SIZE, 0.0))


@pytest.mark.unit
class TestSendVolume:
    """Tests for send_volume."""

    def test_exact_total(self) -> None:
        stream = MockStream()
        pattern = make_pattern()
        assert send_volume(stream, BUF_SIZE * 2 + 17, pattern) == BUF_SIZE * 2 + 17
        assert len(stream.written) == BUF_SIZE * 2 + 17
        assert bytes(stream.written[BUF_SIZE * 2 :]) == pattern[:17]

    def test_zero(self) -> None:
        stream = MockStream()
        assert send_volume(stream, 0, make_pattern()) == 0
        assert stream.written == b""


@pytest.mark.unit
class TestDrainVolume:
    """Tests for drain_volume."""

    def test_short_reads(self) -> None:
        # Seven short reads summing to exactly one round
        chunks = [1000, 20000, 7, 30000, 4529, 9999, 1]
        assert sum(chunks) == 65536
        stream = MockStream(rx=b"a" * 65536 + b"NEXT", chunk_sizes=chunks)

        assert drain_volume(stream, 65536, bytearray(BUF_SIZE)) == 65536
        assert stream.reads == 7
        assert stream.remaining == b"NEXT"

    def test_larger_than_buffer(self) -> None:
        stream = MockStream(rx=b"b" * 1000 + b"tail")
        assert drain_volume(stream, 1000, bytearray(64)) == 1000
        assert stream.remaining == b"tail"

    def test_peer_closed(self) -> None:
        stream = MockStream(rx=b"c" * 100)
        with pytest.raises(PeerClosedError, match="100 of 200"):
            drain_volume(stream, 200, bytearray(BUF_SIZE))

    def test_peer_closed_is_transport_error(self) -> None:
        assert issubclass(PeerClosedError, TransportError)


@pytest.mark.unit
class TestTimedSend:
    """Tests for timed_send with an injected clock."""

    def test_elapsed_ms(self) -> None:
        clock = StepClock(step_s=0.25, start=10.0)
        elapsed = timed_send(MockStream(), MIB, make_pattern(), clock)
        assert elapsed == pytest.approx(250.0)
        assert clock.readings == [10.0, 10.25]

    def test_sample_from_fake_clock(self) -> None:
        clock = StepClock(step_s=0.25)
        elapsed = timed_send(MockStream(), MIB, make_pattern(), clock)
        assert bytes_per_ms(MIB, elapsed) == pytest.approx(1048576 / 250)

    def test_sub_millisecond_elapsed_kept(self) -> None:
        elapsed = timed_send(MockStream(), 4096, make_pattern(), StepClock(step_s=0.0025))
        assert elapsed == pytest.approx(2.5)
        assert bytes_per_ms(4096, elapsed) == pytest.approx(4096 / 2.5)


@pytest.mark.unit
class TestProgressLogging:
    """Tests for the NSPT_LOG_INTERVAL progress interval."""

    @pytest.mark.parametrize(
        ("value", "expected"), [("25", 25), ("0", 0), ("-3", -3), ("often", 10)]
    )
    def test_interval_from_env(
        self, monkeypatch: pytest.MonkeyPatch, value: str, expected: int
    ) -> None:
        monkeypatch.setenv("NSPT_LOG_INTERVAL", value)
        assert log_progress_interval() == expected

    @pytest.mark.parametrize("interval", [0, -1])
    def test_disabled_interval_logs_no_progress(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture, interval: int
    ) -> None:
        monkeypatch.setattr(exchange, "LOG_PROGRESS_INTERVAL", interval)
        with caplog.at_level(TRACE, logger=exchange.__name__):
            for i in range(3):
                exchange._log_round("Client", i, 3)
        assert not any("progress" in r.message for r in caplog.records)
        assert len(caplog.records) == 3

    def test_progress_every_interval(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setattr(exchange, "LOG_PROGRESS_INTERVAL", 2)
        with caplog.at_level(logging.DEBUG, logger=exchange.__name__):
            for i in range(4):
                exchange._log_round("Server", i, 4)
        assert [r.message for r in caplog.records] == [
            "Server: progress 2/4",
            "Server: progress 4/4",
        ]


@pytest.mark.unit
class TestSessionHandles:
    """Tests for Session.open/close."""

    def test_open_duplicates_and_close_releases(self) -> None:
        stream = MockStream(peer="10.0.0.1:5000")
        session = Session.open(Role.RESPONDER, stream)
        assert session.data is stream
        assert session.peer == "10.0.0.1:5000"
        session.close()
        assert stream.closed
