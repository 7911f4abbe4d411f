"""Measurement phase for netspeed-testkit.

Contains:
- client_measure: Initiator writes timed rounds on the data handle
- server_measure: Responder drains rounds from the data handle
"""

import logging
import time

from common.connection import Session, SessionState
from common.encoding import BeginMeasurement
from common.io import expect_message, send_message
from common.protocol import BUF_SIZE, LOG_PROGRESS_INTERVAL, TRACE
from common.report import format_speed
from session.measure import Clock, bytes_per_ms, drain_volume, make_pattern, timed_send

logger = logging.getLogger(__name__)


def _log_round(role: str, index: int, rounds: int, detail: str = "") -> None:
    logger.log(TRACE, f"{role}: round {index + 1}/{rounds} done{detail}")
    if LOG_PROGRESS_INTERVAL > 0 and (index + 1) % LOG_PROGRESS_INTERVAL == 0:
        logger.debug(f"{role}: progress {index + 1}/{rounds}{detail}")


def client_measure(
    session: Session,
    pattern: bytes | None = None,
    clock: Clock = time.monotonic,
) -> list[float]:
    """Initiator side of the measurement phase.

    Waits for BeginMeasurement, then writes session.rounds rounds of exactly
    session.unit_size bytes, timing each round from its first byte to its
    last. Samples (bytes/ms) are appended to session.samples.

    Returns:
        The samples collected in this phase.
    """
    assert session.unit_size is not None, "plan must be sent before measuring"
    unit_size = session.unit_size
    pattern = pattern or make_pattern()

    expect_message(session.control, BeginMeasurement, SessionState.MEASUREMENT)
    logger.info(f"Client: start speed test ({session.rounds} rounds)")

    samples: list[float] = []
    for i in range(session.rounds):
        elapsed_ms = timed_send(session.data, unit_size, pattern, clock)
        sample = bytes_per_ms(unit_size, elapsed_ms)
        samples.append(sample)
        session.samples.append(sample)
        session.bytes_sent += unit_size
        _log_round("Client", i, session.rounds, f" ({format_speed(sample)})")

    logger.info(f"Client: finished {session.rounds} rounds")
    return samples


def server_measure(session: Session, buf: bytearray | None = None) -> int:
    """Responder side of the measurement phase.

    Sends BeginMeasurement, then drains session.unit_size bytes per round
    from the data handle.

    Returns:
        Total bytes drained in this phase.

    Raises:
        PeerClosedError: If the initiator closes before all rounds arrived.
    """
    assert session.unit_size is not None, "plan must be received before measuring"
    buf = buf if buf is not None else bytearray(BUF_SIZE)

    send_message(session.control, BeginMeasurement())

    drained = 0
    for i in range(session.rounds):
        logger.log(TRACE, f"Server: start round {i + 1}/{session.rounds}")
        drained += drain_volume(session.data, session.unit_size, buf)
        _log_round("Server", i, session.rounds)

    session.bytes_received += drained
    logger.info(f"Server: drained {session.rounds} rounds")
    return drained
