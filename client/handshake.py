"""Initiator-side negotiation for netspeed-testkit.

Implements the initiator's side of the steps before measurement:
  1. Receive ResponderHello, reply InitiatorHello, compare versions
  2. Announce whether calibration is required
  3. Calibrate: exchange BeginSizing, write the calibration volume, size units
  4. Send the BufferPlan
"""

import logging
import time

from common.connection import Session, SessionState, VersionMismatchError
from common.encoding import (
    BeginSizing,
    BufferPlan,
    InitiatorHello,
    ResponderHello,
    SizingRequested,
)
from common.io import expect_message, send_message
from common.protocol import CALIBRATION_BYTES, PROTOCOL_VERSION
from common.report import format_size, format_speed
from session.measure import Clock, bytes_per_ms, timed_send
from session.sizing import transfer_size_for

logger = logging.getLogger(__name__)


def client_exchange_hello(session: Session, version: int = PROTOCOL_VERSION) -> int:
    """Wait for ResponderHello and answer with InitiatorHello.

    Our hello is sent even on mismatch so the responder can log the attempt.
    Returns the peer's version.

    Raises:
        VersionMismatchError: If the responder announced a different version.
    """
    logger.info("Client: exchanging hello")
    hello = expect_message(session.control, ResponderHello, SessionState.HELLO_EXCHANGE)
    send_message(session.control, InitiatorHello(version))

    if hello.version != version:
        raise VersionMismatchError(local=version, peer=hello.version)

    logger.info(f"Client: hello complete (version={version:#x})")
    return hello.version


def client_send_sizing_decision(session: Session, fixed_size: int | None) -> bool:
    """Tell the responder whether calibration follows. Returns True if it does."""
    required = fixed_size is None
    send_message(session.control, SizingRequested(required))
    logger.debug(f"Client: sent SizingRequested(required={required})")
    return required


def client_calibrate(
    session: Session,
    pattern: bytes,
    clock: Clock = time.monotonic,
    calibration_bytes: int = CALIBRATION_BYTES,
) -> int:
    """Run the calibration transfer and return the chosen unit size.

    The BeginSizing echo from the responder bounds the timed window: nothing
    is written on the data handle before it arrives.
    """
    send_message(session.control, BeginSizing())
    expect_message(session.control, BeginSizing, SessionState.CALIBRATION)

    logger.info(f"Client: calibrating with {format_size(calibration_bytes)}")
    elapsed_ms = timed_send(session.data, calibration_bytes, pattern, clock)
    session.bytes_sent += calibration_bytes

    speed = bytes_per_ms(calibration_bytes, elapsed_ms)
    unit_size = transfer_size_for(speed)
    session.calibrated = True
    session.calibration_bytes_per_ms = speed

    logger.info(
        f"Client: calibration done in {elapsed_ms:.1f}ms ({format_speed(speed)}), "
        f"unit size {format_size(unit_size)}"
    )
    return unit_size


def client_send_plan(session: Session, unit_size: int, rounds: int) -> BufferPlan:
    """Send the BufferPlan and record it on the session."""
    plan = BufferPlan(unit_size=unit_size, rounds=rounds)
    send_message(session.control, plan)
    session.unit_size = unit_size
    session.rounds = rounds
    logger.info(f"Client: plan sent (unit_size={format_size(unit_size)}, rounds={rounds})")
    return plan
