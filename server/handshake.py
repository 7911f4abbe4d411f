"""Responder-side negotiation for netspeed-testkit.

Implements the responder's side of the steps before measurement:
  1. Send ResponderHello, receive InitiatorHello, compare versions
  2. Receive the sizing decision
  3. Calibrate: echo BeginSizing, drain the calibration volume
  4. Receive the BufferPlan
"""

import logging

from common.connection import Session, SessionState
from common.encoding import (
    BeginSizing,
    BufferPlan,
    InitiatorHello,
    ResponderHello,
    SizingRequested,
)
from common.io import expect_message, send_message
from common.protocol import CALIBRATION_BYTES, PROTOCOL_VERSION
from common.report import format_size
from session.measure import drain_volume

logger = logging.getLogger(__name__)


def server_exchange_hello(session: Session, version: int = PROTOCOL_VERSION) -> bool:
    """Send ResponderHello and check the initiator's answer.

    Returns True if the versions match. A mismatch is not an error on the
    responder: the caller drops the connection and keeps serving.
    """
    logger.info(f"Server: new client ({session.peer}) connected")
    send_message(session.control, ResponderHello(version))
    hello = expect_message(session.control, InitiatorHello, SessionState.HELLO_EXCHANGE)

    if hello.version != version:
        logger.warning(
            f"Server: version mismatch (ours={version:#x}, client={hello.version:#x}), "
            "resetting connection"
        )
        return False

    logger.info(f"Server: hello complete (version={version:#x})")
    return True


def server_recv_sizing_decision(session: Session) -> bool:
    """Receive SizingRequested. Returns True if calibration follows."""
    decision = expect_message(session.control, SizingRequested, SessionState.SIZING_DECISION)
    logger.debug(f"Server: calibration required={decision.required}")
    return decision.required


def server_calibrate(
    session: Session,
    buf: bytearray,
    calibration_bytes: int = CALIBRATION_BYTES,
) -> None:
    """Echo BeginSizing and drain the calibration volume from the data handle."""
    expect_message(session.control, BeginSizing, SessionState.CALIBRATION)
    send_message(session.control, BeginSizing())

    logger.info("Server: start to determine unit size of test")
    session.bytes_received += drain_volume(session.data, calibration_bytes, buf)
    session.calibrated = True
    logger.info(f"Server: calibration drained {format_size(calibration_bytes)}")


def server_recv_plan(session: Session) -> BufferPlan:
    """Receive the BufferPlan and record it on the session."""
    plan = expect_message(session.control, BufferPlan, SessionState.PLAN)
    session.unit_size = plan.unit_size
    session.rounds = plan.rounds
    logger.info(
        f"Server: transfer_size: {format_size(plan.unit_size)}, test_times: {plan.rounds}"
    )
    return plan
