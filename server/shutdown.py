"""Server shutdown functions for netspeed-testkit."""

import logging

from common.connection import Session, SessionState
from common.encoding import MeasurementComplete, SessionComplete
from common.io import expect_message, send_message

logger = logging.getLogger(__name__)


def server_shutdown(session: Session) -> None:
    """Server waits for MeasurementComplete and responds with SessionComplete."""
    expect_message(session.control, MeasurementComplete, SessionState.COMPLETION)
    logger.info("Server: responding to MeasurementComplete")
    send_message(session.control, SessionComplete())
    logger.info("Server: shutdown complete")
