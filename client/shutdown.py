"""Client shutdown functions for netspeed-testkit."""

import logging

from common.connection import Session, SessionState
from common.encoding import MeasurementComplete, SessionComplete
from common.io import expect_message, send_message

logger = logging.getLogger(__name__)


def client_shutdown(session: Session) -> None:
    """Client signals the end of measurement and waits for SessionComplete.

    Raises:
        UnexpectedMessageError: If the responder answers with anything else.
    """
    logger.info("Client: all rounds sent, completing session")
    send_message(session.control, MeasurementComplete())
    expect_message(session.control, SessionComplete, SessionState.COMPLETION)
    logger.info("Client: shutdown complete")
