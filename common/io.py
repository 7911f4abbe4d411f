"""Control-channel I/O helpers for netspeed-testkit.

Contains:
- send_message: Frame and write one control message
- recv_message: Read and decode one control message
- expect_message: Receive a message, requiring a specific type
"""

import logging
from typing import TypeVar

from common import message
from common.connection import SessionState, UnexpectedMessageError
from common.encoding import Message, decode_message, encode_message
from common.protocol import TRACE, Stream

logger = logging.getLogger(__name__)

M = TypeVar("M")


def send_message(stream: Stream, msg: Message) -> None:
    """Send a framed control message."""
    stream.write_all(message.encode(encode_message(msg)))
    logger.log(TRACE, f"sent {msg}")


def recv_message(stream: Stream) -> Message:
    """Receive one framed control message.

    Raises:
        TransportError: On I/O failure or truncated frame.
        EncodingError: On an unknown or malformed payload.
    """
    msg = decode_message(message.decode(stream))
    logger.log(TRACE, f"received {msg}")
    return msg


def expect_message(stream: Stream, expected: type[M], state: SessionState) -> M:
    """Receive a message that must be of type expected.

    Raises:
        UnexpectedMessageError: If any other message arrives.
    """
    msg = recv_message(stream)
    if not isinstance(msg, expected):
        raise UnexpectedMessageError(
            f"{state.value}: expected {expected.__name__}, got {type(msg).__name__}"
        )
    return msg
