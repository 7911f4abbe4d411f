"""Server runner for netspeed-testkit.

Contains run_server() which runs in a persistent loop, accepting one
client at a time, running the responder session to completion, and
handling SIGINT for graceful shutdown.
"""

import logging
import signal
from collections.abc import Callable
from types import FrameType

from common.config import ServerConfig
from common.connection import ProtocolViolationError, Role, Session, TransportError
from common.protocol import ACCEPT_POLL_S, CALIBRATION_BYTES, PROTOCOL_VERSION, Stream
from common.transport import Listener, listen
from session.machine import ResponderMachine
from session.report import SessionReport
from session.result import SessionError, SessionResult

logger = logging.getLogger(__name__)


def handle_connection(
    stream: Stream,
    peer: str,
    version: int = PROTOCOL_VERSION,
    calibration_bytes: int = CALIBRATION_BYTES,
) -> SessionResult:
    """Run one responder session over stream and close it.

    Protocol and transport failures end this session only; they are logged
    and returned in the result.
    """
    session = Session.open(Role.RESPONDER, stream, peer)
    machine = ResponderMachine(session, version=version, calibration_bytes=calibration_bytes)

    try:
        result = machine.run()
    except (ProtocolViolationError, TransportError) as e:
        logger.error(f"Server: session with {peer} aborted in {machine.state.value}: {e}")
        result = SessionResult.from_session(
            session,
            success=False,
            error=SessionError(f"{machine.state.value}: {e}"),
        )
    finally:
        session.close()

    if result.version_mismatch:
        logger.info("Negotiation failed... reset connection.")
    elif result.success:
        logger.info("Session complete, returning to wait for next client")
    return result


def serve(
    listener: Listener,
    version: int = PROTOCOL_VERSION,
    running: Callable[[], bool] = lambda: True,
    max_sessions: int | None = None,
    calibration_bytes: int = CALIBRATION_BYTES,
) -> int:
    """Accept and serve clients sequentially. Returns sessions served.

    Stops when running() turns False (checked between accepts) or after
    max_sessions connections.
    """
    served = 0
    while running() and (max_sessions is None or served < max_sessions):
        accepted = listener.accept()
        if accepted is None:
            continue  # Poll timeout - loop back to check running flag

        stream, peer = accepted
        served += 1
        result = handle_connection(stream, peer, version, calibration_bytes)
        SessionReport(result=result).print()

    return served


def run_server(config: ServerConfig) -> int:
    """Run server in persistent loop. Returns 0 unless the listener fails.

    The server:
    - Waits for client connections, one at a time
    - Handles SIGINT/SIGTERM between sessions for graceful exit
    - Returns to the accept loop after each session, whatever its outcome
    """
    running = True

    def handle_signal(_sig: int, _frame: FrameType | None) -> None:
        nonlocal running
        running = False
        logger.info("Signal received - shutting down after current session")

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        listener = listen(config.kind, config.address, poll_s=ACCEPT_POLL_S)
    except TransportError as e:
        logger.error(f"Failed to open listener: {e}")
        return 1

    try:
        logger.info(" *** Server is ready for to be connected *** ")
        logger.info(f"Test Mode: {config.kind.name}, Protocol Version: {config.version:#04x}")
        logger.info(f"Waiting a connection from client with {listener.address}")
        serve(listener, version=config.version, running=lambda: running)
    finally:
        listener.close()
        logger.info(f"Closed {listener.address}")

    logger.info("Server shutdown complete")
    return 0
