"""Client runner for netspeed-testkit.

Contains run_client() which connects to the server, runs one initiator
session, and returns an exit code based on the result.
"""

import logging
from enum import IntEnum

from common.config import ClientConfig
from common.connection import (
    ProtocolViolationError,
    Role,
    Session,
    TransportError,
    VersionMismatchError,
)
from common.report import HandshakeReport
from common.transport import connect
from session.machine import InitiatorMachine
from session.report import SessionReport
from session.result import SessionError, SessionResult

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """Exit codes for client operations."""

    SUCCESS = 0  # All rounds measured
    CONNECT_FAILED = 1  # Could not reach the server
    VERSION_MISMATCH = 2  # Server runs another protocol version
    PROTOCOL_ERROR = 3  # Unexpected or undecodable message
    TRANSPORT_ERROR = 4  # Connection failed mid-session


def _failed_result(machine: InitiatorMachine, error: Exception) -> SessionResult:
    return SessionResult.from_session(
        machine.session,
        success=False,
        error=SessionError(f"{machine.state.value}: {error}"),
    )


def run_client(config: ClientConfig) -> int:
    """Run client: connect, negotiate, measure. Returns exit code.

    The client:
    - Exchanges hello messages and checks the protocol version
    - Calibrates the unit size unless config.transfer_bytes is set
    - Writes config.rounds timed rounds and reports the average speed
    """
    try:
        stream = connect(config.kind, config.address)
    except TransportError as e:
        logger.error(f"Failed to connect: {e}")
        HandshakeReport(negotiated=False, error=e).print()
        return ExitCode.CONNECT_FAILED

    logger.info(f"Server addr is: {stream.peer}")
    logger.info("Connection is established")

    session = Session.open(Role.INITIATOR, stream, stream.peer)
    machine = InitiatorMachine(
        session,
        rounds=config.rounds,
        fixed_size=config.transfer_bytes,
        version=config.version,
    )

    try:
        result = machine.run()
    except VersionMismatchError as e:
        logger.error(str(e))
        HandshakeReport(negotiated=False, error=e).print()
        return ExitCode.VERSION_MISMATCH
    except ProtocolViolationError as e:
        logger.error(f"Protocol error in {machine.state.value}: {e}")
        SessionReport(result=_failed_result(machine, e)).print()
        return ExitCode.PROTOCOL_ERROR
    except TransportError as e:
        logger.error(f"Transport error in {machine.state.value}: {e}")
        SessionReport(result=_failed_result(machine, e)).print()
        return ExitCode.TRANSPORT_ERROR
    finally:
        session.close()

    assert result.unit_size is not None
    HandshakeReport(
        negotiated=True,
        role=Role.INITIATOR,
        peer=result.peer,
        unit_size=result.unit_size,
        rounds=result.rounds,
        calibrated=result.calibrated,
    ).print()
    SessionReport(result=result).print()

    return ExitCode.SUCCESS
