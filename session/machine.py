"""Session state machines for netspeed-testkit.

Each role holds an explicit SessionState and one transition function per
state. A transition performs that state's message exchange and returns the
next state:

  HELLO_EXCHANGE -> SIZING_DECISION -> [CALIBRATION] -> PLAN
                 -> MEASUREMENT -> COMPLETION -> DONE

The responder may instead go HELLO_EXCHANGE -> REJECTED on a version
mismatch. Any protocol or transport failure propagates out of step().
"""

import logging
import time
from collections.abc import Callable

from client.handshake import (
    client_calibrate,
    client_exchange_hello,
    client_send_plan,
    client_send_sizing_decision,
)
from client.shutdown import client_shutdown
from common.connection import Role, Session, SessionState
from common.protocol import BUF_SIZE, CALIBRATION_BYTES, PROTOCOL_VERSION
from server.handshake import (
    server_calibrate,
    server_exchange_hello,
    server_recv_plan,
    server_recv_sizing_decision,
)
from server.shutdown import server_shutdown
from session.exchange import client_measure, server_measure
from session.measure import Clock, make_pattern
from session.result import SessionResult

logger = logging.getLogger(__name__)

Transition = Callable[[], SessionState]


class _SessionMachine:
    role: Role

    def __init__(self, session: Session, version: int = PROTOCOL_VERSION) -> None:
        self.session = session
        self.version = version
        self.state = SessionState.HELLO_EXCHANGE

    def _transitions(self) -> dict[SessionState, Transition]:
        raise NotImplementedError

    def step(self) -> SessionState:
        """Run the current state's transition and return the new state."""
        if self.state.terminal:
            raise RuntimeError(f"{self.role.value}: session already in {self.state.value}")

        previous = self.state
        self.state = self._transitions()[previous]()
        logger.debug(f"{self.role.value}: {previous.value} -> {self.state.value}")
        return self.state

    def run(self) -> SessionResult:
        """Step until a terminal state and return the session result."""
        start = time.monotonic()
        while not self.state.terminal:
            self.step()

        return SessionResult.from_session(
            self.session,
            success=self.state is SessionState.DONE,
            version_mismatch=self.state is SessionState.REJECTED,
            elapsed_s=time.monotonic() - start,
        )


class InitiatorMachine(_SessionMachine):
    """Initiator role: drives sizing and writes the bulk rounds."""

    role = Role.INITIATOR

    def __init__(
        self,
        session: Session,
        rounds: int,
        fixed_size: int | None = None,
        version: int = PROTOCOL_VERSION,
        clock: Clock = time.monotonic,
        calibration_bytes: int = CALIBRATION_BYTES,
    ) -> None:
        super().__init__(session, version)
        self.rounds = rounds
        self.fixed_size = fixed_size
        self.unit_size = fixed_size
        self.clock = clock
        self.calibration_bytes = calibration_bytes
        self.pattern = make_pattern()

    def _transitions(self) -> dict[SessionState, Transition]:
        return {
            SessionState.HELLO_EXCHANGE: self._hello,
            SessionState.SIZING_DECISION: self._sizing_decision,
            SessionState.CALIBRATION: self._calibration,
            SessionState.PLAN: self._plan,
            SessionState.MEASUREMENT: self._measurement,
            SessionState.COMPLETION: self._completion,
        }

    def _hello(self) -> SessionState:
        client_exchange_hello(self.session, self.version)
        return SessionState.SIZING_DECISION

    def _sizing_decision(self) -> SessionState:
        if client_send_sizing_decision(self.session, self.fixed_size):
            return SessionState.CALIBRATION
        return SessionState.PLAN

    def _calibration(self) -> SessionState:
        self.unit_size = client_calibrate(
            self.session, self.pattern, self.clock, self.calibration_bytes
        )
        return SessionState.PLAN

    def _plan(self) -> SessionState:
        assert self.unit_size is not None
        client_send_plan(self.session, self.unit_size, self.rounds)
        return SessionState.MEASUREMENT

    def _measurement(self) -> SessionState:
        client_measure(self.session, self.pattern, self.clock)
        return SessionState.COMPLETION

    def _completion(self) -> SessionState:
        client_shutdown(self.session)
        return SessionState.DONE


class ResponderMachine(_SessionMachine):
    """Responder role: follows the initiator's plan and drains the rounds."""

    role = Role.RESPONDER

    def __init__(
        self,
        session: Session,
        version: int = PROTOCOL_VERSION,
        calibration_bytes: int = CALIBRATION_BYTES,
    ) -> None:
        super().__init__(session, version)
        self.calibration_bytes = calibration_bytes
        self.buf = bytearray(BUF_SIZE)

    def _transitions(self) -> dict[SessionState, Transition]:
        return {
            SessionState.HELLO_EXCHANGE: self._hello,
            SessionState.SIZING_DECISION: self._sizing_decision,
            SessionState.CALIBRATION: self._calibration,
            SessionState.PLAN: self._plan,
            SessionState.MEASUREMENT: self._measurement,
            SessionState.COMPLETION: self._completion,
        }

    def _hello(self) -> SessionState:
        if server_exchange_hello(self.session, self.version):
            return SessionState.SIZING_DECISION
        return SessionState.REJECTED

    def _sizing_decision(self) -> SessionState:
        if server_recv_sizing_decision(self.session):
            return SessionState.CALIBRATION
        return SessionState.PLAN

    def _calibration(self) -> SessionState:
        server_calibrate(self.session, self.buf, self.calibration_bytes)
        return SessionState.PLAN

    def _plan(self) -> SessionState:
        server_recv_plan(self.session)
        return SessionState.MEASUREMENT

    def _measurement(self) -> SessionState:
        server_measure(self.session, self.buf)
        return SessionState.COMPLETION

    def _completion(self) -> SessionState:
        server_shutdown(self.session)
        return SessionState.DONE
