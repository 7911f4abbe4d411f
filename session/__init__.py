"""Session measurement package for netspeed-testkit.

This package handles everything after the hello exchange:
- Adaptive sizing from a calibrated bytes/ms rate
- Timed bulk rounds in lock-step between both roles
- Throughput statistics and the final report

Note: InitiatorMachine and ResponderMachine are not exported here to avoid
circular imports with client/ and server/. Import from session.machine.
"""

from session.exchange import client_measure, server_measure
from session.measure import bytes_per_ms, drain_volume, send_volume, timed_send
from session.report import SessionReport
from session.result import SessionError, SessionResult, ThroughputStats, compute_throughput_stats
from session.sizing import next_power_of_two, transfer_size_for

__all__ = [
    "SessionError",
    "SessionReport",
    "SessionResult",
    "ThroughputStats",
    "bytes_per_ms",
    "client_measure",
    "compute_throughput_stats",
    "drain_volume",
    "next_power_of_two",
    "send_volume",
    "server_measure",
    "timed_send",
    "transfer_size_for",
]
