"""Client package for netspeed-testkit.

Contains initiator-side handshake and shutdown:
- handshake: client_exchange_hello, client_send_sizing_decision,
  client_calibrate, client_send_plan
- shutdown: client_shutdown

Note: run_client and ExitCode are not exported here to avoid circular imports
with session/. Import directly from client.runner when needed.
"""

from client.handshake import (
    client_calibrate,
    client_exchange_hello,
    client_send_plan,
    client_send_sizing_decision,
)
from client.shutdown import client_shutdown

__all__ = [
    "client_exchange_hello",
    "client_send_sizing_decision",
    "client_calibrate",
    "client_send_plan",
    "client_shutdown",
]
