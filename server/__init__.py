"""Server package for netspeed-testkit.

Contains responder-side handshake and shutdown:
- handshake: server_exchange_hello, server_recv_sizing_decision,
  server_calibrate, server_recv_plan
- shutdown: server_shutdown

Note: run_server and serve are not exported here to avoid circular imports
with session/. Import directly from server.runner when needed.
"""

from server.handshake import (
    server_calibrate,
    server_exchange_hello,
    server_recv_plan,
    server_recv_sizing_decision,
)
from server.shutdown import server_shutdown

__all__ = [
    "server_exchange_hello",
    "server_recv_sizing_decision",
    "server_calibrate",
    "server_recv_plan",
    "server_shutdown",
]
