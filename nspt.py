#!/usr/bin/env python3
"""Network speed test tool.

Runs either the responder (server) or the initiator (client) side of a
throughput session over TCP or a Unix domain socket.
"""

import argparse
import logging
import sys

from client.runner import run_client
from common.config import ClientConfig, ConfigError, ServerConfig, default_port, default_sock_file
from common.protocol import DEFAULT_LISTEN_IP, DEFAULT_ROUNDS, DEFAULT_SERVER_IP
from common.transport import TransportKind
from server.runner import run_server

logger = logging.getLogger(__name__)


def _transport_kind(value: str) -> TransportKind:
    try:
        return TransportKind.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _positive_int(value: str) -> int:
    n = int(value)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {n}")
    return n


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add mode, port, socket path, and verbosity arguments to a parser."""
    parser.add_argument(
        "-m",
        "--mode",
        type=_transport_kind,
        default=TransportKind.TCP,
        metavar="{tcp,unix}",
        help="Transport mode (default: tcp)",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=default_port(),
        help="TCP port (default: %(default)s, env NSPT_PORT)",
    )
    parser.add_argument(
        "-s",
        "--sock",
        type=str,
        default=default_sock_file(),
        help="Unix socket path (default: %(default)s, env NSPT_SOCK_FILE)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Measure network throughput between two endpoints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s server                       Listen on TCP port 12845
  %(prog)s client -i 10.0.0.2           Calibrate, then run 10 rounds
  %(prog)s client -d 1048576 -t 50      Run 50 rounds of 1 MB each
  %(prog)s server -m unix -s /tmp/a     Listen on a Unix socket
""",
    )

    subparsers = parser.add_subparsers(dest="role")

    server_parser = subparsers.add_parser("server", help="Run the responder side")
    _add_common_args(server_parser)

    client_parser = subparsers.add_parser("client", help="Run the initiator side")
    _add_common_args(client_parser)
    client_parser.add_argument(
        "-i",
        "--server-ip",
        type=str,
        default=DEFAULT_SERVER_IP,
        help=f"Server address (default: {DEFAULT_SERVER_IP})",
    )
    client_parser.add_argument(
        "-t",
        "--test-times",
        type=int,
        default=DEFAULT_ROUNDS,
        help=f"Number of measured rounds (default: {DEFAULT_ROUNDS})",
    )
    client_parser.add_argument(
        "-d",
        "--transfer-bytes",
        type=_positive_int,
        default=None,
        help="Fixed bytes per round; skips calibration",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2
    args = parser.parse_args(argv)

    if args.role is None:
        parser.print_help()
        return 2

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        if args.role == "server":
            server_config = ServerConfig(
                kind=args.mode,
                listen_ip=DEFAULT_LISTEN_IP,
                port=args.port,
                sock_file=args.sock,
            )
            return run_server(server_config)

        client_config = ClientConfig(
            kind=args.mode,
            server_ip=args.server_ip,
            port=args.port,
            sock_file=args.sock,
            rounds=args.test_times,
            transfer_bytes=args.transfer_bytes,
        )
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    return run_client(client_config)


if __name__ == "__main__":
    sys.exit(main())
