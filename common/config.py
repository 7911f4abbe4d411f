"""Runtime configuration for netspeed-testkit.

Contains:
- ConfigError: Raised on invalid configuration values
- default_port, default_sock_file: Defaults with environment overrides
- ClientConfig: Initiator settings
- ServerConfig: Responder settings
"""

import os
from dataclasses import dataclass

from common.encoding import UINT16_MAX, UINT64_MAX
from common.protocol import (
    DEFAULT_LISTEN_IP,
    DEFAULT_PORT,
    DEFAULT_ROUNDS,
    DEFAULT_SERVER_IP,
    DEFAULT_SOCK_FILE,
    PROTOCOL_VERSION,
)
from common.transport import TransportKind


class ConfigError(ValueError):
    """Raised when configuration values are out of range."""

    pass


def default_port() -> int:
    """TCP port, overridable via NSPT_PORT."""
    value = os.environ.get("NSPT_PORT", str(DEFAULT_PORT))
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"NSPT_PORT must be an integer, got {value!r}") from e


def default_sock_file() -> str:
    """Unix socket path, overridable via NSPT_SOCK_FILE."""
    return os.environ.get("NSPT_SOCK_FILE", DEFAULT_SOCK_FILE)


def _check_port(port: int) -> None:
    if not 0 <= port <= 65535:
        raise ConfigError(f"port must be in 0..65535, got {port}")


@dataclass
class ClientConfig:
    """Initiator settings, validated on construction."""

    kind: TransportKind = TransportKind.TCP
    server_ip: str = DEFAULT_SERVER_IP
    port: int = DEFAULT_PORT
    sock_file: str = DEFAULT_SOCK_FILE
    rounds: int = DEFAULT_ROUNDS
    transfer_bytes: int | None = None  # None -> calibrate
    version: int = PROTOCOL_VERSION

    def __post_init__(self) -> None:
        _check_port(self.port)
        if not 0 <= self.rounds <= UINT16_MAX:
            raise ConfigError(f"rounds must be in 0..{UINT16_MAX}, got {self.rounds}")
        if self.transfer_bytes is not None and self.transfer_bytes <= 0:
            raise ConfigError(f"transfer_bytes must be positive, got {self.transfer_bytes}")
        if self.transfer_bytes is not None and self.transfer_bytes > UINT64_MAX:
            raise ConfigError(f"transfer_bytes must be <= {UINT64_MAX}, got {self.transfer_bytes}")

    @property
    def address(self) -> str | tuple[str, int]:
        if self.kind is TransportKind.TCP:
            return (self.server_ip, self.port)
        return self.sock_file


@dataclass
class ServerConfig:
    """Responder settings, validated on construction."""

    kind: TransportKind = TransportKind.TCP
    listen_ip: str = DEFAULT_LISTEN_IP
    port: int = DEFAULT_PORT
    sock_file: str = DEFAULT_SOCK_FILE
    version: int = PROTOCOL_VERSION

    def __post_init__(self) -> None:
        _check_port(self.port)

    @property
    def address(self) -> str | tuple[str, int]:
        if self.kind is TransportKind.TCP:
            return (self.listen_ip, self.port)
        return self.sock_file
