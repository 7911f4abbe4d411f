"""Stream transports for netspeed-testkit.

Contains:
- TransportKind: Enum selecting TCP or Unix domain socket transport
- SocketStream: Handle over a shared socket, duplicable for the data path
- TcpStream, UnixStream: Connecting transports
- TcpListener, UnixListener: Accepting transports
- connect, listen: Open a stream or listener for a TransportKind
"""

import logging
import os
import socket
import threading
from enum import Enum
from pathlib import Path
from typing import Protocol

from common.connection import TransportError
from common.protocol import Stream

logger = logging.getLogger(__name__)


class TransportKind(Enum):
    """Transport used to reach the peer."""

    TCP = "tcp"
    UNIX = "unix"

    @classmethod
    def parse(cls, value: str) -> "TransportKind":
        """Parse a transport name, case-insensitively."""
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Unknown transport: {value}") from None


class _SharedSocket:
    """Reference-counted socket shared by every handle of one connection."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self._refs = 1
        self._lock = threading.Lock()

    def acquire(self) -> None:
        with self._lock:
            if self._refs == 0:
                raise TransportError("Connection already closed")
            self._refs += 1

    def release(self) -> None:
        with self._lock:
            self._refs -= 1
            if self._refs > 0:
                return
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Peer may already be gone
        self.sock.close()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._refs == 0


class SocketStream:
    """Unbuffered handle over a stream socket.

    Handles created by duplicate() share the connection but not any state:
    each read goes straight to the socket, so a handle reading frames never
    consumes bytes meant for another handle.
    """

    def __init__(self, shared: _SharedSocket, peer: str = "") -> None:
        self._shared = shared
        self._peer = peer
        self._closed = False

    @classmethod
    def from_socket(cls, sock: socket.socket, peer: str = "") -> "SocketStream":
        sock.setblocking(True)
        return cls(_SharedSocket(sock), peer)

    @property
    def peer(self) -> str:
        return self._peer

    @property
    def closed(self) -> bool:
        return self._closed

    def readinto(self, buf: bytearray | memoryview, /) -> int:
        try:
            return self._shared.sock.recv_into(buf)
        except OSError as e:
            raise TransportError(f"Read from {self._peer or 'peer'} failed: {e}") from e

    def write_all(self, data: bytes | bytearray | memoryview, /) -> None:
        try:
            self._shared.sock.sendall(data)
        except OSError as e:
            raise TransportError(f"Write to {self._peer or 'peer'} failed: {e}") from e

    def duplicate(self) -> "SocketStream":
        self._shared.acquire()
        return type(self)(self._shared, self._peer)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._shared.release()


class TcpStream(SocketStream):
    """TCP transport."""

    @classmethod
    def connect(cls, host: str, port: int) -> "TcpStream":
        try:
            sock = socket.create_connection((host, port))
        except OSError as e:
            raise TransportError(f"Failed to connect to {host}:{port}: {e}") from e
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        return cls(_SharedSocket(sock), f"{host}:{port}")


class UnixStream(SocketStream):
    """Unix domain socket transport."""

    @classmethod
    def connect(cls, path: str) -> "UnixStream":
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(path)
        except OSError as e:
            sock.close()
            raise TransportError(f"Failed to connect to {path}: {e}") from e
        return cls(_SharedSocket(sock), path)


class Listener(Protocol):
    """Protocol for listeners yielding one stream per inbound connection."""

    @property
    def address(self) -> str: ...
    def accept(self) -> tuple[Stream, str] | None: ...
    def close(self) -> None: ...


class _SocketListener:
    stream_cls: type[SocketStream] = SocketStream

    def __init__(self, sock: socket.socket, address: str, poll_s: float | None) -> None:
        self._sock = sock
        self._address = address
        if poll_s is not None:
            sock.settimeout(poll_s)

    @property
    def address(self) -> str:
        return self._address

    def _peer_name(self, addr: object) -> str:
        return str(addr)

    def _configure(self, conn: socket.socket) -> None:
        pass

    def accept(self) -> tuple[SocketStream, str] | None:
        """Accept one connection.

        Returns (stream, peer) or None if the poll interval elapsed first.
        """
        try:
            conn, addr = self._sock.accept()
        except socket.timeout:
            return None
        except OSError as e:
            raise TransportError(f"Accept on {self._address} failed: {e}") from e

        peer = self._peer_name(addr)
        conn.setblocking(True)
        self._configure(conn)
        return self.stream_cls(_SharedSocket(conn), peer), peer

    def close(self) -> None:
        self._sock.close()


class TcpListener(_SocketListener):
    """TCP listener."""

    stream_cls = TcpStream

    @classmethod
    def bind(cls, host: str, port: int, poll_s: float | None = None) -> "TcpListener":
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
            sock.listen(1)
        except OSError as e:
            sock.close()
            raise TransportError(f"Failed to listen on {host}:{port}: {e}") from e
        bound_host, bound_port = sock.getsockname()[:2]
        return cls(sock, f"{bound_host}:{bound_port}", poll_s)

    @property
    def port(self) -> int:
        return self._sock.getsockname()[1]

    def _peer_name(self, addr: object) -> str:
        host, port = addr[:2]  # type: ignore[index]
        return f"{host}:{port}"

    def _configure(self, conn: socket.socket) -> None:
        conn.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)


class UnixListener(_SocketListener):
    """Unix domain socket listener. Owns its socket file."""

    stream_cls = UnixStream

    @classmethod
    def bind(cls, path: str, poll_s: float | None = None) -> "UnixListener":
        sock_file = Path(path)
        if sock_file.exists():
            logger.info(f"Removing stale socket file {path}")
            sock_file.unlink()

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.bind(path)
            sock.listen(1)
        except OSError as e:
            sock.close()
            raise TransportError(f"Failed to listen on {path}: {e}") from e
        return cls(sock, path, poll_s)

    def _peer_name(self, addr: object) -> str:
        # Unix clients are usually unnamed
        return str(addr) if addr else f"unix:{self._address}"

    def close(self) -> None:
        super().close()
        if os.path.exists(self._address):
            os.unlink(self._address)


def connect(kind: TransportKind, address: str | tuple[str, int]) -> SocketStream:
    """Open a stream to the peer for the given transport kind.

    address is (host, port) for TCP and a socket path for Unix.
    """
    if kind is TransportKind.TCP:
        host, port = address  # type: ignore[misc]
        return TcpStream.connect(host, port)
    return UnixStream.connect(str(address))


def listen(
    kind: TransportKind,
    address: str | tuple[str, int],
    poll_s: float | None = None,
) -> _SocketListener:
    """Open a listener for the given transport kind."""
    if kind is TransportKind.TCP:
        host, port = address  # type: ignore[misc]
        return TcpListener.bind(host, port, poll_s)
    return UnixListener.bind(str(address), poll_s)
