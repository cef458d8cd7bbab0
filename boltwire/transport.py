# Copyright 2025-2026 Gregorio Elias Roecker Momm and nxCypher contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
TCP transport for the Bolt client.

Provides whole-buffer read and write over a socket, hiding partial I/O and
transient OS errors. Every connect, read and write call gets its own
wall-clock budget computed from the configured timeout.
"""

import errno
import logging
import select
import socket
import time
from typing import Optional

from .errors import ConnectError, ConnectionTimeoutError


logger = logging.getLogger(__name__)

# Transient conditions: retried without charging the deadline
RETRY_ERRORS = (InterruptedError, BlockingIOError)

CONNECT_IN_PROGRESS = (errno.EINPROGRESS, errno.EALREADY, errno.EAGAIN, errno.EWOULDBLOCK)


class SocketTransport:
    """
    Duplex byte stream over TCP.

    Usage:
        transport = SocketTransport("127.0.0.1", 7687, timeout=5)
        transport.connect()
        transport.write(b'\\x60\\x60\\xb0\\x17')
        data = transport.read(4)
        transport.disconnect()
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 7687,
        timeout: Optional[float] = 15.0,
        blocking: bool = True
    ):
        """
        Initialize the transport.

        Args:
            host: Server address
            port: Server port (default: 7687, standard Bolt port)
            timeout: Seconds allowed per connect/read/write call; None or 0
                     waits forever
            blocking: Use blocking sockets (default) or non-blocking sockets
                      driven by select()
        """
        self._host = host
        self._port = port
        self._timeout = timeout
        self._blocking = blocking
        self._socket: Optional[socket.socket] = None

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @property
    def blocking(self) -> bool:
        return self._blocking

    @property
    def is_connected(self) -> bool:
        return self._socket is not None

    def set_blocking(self, blocking: bool) -> None:
        """
        Choose blocking or non-blocking mode.

        Raises:
            ConnectError: If the connection is already established.
        """
        if self._socket is not None:
            raise ConnectError("Cannot change blocking mode on established connection")
        self._blocking = blocking

    def set_timeout(self, timeout: Optional[float]) -> None:
        """Set the per-call timeout budget for subsequent operations."""
        self._timeout = timeout
        self._configure_timeout()

    def connect(self) -> None:
        """
        Open the connection.

        Raises:
            ConnectError: If the socket cannot be created or connected.
            ConnectionTimeoutError: If the connect budget is exhausted.
        """
        start = time.monotonic()
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
        except OSError as e:
            raise ConnectError(f"Cannot create socket: {e}") from e

        self._socket = sock
        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            if self._blocking:
                self._configure_timeout()
                sock.connect((self._host, self._port))
            else:
                sock.setblocking(False)
                code = sock.connect_ex((self._host, self._port))
                if code in CONNECT_IN_PROGRESS:
                    self._wait(start, write=True)
                    code = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
                if code != 0:
                    raise ConnectError(f"Cannot connect to {self._host}:{self._port}: {errno.errorcode.get(code, code)}")
        except socket.timeout as e:
            self.disconnect()
            raise ConnectionTimeoutError(
                f"Connection timeout reached after {self._timeout} seconds."
            ) from e
        except ConnectError:
            self.disconnect()
            raise
        except OSError as e:
            self.disconnect()
            raise ConnectError(f"Cannot connect to {self._host}:{self._port}: {e}") from e

        logger.info(f"Connected to {self._host}:{self._port}")

    def write(self, buffer: bytes) -> None:
        """
        Send the entire buffer.

        Raises:
            ConnectError: On any non-transient socket error.
            ConnectionTimeoutError: If the write budget is exhausted.
        """
        sock = self._require_socket()
        start = time.monotonic()
        view = memoryview(buffer)
        while view:
            self._prepare(start, write=True)
            try:
                sent = sock.send(view)
            except RETRY_ERRORS:
                continue
            except socket.timeout as e:
                raise self._timeout_error() from e
            except OSError as e:
                raise ConnectError(f"Write failed: {e}") from e
            view = view[sent:]

    def read(self, length: int) -> bytes:
        """
        Receive exactly length bytes.

        Raises:
            ConnectError: If the peer closed the connection or on any
                          non-transient socket error.
            ConnectionTimeoutError: If the read budget is exhausted.
        """
        sock = self._require_socket()
        start = time.monotonic()
        output = bytearray()
        while len(output) < length:
            self._prepare(start, write=False)
            try:
                data = sock.recv(length - len(output))
            except RETRY_ERRORS:
                continue
            except socket.timeout as e:
                raise self._timeout_error() from e
            except OSError as e:
                raise ConnectError(f"Read failed: {e}") from e
            if not data:
                raise ConnectError("Connection closed by remote host")
            output.extend(data)
        return bytes(output)

    def disconnect(self) -> None:
        """Close the connection. Safe to call at any time."""
        sock, self._socket = self._socket, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            sock.close()
        except OSError:
            pass
        logger.debug(f"Disconnected from {self._host}:{self._port}")

    def __enter__(self) -> "SocketTransport":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    def _require_socket(self) -> socket.socket:
        if self._socket is None:
            raise ConnectError("Not initialized socket")
        return self._socket

    def _remaining(self, start: float) -> Optional[float]:
        """Seconds left in the budget of a call started at start, or None if unbounded."""
        if not self._timeout or self._timeout <= 0:
            return None
        remaining = self._timeout - (time.monotonic() - start)
        if remaining <= 0:
            raise self._timeout_error()
        return remaining

    def _prepare(self, start: float, write: bool) -> None:
        """Bound the next send/recv by what is left of the call's budget."""
        if self._blocking:
            self._socket.settimeout(self._remaining(start))
        else:
            self._wait(start, write)

    def _wait(self, start: float, write: bool) -> None:
        """Wait for the non-blocking socket to become readable or writable."""
        remaining = self._remaining(start)
        while True:
            try:
                if write:
                    _, ready, errored = select.select([], [self._socket], [self._socket], remaining)
                else:
                    ready, _, errored = select.select([self._socket], [], [], remaining)
            except InterruptedError:
                remaining = self._remaining(start)
                continue
            except (OSError, ValueError) as e:
                raise ConnectError(f"Wait on socket failed: {e}") from e
            break
        if not ready and not errored:
            raise self._timeout_error()

    def _configure_timeout(self) -> None:
        if self._socket is None or not self._blocking:
            return
        self._socket.settimeout(self._timeout if self._timeout and self._timeout > 0 else None)

    def _timeout_error(self) -> ConnectionTimeoutError:
        return ConnectionTimeoutError(
            f"Connection timeout reached after {self._timeout} seconds."
        )
