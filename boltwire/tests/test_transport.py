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

"""Tests for the socket transport against a loopback peer."""

import socket
import threading
import time

import pytest
from boltwire.errors import ConnectError, ConnectionTimeoutError
from boltwire.transport import SocketTransport


class LoopbackPeer:
    """A listening socket on 127.0.0.1 whose accepted connection runs a handler."""

    def __init__(self, handler=None):
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(1)
        self.port = self._listener.getsockname()[1]
        self._handler = handler
        self._thread = None
        if handler is not None:
            self._thread = threading.Thread(target=self._serve, daemon=True)
            self._thread.start()

    def _serve(self):
        conn, _ = self._listener.accept()
        with conn:
            self._handler(conn)

    def close(self):
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._listener.close()


def _recv_exactly(conn, n):
    data = b''
    while len(data) < n:
        chunk = conn.recv(n - len(data))
        if not chunk:
            break
        data += chunk
    return data


def _echo(conn):
    conn.sendall(_recv_exactly(conn, 4))
    # Wait for the client to close
    conn.recv(1)


@pytest.fixture
def peer_factory():
    peers = []

    def make(handler=None):
        peer = LoopbackPeer(handler)
        peers.append(peer)
        return peer

    yield make
    for peer in peers:
        peer.close()


class TestSocketTransport:
    """Test connect, read and write behaviour."""

    @pytest.mark.parametrize("blocking", [True, False])
    def test_echo(self, peer_factory, blocking):
        peer = peer_factory(_echo)
        transport = SocketTransport("127.0.0.1", peer.port, timeout=5, blocking=blocking)
        with transport:
            assert transport.is_connected
            transport.write(b'\x60\x60\xb0\x17')
            assert transport.read(4) == b'\x60\x60\xb0\x17'
        assert not transport.is_connected

    @pytest.mark.parametrize("blocking", [True, False])
    def test_silent_peer_times_out(self, peer_factory, blocking):
        peer = peer_factory()
        transport = SocketTransport("127.0.0.1", peer.port, timeout=1, blocking=blocking)
        transport.connect()
        try:
            start = time.monotonic()
            with pytest.raises(ConnectionTimeoutError, match="timeout"):
                transport.read(4)
            elapsed = time.monotonic() - start
            assert 0.8 <= elapsed < 3
        finally:
            transport.disconnect()

    def test_timeout_is_a_connect_error(self):
        assert issubclass(ConnectionTimeoutError, ConnectError)
        assert issubclass(ConnectionTimeoutError, TimeoutError)

    def test_peer_close(self, peer_factory):
        peer = peer_factory(lambda conn: None)
        transport = SocketTransport("127.0.0.1", peer.port, timeout=5)
        transport.connect()
        try:
            with pytest.raises(ConnectError, match="closed"):
                transport.read(4)
        finally:
            transport.disconnect()

    def test_connection_refused(self):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
        sock.close()

        transport = SocketTransport("127.0.0.1", port, timeout=2)
        with pytest.raises(ConnectError):
            transport.connect()
        assert not transport.is_connected

    def test_read_before_connect(self):
        with pytest.raises(ConnectError, match="Not initialized"):
            SocketTransport().read(1)

    def test_set_blocking_after_connect(self, peer_factory):
        peer = peer_factory()
        transport = SocketTransport("127.0.0.1", peer.port, timeout=1)
        transport.set_blocking(False)
        assert not transport.blocking
        transport.set_blocking(True)
        transport.connect()
        try:
            with pytest.raises(ConnectError):
                transport.set_blocking(False)
        finally:
            transport.disconnect()

    def test_disconnect_twice(self):
        transport = SocketTransport()
        transport.disconnect()
        transport.disconnect()
        assert not transport.is_connected
