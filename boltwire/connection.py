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
Bolt client connection.

Drives a single Bolt protocol session: validates each request against the
server state, writes it immediately (pipelining) and reads replies back in
request order.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from .chunking import ChunkReader
from .config import DEFAULT_USER_AGENT, ConnectionConfig
from .errors import BoltError, ConnectError, DecodeError, ProtocolStateError
from .handshake import negotiate
from .messages import Message, Response, Signature
from .packstream import decode_message, encode_message
from .profiles import VersionProfile, get_profile
from .state import ServerState, StateMachine
from .transport import SocketTransport


logger = logging.getLogger(__name__)


class BoltConnection:
    """
    Client side of a single Bolt protocol connection.

    Every request method validates the current state, writes the message
    and returns the connection, so calls can be chained before any reply
    is read:

        conn = BoltConnection.open(ConnectionConfig(port=7687))
        conn.hello({'scheme': 'basic', 'principal': 'neo4j', 'credentials': 'pw'})
        conn.get_response().raise_for_failure()

        conn.begin().run("RETURN 1 AS n").pull().commit()
        while conn.pending:
            for response in conn.get_responses():
                print(response.signature.name, response.content)

    A connection and its transport must not be used from several threads.
    """

    def __init__(
        self,
        transport,
        profile: VersionProfile,
        user_agent: str = DEFAULT_USER_AGENT
    ):
        """
        Initialize over an already connected and negotiated transport.

        Args:
            transport: Object providing write(bytes), read(n) and disconnect()
            profile: Profile of the negotiated protocol version
            user_agent: Client identification string sent in INIT/HELLO
        """
        self._transport = transport
        self._profile = profile
        self._user_agent = user_agent
        self._state = StateMachine(profile.initial_state, profile.ignored_interrupts)
        self._reader = ChunkReader(self._read)

    @classmethod
    def open(cls, config: Optional[ConnectionConfig] = None, transport=None) -> "BoltConnection":
        """
        Connect, perform the handshake and select the version profile.

        Args:
            config: Connection settings (defaults to ConnectionConfig())
            transport: Unconnected transport to use instead of a SocketTransport
        """
        config = config or ConnectionConfig()
        if transport is None:
            transport = SocketTransport(
                config.host, config.port, timeout=config.timeout, blocking=config.blocking
            )
        transport.connect()
        try:
            profile = get_profile(negotiate(transport, config.versions))
        except BoltError:
            transport.disconnect()
            raise
        return cls(transport, profile, user_agent=config.user_agent)

    @property
    def profile(self) -> VersionProfile:
        return self._profile

    @property
    def transport(self):
        return self._transport

    @property
    def state(self) -> ServerState:
        """Current server state."""
        return self._state.state

    @property
    def pending(self) -> int:
        """Number of requests still awaiting their summary reply."""
        return len(self._state.pending)

    def get_version(self) -> str:
        """Negotiated protocol version, e.g. '5.4'."""
        return self._profile.version_string

    # Requests

    def init(self, auth: Dict[str, Any], user_agent: Optional[str] = None) -> "BoltConnection":
        """Send INIT (Bolt 1-2): initialize and authenticate."""
        return self._send(Message.INIT, user_agent=user_agent or self._user_agent, auth=dict(auth))

    def hello(self, extra: Optional[Dict[str, Any]] = None) -> "BoltConnection":
        """
        Send HELLO.

        Before Bolt 5.1 extra carries the authentication token; from 5.1 on
        authentication is sent separately with logon().
        """
        extra = dict(extra or {})
        extra.setdefault('user_agent', self._user_agent)
        if self._profile.hello_bolt_agent:
            extra.setdefault('bolt_agent', {'product': self._user_agent})
        return self._send(Message.HELLO, extra=extra)

    def logon(self, auth: Dict[str, Any]) -> "BoltConnection":
        """Send LOGON (Bolt 5.1+)."""
        return self._send(Message.LOGON, auth=dict(auth))

    def logoff(self) -> "BoltConnection":
        """Send LOGOFF (Bolt 5.1+)."""
        return self._send(Message.LOGOFF)

    def run(
        self,
        query: str,
        parameters: Optional[Dict[str, Any]] = None,
        extra: Optional[Dict[str, Any]] = None
    ) -> "BoltConnection":
        """Send RUN: execute a query with parameters."""
        return self._send(
            Message.RUN, query=query, parameters=dict(parameters or {}), extra=dict(extra or {})
        )

    def pull(self, n: int = -1, qid: int = -1) -> "BoltConnection":
        """
        Send PULL (Bolt 4+): fetch up to n records (-1 for all) of the
        result identified by qid (-1 for the last one).
        """
        return self._send(Message.PULL, has_more=n != -1, extra=self._fetch_extra(n, qid))

    def discard(self, n: int = -1, qid: int = -1) -> "BoltConnection":
        """Send DISCARD (Bolt 4+)."""
        return self._send(Message.DISCARD, has_more=n != -1, extra=self._fetch_extra(n, qid))

    def pull_all(self) -> "BoltConnection":
        """Send PULL_ALL (Bolt 1-3)."""
        return self._send(Message.PULL_ALL)

    def discard_all(self) -> "BoltConnection":
        """Send DISCARD_ALL (Bolt 1-3)."""
        return self._send(Message.DISCARD_ALL)

    def begin(self, extra: Optional[Dict[str, Any]] = None) -> "BoltConnection":
        """Send BEGIN (Bolt 3+): open an explicit transaction."""
        return self._send(Message.BEGIN, extra=dict(extra or {}))

    def commit(self) -> "BoltConnection":
        """Send COMMIT (Bolt 3+)."""
        return self._send(Message.COMMIT)

    def rollback(self) -> "BoltConnection":
        """Send ROLLBACK (Bolt 3+)."""
        return self._send(Message.ROLLBACK)

    def reset(self) -> "BoltConnection":
        """Send RESET: return the server to READY from any live state."""
        return self._send(Message.RESET)

    def ack_failure(self) -> "BoltConnection":
        """Send ACK_FAILURE (Bolt 1-2)."""
        return self._send(Message.ACK_FAILURE)

    def route(
        self,
        routing: Optional[Dict[str, Any]] = None,
        bookmarks: Optional[List[str]] = None,
        db: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None
    ) -> "BoltConnection":
        """
        Send ROUTE (Bolt 4.3+): request the routing table.

        Bolt 4.3 sends the database name as its own field; 4.4 and later
        send an extra map, built from db when not given.
        """
        if extra is None:
            extra = {'db': db} if db is not None else {}
        return self._send(
            Message.ROUTE,
            routing=dict(routing or {}),
            bookmarks=list(bookmarks or []),
            db=db,
            extra=dict(extra),
        )

    def telemetry(self, api: int) -> "BoltConnection":
        """Send TELEMETRY (Bolt 5.4+)."""
        return self._send(Message.TELEMETRY, api=api)

    def goodbye(self) -> None:
        """Send GOODBYE and close the connection. No reply is expected."""
        try:
            self._send(Message.GOODBYE)
        finally:
            self._state.mark_defunct()
            self._transport.disconnect()

    def close(self) -> None:
        """
        Say GOODBYE when the protocol and state allow it, then disconnect.

        A failure to deliver GOODBYE is logged, not raised.
        """
        try:
            if not self._state.is_defunct() and self._profile.supports(Message.GOODBYE):
                self.goodbye()
        except BoltError as e:
            logger.warning(f"GOODBYE not delivered: {e}")
        finally:
            self._state.mark_defunct()
            self._transport.disconnect()
            logger.info(f"Closed Bolt {self.get_version()} connection")

    def __enter__(self) -> "BoltConnection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # Responses

    def get_response(self) -> Response:
        """
        Read exactly one reply for the oldest pending request.

        The request stays pending while RECORD replies arrive and is
        dequeued by its summary (SUCCESS, FAILURE or IGNORED).

        Raises:
            ProtocolStateError: If no request is pending.
        """
        entry = self._state.pending.peek()
        if entry is None:
            raise ProtocolStateError("No response waiting to be consumed")

        data = self._reader.read_message()
        try:
            message = decode_message(data, self._profile.structures)
        except DecodeError:
            self._set_defunct()
            raise
        try:
            signature = Signature(message.tag)
        except ValueError:
            self._set_defunct()
            raise DecodeError(f"Unknown response signature: 0x{message.tag:02X}") from None

        if signature == Signature.RECORD:
            content = message.fields[0] if message.fields else []
        else:
            content = message.fields[0] if message.fields else {}

        self._state.received(signature, content)
        response = Response(entry.message, signature, content)

        if signature == Signature.FAILURE:
            logger.warning(f"S: FAILURE for {entry.message.name}: {content}")
            if self._state.is_defunct():
                self._set_defunct()
        elif signature == Signature.IGNORED:
            logger.warning(f"S: IGNORED for {entry.message.name}")
        else:
            logger.debug(f"S: {signature.name} for {entry.message.name}")
        return response

    def get_responses(self) -> Iterator[Response]:
        """
        Lazily read the replies of the oldest pending request: any RECORDs
        followed by the summary reply, after which the iterator ends.

        Raises:
            ProtocolStateError: If no request is pending.
        """
        if not self._state.pending:
            raise ProtocolStateError("No response waiting to be consumed")
        return self._iter_responses()

    def _iter_responses(self) -> Iterator[Response]:
        while True:
            response = self.get_response()
            yield response
            if response.is_summary:
                return

    # Internals

    def _send(self, message: Message, has_more: bool = False, **values) -> "BoltConnection":
        """Validate, encode and write one request, then queue it."""
        spec = self._profile.spec(message)
        if spec is None:
            raise ProtocolStateError(
                f"{message.name} is not available in Bolt {self.get_version()}"
            )
        self._state.ensure(message, spec.states)

        fields = [values.get(name) for name in spec.fields]
        # Encode fully first so an EncodeError leaves nothing half-written
        chunks = list(encode_message(spec.signature, fields, self._profile.structures))
        for chunk in chunks:
            self._write(chunk)
        logger.debug(f"C: {message.name}")

        if spec.expects_reply:
            self._state.sent(message, spec.success, spec.failure_state, has_more)
        return self

    @staticmethod
    def _fetch_extra(n: int, qid: int) -> Dict[str, int]:
        extra = {'n': n}
        if qid != -1:
            extra['qid'] = qid
        return extra

    def _write(self, data: bytes) -> None:
        try:
            self._transport.write(data)
        except ConnectError:
            self._set_defunct()
            raise

    def _read(self, length: int) -> bytes:
        try:
            return self._transport.read(length)
        except ConnectError:
            self._set_defunct()
            raise

    def _set_defunct(self) -> None:
        self._state.mark_defunct()
        self._transport.disconnect()
