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
Bolt server state machine.

Tracks the state the server session is in, as seen from the client, and
the queue of requests written but not yet answered.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Deque, FrozenSet, Iterator, Optional

from .errors import ProtocolStateError
from .messages import Message, Signature


class ServerState(Enum):
    """
    Bolt server states.

    State diagram:
        CONNECTED ─────────────────────────→ READY ⇄ STREAMING
        NEGOTIATION → AUTHENTICATION ──────↗   ↓
                                            TX_READY ⇄ TX_STREAMING
                                               ↓
                                 FAILED / INTERRUPTED → (RESET) → READY
                                               ↓
                                            DEFUNCT
    """
    CONNECTED = auto()       # Handshake done, awaiting INIT/HELLO (< 5.1)
    NEGOTIATION = auto()     # Handshake done, awaiting HELLO (5.1+)
    AUTHENTICATION = auto()  # Awaiting LOGON (5.1+)
    READY = auto()           # Ready for queries
    STREAMING = auto()       # Result available from RUN
    TX_READY = auto()        # In transaction, ready for queries
    TX_STREAMING = auto()    # In transaction, result available
    FAILED = auto()          # Error occurred, need RESET
    INTERRUPTED = auto()     # Requests ignored until RESET
    DEFUNCT = auto()         # Connection is dead


TX_STATES = frozenset({ServerState.TX_READY, ServerState.TX_STREAMING})
STREAMING_STATES = frozenset({ServerState.STREAMING, ServerState.TX_STREAMING})
ALIVE_STATES = frozenset(s for s in ServerState if s is not ServerState.DEFUNCT)


class Transition(Enum):
    """Where a successful request moves the server."""
    UNCHANGED = auto()
    READY = auto()
    TX_READY = auto()
    AUTHENTICATION = auto()
    STREAM = auto()    # STREAMING, or TX_STREAMING inside a transaction
    CONSUME = auto()   # stay streaming while has_more, else READY/TX_READY


def resolve(
    transition: Transition,
    in_transaction: bool,
    has_more: bool,
    current: ServerState
) -> ServerState:
    """Compute the state a successful request leads to."""
    if transition is Transition.UNCHANGED:
        return current
    if transition is Transition.READY:
        return ServerState.READY
    if transition is Transition.TX_READY:
        return ServerState.TX_READY
    if transition is Transition.AUTHENTICATION:
        return ServerState.AUTHENTICATION
    streaming = ServerState.TX_STREAMING if in_transaction else ServerState.STREAMING
    if transition is Transition.STREAM or has_more:
        return streaming
    return ServerState.TX_READY if in_transaction else ServerState.READY


@dataclass(frozen=True)
class PendingMessage:
    """A request written to the wire and still awaiting its summary reply."""
    message: Message
    success: Transition
    failure_state: ServerState
    in_transaction: bool
    predicted: ServerState


class PipelineQueue:
    """FIFO of pending requests. Write order == read order."""

    def __init__(self):
        self._items: Deque[PendingMessage] = deque()

    def append(self, item: PendingMessage) -> None:
        self._items.append(item)

    def peek(self) -> Optional[PendingMessage]:
        """Oldest pending request, or None."""
        return self._items[0] if self._items else None

    def last(self) -> Optional[PendingMessage]:
        """Most recently written request, or None."""
        return self._items[-1] if self._items else None

    def popleft(self) -> PendingMessage:
        return self._items.popleft()

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[PendingMessage]:
        return iter(self._items)


class StateMachine:
    """
    Manages Bolt server state transitions.

    State advances optimistically when a request is written, so that
    pipelined chains such as BEGIN, RUN, PULL, COMMIT validate before any
    reply is read. Replies then confirm or correct the prediction.
    """

    def __init__(
        self,
        initial_state: ServerState = ServerState.CONNECTED,
        ignored_interrupts: bool = False
    ):
        self._state = initial_state
        self._ignored_interrupts = ignored_interrupts
        self._pending = PipelineQueue()

    @property
    def state(self) -> ServerState:
        """Get current state."""
        return self._state

    @property
    def pending(self) -> PipelineQueue:
        """Requests awaiting a reply."""
        return self._pending

    def ensure(self, message: Message, allowed: FrozenSet[ServerState]) -> None:
        """
        Check that message may be sent in the current state.

        In INTERRUPTED every request goes out unchecked; the server answers
        IGNORED to anything but RESET.

        Raises:
            ProtocolStateError: If the state does not permit the message.
        """
        if self._state is ServerState.DEFUNCT:
            raise ProtocolStateError(
                f"Cannot send {message.name}: connection is defunct"
            )
        if self._state is ServerState.INTERRUPTED:
            return
        if self._state not in allowed:
            expected = ' or '.join(sorted(s.name for s in allowed))
            raise ProtocolStateError(
                f"Cannot send {message.name}: server in {self._state.name} state. "
                f"Expected {expected}."
            )

    def sent(
        self,
        message: Message,
        success: Transition,
        failure_state: ServerState = ServerState.FAILED,
        has_more: bool = False
    ) -> PendingMessage:
        """Record a written request and advance to its predicted state."""
        in_transaction = self._state in TX_STATES
        if self._state is ServerState.INTERRUPTED and message is not Message.RESET:
            predicted = self._state
        else:
            predicted = resolve(success, in_transaction, has_more, self._state)

        entry = PendingMessage(message, success, failure_state, in_transaction, predicted)
        self._pending.append(entry)
        self._state = predicted
        return entry

    def received(self, signature: Signature, content: Any) -> PendingMessage:
        """
        Apply one reply to the oldest pending request.

        RECORD replies leave the request pending; summary replies dequeue it.

        Raises:
            ProtocolStateError: If no request is pending.
        """
        entry = self._pending.peek()
        if entry is None:
            raise ProtocolStateError("No response waiting to be consumed")
        if signature == Signature.RECORD:
            return entry

        self._pending.popleft()
        if signature == Signature.SUCCESS:
            latest = self._pending.last()
            if latest is not None:
                # Later requests were validated against their prediction
                self._state = latest.predicted
            else:
                has_more = isinstance(content, dict) and bool(content.get('has_more', False))
                self._state = resolve(entry.success, entry.in_transaction, has_more, self._state)
        elif signature == Signature.FAILURE:
            self._state = entry.failure_state
        elif signature == Signature.IGNORED and self._ignored_interrupts:
            self._state = ServerState.INTERRUPTED
        return entry

    def is_defunct(self) -> bool:
        """Check if connection is defunct."""
        return self._state is ServerState.DEFUNCT

    def is_in_transaction(self) -> bool:
        """Check if currently in a transaction."""
        return self._state in TX_STATES

    def is_streaming(self) -> bool:
        """Check if currently streaming results."""
        return self._state in STREAMING_STATES

    def mark_defunct(self) -> None:
        """Mark connection as defunct and drop pending requests."""
        self._state = ServerState.DEFUNCT
        self._pending.clear()
