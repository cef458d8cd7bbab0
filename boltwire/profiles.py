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
Bolt version profiles.

Each negotiated protocol version is described by an immutable profile:
which messages exist, their signature byte, the fields they carry, the
states they are legal in and where they move the server. Profiles are
built from the previous version by listing only what changed.
"""

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from .errors import ConnectError
from .messages import (
    Message,
    MSG_INIT, MSG_HELLO, MSG_GOODBYE, MSG_ACK_FAILURE, MSG_RESET, MSG_RUN,
    MSG_BEGIN, MSG_COMMIT, MSG_ROLLBACK, MSG_DISCARD, MSG_PULL, MSG_TELEMETRY,
    MSG_ROUTE, MSG_LOGON, MSG_LOGOFF,
)
from .state import ALIVE_STATES, STREAMING_STATES, TX_STATES, ServerState, Transition
from .structures import (
    GRAPH_STRUCTURES_V1, STRUCTURES_V2, STRUCTURES_V5, STRUCTURES_V6, StructureRegistry,
)


Version = Tuple[int, int]


@dataclass(frozen=True)
class MessageSpec:
    """
    Wire shape and state rules of one request message.

    Attributes:
        signature: Message signature byte
        states: States the message is legal in
        success: Transition applied on SUCCESS
        failure_state: State entered on FAILURE
        fields: Names of the message fields, in wire order
        expects_reply: False for messages the server never answers (GOODBYE)
    """
    signature: int
    states: FrozenSet[ServerState]
    success: Transition = Transition.UNCHANGED
    failure_state: ServerState = ServerState.FAILED
    fields: Tuple[str, ...] = ()
    expects_reply: bool = True


@dataclass(frozen=True)
class VersionProfile:
    """
    Everything that differs between protocol versions.

    Attributes:
        version: (major, minor)
        messages: Available request messages
        structures: Structure registry for values on the wire
        initial_state: State right after the handshake
        ignored_interrupts: IGNORED moves the server to INTERRUPTED
        hello_bolt_agent: HELLO must carry a bolt_agent map
    """
    version: Version
    messages: Mapping[Message, MessageSpec]
    structures: StructureRegistry
    initial_state: ServerState = ServerState.CONNECTED
    ignored_interrupts: bool = False
    hello_bolt_agent: bool = False

    @property
    def version_string(self) -> str:
        return f"{self.version[0]}.{self.version[1]}"

    def supports(self, message: Message) -> bool:
        return message in self.messages

    def spec(self, message: Message) -> Optional[MessageSpec]:
        return self.messages.get(message)

    def derive(
        self,
        version: Version,
        add: Optional[Dict[Message, MessageSpec]] = None,
        remove: Tuple[Message, ...] = (),
        **changes
    ) -> "VersionProfile":
        """Build the next version's profile from this one."""
        messages = {k: v for k, v in self.messages.items() if k not in remove}
        messages.update(add or {})
        return replace(self, version=version, messages=MappingProxyType(messages), **changes)


_READY = frozenset({ServerState.READY})
_READY_OR_TX = frozenset({ServerState.READY, ServerState.TX_READY})
_RESETTABLE = frozenset({
    ServerState.READY, ServerState.STREAMING, ServerState.TX_READY,
    ServerState.TX_STREAMING, ServerState.FAILED, ServerState.INTERRUPTED,
})

# Bolt 1: INIT with auth, PULL_ALL/DISCARD_ALL, ACK_FAILURE
BOLT_1 = VersionProfile(
    version=(1, 0),
    messages=MappingProxyType({
        Message.INIT: MessageSpec(
            MSG_INIT, frozenset({ServerState.CONNECTED}), Transition.READY,
            ServerState.DEFUNCT, ('user_agent', 'auth')),
        Message.RUN: MessageSpec(
            MSG_RUN, _READY_OR_TX, Transition.STREAM, fields=('query', 'parameters')),
        Message.PULL_ALL: MessageSpec(MSG_PULL, STREAMING_STATES, Transition.CONSUME),
        Message.DISCARD_ALL: MessageSpec(MSG_DISCARD, STREAMING_STATES, Transition.CONSUME),
        Message.ACK_FAILURE: MessageSpec(
            MSG_ACK_FAILURE, frozenset({ServerState.FAILED}), Transition.READY,
            ServerState.DEFUNCT),
        Message.RESET: MessageSpec(MSG_RESET, _RESETTABLE, Transition.READY, ServerState.DEFUNCT),
    }),
    structures=GRAPH_STRUCTURES_V1,
    ignored_interrupts=True,
)

# Bolt 2: temporal and spatial structures
BOLT_2 = BOLT_1.derive((2, 0), structures=STRUCTURES_V2)

# Bolt 3: HELLO, explicit transactions, GOODBYE
BOLT_3 = BOLT_2.derive(
    (3, 0),
    remove=(Message.INIT, Message.ACK_FAILURE),
    add={
        Message.HELLO: MessageSpec(
            MSG_HELLO, frozenset({ServerState.CONNECTED}), Transition.READY,
            ServerState.DEFUNCT, ('extra',)),
        Message.RUN: MessageSpec(
            MSG_RUN, _READY_OR_TX, Transition.STREAM,
            fields=('query', 'parameters', 'extra')),
        Message.BEGIN: MessageSpec(MSG_BEGIN, _READY, Transition.TX_READY, fields=('extra',)),
        Message.COMMIT: MessageSpec(MSG_COMMIT, TX_STATES, Transition.READY),
        Message.ROLLBACK: MessageSpec(MSG_ROLLBACK, TX_STATES, Transition.READY),
        Message.GOODBYE: MessageSpec(MSG_GOODBYE, ALIVE_STATES, expects_reply=False),
    },
    ignored_interrupts=False,
)

# Bolt 4.0: PULL/DISCARD with fetch size and query id
BOLT_4_0 = BOLT_3.derive(
    (4, 0),
    remove=(Message.PULL_ALL, Message.DISCARD_ALL),
    add={
        Message.PULL: MessageSpec(
            MSG_PULL, STREAMING_STATES, Transition.CONSUME, fields=('extra',)),
        Message.DISCARD: MessageSpec(
            MSG_DISCARD, STREAMING_STATES, Transition.CONSUME, fields=('extra',)),
    },
)

BOLT_4_1 = BOLT_4_0.derive((4, 1))
BOLT_4_2 = BOLT_4_1.derive((4, 2))

# Bolt 4.3: ROUTE
BOLT_4_3 = BOLT_4_2.derive((4, 3), add={
    Message.ROUTE: MessageSpec(MSG_ROUTE, _READY, fields=('routing', 'bookmarks', 'db')),
})

# Bolt 4.4: ROUTE takes an extra map instead of a database name
BOLT_4_4 = BOLT_4_3.derive((4, 4), add={
    Message.ROUTE: MessageSpec(MSG_ROUTE, _READY, fields=('routing', 'bookmarks', 'extra')),
})

# Bolt 5.0: element ids, UTC date times
BOLT_5_0 = BOLT_4_4.derive((5, 0), structures=STRUCTURES_V5)

# Bolt 5.1: authentication split into HELLO + LOGON
BOLT_5_1 = BOLT_5_0.derive(
    (5, 1),
    add={
        Message.HELLO: MessageSpec(
            MSG_HELLO, frozenset({ServerState.NEGOTIATION}), Transition.AUTHENTICATION,
            ServerState.DEFUNCT, ('extra',)),
        Message.LOGON: MessageSpec(
            MSG_LOGON, frozenset({ServerState.AUTHENTICATION}), Transition.READY,
            ServerState.DEFUNCT, ('auth',)),
        Message.LOGOFF: MessageSpec(MSG_LOGOFF, _READY, Transition.AUTHENTICATION),
    },
    initial_state=ServerState.NEGOTIATION,
)

BOLT_5_2 = BOLT_5_1.derive((5, 2))

# Bolt 5.3: bolt_agent in HELLO
BOLT_5_3 = BOLT_5_2.derive((5, 3), hello_bolt_agent=True)

# Bolt 5.4: TELEMETRY
BOLT_5_4 = BOLT_5_3.derive((5, 4), add={
    Message.TELEMETRY: MessageSpec(MSG_TELEMETRY, _READY, fields=('api',)),
})

BOLT_5_5 = BOLT_5_4.derive((5, 5))
BOLT_5_6 = BOLT_5_5.derive((5, 6))
BOLT_5_7 = BOLT_5_6.derive((5, 7))
BOLT_5_8 = BOLT_5_7.derive((5, 8))

# Bolt 6.0: Vector
BOLT_6_0 = BOLT_5_8.derive((6, 0), structures=STRUCTURES_V6)


PROFILES: Mapping[Version, VersionProfile] = MappingProxyType({
    p.version: p for p in (
        BOLT_1, BOLT_2, BOLT_3,
        BOLT_4_0, BOLT_4_1, BOLT_4_2, BOLT_4_3, BOLT_4_4,
        BOLT_5_0, BOLT_5_1, BOLT_5_2, BOLT_5_3, BOLT_5_4,
        BOLT_5_5, BOLT_5_6, BOLT_5_7, BOLT_5_8,
        BOLT_6_0,
    )
})


def get_profile(version: Version) -> VersionProfile:
    """
    Select the profile for a negotiated version.

    Raises:
        ConnectError: If the version is not supported.
    """
    profile = PROFILES.get(tuple(version))
    if profile is None:
        raise ConnectError(f"Unsupported protocol version: {version[0]}.{version[1]}")
    return profile
