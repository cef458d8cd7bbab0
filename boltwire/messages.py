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
Bolt protocol message types.

Defines message tags for client-server communication, the message kinds
the client can send and the Response returned for each reply.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any

from .errors import ServerFailure, ServerIgnored


# Client -> Server message tags
MSG_INIT = 0x01       # Initialize connection (Bolt 1-2)
MSG_HELLO = 0x01      # Initialize connection
MSG_GOODBYE = 0x02    # Close connection
MSG_ACK_FAILURE = 0x0E  # Acknowledge failure (Bolt 1-2)
MSG_RESET = 0x0F      # Reset connection state
MSG_RUN = 0x10        # Execute query
MSG_BEGIN = 0x11      # Start transaction
MSG_COMMIT = 0x12     # Commit transaction
MSG_ROLLBACK = 0x13   # Rollback transaction
MSG_DISCARD = 0x2F    # Discard results (DISCARD_ALL before Bolt 4)
MSG_PULL = 0x3F       # Pull results (PULL_ALL before Bolt 4)
MSG_TELEMETRY = 0x54  # Telemetry (Bolt 5.4+)
MSG_ROUTE = 0x66      # Routing table request (Bolt 4.3+)
MSG_LOGON = 0x6A      # Authenticate (Bolt 5.1+)
MSG_LOGOFF = 0x6B     # De-authenticate (Bolt 5.1+)

# Server -> Client message tags
MSG_SUCCESS = 0x70    # Operation succeeded
MSG_RECORD = 0x71     # Result record
MSG_IGNORED = 0x7E    # Message was ignored
MSG_FAILURE = 0x7F    # Operation failed


class Message(Enum):
    """Request message kinds the client can send."""
    INIT = "init"
    HELLO = "hello"
    LOGON = "logon"
    LOGOFF = "logoff"
    GOODBYE = "goodbye"
    RESET = "reset"
    ACK_FAILURE = "ack_failure"
    RUN = "run"
    BEGIN = "begin"
    COMMIT = "commit"
    ROLLBACK = "rollback"
    PULL = "pull"
    DISCARD = "discard"
    PULL_ALL = "pull_all"
    DISCARD_ALL = "discard_all"
    ROUTE = "route"
    TELEMETRY = "telemetry"


class Signature(IntEnum):
    """Response signatures."""
    SUCCESS = MSG_SUCCESS
    RECORD = MSG_RECORD
    IGNORED = MSG_IGNORED
    FAILURE = MSG_FAILURE


@dataclass(frozen=True)
class Response:
    """
    One reply from the server.

    Attributes:
        message: The request this reply belongs to
        signature: SUCCESS, RECORD, IGNORED or FAILURE
        content: Metadata dict for SUCCESS/FAILURE/IGNORED, value list for RECORD
    """
    message: Message
    signature: Signature
    content: Any

    @property
    def is_success(self) -> bool:
        return self.signature == Signature.SUCCESS

    @property
    def is_record(self) -> bool:
        return self.signature == Signature.RECORD

    @property
    def is_failure(self) -> bool:
        return self.signature == Signature.FAILURE

    @property
    def is_ignored(self) -> bool:
        return self.signature == Signature.IGNORED

    @property
    def is_summary(self) -> bool:
        """True for the reply that terminates a request (anything but RECORD)."""
        return self.signature != Signature.RECORD

    def raise_for_failure(self) -> "Response":
        """
        Raise if the server did not process the request.

        Raises:
            ServerFailure: For FAILURE replies.
            ServerIgnored: For IGNORED replies.
        """
        if self.signature == Signature.FAILURE:
            raise ServerFailure.from_content(self.content)
        if self.signature == Signature.IGNORED:
            raise ServerIgnored(self.message.name)
        return self
