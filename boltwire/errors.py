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
Exception hierarchy for the Bolt client.

All errors raised by boltwire derive from BoltError so applications can
catch everything the library raises in one place.
"""

from typing import Any, Dict, Optional


class BoltError(Exception):
    """Base class for all boltwire errors."""


class ConnectError(BoltError):
    """The transport could not be created, configured or used."""


class ConnectionTimeoutError(ConnectError, TimeoutError):
    """A connect, read or write exceeded its timeout budget."""


class PackStreamError(BoltError, ValueError):
    """Base class for codec errors."""


class EncodeError(PackStreamError):
    """
    A value cannot be represented in PackStream.

    Raised for unsupported types, sizes over a marker's limit and
    structures with too many fields or no registered signature.
    """


class DecodeError(PackStreamError):
    """Unknown marker or signature, or truncated input."""


class ProtocolStateError(BoltError):
    """A message was attempted in a server state that does not permit it."""


class ServerFailure(BoltError):
    """
    The server answered with FAILURE.

    Attributes:
        code: Server error code (e.g. Neo.ClientError.Statement.SyntaxError)
        message: Server error message
        content: Full FAILURE metadata
    """

    def __init__(self, message: str, code: str = "", content: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.content = content or {}
        super().__init__(f"{message} ({code})" if code else message)

    @classmethod
    def from_content(cls, content: Dict[str, Any]) -> "ServerFailure":
        """Build from FAILURE metadata, accepting both legacy and GQL keys."""
        content = content or {}
        code = content.get("code") or content.get("neo4j_code") or ""
        message = content.get("message") or content.get("description") or ""
        return cls(str(message), str(code), content)


class ServerIgnored(BoltError):
    """The server answered with IGNORED (it was in FAILED or INTERRUPTED)."""

    def __init__(self, message_name: str):
        self.message_name = message_name
        super().__init__(
            f"{message_name} message IGNORED. Server in FAILED or INTERRUPTED state."
        )
