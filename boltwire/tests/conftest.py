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

"""Shared fixtures: an in-memory transport that plays back server replies."""

from typing import Any, List

import pytest

from boltwire.chunking import ChunkReader
from boltwire.errors import ConnectError
from boltwire.messages import MSG_FAILURE, MSG_IGNORED, MSG_RECORD, MSG_SUCCESS
from boltwire.packstream import Structure, decode_message, encode_message


class ScriptedTransport:
    """
    Transport double. Bytes written are recorded; reads are served from
    replies queued with success()/record()/failure()/ignored().
    """

    def __init__(self, registry=None):
        self.registry = registry
        self.written = bytearray()
        self.writes: List[bytes] = []
        self.inbox = bytearray()
        self.connected = True
        self.fail_writes = False

    def connect(self) -> None:
        self.connected = True

    def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise ConnectError("Write failed: broken pipe")
        self.writes.append(bytes(data))
        self.written.extend(data)

    def read(self, length: int) -> bytes:
        if len(self.inbox) < length:
            raise ConnectError("Connection closed by remote host")
        data = bytes(self.inbox[:length])
        del self.inbox[:length]
        return data

    def disconnect(self) -> None:
        self.connected = False

    def reply(self, signature: int, *fields: Any) -> "ScriptedTransport":
        self.inbox.extend(b''.join(encode_message(signature, fields, self.registry)))
        return self

    def success(self, metadata=None) -> "ScriptedTransport":
        return self.reply(MSG_SUCCESS, metadata or {})

    def record(self, *values) -> "ScriptedTransport":
        return self.reply(MSG_RECORD, list(values))

    def failure(self, code="Neo.ClientError.Statement.SyntaxError", message="Invalid input"):
        return self.reply(MSG_FAILURE, {'code': code, 'message': message})

    def ignored(self) -> "ScriptedTransport":
        return self.reply(MSG_IGNORED)

    def sent_messages(self) -> List[Structure]:
        """Decode every message the client wrote."""
        source = _BufferRead(bytes(self.written))
        reader = ChunkReader(source)
        messages = []
        while source.remaining():
            messages.append(decode_message(reader.read_message(), self.registry))
        return messages


class _BufferRead:
    def __init__(self, data: bytes):
        self._data = data
        self._pos = 0

    def __call__(self, n: int) -> bytes:
        data = self._data[self._pos:self._pos + n]
        self._pos += n
        return data

    def remaining(self) -> int:
        return len(self._data) - self._pos


@pytest.fixture
def transport():
    return ScriptedTransport()


@pytest.fixture
def make_transport():
    return ScriptedTransport
