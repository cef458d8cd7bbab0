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
Message chunking for the Bolt protocol.

Bolt messages are framed using chunks:
- Each chunk has a 2-byte big-endian size prefix
- Maximum chunk size is 65535 bytes
- End of message is marked by a zero-length chunk (0x0000)
"""

import struct
from typing import Callable, Iterable, Iterator


MAX_CHUNK_SIZE = 65535
END_OF_MESSAGE = b'\x00\x00'


class ChunkWriter:
    """Splits messages into chunks with size prefixes."""

    def __init__(self, max_chunk_size: int = MAX_CHUNK_SIZE):
        self.max_chunk_size = min(max_chunk_size, MAX_CHUNK_SIZE)

    def frames(self, pieces: Iterable[bytes]) -> Iterator[bytes]:
        """
        Lazily frame a stream of encoded pieces.

        Pieces are packed into full chunks regardless of value boundaries,
        so one long value may be cut across several chunks. Each yielded
        item is a size prefix plus its payload; the last item is the end
        marker.
        """
        buffer = bytearray()
        for piece in pieces:
            buffer.extend(piece)
            while len(buffer) >= self.max_chunk_size:
                yield self._chunk(buffer[:self.max_chunk_size])
                del buffer[:self.max_chunk_size]
        if buffer:
            yield self._chunk(buffer)
        yield END_OF_MESSAGE

    def write(self, data: bytes) -> bytes:
        """
        Split data into chunks and return the framed bytes.

        Returns bytes including all chunk headers and the end marker.
        """
        return b''.join(self.frames((data,)))

    @staticmethod
    def _chunk(payload) -> bytes:
        return struct.pack('>H', len(payload)) + bytes(payload)


class ChunkReader:
    """
    Reassembles chunked messages from a byte source.

    The source is a callable returning exactly the number of bytes asked
    for, such as Transport.read.
    """

    def __init__(self, read: Callable[[int], bytes]):
        self._read = read

    def read_message(self) -> bytes:
        """
        Read one complete message.

        Zero-length chunks before any payload are keep-alive NOOPs and
        are skipped.
        """
        message = bytearray()
        while True:
            size = struct.unpack('>H', self._read(2))[0]
            if size == 0:
                if message:
                    return bytes(message)
                # NOOP between messages
                continue
            message.extend(self._read(size))
