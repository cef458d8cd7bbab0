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
Bolt handshake.

The client sends the magic preamble followed by four version proposals
and the server answers with the version it picked.
"""

import logging
import struct
from typing import Sequence, Tuple

from .config import DEFAULT_VERSIONS
from .errors import ConnectError
from .profiles import PROFILES


logger = logging.getLogger(__name__)

# Bolt magic bytes
BOLT_MAGIC = b'\x60\x60\xb0\x17'


def encode_proposals(versions: Sequence[Tuple[int, int]]) -> bytes:
    """
    Encode up to four version proposals.

    Version format is big-endian uint32: 0x00_range_minor_major, where range
    is how many minor versions below minor are also acceptable. The range of
    each proposal covers the supported minors of its major version.
    """
    if len(versions) > 4:
        raise ConnectError("At most four versions can be proposed")
    data = bytearray()
    for major, minor in versions:
        supported = [m for (ma, m) in PROFILES if ma == major and m <= minor]
        version_range = minor - min(supported) if supported else 0
        data.extend(struct.pack('>I', (version_range << 16) | (minor << 8) | major))
    data.extend(b'\x00\x00\x00\x00' * (4 - len(versions)))
    return bytes(data)


def decode_version(response: bytes) -> Tuple[int, int]:
    """
    Parse the server's 4-byte version answer.

    Raises:
        ConnectError: If the server rejected every proposal or is not a
                      Bolt server.
    """
    if response == b'HTTP':
        raise ConnectError("Cannot connect to Bolt service on HTTP port")
    v = struct.unpack('>I', response)[0]
    major = v & 0xFF
    minor = (v >> 8) & 0xFF
    if major == 0 and minor == 0:
        raise ConnectError("No compatible protocol version")
    return major, minor


def negotiate(transport, versions: Sequence[Tuple[int, int]] = DEFAULT_VERSIONS) -> Tuple[int, int]:
    """
    Perform the Bolt handshake over a connected transport.

    Returns:
        The negotiated (major, minor) version.
    """
    transport.write(BOLT_MAGIC + encode_proposals(versions))
    selected = decode_version(transport.read(4))
    logger.info(f"Negotiated Bolt {selected[0]}.{selected[1]}")
    return selected
