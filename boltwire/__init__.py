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
Bolt protocol client.

This package implements the client side of the Bolt protocol (versions 1
through 6.0) spoken by Neo4j and compatible graph databases: PackStream
serialization, chunked message framing, a socket transport with per-call
timeouts, and a session state machine that validates and pipelines
requests.

Usage:
    from boltwire import BoltConnection, ConnectionConfig, GraphConverter

    conn = BoltConnection.open(ConnectionConfig(host="localhost", port=7687))
    conn.hello({"scheme": "basic", "principal": "neo4j", "credentials": "secret"})
    conn.get_response().raise_for_failure()

    conn.run("MATCH p=(:Person)-[:KNOWS]->() RETURN p").pull()
    converter = GraphConverter()
    while conn.pending:
        for response in conn.get_responses():
            response.raise_for_failure()
            if response.is_record:
                converter.add_record(response.content)

    G = converter.to_graph()
    conn.close()
"""

from .connection import BoltConnection
from .config import ConnectionConfig, DEFAULT_USER_AGENT, DEFAULT_VERSIONS
from .converter import GraphConverter
from .transport import SocketTransport
from .handshake import negotiate
from .packstream import (
    PackStreamEncoder,
    PackStreamDecoder,
    Structure,
    encode,
    decode,
    encode_message,
    decode_message,
)
from .chunking import ChunkReader, ChunkWriter
from .state import ServerState, StateMachine
from .profiles import PROFILES, VersionProfile, get_profile
from .messages import Message, Response, Signature
from .structures import (
    Node,
    Relationship,
    UnboundRelationship,
    Path,
    Date,
    Time,
    LocalTime,
    DateTime,
    DateTimeZoneId,
    LocalDateTime,
    Duration,
    Point2D,
    Point3D,
    Vector,
)
from .errors import (
    BoltError,
    ConnectError,
    ConnectionTimeoutError,
    PackStreamError,
    EncodeError,
    DecodeError,
    ProtocolStateError,
    ServerFailure,
    ServerIgnored,
)

__all__ = [
    # Connection handling
    "BoltConnection",
    "ConnectionConfig",
    "DEFAULT_USER_AGENT",
    "DEFAULT_VERSIONS",
    "SocketTransport",
    "negotiate",
    "GraphConverter",
    # State management
    "ServerState",
    "StateMachine",
    "PROFILES",
    "VersionProfile",
    "get_profile",
    "Message",
    "Response",
    "Signature",
    # Serialization
    "PackStreamEncoder",
    "PackStreamDecoder",
    "Structure",
    "encode",
    "decode",
    "encode_message",
    "decode_message",
    "ChunkReader",
    "ChunkWriter",
    # Data types
    "Node",
    "Relationship",
    "UnboundRelationship",
    "Path",
    "Date",
    "Time",
    "LocalTime",
    "DateTime",
    "DateTimeZoneId",
    "LocalDateTime",
    "Duration",
    "Point2D",
    "Point3D",
    "Vector",
    # Errors
    "BoltError",
    "ConnectError",
    "ConnectionTimeoutError",
    "PackStreamError",
    "EncodeError",
    "DecodeError",
    "ProtocolStateError",
    "ServerFailure",
    "ServerIgnored",
]
