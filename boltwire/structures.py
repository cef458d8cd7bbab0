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
PackStream structure types.

Graph entities, temporal and spatial values and vectors, each identified
on the wire by a one-byte signature. Which structures exist, their
signatures and field order depend on the negotiated protocol version and
are described by a StructureRegistry.
"""

import struct
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Sequence, Tuple

# Graph structure signatures
STRUCT_NODE = 0x4E           # 'N' - Node
STRUCT_RELATIONSHIP = 0x52   # 'R' - Relationship (full, with start/end)
STRUCT_UNBOUND_REL = 0x72    # 'r' - Unbound relationship (in paths)
STRUCT_PATH = 0x50           # 'P' - Path

# Temporal structure signatures
STRUCT_DATE = 0x44           # 'D' - Date
STRUCT_TIME = 0x54           # 'T' - Time
STRUCT_LOCAL_TIME = 0x74     # 't' - LocalTime
STRUCT_DATETIME = 0x46       # 'F' - DateTime (legacy, local seconds)
STRUCT_DATETIME_ZONE_ID = 0x66  # 'f' - DateTime with zone id (legacy)
STRUCT_DATETIME_UTC = 0x49   # 'I' - DateTime (Bolt 5+)
STRUCT_DATETIME_ZONE_ID_UTC = 0x69  # 'i' - DateTime with zone id (Bolt 5+)
STRUCT_LOCAL_DATETIME = 0x64  # 'd' - LocalDateTime
STRUCT_DURATION = 0x45       # 'E' - Duration

# Spatial structure signatures
STRUCT_POINT_2D = 0x58       # 'X' - Point2D
STRUCT_POINT_3D = 0x59       # 'Y' - Point3D

# Bolt 6
STRUCT_VECTOR = 0x56         # 'V' - Vector

# Vector element type markers
VECTOR_INT_8 = 0xC8
VECTOR_INT_16 = 0xC9
VECTOR_INT_32 = 0xCA
VECTOR_INT_64 = 0xCB
VECTOR_FLOAT_32 = 0xC6
VECTOR_FLOAT_64 = 0xC1

VECTOR_FORMATS = {
    VECTOR_INT_8: 'b',
    VECTOR_INT_16: 'h',
    VECTOR_INT_32: 'i',
    VECTOR_INT_64: 'q',
    VECTOR_FLOAT_32: 'f',
    VECTOR_FLOAT_64: 'd',
}

MAX_VECTOR_SIZE = 4096


@dataclass(frozen=True)
class Node:
    """
    A graph node.

    Attributes:
        id: Legacy integer identifier
        labels: Node labels
        properties: Node properties
        element_id: String element ID (Bolt 5+)
    """
    id: int
    labels: List[str]
    properties: Dict[str, Any]
    element_id: Optional[str] = None


@dataclass(frozen=True)
class Relationship:
    """
    A relationship with its start and end node identifiers.

    The element ID fields are only present on the wire from Bolt 5.
    """
    id: int
    start_node_id: int
    end_node_id: int
    type: str
    properties: Dict[str, Any]
    element_id: Optional[str] = None
    start_node_element_id: Optional[str] = None
    end_node_element_id: Optional[str] = None


@dataclass(frozen=True)
class UnboundRelationship:
    """
    A relationship inside a path.

    Start and end nodes are implicit from the path structure.
    """
    id: int
    type: str
    properties: Dict[str, Any]
    element_id: Optional[str] = None


@dataclass(frozen=True)
class Path:
    """
    A path: unique nodes, unbound relationships and the indices that
    describe the traversal.
    """
    nodes: List[Node]
    rels: List[UnboundRelationship]
    indices: List[int]


@dataclass(frozen=True)
class Date:
    days: int


@dataclass(frozen=True)
class Time:
    nanoseconds: int
    tz_offset_seconds: int


@dataclass(frozen=True)
class LocalTime:
    nanoseconds: int


@dataclass(frozen=True)
class DateTime:
    """Instant with a fixed offset. Seconds are local before Bolt 5, UTC after."""
    seconds: int
    nanoseconds: int
    tz_offset_seconds: int


@dataclass(frozen=True)
class DateTimeZoneId:
    seconds: int
    nanoseconds: int
    tz_id: str


@dataclass(frozen=True)
class LocalDateTime:
    seconds: int
    nanoseconds: int


@dataclass(frozen=True)
class Duration:
    months: int
    days: int
    seconds: int
    nanoseconds: int


@dataclass(frozen=True)
class Point2D:
    srid: int
    x: float
    y: float


@dataclass(frozen=True)
class Point3D:
    srid: int
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class Vector:
    """
    A dense numeric vector (Bolt 6).

    The elements are stored as big-endian packed bytes, tagged with the
    PackStream marker of the element type.

    Attributes:
        type_marker: Single byte holding the element type marker
        data: Packed element data
    """
    type_marker: bytes
    data: bytes

    @classmethod
    def from_values(cls, values: Sequence[Any]) -> "Vector":
        """
        Pack a sequence of ints or floats into a vector.

        Integers use the smallest width that holds every element. Floats use
        FLOAT_32 when every element survives a float32 round trip, otherwise
        FLOAT_64.

        Raises:
            ValueError: If the sequence is empty, too long or mixes types.
        """
        values = list(values)
        if not values:
            raise ValueError("Vector cannot be empty")
        if len(values) > MAX_VECTOR_SIZE:
            raise ValueError(f"Vector cannot have more than {MAX_VECTOR_SIZE} elements")

        all_ints = all(isinstance(v, int) and not isinstance(v, bool) for v in values)
        all_floats = all(isinstance(v, float) for v in values)
        if not (all_ints or all_floats):
            raise ValueError("All values in the vector must be integer xor float")

        if all_ints:
            low, high = min(values), max(values)
            if -0x80 <= low and high <= 0x7F:
                marker = VECTOR_INT_8
            elif -0x8000 <= low and high <= 0x7FFF:
                marker = VECTOR_INT_16
            elif -0x80000000 <= low and high <= 0x7FFFFFFF:
                marker = VECTOR_INT_32
            else:
                marker = VECTOR_INT_64
        elif all(_fits_float32(v) for v in values):
            marker = VECTOR_FLOAT_32
        else:
            marker = VECTOR_FLOAT_64

        try:
            data = struct.pack(f'>{len(values)}{VECTOR_FORMATS[marker]}', *values)
        except struct.error as e:
            raise ValueError(f"Vector element out of range: {e}") from e
        return cls(bytes([marker]), data)

    def values(self) -> List[Any]:
        """Unpack the vector elements."""
        if len(self.type_marker) != 1 or self.type_marker[0] not in VECTOR_FORMATS:
            raise ValueError(f"Unknown vector type marker: {self.type_marker.hex()}")
        fmt = VECTOR_FORMATS[self.type_marker[0]]
        size = struct.calcsize(fmt)
        if len(self.data) % size:
            raise ValueError("Vector data length is not a multiple of the element size")
        return list(struct.unpack(f'>{len(self.data) // size}{fmt}', self.data))


def _fits_float32(value: float) -> bool:
    try:
        return struct.unpack('>f', struct.pack('>f', value))[0] == value
    except (OverflowError, struct.error):
        return False


@dataclass(frozen=True)
class StructureType:
    """Wire shape of one structure: signature, Python type and field order."""
    signature: int
    cls: type
    fields: Tuple[str, ...]

    def to_fields(self, value: Any) -> List[Any]:
        """Field values of a structure instance in wire order."""
        return [getattr(value, name) for name in self.fields]

    def build(self, values: List[Any]) -> Any:
        """Construct the structure from decoded field values."""
        return self.cls(**dict(zip(self.fields, values)))


class StructureRegistry:
    """
    Per-version mapping between structure types and signature bytes.
    """

    def __init__(self, entries: Sequence[StructureType] = ()):
        self._by_type: Dict[type, StructureType] = {}
        self._by_signature: Dict[int, StructureType] = {}
        for entry in entries:
            self._by_type[entry.cls] = entry
            self._by_signature[entry.signature] = entry

    def signature_for(self, cls: type) -> Optional[StructureType]:
        """Get the wire shape for a structure type, or None if unregistered."""
        return self._by_type.get(cls)

    def type_for(self, signature: int) -> Optional[StructureType]:
        """Get the wire shape for a signature byte, or None if unknown."""
        return self._by_signature.get(signature)

    def extend(self, *entries: StructureType) -> "StructureRegistry":
        """Return a new registry with entries added or replaced (keyed by type)."""
        merged = {e.cls: e for e in self._by_type.values()}
        for entry in entries:
            merged[entry.cls] = entry
        return StructureRegistry(list(merged.values()))

    def __contains__(self, cls: type) -> bool:
        return cls in self._by_type

    def __len__(self) -> int:
        return len(self._by_type)


def _entry(signature: int, cls: type, *names: str) -> StructureType:
    if not names:
        names = tuple(f.name for f in fields(cls))
    return StructureType(signature, cls, names)


GRAPH_STRUCTURES_V1 = StructureRegistry([
    _entry(STRUCT_NODE, Node, 'id', 'labels', 'properties'),
    _entry(STRUCT_RELATIONSHIP, Relationship,
           'id', 'start_node_id', 'end_node_id', 'type', 'properties'),
    _entry(STRUCT_UNBOUND_REL, UnboundRelationship, 'id', 'type', 'properties'),
    _entry(STRUCT_PATH, Path),
])

STRUCTURES_V2 = GRAPH_STRUCTURES_V1.extend(
    _entry(STRUCT_DATE, Date),
    _entry(STRUCT_TIME, Time),
    _entry(STRUCT_LOCAL_TIME, LocalTime),
    _entry(STRUCT_DATETIME, DateTime),
    _entry(STRUCT_DATETIME_ZONE_ID, DateTimeZoneId),
    _entry(STRUCT_LOCAL_DATETIME, LocalDateTime),
    _entry(STRUCT_DURATION, Duration),
    _entry(STRUCT_POINT_2D, Point2D),
    _entry(STRUCT_POINT_3D, Point3D),
)

STRUCTURES_V5 = STRUCTURES_V2.extend(
    _entry(STRUCT_NODE, Node),
    _entry(STRUCT_RELATIONSHIP, Relationship),
    _entry(STRUCT_UNBOUND_REL, UnboundRelationship),
    _entry(STRUCT_DATETIME_UTC, DateTime),
    _entry(STRUCT_DATETIME_ZONE_ID_UTC, DateTimeZoneId),
)

STRUCTURES_V6 = STRUCTURES_V5.extend(
    _entry(STRUCT_VECTOR, Vector),
)
