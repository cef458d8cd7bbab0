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
PackStream serialization for the Bolt protocol.

Implements encoding and decoding of PackStream data types:
- Primitives: null, bool, int, float, string, bytes
- Collections: list, dict (map)
- Structures: signature-tagged values looked up in a StructureRegistry

Encoding is lazy: values are produced as a stream of byte pieces, and
messages as a stream of length-prefixed chunks (see chunking.py).
"""

import struct
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional

from .chunking import ChunkWriter
from .errors import DecodeError, EncodeError
from .structures import STRUCTURES_V6, StructureRegistry


# Marker bytes for PackStream types
TINY_STRING = 0x80
TINY_LIST = 0x90
TINY_MAP = 0xA0
TINY_STRUCT = 0xB0

NULL = 0xC0
FLOAT_64 = 0xC1
FALSE = 0xC2
TRUE = 0xC3

INT_8 = 0xC8
INT_16 = 0xC9
INT_32 = 0xCA
INT_64 = 0xCB

BYTES_8 = 0xCC
BYTES_16 = 0xCD
BYTES_32 = 0xCE

STRING_8 = 0xD0
STRING_16 = 0xD1
STRING_32 = 0xD2

LIST_8 = 0xD4
LIST_16 = 0xD5
LIST_32 = 0xD6

MAP_8 = 0xD8
MAP_16 = 0xD9
MAP_32 = 0xDA

# Size classes
SMALL = 16
MEDIUM = 256
LARGE = 65536
HUGE = 4294967295
MAX_BYTES = 2147483647
MAX_STRUCT_FIELDS = 15

INT_64_MIN = -0x8000000000000000
INT_64_MAX = 0x7FFFFFFFFFFFFFFF


@dataclass(frozen=True)
class Structure:
    """A raw PackStream structure: a signature byte and its fields."""
    tag: int
    fields: List[Any]


class PackStreamEncoder:
    """Encodes Python values to PackStream binary format."""

    def __init__(self, registry: Optional[StructureRegistry] = None):
        self._registry = registry if registry is not None else STRUCTURES_V6

    def encode(self, value: Any) -> bytes:
        """Encode a value and return the bytes."""
        return b''.join(self.iter_encode(value))

    def iter_encode(self, value: Any) -> Iterator[bytes]:
        """Lazily encode a single value as a sequence of byte pieces."""
        if value is None:
            yield bytes((NULL,))
        elif isinstance(value, bool):
            yield bytes((TRUE if value else FALSE,))
        elif isinstance(value, int):
            yield self._encode_int(value)
        elif isinstance(value, float):
            yield bytes((FLOAT_64,)) + struct.pack('>d', value)
        elif isinstance(value, str):
            yield self._encode_string(value)
        elif isinstance(value, (bytes, bytearray)):
            yield self._encode_bytes(bytes(value))
        elif isinstance(value, (list, tuple)):
            yield from self._encode_list(value)
        elif isinstance(value, dict):
            yield from self._encode_map(value)
        elif isinstance(value, Structure):
            yield from self.iter_structure(value.tag, value.fields)
        else:
            entry = self._registry.signature_for(type(value))
            if entry is None:
                raise EncodeError(f"Cannot encode type: {type(value).__name__}")
            yield from self.iter_structure(entry.signature, entry.to_fields(value))

    def iter_structure(self, tag: int, fields: List[Any]) -> Iterator[bytes]:
        """Lazily encode a structure header followed by its fields."""
        size = len(fields)
        if size > MAX_STRUCT_FIELDS:
            raise EncodeError(f"Too many structure fields: {size}")
        if not 0 <= tag <= 0xFF:
            raise EncodeError(f"Invalid structure signature: {tag}")
        yield bytes((TINY_STRUCT | size, tag))
        for field in fields:
            yield from self.iter_encode(field)

    def _encode_int(self, value: int) -> bytes:
        """Encode an integer."""
        if -16 <= value < 128:
            # Tiny int: single byte
            return struct.pack('>b', value)
        if -128 <= value < -16:
            return bytes((INT_8,)) + struct.pack('>b', value)
        if -32768 <= value < 32768:
            return bytes((INT_16,)) + struct.pack('>h', value)
        if -2147483648 <= value < 2147483648:
            return bytes((INT_32,)) + struct.pack('>i', value)
        if INT_64_MIN <= value <= INT_64_MAX:
            return bytes((INT_64,)) + struct.pack('>q', value)
        raise EncodeError(f"Integer out of range: {value}")

    def _encode_string(self, value: str) -> bytes:
        """Encode a string."""
        encoded = value.encode('utf-8')
        return _sized_header(len(encoded), TINY_STRING, STRING_8, STRING_16, STRING_32, "String") + encoded

    def _encode_bytes(self, value: bytes) -> bytes:
        """Encode bytes."""
        size = len(value)
        if size < MEDIUM:
            header = bytes((BYTES_8, size))
        elif size < LARGE:
            header = bytes((BYTES_16,)) + struct.pack('>H', size)
        elif size <= MAX_BYTES:
            header = bytes((BYTES_32,)) + struct.pack('>I', size)
        else:
            raise EncodeError("ByteArray too big")
        return header + value

    def _encode_list(self, value) -> Iterator[bytes]:
        """Encode a list."""
        yield _sized_header(len(value), TINY_LIST, LIST_8, LIST_16, LIST_32, "List")
        for item in value:
            yield from self.iter_encode(item)

    def _encode_map(self, value: dict) -> Iterator[bytes]:
        """Encode a map/dict. Keys are always sent as strings."""
        yield _sized_header(len(value), TINY_MAP, MAP_8, MAP_16, MAP_32, "Map")
        for k, v in value.items():
            yield self._encode_string(str(k))
            yield from self.iter_encode(v)


def _sized_header(size: int, tiny: int, m8: int, m16: int, m32: int, kind: str) -> bytes:
    if size < SMALL:
        return bytes((tiny | size,))
    if size < MEDIUM:
        return bytes((m8, size))
    if size < LARGE:
        return bytes((m16,)) + struct.pack('>H', size)
    if size < HUGE:
        return bytes((m32,)) + struct.pack('>I', size)
    raise EncodeError(f"{kind} too long: {size}")


class PackStreamDecoder:
    """Decodes PackStream binary format to Python values."""

    def __init__(self, data: bytes, registry: Optional[StructureRegistry] = None):
        self._data = memoryview(data)
        self._pos = 0
        self._registry = registry if registry is not None else STRUCTURES_V6

    def decode(self) -> Any:
        """Decode and return the next value."""
        if self._pos >= len(self._data):
            raise DecodeError("End of data")
        return self._decode_value()

    def decode_all(self) -> List[Any]:
        """Decode all values in the data."""
        values = []
        while self._pos < len(self._data):
            values.append(self._decode_value())
        return values

    def decode_message(self) -> Structure:
        """
        Decode a message: a top-level structure whose signature is a
        message signature rather than a registered structure type.
        """
        marker = self._read_byte()
        if not TINY_STRUCT <= marker <= 0xBF:
            raise DecodeError(f"Expected message structure, got marker 0x{marker:02X}")
        size = marker & 0x0F
        tag = self._read_byte()
        fields = [self._decode_value() for _ in range(size)]
        return Structure(tag, fields)

    def remaining(self) -> int:
        """Return remaining bytes."""
        return len(self._data) - self._pos

    def _read_byte(self) -> int:
        """Read a single byte."""
        if self._pos >= len(self._data):
            raise DecodeError("Unexpected end of data")
        b = self._data[self._pos]
        self._pos += 1
        return b

    def _read_bytes(self, n: int) -> bytes:
        """Read n bytes."""
        if self._pos + n > len(self._data):
            raise DecodeError(f"Unexpected end of data: need {n} bytes")
        data = bytes(self._data[self._pos:self._pos + n])
        self._pos += n
        return data

    def _read_size(self, fmt: str) -> int:
        return struct.unpack(fmt, self._read_bytes(struct.calcsize(fmt)))[0]

    def _read_string(self, size: int) -> str:
        try:
            return self._read_bytes(size).decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid UTF-8 string: {e}") from e

    def _read_list(self, size: int) -> List[Any]:
        return [self._decode_value() for _ in range(size)]

    def _read_map(self, size: int) -> dict:
        result = {}
        for _ in range(size):
            key = self._decode_value()
            if not isinstance(key, str):
                raise DecodeError(f"Map key must be a string, got {type(key).__name__}")
            result[key] = self._decode_value()
        return result

    def _read_structure(self, size: int) -> Any:
        tag = self._read_byte()
        entry = self._registry.type_for(tag)
        if entry is None:
            raise DecodeError(f"Unknown structure signature: 0x{tag:02X}")
        fields = [self._decode_value() for _ in range(size)]
        if size != len(entry.fields):
            raise DecodeError(
                f"Structure 0x{tag:02X} expects {len(entry.fields)} fields, got {size}"
            )
        return entry.build(fields)

    def _decode_value(self) -> Any:
        """Decode a single value."""
        marker = self._read_byte()

        # Tiny int (positive): 0x00-0x7F
        if marker <= 0x7F:
            return marker

        # Tiny int (negative): 0xF0-0xFF
        if marker >= 0xF0:
            return marker - 256

        high = marker & 0xF0
        if high == TINY_STRING:
            return self._read_string(marker & 0x0F)
        if high == TINY_LIST:
            return self._read_list(marker & 0x0F)
        if high == TINY_MAP:
            return self._read_map(marker & 0x0F)
        if high == TINY_STRUCT:
            return self._read_structure(marker & 0x0F)

        if marker == NULL:
            return None
        if marker == FLOAT_64:
            return struct.unpack('>d', self._read_bytes(8))[0]
        if marker == FALSE:
            return False
        if marker == TRUE:
            return True

        # Integers
        if marker == INT_8:
            return struct.unpack('>b', self._read_bytes(1))[0]
        if marker == INT_16:
            return struct.unpack('>h', self._read_bytes(2))[0]
        if marker == INT_32:
            return struct.unpack('>i', self._read_bytes(4))[0]
        if marker == INT_64:
            return struct.unpack('>q', self._read_bytes(8))[0]

        # Bytes
        if marker == BYTES_8:
            return self._read_bytes(self._read_byte())
        if marker == BYTES_16:
            return self._read_bytes(self._read_size('>H'))
        if marker == BYTES_32:
            return self._read_bytes(self._read_size('>I'))

        # Strings
        if marker == STRING_8:
            return self._read_string(self._read_byte())
        if marker == STRING_16:
            return self._read_string(self._read_size('>H'))
        if marker == STRING_32:
            return self._read_string(self._read_size('>I'))

        # Lists
        if marker == LIST_8:
            return self._read_list(self._read_byte())
        if marker == LIST_16:
            return self._read_list(self._read_size('>H'))
        if marker == LIST_32:
            return self._read_list(self._read_size('>I'))

        # Maps
        if marker == MAP_8:
            return self._read_map(self._read_byte())
        if marker == MAP_16:
            return self._read_map(self._read_size('>H'))
        if marker == MAP_32:
            return self._read_map(self._read_size('>I'))

        raise DecodeError(f"Unknown marker: 0x{marker:02X}")


def encode_message(
    signature: int,
    fields: Iterable[Any] = (),
    registry: Optional[StructureRegistry] = None,
) -> Iterator[bytes]:
    """
    Lazily encode a message as chunk-framed bytes.

    Yields length-prefixed chunks of at most 65535 payload bytes followed by
    the zero-length end-of-message marker.
    """
    encoder = PackStreamEncoder(registry)
    return ChunkWriter().frames(encoder.iter_structure(signature, list(fields)))


def decode_message(data: bytes, registry: Optional[StructureRegistry] = None) -> Structure:
    """Decode a de-chunked message into its signature and fields."""
    decoder = PackStreamDecoder(data, registry)
    message = decoder.decode_message()
    if decoder.remaining():
        raise DecodeError(f"Trailing {decoder.remaining()} bytes after message")
    return message


def encode(value: Any, registry: Optional[StructureRegistry] = None) -> bytes:
    """Convenience function to encode a value."""
    return PackStreamEncoder(registry).encode(value)


def decode(data: bytes, registry: Optional[StructureRegistry] = None) -> Any:
    """Convenience function to decode a value."""
    return PackStreamDecoder(data, registry).decode()
