"""
Readers for the big-endian primitives used by Java's DataInput.

Both the class-file format and the JaCoCo execution-data format are built
from these, plus the compact encodings JaCoCo adds on top (var ints and
packed boolean arrays).
"""

import struct
from typing import BinaryIO, List, Optional


def decode_modified_utf8(raw: bytes) -> str:
    """
    Decode Java's "modified UTF-8".

    Java encodes NUL as C0 80 and characters outside the BMP as two
    separately encoded surrogates.
    """
    text = raw.replace(b'\xc0\x80', b'\x00').decode('utf-8', 'surrogatepass')
    return text.encode('utf-16', 'surrogatepass').decode('utf-16')


class JavaDataInput:
    """Sequential reader over a binary stream."""

    def __init__(self, stream: BinaryIO, error_type: type = EOFError):
        self._stream = stream
        self._error_type = error_type

    def read_exact(self, size: int) -> bytes:
        data = self._stream.read(size)
        if len(data) != size:
            raise self._error_type(f"Unexpected end of data: wanted {size} bytes, got {len(data)}")
        return data

    def read_optional_u1(self) -> Optional[int]:
        """Read one byte, or return None at a clean end of stream."""
        data = self._stream.read(1)
        if not data:
            return None
        return data[0]

    def read_u1(self) -> int:
        return self.read_exact(1)[0]

    def read_u2(self) -> int:
        return struct.unpack('>H', self.read_exact(2))[0]

    def read_u4(self) -> int:
        return struct.unpack('>I', self.read_exact(4))[0]

    def read_u8(self) -> int:
        """Read a Java long as an unsigned 64-bit value."""
        return struct.unpack('>Q', self.read_exact(8))[0]

    def read_s8(self) -> int:
        return struct.unpack('>q', self.read_exact(8))[0]

    def read_utf(self) -> str:
        """Read a string written by DataOutput.writeUTF."""
        length = self.read_u2()
        raw = self.read_exact(length)
        try:
            return decode_modified_utf8(raw)
        except UnicodeDecodeError as e:
            raise self._error_type(f"Malformed string data: {e}") from e

    def read_var_int(self) -> int:
        """Read a JaCoCo var int: 7 bits per byte, least significant group first."""
        value = 0
        shift = 0
        while True:
            byte = self.read_u1()
            value |= (byte & 0x7F) << shift
            if (byte & 0x80) == 0:
                return value
            shift += 7

    def read_boolean_array(self) -> List[bool]:
        """Read a var-int length followed by the values packed 8 per byte, LSB first."""
        length = self.read_var_int()
        values = []
        buffer = 0
        for i in range(length):
            if i % 8 == 0:
                buffer = self.read_u1()
            values.append((buffer & 0x01) != 0)
            buffer >>= 1
        return values
