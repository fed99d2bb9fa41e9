"""
WireReader - Big-endian field readers for the camera stream protocol.

Every multi-byte field on the wire is big-endian. The readers here always
decode with an explicit big-endian struct format, so the result never depends
on the byte order of the host.
"""

import struct


_U32 = struct.Struct(">I")
_I32 = struct.Struct(">i")
_F32 = struct.Struct(">f")
_F64 = struct.Struct(">d")


class OutOfRangeError(ValueError):
    """Raised when a field would read past the end of the buffer."""


def _check_range(buf, offset, width):
    if offset < 0 or offset + width > len(buf):
        raise OutOfRangeError(
            f"read of {width} bytes at offset {offset} exceeds buffer of {len(buf)} bytes"
        )


def read_uint32_be(buf, offset: int) -> int:
    """Read a big-endian unsigned 32-bit integer."""
    _check_range(buf, offset, 4)
    return _U32.unpack_from(buf, offset)[0]


def read_int32_be(buf, offset: int) -> int:
    """Read a big-endian signed 32-bit integer."""
    _check_range(buf, offset, 4)
    return _I32.unpack_from(buf, offset)[0]


def read_float32_be(buf, offset: int) -> float:
    """Read a big-endian IEEE-754 32-bit float."""
    _check_range(buf, offset, 4)
    return _F32.unpack_from(buf, offset)[0]


def read_float64_be(buf, offset: int) -> float:
    """Read a big-endian IEEE-754 64-bit float."""
    _check_range(buf, offset, 8)
    return _F64.unpack_from(buf, offset)[0]


class WireReader:
    """
    Sequential reader over a single datagram.

    Example usage:
        data = sock.recvfrom(65535)[0]
        reader = WireReader(data)
        fmt = reader.read_uint32()
        axes = reader.read_floats(9)
    """

    def __init__(self, data: bytes, offset: int = 0):
        """
        Initialize the reader with raw datagram bytes.

        Args:
            data: Raw bytes from a UDP datagram
            offset: Position of the first field to read
        """
        self.data = data
        self.i = offset
        self.n = len(data)

    def remaining(self) -> int:
        """Number of unread bytes."""
        return self.n - self.i

    def read_uint32(self) -> int:
        val = read_uint32_be(self.data, self.i)
        self.i += 4
        return val

    def read_int32(self) -> int:
        val = read_int32_be(self.data, self.i)
        self.i += 4
        return val

    def read_float32(self) -> float:
        val = read_float32_be(self.data, self.i)
        self.i += 4
        return val

    def read_float64(self) -> float:
        val = read_float64_be(self.data, self.i)
        self.i += 8
        return val

    def read_floats(self, count: int):
        """Read `count` consecutive big-endian 32-bit floats."""
        _check_range(self.data, self.i, 4 * count)
        vals = struct.unpack_from(f">{count}f", self.data, self.i)
        self.i += 4 * count
        return vals

    def read_doubles(self, count: int):
        """Read `count` consecutive big-endian 64-bit floats."""
        _check_range(self.data, self.i, 8 * count)
        vals = struct.unpack_from(f">{count}d", self.data, self.i)
        self.i += 8 * count
        return vals
