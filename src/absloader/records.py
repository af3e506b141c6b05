"""
Absolute Format Records
=======================

This module defines the record structure of the PDP-11 absolute loader
format.

Record Layout
-------------
All multi-byte fields are 16-bit little-endian:

    offset 0       signature    0x0001
    offset 2       length       6 + payload length (checksum not included)
    offset 4       origin       load address of the first payload byte
    offset 6       payload      payload length bytes
    offset 6+n     checksum     1 byte, makes the whole record sum to 0

An image is a sequence of data records followed by one record with an empty
payload. The loader jumps to that record's origin if it is even and halts
if it is odd; txt2abs always writes origin 1, so the image halts after
loading.

Reference
---------
- www.pcjs.org/apps/pdp11/tapes/absloader
"""

import struct
from dataclasses import dataclass, field
from enum import Enum

from absloader.checksum import calculate_block_checksum
from absloader.errors import AbsFormatError, BlockChecksumError


# =============================================================================
# Format Constants
# =============================================================================

# Record signature word
ABS_SIGNATURE = 1

# Signature + length + origin
HEADER_LEN = 6

# Trailing checksum byte
CHECKSUM_LEN = 1

# Origin written into the final record; odd means "halt" to the loader
HALT_ORIGIN = 1

# Largest payload whose record length still fits the 16-bit length field
MAX_BLOCK_PAYLOAD = 0xFFFF - HEADER_LEN

_HEADER = struct.Struct("<HHH")


class BlockKind(Enum):
    """Kind of record: a data block or the terminating halt block."""
    BLOCK = "BLK"
    HALT = "HALT"


# =============================================================================
# Block Record
# =============================================================================

@dataclass
class AbsBlock:
    """
    One absolute-format record.

    Attributes:
        origin: Load address of the first payload byte (HALT_ORIGIN for halt)
        payload: The bytes to load
        kind: BLOCK for data, HALT for the terminating record
    """
    origin: int
    payload: bytes = field(default_factory=bytes)
    kind: BlockKind = BlockKind.BLOCK

    @classmethod
    def halt(cls) -> "AbsBlock":
        """Create the terminating halt record."""
        return cls(origin=HALT_ORIGIN, payload=b"", kind=BlockKind.HALT)

    @property
    def length(self) -> int:
        """Value of the length field: header plus payload bytes."""
        return HEADER_LEN + len(self.payload)

    def header_bytes(self) -> bytes:
        """Serialize signature, length and origin."""
        return _HEADER.pack(ABS_SIGNATURE, self.length & 0xFFFF, self.origin & 0xFFFF)

    @property
    def checksum(self) -> int:
        """Checksum byte for this record."""
        return calculate_block_checksum(self.header_bytes() + self.payload)

    def to_bytes(self) -> bytes:
        """Serialize the complete record, checksum included."""
        if len(self.payload) > MAX_BLOCK_PAYLOAD:
            raise AbsFormatError(
                f"payload of {len(self.payload)} bytes exceeds "
                f"maximum of {MAX_BLOCK_PAYLOAD}"
            )
        body = self.header_bytes() + self.payload
        return body + bytes([calculate_block_checksum(body)])

    def get_size(self) -> int:
        """Total size of the serialized record in bytes."""
        return self.length + CHECKSUM_LEN

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> tuple["AbsBlock", int]:
        """
        Parse one record starting at offset.

        Args:
            data: Image bytes
            offset: Position of the record's signature

        Returns:
            Tuple of (AbsBlock, offset just past the checksum byte)

        Raises:
            AbsFormatError: If the record is malformed or truncated
            BlockChecksumError: If the checksum does not verify
        """
        if offset + HEADER_LEN > len(data):
            raise AbsFormatError(f"truncated record header at offset {offset}")

        signature, length, origin = _HEADER.unpack_from(data, offset)
        if signature != ABS_SIGNATURE:
            raise AbsFormatError(
                f"bad signature 0x{signature:04X} at offset {offset}"
            )
        if length < HEADER_LEN:
            raise AbsFormatError(f"bad record length {length} at offset {offset}")

        end = offset + length
        if end + CHECKSUM_LEN > len(data):
            raise AbsFormatError(
                f"truncated record at offset {offset}: "
                f"needs {length + CHECKSUM_LEN} bytes, {len(data) - offset} available"
            )

        expected = calculate_block_checksum(data[offset:end])
        actual = data[end]
        if expected != actual:
            raise BlockChecksumError(expected, actual, offset)

        payload = bytes(data[offset + HEADER_LEN:end])
        kind = BlockKind.BLOCK if payload else BlockKind.HALT
        return cls(origin=origin, payload=payload, kind=kind), end + CHECKSUM_LEN
