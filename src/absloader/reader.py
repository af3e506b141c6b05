"""
Absolute Format Reader
======================

This module provides the AbsReader class for reading absolute-format images,
the inverse of the converter. It is used to inspect and verify images
produced by txt2abs (or by any other tool writing the format).

Like the absolute loader itself, the reader skips NUL leader bytes between
records, so images punched with tape leader are accepted.

Usage
-----
    >>> reader = AbsReader.from_file("boot.abs")
    >>> for block in reader.data_blocks():
    ...     print(f"{block.origin:06o} {len(block.payload)} bytes")
    >>> memory = reader.load()
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from absloader.errors import AbsFormatError
from absloader.records import AbsBlock, BlockKind

logger = logging.getLogger(__name__)

# Size of the 16-bit address space
MEMORY_SIZE = 0o200000


@dataclass
class AbsReader:
    """
    Parser for absolute-format images.

    Attributes:
        data: The raw image bytes
        blocks: Parsed records, halt record last
        offsets: Byte offset of each record in data

    Raises:
        AbsFormatError: On construction, if the image is malformed
    """
    data: bytes = field(repr=False)
    blocks: list[AbsBlock] = field(default_factory=list)
    offsets: list[int] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        """Parse the image after initialization."""
        self._parse()

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> "AbsReader":
        """
        Create an AbsReader from a file path.

        Raises:
            FileNotFoundError: If the file doesn't exist
            AbsFormatError: If the file cannot be parsed
        """
        return cls(data=Path(filepath).read_bytes())

    @classmethod
    def from_bytes(cls, data: bytes) -> "AbsReader":
        """Create an AbsReader from raw bytes."""
        return cls(data=data)

    def _parse(self) -> None:
        offset = 0
        halted = False
        while offset < len(self.data):
            if self.data[offset] == 0:
                offset += 1
                continue
            if halted:
                raise AbsFormatError(f"data after halt record at offset {offset}")
            block, next_offset = AbsBlock.from_bytes(self.data, offset)
            self.blocks.append(block)
            self.offsets.append(offset)
            logger.debug(
                f"parsed {block.kind.value} at offset {offset}: "
                f"org {block.origin:06o} len {len(block.payload)}"
            )
            halted = block.kind is BlockKind.HALT
            offset = next_offset

        if not halted:
            raise AbsFormatError("image does not end with a halt record")

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def halt_block(self) -> AbsBlock:
        """The terminating record."""
        return self.blocks[-1]

    @property
    def start_address(self) -> Optional[int]:
        """Address the loader jumps to, or None if the image halts."""
        origin = self.halt_block.origin
        return None if origin & 1 else origin

    def data_blocks(self) -> list[AbsBlock]:
        """All records except the halt record."""
        return [b for b in self.blocks if b.kind is BlockKind.BLOCK]

    def get_payload_size(self) -> int:
        """Total number of bytes loaded by the image."""
        return sum(len(b.payload) for b in self.data_blocks())

    def load(self) -> bytearray:
        """
        Load the image into a 64 KiB memory array, as the loader would.

        Later blocks overwrite earlier ones where they overlap.

        Raises:
            AbsFormatError: If a block extends past the address space
        """
        memory = bytearray(MEMORY_SIZE)
        for block in self.data_blocks():
            end = block.origin + len(block.payload)
            if end > MEMORY_SIZE:
                raise AbsFormatError(
                    f"block at {block.origin:06o} extends past end of memory"
                )
            memory[block.origin:end] = block.payload
        return memory

    def get_info(self) -> dict:
        """Summary of the image for display."""
        return {
            "size": len(self.data),
            "block_count": len(self.data_blocks()),
            "payload_bytes": self.get_payload_size(),
            "start_address": self.start_address,
        }
