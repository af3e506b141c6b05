"""
Block Assembler
===============

The BlockAssembler owns the program counter, the origin of the block being
built, and the pending payload buffer. Data is appended until something
forces a flush, at which point the buffer is packaged into one AbsBlock and
written to the output stream.

Flushes happen on:
- an origin directive (before the new origin is adopted)
- either consistency-check directive
- end of input (pending data first, then the halt record)

After a flush the next block's origin is the current pc, so data that
follows a consistency check continues at the right address without a new
origin directive.

Example
-------
>>> asm = BlockAssembler()
>>> asm.set_origin(0o1000)
>>> asm.append_words([0o100, 0o200])
True
>>> block = asm.flush()
>>> block.origin, block.payload
(512, b'@\\x00\\x80\\x00')
"""

import io
import logging
import struct
from typing import BinaryIO, Iterable, Optional

from absloader.errors import ConversionError
from absloader.records import AbsBlock, MAX_BLOCK_PAYLOAD

logger = logging.getLogger(__name__)


class BlockAssembler:
    """
    Accumulates bytes into absolute-format blocks.

    Attributes:
        output: Binary stream that receives each record as it is flushed
        blocks: Every record written so far, in order
        max_payload: Largest payload a single block may hold
    """

    def __init__(
        self,
        output: Optional[BinaryIO] = None,
        max_payload: int = MAX_BLOCK_PAYLOAD,
    ):
        self.output: BinaryIO = output if output is not None else io.BytesIO()
        self.blocks: list[AbsBlock] = []
        self.max_payload = max_payload
        self._pc = 0
        self._origin = 0
        self._buffer = bytearray()
        self._halted = False

    # =========================================================================
    # State
    # =========================================================================

    @property
    def pc(self) -> int:
        """Address of the next byte to be appended."""
        return self._pc

    @property
    def origin(self) -> int:
        """Load address of the block currently being built."""
        return self._origin

    @property
    def pending(self) -> bytes:
        """Bytes appended since the last flush."""
        return bytes(self._buffer)

    @property
    def halted(self) -> bool:
        """True once the halt record has been written."""
        return self._halted

    # =========================================================================
    # Appending Data
    # =========================================================================

    def set_origin(self, address: int) -> Optional[AbsBlock]:
        """
        Flush pending data, then start a new block at address.

        Returns:
            The block flushed, or None if the buffer was empty
        """
        block = self.flush()
        self._pc = self._origin = address & 0xFFFF
        return block

    def append(self, data: bytes) -> bool:
        """
        Append raw bytes and advance pc by their length.

        If the bytes would not fit in the block they are dropped; pc still
        advances so that later addresses follow the source.

        Returns:
            False if the bytes did not fit in the current block
        """
        self._pc += len(data)
        if len(self._buffer) + len(data) > self.max_payload:
            return False
        self._buffer.extend(data)
        return True

    def append_byte(self, value: int) -> bool:
        """Append one byte (truncated to 8 bits); pc advances by 1."""
        return self.append(bytes([value & 0xFF]))

    def append_words(self, values: Iterable[int]) -> bool:
        """Append little-endian words (truncated to 16 bits); pc advances by 2 each."""
        data = b"".join(struct.pack("<H", v & 0xFFFF) for v in values)
        return self.append(data)

    # =========================================================================
    # Flushing
    # =========================================================================

    def flush(self) -> Optional[AbsBlock]:
        """
        Write the pending buffer as one data block.

        An empty buffer writes nothing and leaves all state unchanged.

        Returns:
            The block written, or None
        """
        if not self._buffer:
            return None
        block = AbsBlock(origin=self._origin, payload=bytes(self._buffer))
        self._write(block)
        return block

    def write_halt(self) -> AbsBlock:
        """
        Write the terminating halt record.

        Raises:
            ConversionError: If the halt record was already written
        """
        if self._halted:
            raise ConversionError("halt record already written")
        block = AbsBlock.halt()
        self._write(block)
        self._halted = True
        return block

    def finish(self) -> list[AbsBlock]:
        """
        Flush pending data and write the halt record.

        Returns:
            The records written by this call (one or two)
        """
        written = []
        block = self.flush()
        if block is not None:
            written.append(block)
        written.append(self.write_halt())
        return written

    def _write(self, block: AbsBlock) -> None:
        """Write a record and reset the buffer for the next block."""
        self.output.write(block.to_bytes())
        self.blocks.append(block)
        logger.debug(
            f"wrote {block.kind.value} org {block.origin:06o} "
            f"len {len(block.payload):06o} cksum 0x{block.checksum:02X}"
        )
        self._buffer.clear()
        self._origin = self._pc

    def get_image(self) -> bytes:
        """Return everything written so far, if the output is in memory."""
        if isinstance(self.output, io.BytesIO):
            return self.output.getvalue()
        return b"".join(block.to_bytes() for block in self.blocks)
