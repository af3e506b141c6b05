"""
Text to Absolute Format Converter
=================================

This module provides the Converter class, which drives a txt2abs conversion:
it walks the input lines in order, classifies each one, applies conditional
compilation, and hands the surviving directives to the BlockAssembler.

Problems in the input are collected as diagnostics and the run always goes
to the end of the input and writes the halt record. The produced image is
only trustworthy when the error count is zero; the caller decides whether
to persist it.

Example Usage
-------------
>>> from absloader import convert_string
>>> result = convert_string("= 1000\\n000100 000200\\nb 377\\n")
>>> result.error_count
0
>>> result.image.hex()
'01000b00000240008000ff33010006000100f8'

Listing
-------
With ConverterConfig(listing=True) the result carries a listing: one line
per input line showing the pc before the line was processed, one line per
record written, and each diagnostic where it occurred:

    line #0001: 000000 | = 1000
    line #0002: 001000 | 000100 000200
    line #0003: 001004 | b 377
    wrote BLK org 001000 len 000005 cksum 0063(0x33)
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Union

from absloader.assembler import BlockAssembler
from absloader.conditionals import ConditionalStack, SymbolTable
from absloader.errors import (
    ConversionError,
    Diagnostic,
    DiagnosticCollector,
    SourceLocation,
    format_error_summary,
)
from absloader.parser import (
    BYTE_MAX,
    LineKind,
    ParsedLine,
    WORD_MAX,
    normalize_line,
    parse_line,
)
from absloader.records import AbsBlock

logger = logging.getLogger(__name__)

# First address past the 16-bit address space
ADDRESS_LIMIT = 0o200000


# =============================================================================
# Configuration and Result
# =============================================================================

@dataclass
class ConverterConfig:
    """
    Options for a conversion run.

    Attributes:
        listing: Produce a listing of lines and records
        predefined: Symbols defined before the first line (like #define)
        debug_conditionals: Add a state note after each conditional directive
        max_nesting: Maximum conditional nesting depth; None for unlimited
        filename: Source name used in diagnostics
    """
    listing: bool = False
    predefined: tuple[str, ...] = ()
    debug_conditionals: bool = False
    max_nesting: Optional[int] = None
    filename: str = "<input>"


@dataclass
class ConversionResult:
    """
    Outcome of a conversion run.

    Attributes:
        image: The complete absolute-format image
        blocks: Records written, the halt record last
        diagnostics: Errors and warnings in source order
        listing: Listing lines (empty unless listing was enabled)
        lines_processed: Number of input lines read
    """
    image: bytes
    blocks: list[AbsBlock]
    diagnostics: list[Diagnostic] = field(default_factory=list)
    listing: list[str] = field(default_factory=list)
    lines_processed: int = 0

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if not d.is_error]

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def ok(self) -> bool:
        """True if the image can be used."""
        return self.error_count == 0

    def summary(self) -> str:
        return format_error_summary(self.error_count)


# =============================================================================
# Converter
# =============================================================================

class Converter:
    """
    Converts a txt2abs description into an absolute-format image.

    A Converter is single-use: create one per input.

    Attributes:
        config: Options for this run
        symbols: Defined-symbol set
        conditions: Open conditional scopes
        assembler: Block assembler receiving the data
        diagnostics: Collected errors and warnings
    """

    def __init__(
        self,
        config: Optional[ConverterConfig] = None,
        output: Optional[BinaryIO] = None,
    ):
        self.config = config or ConverterConfig()
        self.symbols = SymbolTable()
        self.conditions = ConditionalStack(max_depth=self.config.max_nesting)
        self.assembler = BlockAssembler(output=output)
        self.diagnostics = DiagnosticCollector()
        self._listing: list[str] = []
        self._line_number = 0

        for name in self.config.predefined:
            self.symbols.define(name)

    # =========================================================================
    # Entry Points
    # =========================================================================

    def convert(self, lines: Iterable[str]) -> ConversionResult:
        """
        Convert a sequence of raw input lines.

        Args:
            lines: Input lines, with or without line endings

        Returns:
            The conversion result; check error_count before using the image

        Raises:
            NestingDepthError: If max_nesting is set and exceeded
        """
        if self.assembler.halted:
            raise ConversionError("converter instances are single-use")

        for raw in lines:
            self._line_number += 1
            self.process_line(raw)

        for block in self.assembler.finish():
            self._list_block(block)

        if self.conditions.depth:
            logger.debug(f"{self.conditions.depth} conditional scope(s) still open at end of input")

        return ConversionResult(
            image=self.assembler.get_image(),
            blocks=list(self.assembler.blocks),
            diagnostics=list(self.diagnostics.diagnostics),
            listing=list(self._listing),
            lines_processed=self._line_number,
        )

    # =========================================================================
    # Line Processing
    # =========================================================================

    def process_line(self, raw: str) -> None:
        """Process one raw input line at the current line number."""
        if self.config.listing:
            text = raw.rstrip("\r\n")
            self._listing.append(
                f"line #{self._line_number:04d}: {self.assembler.pc:06o} | {text}"
            )

        parsed = parse_line(normalize_line(raw))

        if parsed.kind is LineKind.EMPTY:
            return

        if parsed.kind.is_conditional:
            self._process_conditional(parsed)
            return

        if self.conditions.suppressed:
            return

        handler = self._HANDLERS[parsed.kind]
        handler(self, parsed)

    def _process_conditional(self, parsed: ParsedLine) -> None:
        """Handle #if/#ifdef/#else/#endif; always runs, even when suppressed."""
        kind = parsed.kind
        if kind is LineKind.IF_LITERAL:
            self.conditions.push_literal(parsed.value, self._location())
        elif kind is LineKind.IFDEF:
            self.conditions.push_ifdef(parsed.name, self.symbols, self._location())
        elif kind is LineKind.ELSE:
            if not self.conditions.flip():
                self._error("#else not inside #if")
        elif kind is LineKind.ENDIF:
            if not self.conditions.pop():
                self._error("#endif without corresponding #if")

        logger.debug(f"line {self._line_number}: {parsed.text.rstrip()} {self.conditions.describe()}")
        if self.config.listing and self.config.debug_conditionals:
            self._listing.append(f"cond {parsed.text.rstrip()} {self.conditions.describe()}")

    def _process_define(self, parsed: ParsedLine) -> None:
        self.symbols.define(parsed.name)
        if self.config.listing:
            self._listing.append(f"#define {parsed.name}")

    def _process_error(self, parsed: ParsedLine) -> None:
        self._error(f'"{parsed.text}"')

    def _process_warning(self, parsed: ParsedLine) -> None:
        self._warning(f'"{parsed.text}"')

    def _process_origin(self, parsed: ParsedLine) -> None:
        """'= addr': flush, then start a new block at addr."""
        address = parsed.value
        block = self.assembler.set_origin(address)
        self._list_block(block)
        if address > WORD_MAX:
            self._error(f"range origin={address:06o}")

    def _process_check_pc(self, parsed: ParsedLine) -> None:
        """':: addr': pc must equal addr."""
        expected = parsed.value
        if expected > WORD_MAX:
            self._error(f"'::' range chk={expected:06o}")
        pc = self.assembler.pc
        if pc != expected:
            self._error(
                f'consistency check, expecting pc={pc:06o} but ":: {expected:06o}" specified'
            )
        self._list_block(self.assembler.flush())

    def _process_check_previous(self, parsed: ParsedLine) -> None:
        """': addr': the previous word must have been at addr."""
        expected = parsed.value
        if expected > WORD_MAX:
            self._error(f"':' range chk={expected:06o}")
        previous = self.assembler.pc - 2
        if previous != expected:
            self._error(
                f"consistency check, expecting (pc-2)={previous & 0xFFFF:06o} "
                f'but ": {expected:06o}" specified'
            )
        self._list_block(self.assembler.flush())

    def _process_byte(self, parsed: ParsedLine) -> None:
        value = parsed.value
        if value > BYTE_MAX:
            self._error(f"range b={value:04o}")
        start = self._check_address(1)
        if not self.assembler.append_byte(value):
            self._block_overflow(start)

    def _process_words(self, parsed: ParsedLine) -> None:
        for index, value in enumerate(parsed.operands):
            if value > WORD_MAX:
                self._error(f"range w{index}={value:06o}")
        if self.assembler.pc & 1:
            self._error(f"odd pc={self.assembler.pc:06o}")
        start = self._check_address(2 * len(parsed.operands))
        if not self.assembler.append_words(parsed.operands):
            self._block_overflow(start)

    def _process_malformed(self, parsed: ParsedLine) -> None:
        self._error(f'syntax error "{parsed.text}"')

    def _check_address(self, size: int) -> int:
        """Report data running past the address space; returns the start pc."""
        start = self.assembler.pc
        if start + size > ADDRESS_LIMIT:
            self._error(f"address overflow pc={start:06o}")
        return start

    def _block_overflow(self, start: int) -> None:
        self._error(
            f"block overflow at pc={start:06o}, "
            f"block is limited to {self.assembler.max_payload} bytes"
        )

    _HANDLERS = {
        LineKind.DEFINE: _process_define,
        LineKind.ERROR: _process_error,
        LineKind.WARNING: _process_warning,
        LineKind.ORIGIN: _process_origin,
        LineKind.CHECK_PC: _process_check_pc,
        LineKind.CHECK_PREVIOUS: _process_check_previous,
        LineKind.BYTE: _process_byte,
        LineKind.WORDS: _process_words,
        LineKind.MALFORMED: _process_malformed,
    }

    # =========================================================================
    # Reporting
    # =========================================================================

    def _location(self) -> SourceLocation:
        return SourceLocation(self.config.filename, self._line_number)

    def _error(self, message: str) -> None:
        diagnostic = self.diagnostics.error(self._location(), message)
        logger.debug(str(diagnostic))
        if self.config.listing:
            self._listing.append(str(diagnostic))

    def _warning(self, message: str) -> None:
        diagnostic = self.diagnostics.warning(self._location(), message)
        logger.info(str(diagnostic))
        if self.config.listing:
            self._listing.append(str(diagnostic))

    def _list_block(self, block: Optional[AbsBlock]) -> None:
        if block is None or not self.config.listing:
            return
        self._listing.append(
            f"wrote {block.kind.value} org {block.origin:06o} "
            f"len {len(block.payload):06o} "
            f"cksum {block.checksum:04o}(0x{block.checksum:02x})"
        )
        self._listing.append("")


# =============================================================================
# Convenience Functions
# =============================================================================

def convert_string(source: str, config: Optional[ConverterConfig] = None) -> ConversionResult:
    """
    Convert a description held in a string.

    Lines break at newlines only, numbered as convert_file numbers them.

    Args:
        source: Full text of the description
        config: Conversion options

    Returns:
        The conversion result
    """
    lines = source.split("\n")
    if lines[-1] == "":
        lines.pop()
    return Converter(config).convert(lines)


def convert_file(
    filepath: Union[str, Path],
    config: Optional[ConverterConfig] = None,
) -> ConversionResult:
    """
    Convert a description read from a file.

    The file name is used in diagnostics unless config sets one.

    Raises:
        FileNotFoundError: If the input file doesn't exist
    """
    filepath = Path(filepath)
    config = config or ConverterConfig()
    if config.filename == "<input>":
        config = replace(config, filename=str(filepath))
    with open(filepath, "r", encoding="utf-8", errors="replace", newline="") as f:
        return Converter(config).convert(f)


def write_image(result: ConversionResult, filepath: Union[str, Path]) -> int:
    """
    Write a result's image to disk, replacing the file atomically.

    Returns:
        Number of bytes written
    """
    filepath = Path(filepath)
    tmp_path = filepath.with_name(filepath.name + ".tmp")
    with open(tmp_path, "wb") as f:
        f.write(result.image)
    tmp_path.replace(filepath)
    return len(result.image)
