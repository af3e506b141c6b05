"""
absloader - Text to PDP-11 Absolute Loader Converter
====================================================

This package converts a line-oriented text description of PDP-11 words and
bytes into a binary image in absolute loader format (.abs): a sequence of
checksummed, address-tagged blocks terminated by a halt block.

The input is already-encoded machine code written in octal, one directive
per line, with a small conditional-compilation subset for building variants
of the same image.

Main Components
---------------
- **converter**: Drives a conversion (Converter, convert_file, convert_string)
- **parser**: Classifies and parses input lines
- **conditionals**: #define / #ifdef / #if / #else / #endif handling
- **assembler**: Builds and flushes blocks (BlockAssembler)
- **records**: The absolute-format record (AbsBlock)
- **reader**: Reads and verifies existing images (AbsReader)

Quick Start
-----------
Convert a file:
    >>> from absloader import convert_file, write_image
    >>> result = convert_file("boot.txt")
    >>> if result.ok:
    ...     write_image(result, "boot.abs")
    ... else:
    ...     for diagnostic in result.errors:
    ...         print(diagnostic)

Inspect an image:
    >>> from absloader import AbsReader
    >>> reader = AbsReader.from_file("boot.abs")
    >>> for block in reader.data_blocks():
    ...     print(f"{block.origin:06o}: {len(block.payload)} bytes")

Or use the command-line tools:
    $ txt2abs --def 11/34 --in boot.txt --out boot.abs
    $ absdump boot.abs

Reference Documentation
-----------------------
- Absolute loader format: www.pcjs.org/apps/pdp11/tapes/absloader
"""

__version__ = "1.0.0"

from absloader.assembler import BlockAssembler
from absloader.conditionals import ConditionalStack, SymbolTable
from absloader.converter import (
    ConversionResult,
    Converter,
    ConverterConfig,
    convert_file,
    convert_string,
    write_image,
)
from absloader.errors import (
    AbsFormatError,
    AbsLoaderError,
    BlockChecksumError,
    ConversionError,
    Diagnostic,
    DiagnosticCollector,
    NestingDepthError,
    Severity,
    SourceLocation,
)
from absloader.parser import LineKind, ParsedLine, parse_line, parse_octal
from absloader.reader import AbsReader
from absloader.records import (
    ABS_SIGNATURE,
    HALT_ORIGIN,
    HEADER_LEN,
    MAX_BLOCK_PAYLOAD,
    AbsBlock,
    BlockKind,
)
from absloader.checksum import calculate_block_checksum, verify_block_checksum

__all__ = [
    "__version__",
    # Conversion
    "Converter",
    "ConverterConfig",
    "ConversionResult",
    "convert_file",
    "convert_string",
    "write_image",
    # Components
    "BlockAssembler",
    "ConditionalStack",
    "SymbolTable",
    "LineKind",
    "ParsedLine",
    "parse_line",
    "parse_octal",
    # Records
    "AbsBlock",
    "BlockKind",
    "AbsReader",
    "ABS_SIGNATURE",
    "HALT_ORIGIN",
    "HEADER_LEN",
    "MAX_BLOCK_PAYLOAD",
    "calculate_block_checksum",
    "verify_block_checksum",
    # Errors and diagnostics
    "AbsLoaderError",
    "ConversionError",
    "NestingDepthError",
    "AbsFormatError",
    "BlockChecksumError",
    "Diagnostic",
    "DiagnosticCollector",
    "Severity",
    "SourceLocation",
]
