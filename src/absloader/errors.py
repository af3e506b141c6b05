"""
Absolute Loader Error Hierarchy
===============================

This module defines the exception hierarchy and the diagnostic records used
throughout the absloader package.

Exception Hierarchy
-------------------
AbsLoaderError (base)
├── ConversionError - fatal problem while converting a text description
│   └── NestingDepthError - conditional nesting exceeded the configured limit
└── AbsFormatError - malformed absolute-format image
    └── BlockChecksumError - record checksum does not verify

Diagnostics vs. Exceptions
--------------------------
Per-line problems in the text description (bad octal, range errors,
consistency-check mismatches, #error, ...) never raise. They are recorded as
Diagnostic entries in a DiagnosticCollector so that every problem in a file
is surfaced in a single pass. Exceptions are reserved for conditions that
stop the run.

Diagnostics render in the traditional txt2abs form:
    line 12 ERROR: consistency check, expecting pc=001006 but ":: 001004" specified
    line 40 WARNING: "#warning check the vector table"
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class AbsLoaderError(Exception):
    """
    Base exception for all absloader errors.

    Catching this class catches every error raised by the package:

        try:
            convert_file("boot.txt")
        except AbsLoaderError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A line in a text description, for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed, counts blank and comment lines)
    """
    filename: str
    line: int

    def __str__(self) -> str:
        """Format as 'filename:line'."""
        return f"{self.filename}:{self.line}"


# =============================================================================
# Conversion Exceptions
# =============================================================================

class ConversionError(AbsLoaderError):
    """
    Fatal error while converting a text description.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the message with location and hint.

        Example output:
            boot.txt:33: error: conditional nesting deeper than 32 levels
            hint: check for a missing #endif
        """
        parts = []
        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")
        if self.hint:
            parts.append(f"hint: {self.hint}")
        return "\n".join(parts)


class NestingDepthError(ConversionError):
    """
    Conditional nesting exceeded the configured maximum depth.

    This is a configuration limit, not a property of the input format, so
    it aborts the run instead of being collected as a diagnostic.
    """

    def __init__(self, max_depth: int, location: Optional[SourceLocation] = None):
        self.max_depth = max_depth
        super().__init__(
            f"conditional nesting deeper than {max_depth} levels",
            location=location,
            hint="check for a missing #endif or raise the nesting limit",
        )


# =============================================================================
# Absolute Format Exceptions
# =============================================================================

class AbsFormatError(AbsLoaderError):
    """
    Invalid absolute-format image.

    Raised when reading an image that:
    - Has a record with the wrong signature
    - Is truncated inside a record
    - Does not end with a halt record
    """
    pass


class BlockChecksumError(AbsFormatError):
    """
    A record's checksum byte does not make the record sum to zero.
    """

    def __init__(self, expected: int, actual: int, offset: int = 0):
        self.expected = expected
        self.actual = actual
        self.offset = offset
        super().__init__(
            f"checksum mismatch in record at offset {offset}: "
            f"expected 0x{expected:02X}, got 0x{actual:02X}"
        )


# =============================================================================
# Diagnostics
# =============================================================================

class Severity(Enum):
    """Severity of a collected diagnostic."""
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """
    One reported problem in a text description.

    Attributes:
        location: Source line the diagnostic refers to
        severity: ERROR (counted) or WARNING (advisory only)
        message: Human-readable description
    """
    location: SourceLocation
    severity: Severity
    message: str

    @property
    def line(self) -> int:
        return self.location.line

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        return f"line {self.location.line} {self.severity.name}: {self.message}"


class DiagnosticCollector:
    """
    Collects diagnostics for batch reporting.

    The converter keeps going after a bad line, recording each problem here
    so that a whole file can be checked in one run.

    Example:
        collector = DiagnosticCollector()
        collector.error(SourceLocation("boot.txt", 3), "odd pc=001001")

        for diagnostic in collector.errors:
            print(diagnostic)
    """

    def __init__(self) -> None:
        self.diagnostics: list[Diagnostic] = []

    def add(self, diagnostic: Diagnostic) -> Diagnostic:
        """Record a diagnostic and return it."""
        self.diagnostics.append(diagnostic)
        return diagnostic

    def error(self, location: SourceLocation, message: str) -> Diagnostic:
        """Record an error diagnostic."""
        return self.add(Diagnostic(location, Severity.ERROR, message))

    def warning(self, location: SourceLocation, message: str) -> Diagnostic:
        """Record an advisory diagnostic; it does not count as an error."""
        return self.add(Diagnostic(location, Severity.WARNING, message))

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    def error_count(self) -> int:
        """Return the number of collected errors."""
        return len(self.errors)


def format_error_summary(count: int) -> str:
    """Return the closing '<n> error(s)' line."""
    return f"{count} error{'s' if count != 1 else ''}"
