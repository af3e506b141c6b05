"""
Line Classifier and Directive Parser
====================================

Classifies one line of a txt2abs description and extracts its operands.
Classification is purely syntactic: whether a line is suppressed by
conditional compilation, and whether its values are in range, is decided by
the converter.

Syntax
------
    // comment                  ignored (as are blank lines)
    #if 1 / #if 0               open an active / suppressed scope
    #ifdef NAME                 open a scope, active iff NAME is defined
    #else / #endif              flip / close the innermost scope
    #define NAME                define NAME
    #error MESSAGE              report an error
    #warning MESSAGE            report a warning
    = nnnnnn                    set the address origin
    :: nnnnnn                   check that pc == nnnnnn
    : nnnnnn                    check that pc - 2 == nnnnnn
    b nnn                       one byte
    nnnnnn [nnnnnn] [nnnnnn]    one to three 16-bit words

All numbers are octal, written as bare digits. Directives are matched as
prefixes: anything after the operands (typically a "// comment") is ignored,
and a word list uses at most its first three values.

Example
-------
>>> parse_line("012737 000200 177566  // movb #200, @#TPS")
ParsedLine(kind=<LineKind.WORDS: 'words'>, text='012737 000200 177566  // movb #200, @#TPS', operands=(5599, 128, 65398), name=None)
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


# =============================================================================
# Constants
# =============================================================================

# Line comment marker
COMMENT_MARKER = "//"

# Largest operand accepted by word, origin and check directives
WORD_MAX = 0o177777

# Largest operand accepted by the byte directive
BYTE_MAX = 0o377

# A word-list line carries at most this many values
MAX_WORDS_PER_LINE = 3


class LineKind(Enum):
    """Category of a classified line, in matching priority order."""
    EMPTY = "empty"
    ELSE = "else"
    ENDIF = "endif"
    IF_LITERAL = "if"
    IFDEF = "ifdef"
    DEFINE = "define"
    ERROR = "error"
    WARNING = "warning"
    ORIGIN = "origin"
    CHECK_PC = "check_pc"
    CHECK_PREVIOUS = "check_previous"
    BYTE = "byte"
    WORDS = "words"
    MALFORMED = "malformed"

    @property
    def is_conditional(self) -> bool:
        """True for directives processed even while input is suppressed."""
        return self in _CONDITIONAL_KINDS


_CONDITIONAL_KINDS = frozenset({
    LineKind.ELSE,
    LineKind.ENDIF,
    LineKind.IF_LITERAL,
    LineKind.IFDEF,
})


@dataclass(frozen=True)
class ParsedLine:
    """
    Result of classifying one line.

    Attributes:
        kind: The line category
        text: The line with leading whitespace and line ending removed
        operands: Numeric operands, in source order
        name: Symbol name for IFDEF and DEFINE lines
    """
    kind: LineKind
    text: str
    operands: tuple[int, ...] = ()
    name: Optional[str] = None

    @property
    def value(self) -> int:
        """The first (usually only) operand."""
        return self.operands[0]


# =============================================================================
# Patterns
# =============================================================================

IF_LITERAL_PATTERN = re.compile(r"^#if\s+([01])$")
IFDEF_PATTERN = re.compile(r"^#ifdef\s+(\S+)")
DEFINE_PATTERN = re.compile(r"^#define\s+(\S+)")

ORIGIN_PATTERN = re.compile(r"^=\s*([0-7]+)")
CHECK_PC_PATTERN = re.compile(r"^::\s*([0-7]+)")
CHECK_PREVIOUS_PATTERN = re.compile(r"^:\s*([0-7]+)")
BYTE_PATTERN = re.compile(r"^b\s*([0-7]+)")
WORDS_PATTERN = re.compile(r"^([0-7]+)(?:\s+([0-7]+))?(?:\s+([0-7]+))?")

# Single-operand directives, tried in this order
_VALUE_DIRECTIVES = (
    (ORIGIN_PATTERN, LineKind.ORIGIN),
    (CHECK_PC_PATTERN, LineKind.CHECK_PC),
    (CHECK_PREVIOUS_PATTERN, LineKind.CHECK_PREVIOUS),
    (BYTE_PATTERN, LineKind.BYTE),
)


# =============================================================================
# Parsing
# =============================================================================

def parse_octal(text: str) -> int:
    """
    Parse a bare octal literal.

    Raises:
        ValueError: If the text is not made only of octal digits
    """
    if not text or any(c not in "01234567" for c in text):
        raise ValueError(f"invalid octal number '{text}'")
    return int(text, 8)


def normalize_line(raw: str) -> str:
    """Strip the line ending and leading whitespace from a raw input line."""
    return raw.rstrip("\r\n").lstrip()


def parse_line(text: str) -> ParsedLine:
    """
    Classify a normalized line and extract its operands.

    Args:
        text: Line with leading whitespace and line ending already removed

    Returns:
        The classified line; MALFORMED if no directive shape matches
    """
    if not text or text.startswith(COMMENT_MARKER):
        return ParsedLine(LineKind.EMPTY, text)

    if text.startswith("#"):
        directive = _parse_hash_directive(text)
        if directive is not None:
            return directive

    for pattern, kind in _VALUE_DIRECTIVES:
        match = pattern.match(text)
        if match:
            return ParsedLine(kind, text, (int(match.group(1), 8),))

    match = WORDS_PATTERN.match(text)
    if match:
        words = tuple(int(g, 8) for g in match.groups() if g is not None)
        return ParsedLine(LineKind.WORDS, text, words)

    return ParsedLine(LineKind.MALFORMED, text)


def _parse_hash_directive(text: str) -> Optional[ParsedLine]:
    """Match the '#' directives; None means fall through to other shapes."""
    keyword = text.rstrip()

    if keyword == "#else":
        return ParsedLine(LineKind.ELSE, text)
    if keyword == "#endif":
        return ParsedLine(LineKind.ENDIF, text)

    match = IF_LITERAL_PATTERN.match(keyword)
    if match:
        return ParsedLine(LineKind.IF_LITERAL, text, (int(match.group(1)),))

    match = IFDEF_PATTERN.match(text)
    if match:
        return ParsedLine(LineKind.IFDEF, text, name=match.group(1))

    match = DEFINE_PATTERN.match(text)
    if match:
        return ParsedLine(LineKind.DEFINE, text, name=match.group(1))

    if text.startswith("#error"):
        return ParsedLine(LineKind.ERROR, text)
    if text.startswith("#warning"):
        return ParsedLine(LineKind.WARNING, text)

    return None
