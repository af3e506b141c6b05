"""
Conditional Compilation
=======================

This module implements the small conditional-compilation subset understood
by txt2abs descriptions:

    #define NAME        - add NAME to the defined-symbol set
    #ifdef NAME         - open a scope, active iff NAME is defined
    #if 1 / #if 0       - open a scope, active / suppressed
    #else               - flip the innermost scope
    #endif              - close the innermost scope

Scopes nest without limit unless a maximum depth is configured. A line is
suppressed when ANY open scope is suppressed, so an active inner scope inside
a suppressed outer one still suppresses.

Symbol names are arbitrary non-blank tokens (e.g. "11/34"); they carry no
value, only presence.
"""

import logging
from typing import Iterable, Iterator, Optional

from absloader.errors import NestingDepthError, SourceLocation

logger = logging.getLogger(__name__)


class SymbolTable:
    """
    The set of defined symbols.

    Symbols come from the caller (command-line predefinitions) and from
    #define lines. The set only grows.
    """

    def __init__(self, predefined: Iterable[str] = ()):
        self._names: set[str] = set()
        for name in predefined:
            self.define(name)

    def define(self, name: str) -> None:
        """Add a symbol to the set."""
        if name not in self._names:
            logger.debug(f"define {name}")
        self._names.add(name)

    def is_defined(self, name: str) -> bool:
        """Return True if the symbol has been defined."""
        return name in self._names

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._names))

    def __len__(self) -> int:
        return len(self._names)


class ConditionalStack:
    """
    Stack of open #if/#ifdef scopes.

    Each entry is the scope's own "suppressing" flag. The effective state is
    the OR of all entries.

    Attributes:
        max_depth: Optional nesting limit; None means unlimited
    """

    def __init__(self, max_depth: Optional[int] = None):
        self.max_depth = max_depth
        self._scopes: list[bool] = []

    @property
    def depth(self) -> int:
        """Number of currently open scopes."""
        return len(self._scopes)

    @property
    def suppressed(self) -> bool:
        """True if input is currently being skipped."""
        return any(self._scopes)

    def push(self, suppress: bool, location: Optional[SourceLocation] = None) -> None:
        """
        Open a new scope.

        Raises:
            NestingDepthError: If the configured maximum depth is exceeded
        """
        if self.max_depth is not None and len(self._scopes) >= self.max_depth:
            raise NestingDepthError(self.max_depth, location)
        self._scopes.append(suppress)

    def push_literal(self, value: int, location: Optional[SourceLocation] = None) -> None:
        """Open a scope for '#if 1' (active) or '#if 0' (suppressed)."""
        self.push(value == 0, location)

    def push_ifdef(
        self,
        name: str,
        symbols: SymbolTable,
        location: Optional[SourceLocation] = None,
    ) -> None:
        """Open a scope that is active only if NAME is defined."""
        self.push(not symbols.is_defined(name), location)

    def flip(self) -> bool:
        """
        Handle #else by inverting the innermost scope.

        Returns:
            False if there is no open scope (state unchanged)
        """
        if not self._scopes:
            return False
        self._scopes[-1] = not self._scopes[-1]
        return True

    def pop(self) -> bool:
        """
        Handle #endif by closing the innermost scope.

        Returns:
            False if there is no open scope (state unchanged)
        """
        if not self._scopes:
            return False
        self._scopes.pop()
        return True

    def describe(self) -> str:
        """Short state summary used for conditional debugging notes."""
        return f"depth={self.depth} suppressed={self.suppressed}"
