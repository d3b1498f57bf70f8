"""Parse results, failures and the per-parse context.

Every grammar rule returns either Success(value, cursor) or a Failure.
Failures are plain values; the only exception type is ParseError, which the
public entry points hand to callers.
"""
from __future__ import annotations

import os
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

from .cursor import Cursor, line_col
from .token_types import Tok

T = TypeVar('T')

DEFAULT_MAX_DEPTH = 50
MAX_DEPTH_ENV = 'MATEXPR_MAX_DEPTH'


class ErrorKind(Enum):
    UNEXPECTED_TOKEN = 'unexpected token'
    UNTERMINATED_BRACKET = 'unterminated bracket'
    INVALID_ASSIGNMENT_TARGET = 'invalid assignment target'
    UNEXPECTED_END_OF_INPUT = 'unexpected end of input'
    TRAILING_INPUT = 'trailing input'
    NESTING_TOO_DEEP = 'nesting too deep'
    INVALID_TOKEN = 'invalid token'


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    cursor: Cursor


@dataclass(frozen=True)
class Failure:
    """A rejected rule. offset is where the problem was found."""

    kind: ErrorKind
    offset: int
    expected: str
    found: Optional[Tok] = None
    alternative: Optional[str] = None

    @classmethod
    def at(cls, cursor: Cursor, expected: str, kind: Optional[ErrorKind] = None) -> Failure:
        """Failure at the cursor's current token."""
        if kind is None:
            kind = ErrorKind.UNEXPECTED_END_OF_INPUT if cursor.at_end else ErrorKind.UNEXPECTED_TOKEN
        return cls(kind, cursor.offset, expected, cursor.peek())

    @property
    def recoverable(self) -> bool:
        """True when the input simply does not start this rule."""
        return self.kind in (ErrorKind.UNEXPECTED_TOKEN, ErrorKind.UNEXPECTED_END_OF_INPUT)


ParseResult = Union[Success[T], Failure]


class ParseError(Exception):
    """Parse error with position info"""

    def __init__(
        self,
        kind: ErrorKind,
        offset: int,
        expected: str,
        source: str,
        found: Optional[str] = None,
        alternative: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        self.kind = kind
        self.offset = offset
        self.expected = expected
        self.source = source
        self.found = found
        self.alternative = alternative
        self.detail = detail
        super().__init__(self.message)

    @classmethod
    def from_failure(cls, failure: Failure, source: str) -> ParseError:
        found = None if failure.found is None else source[failure.found.offset:failure.found.end]
        return cls(failure.kind, failure.offset, failure.expected, source, found, failure.alternative)

    @property
    def line(self) -> int:
        return line_col(self.source, self.offset)[0]

    @property
    def column(self) -> int:
        return line_col(self.source, self.offset)[1]

    @property
    def message(self) -> str:
        saw = f"{self.found!r}" if self.found is not None else "end of input"
        msg = f"{self.kind.value}: expected {self.expected}, got {saw}"
        if self.alternative:
            msg += f" (while parsing {self.alternative})"
        if self.detail:
            msg += f" ({self.detail})"
        return f"{msg} at line {self.line}, col {self.column}"


@dataclass
class ParseStats:
    """Rule invocation counts for one or more parses.

    Owned by the caller; rules only ever increment it.
    """

    calls: Counter = field(default_factory=Counter)

    def hit(self, rule: str) -> None:
        self.calls[rule] += 1

    def __getitem__(self, rule: str) -> int:
        return self.calls[rule]

    @property
    def total(self) -> int:
        return sum(self.calls.values())


def default_max_depth() -> int:
    raw = os.getenv(MAX_DEPTH_ENV)
    if raw is None:
        return DEFAULT_MAX_DEPTH
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{MAX_DEPTH_ENV} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{MAX_DEPTH_ENV} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class ParseContext:
    """Explicit per-parse state threaded through every rule.

    depth counts enclosing brackets; descending returns a new context so a
    rule can never leak its depth to a sibling.
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    depth: int = 0
    stats: ParseStats = field(default_factory=ParseStats, compare=False)

    def hit(self, rule: str) -> None:
        self.stats.hit(rule)

    def descend(self, cursor: Cursor) -> Union[ParseContext, Failure]:
        if self.depth >= self.max_depth:
            return Failure.at(
                cursor,
                f"at most {self.max_depth} levels of nesting",
                ErrorKind.NESTING_TOO_DEEP,
            )
        return ParseContext(self.max_depth, self.depth + 1, self.stats)
