"""Immutable input cursor and source spans.

A Cursor is a view over a shared token tuple plus an index. Advancing
returns a new Cursor; nothing ever mutates the tokens, so holding on to an
earlier cursor is all it takes to backtrack.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from .token_types import TT, Tok


@dataclass(frozen=True)
class Span:
    """A region [start, end) of the original source text."""

    source: str = field(repr=False, compare=False)
    start: int
    end: int

    @property
    def text(self) -> str:
        return self.source[self.start:self.end]

    @property
    def line(self) -> int:
        return line_col(self.source, self.start)[0]

    @property
    def column(self) -> int:
        return line_col(self.source, self.start)[1]

    def covers(self, other: Span) -> bool:
        return self.start <= other.start and other.end <= self.end

    def to(self, other: Span) -> Span:
        """Span from the start of self to the end of other."""
        return Span(self.source, self.start, other.end)


def line_col(source: str, offset: int) -> Tuple[int, int]:
    """1-based line and column of a character offset."""
    line = source.count('\n', 0, offset) + 1
    line_start = source.rfind('\n', 0, offset) + 1
    return line, offset - line_start + 1


@dataclass(frozen=True)
class Cursor:
    """Position in a token stream. The last token is always EOF."""

    tokens: Tuple[Tok, ...] = field(repr=False)
    source: str = field(repr=False)
    index: int = 0

    @classmethod
    def start(cls, tokens: Sequence[Tok], source: str) -> Cursor:
        return cls(tuple(tokens), source, 0)

    @property
    def current(self) -> Tok:
        return self.tokens[self.index]

    @property
    def at_end(self) -> bool:
        return self.current.type == TT.EOF

    @property
    def offset(self) -> int:
        return self.current.offset

    @property
    def consumed_end(self) -> int:
        """End offset of the last consumed token (0 before the first)."""
        if self.index == 0:
            return 0
        return self.tokens[self.index - 1].end

    def peek(self) -> Optional[Tok]:
        tok = self.current
        return None if tok.type == TT.EOF else tok

    def check(self, *types: TT) -> bool:
        return self.current.type in types

    def advance(self) -> Cursor:
        if self.at_end:
            return self
        return Cursor(self.tokens, self.source, self.index + 1)

    def position(self) -> Span:
        return Span(self.source, self.offset, self.offset)

    def span_from(self, start: Cursor) -> Span:
        """Span of the tokens consumed between start and self."""
        if self.index == start.index:
            return start.position()
        return Span(self.source, start.offset, self.consumed_end)
