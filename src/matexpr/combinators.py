"""Generic grammar combinators.

A rule is any callable taking (cursor, ctx) and returning a ParseResult.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Callable, List, Optional, Tuple, TypeVar

from .cursor import Cursor
from .results import ErrorKind, Failure, ParseContext, ParseResult, Success
from .token_types import TT, Tok, describe

T = TypeVar('T')

Rule = Callable[[Cursor, ParseContext], ParseResult[T]]


def expect(
    cursor: Cursor,
    token_type: TT,
    expected: Optional[str] = None,
    opener: Optional[Tok] = None,
) -> ParseResult[Tok]:
    """Consume one token of the given type.

    With an opener, running out of input is reported as an unterminated
    bracket pointing back at the opener.
    """
    if cursor.check(token_type):
        return Success(cursor.current, cursor.advance())

    what = expected or describe(token_type)
    if opener is not None and cursor.at_end:
        return Failure.at(
            cursor,
            f"{what} to close '{opener.value}' from line {opener.line}, col {opener.column}",
            ErrorKind.UNTERMINATED_BRACKET,
        )
    return Failure.at(cursor, what)


def choice(*alternatives: Tuple[str, Rule[T]]) -> Rule[T]:
    """Ordered choice: first success wins.

    When every alternative fails, the failure that got furthest into the
    input is returned, tagged with the alternative's name; ties keep the
    earliest alternative. A failure that is not recoverable ends the choice.
    """
    if not alternatives:
        raise ValueError("choice() needs at least one alternative")

    def parse_choice(cursor: Cursor, ctx: ParseContext) -> ParseResult[T]:
        best: Optional[Failure] = None
        for name, alternative in alternatives:
            result = alternative(cursor, ctx)
            if isinstance(result, Success):
                return result
            if not result.recoverable:
                return replace(result, alternative=result.alternative or name)
            if best is None or result.offset > best.offset:
                best = replace(result, alternative=result.alternative or name)
        return best

    return parse_choice


def separated_list(
    item: Rule[T],
    separator: TT,
    *,
    allow_trailing: bool = True,
    allow_empty: bool = True,
    name: str = 'separated_list',
) -> Rule[Tuple[T, ...]]:
    """item (separator item)* with an optional trailing separator.

    Each item is attempted exactly once at its position. An item that
    fails right after a separator, without consuming anything, marks that
    separator as trailing; the separator stays consumed. An item that fails
    after making progress fails the whole list.
    """

    def parse_list(cursor: Cursor, ctx: ParseContext) -> ParseResult[Tuple[T, ...]]:
        ctx.hit(name)

        first = item(cursor, ctx)
        if isinstance(first, Failure):
            if allow_empty and first.recoverable and first.offset == cursor.offset:
                return Success((), cursor)
            return first

        items: List[T] = [first.value]
        cursor = first.cursor

        while cursor.check(separator):
            after_sep = cursor.advance()
            result = item(after_sep, ctx)
            if isinstance(result, Failure):
                if allow_trailing and result.recoverable and result.offset == after_sep.offset:
                    cursor = after_sep
                    break
                return result
            items.append(result.value)
            cursor = result.cursor

        return Success(tuple(items), cursor)

    return parse_list
