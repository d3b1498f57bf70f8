"""
Recursive Descent Parser for matexpr

Structure:
- Lexer: Token stream from source (lexer_rd)
- Cursor: immutable position in the token stream
- Parser: one method per grammar rule, each returning Success or Failure

Every rule parses each of its operands exactly once. Repetition is always
"parse one, then fold (operator, operand) pairs while the next token says
so"; no rule retries a shorter alternative over input it already consumed,
so the work done is linear in the input regardless of nesting depth.
"""

import logging
import sys
from typing import NamedTuple, Optional, Union

from .combinators import choice, expect, separated_list
from .cursor import Cursor
from .lexer_rd import LexError, tokenize
from .results import (
    ErrorKind,
    Failure,
    ParseContext,
    ParseError,
    ParseResult,
    ParseStats,
    Success,
    default_max_depth,
)
from .token_types import COMPARE_TYPES, LITERAL_TYPES, TT, Tok
from .tree import (
    ArithOp,
    ArrayLiteral,
    Assignment,
    BinaryOp,
    Call,
    CmpOp,
    Comparison,
    Field,
    Group,
    Identifier,
    Index,
    Literal,
    Postfix,
    SyntaxNode,
    UnaryOp,
    is_assignable,
    to_tree,
)

logger = logging.getLogger(__name__)

_ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '0': '\0',
    '\\': '\\',
    '"': '"',
    "'": "'",
}


def _decode_string(raw: str) -> str:
    """Strip quotes and resolve escapes; unknown escapes are kept verbatim."""
    body = raw[1:-1]
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == '\\' and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, '\\' + nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return ''.join(out)


def _literal_value(tok: Tok):
    if tok.type == TT.NUMBER:
        text = tok.value
        if any(ch in text for ch in '.eE'):
            return float(text)
        return int(text)
    if tok.type == TT.STRING:
        return _decode_string(tok.value)
    if tok.type == TT.TRUE:
        return True
    if tok.type == TT.FALSE:
        return False
    return None


class Parsed(NamedTuple):
    """Successful parse: the tree and how much of the source it consumed."""

    tree: SyntaxNode
    consumed: int


# ============================================================================
# Parser
# ============================================================================

class Parser:
    """
    Recursive descent parser for matexpr.

    Expression precedence (lowest to highest):
    1. assignment (=), right associative
    2. comparison chain (==, !=, <, >, <=, >=)
    3. sum (+, -)
    4. product (*, /)
    5. unary (-)
    6. postfix ((call), [index], .field)
    7. primary (literals, identifiers, parens, arrays)

    The parser holds configuration only. All per-parse state lives in the
    Cursor and ParseContext passed to each rule, so one Parser can serve
    any number of parses, concurrently or not.
    """

    def __init__(self, max_depth: Optional[int] = None):
        self.max_depth = default_max_depth() if max_depth is None else max_depth

        self._primary = choice(
            ('literal', self.parse_literal),
            ('identifier', self.parse_identifier),
            ('parenthesized expression', self.parse_group),
            ('array literal', self.parse_array_literal),
        )
        self._array_rows = separated_list(self.parse_array_row, TT.SEMI, name='array_rows')
        self._row_items = separated_list(
            self.parse_expr, TT.COMMA, allow_empty=False, name='row_items'
        )
        self._call_args = separated_list(self.parse_expr, TT.COMMA, name='call_args')
        self._subscripts = separated_list(
            self.parse_expr, TT.COMMA, allow_empty=False, name='subscripts'
        )

    # ========================================================================
    # Entry Points
    # ========================================================================

    def parse_tokens(self, source: str, stats: Optional[ParseStats] = None) -> Union[Success, ParseError]:
        """Tokenize and parse one expression, leaving any trailing input."""
        try:
            tokens = tokenize(source)
        except LexError as err:
            logger.debug("lex error at offset %d: %s", err.offset, err.message)
            return ParseError(
                ErrorKind.INVALID_TOKEN,
                err.offset,
                "a valid token",
                source,
                found=source[err.offset:err.offset + 1] or None,
                detail=err.message,
            )

        ctx = ParseContext(self.max_depth, 0, stats if stats is not None else ParseStats())
        logger.debug("parsing %d tokens (max depth %d)", len(tokens), self.max_depth)

        result = self.parse_expr(Cursor.start(tokens, source), ctx)
        if isinstance(result, Failure):
            logger.debug("parse failed: %s at offset %d", result.kind.value, result.offset)
            return ParseError.from_failure(result, source)

        logger.debug(
            "parsed %d of %d chars in %d rule calls",
            result.cursor.consumed_end,
            len(source),
            ctx.stats.total,
        )
        return result

    def parse(self, source: str, stats: Optional[ParseStats] = None) -> Union[Parsed, ParseError]:
        outcome = self.parse_tokens(source, stats)
        if isinstance(outcome, ParseError):
            return outcome
        return Parsed(outcome.value, outcome.cursor.consumed_end)

    # ========================================================================
    # Expressions - Precedence Climbing
    # ========================================================================

    def parse_assign_expr(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[SyntaxNode]:
        """
        Parse assignment: target = target = ... = value

        Each side is parsed once as an ordinary expression; a side followed
        by '=' is then checked as a target. The chain is folded from the
        right, so a = b = c is a = (b = c).
        """
        ctx.hit('assign_expr')

        sides = []
        while True:
            side_start = cursor
            result = self.parse_cmp_expr(cursor, ctx)
            if isinstance(result, Failure):
                return result

            node = result.value
            cursor = result.cursor
            sides.append(node)

            if not cursor.check(TT.ASSIGN):
                break
            if not is_assignable(node):
                return Failure(
                    ErrorKind.INVALID_ASSIGNMENT_TARGET,
                    node.span.start,
                    "a name, index, field or [targets] before '='",
                    side_start.current,
                )
            cursor = cursor.advance()  # =

        value = sides.pop()
        while sides:
            target = sides.pop()
            value = Assignment(target, value, target.span.to(value.span))

        return Success(value, cursor)

    parse_expr = parse_assign_expr

    def parse_cmp_expr(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[SyntaxNode]:
        """Parse comparison chain: a < b <= c, kept flat"""
        ctx.hit('cmp_expr')

        left = self.parse_sum_expr(cursor, ctx)
        if isinstance(left, Failure):
            return left

        cursor = left.cursor
        chain = []
        while cursor.check(*COMPARE_TYPES):
            op = CmpOp.from_token_type(cursor.current.type)
            right = self.parse_sum_expr(cursor.advance(), ctx)
            if isinstance(right, Failure):
                return right
            chain.append((op, right.value))
            cursor = right.cursor

        # No comparison, just return sum level
        if not chain:
            return left

        first = left.value
        node = Comparison(first, tuple(chain), first.span.to(chain[-1][1].span))
        return Success(node, cursor)

    def parse_sum_expr(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[SyntaxNode]:
        """Parse addition/subtraction: expr + expr (left associative)"""
        ctx.hit('sum_expr')

        left = self.parse_product_expr(cursor, ctx)
        if isinstance(left, Failure):
            return left

        node = left.value
        cursor = left.cursor
        while cursor.check(TT.PLUS, TT.MINUS):
            op = ArithOp.from_token_type(cursor.current.type)
            right = self.parse_product_expr(cursor.advance(), ctx)
            if isinstance(right, Failure):
                return right
            node = BinaryOp(node, op, right.value, node.span.to(right.value.span))
            cursor = right.cursor

        return Success(node, cursor)

    def parse_product_expr(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[SyntaxNode]:
        """Parse multiplication/division: expr * expr (left associative)"""
        ctx.hit('product_expr')

        left = self.parse_unary_expr(cursor, ctx)
        if isinstance(left, Failure):
            return left

        node = left.value
        cursor = left.cursor
        while cursor.check(TT.STAR, TT.SLASH):
            op = ArithOp.from_token_type(cursor.current.type)
            right = self.parse_unary_expr(cursor.advance(), ctx)
            if isinstance(right, Failure):
                return right
            node = BinaryOp(node, op, right.value, node.span.to(right.value.span))
            cursor = right.cursor

        return Success(node, cursor)

    def parse_unary_expr(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[SyntaxNode]:
        """Parse prefix minus: -expr, --expr, ..."""
        ctx.hit('unary_expr')

        signs = []
        while cursor.check(TT.MINUS):
            signs.append(cursor.position())
            cursor = cursor.advance()

        operand = self.parse_postfix_expr(cursor, ctx)
        if isinstance(operand, Failure):
            return operand

        node = operand.value
        for sign in reversed(signs):
            node = UnaryOp(ArithOp.MINUS, node, sign.to(node.span))

        return Success(node, operand.cursor)

    def parse_postfix_expr(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[SyntaxNode]:
        """
        Parse postfix expressions:
        - calls: expr(args)
        - indexing: expr[index, ...]
        - field access: expr.field

        A call wraps everything to its left; runs of index/field suffixes
        are gathered into a single Postfix node.
        """
        ctx.hit('postfix_expr')

        primary = self.parse_primary_expr(cursor, ctx)
        if isinstance(primary, Failure):
            return primary

        node = primary.value
        cursor = primary.cursor
        ops = []

        while True:
            # Call
            if cursor.check(TT.LPAR):
                if ops:
                    node = Postfix(node, tuple(ops), node.span.to(ops[-1].span))
                    ops = []
                result = self.parse_call_suffix(cursor, ctx)
                if isinstance(result, Failure):
                    return result
                args, span = result.value
                node = Call(node, args, node.span.to(span))
                cursor = result.cursor

            # Indexing
            elif cursor.check(TT.LSQB):
                result = self.parse_index_suffix(cursor, ctx)
                if isinstance(result, Failure):
                    return result
                ops.append(result.value)
                cursor = result.cursor

            # Field access
            elif cursor.check(TT.DOT):
                result = self.parse_field_suffix(cursor, ctx)
                if isinstance(result, Failure):
                    return result
                ops.append(result.value)
                cursor = result.cursor

            else:
                break

        if ops:
            node = Postfix(node, tuple(ops), node.span.to(ops[-1].span))

        return Success(node, cursor)

    def parse_call_suffix(self, cursor: Cursor, ctx: ParseContext):
        """Parse '(' args ')' and return (args, span of the parens)"""
        ctx.hit('call_suffix')

        opened = expect(cursor, TT.LPAR)
        if isinstance(opened, Failure):
            return opened

        inner = ctx.descend(opened.cursor)
        if isinstance(inner, Failure):
            return inner

        args = self._call_args(opened.cursor, inner)
        if isinstance(args, Failure):
            return args

        closed = expect(args.cursor, TT.RPAR, opener=opened.value)
        if isinstance(closed, Failure):
            return closed

        return Success((args.value, closed.cursor.span_from(cursor)), closed.cursor)

    def parse_index_suffix(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[Index]:
        """Parse '[' subscript, ... ']'"""
        ctx.hit('index_suffix')

        opened = expect(cursor, TT.LSQB)
        if isinstance(opened, Failure):
            return opened

        inner = ctx.descend(opened.cursor)
        if isinstance(inner, Failure):
            return inner

        subscripts = self._subscripts(opened.cursor, inner)
        if isinstance(subscripts, Failure):
            return subscripts

        closed = expect(subscripts.cursor, TT.RSQB, opener=opened.value)
        if isinstance(closed, Failure):
            return closed

        return Success(Index(subscripts.value, closed.cursor.span_from(cursor)), closed.cursor)

    def parse_field_suffix(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[Field]:
        """Parse '.' name"""
        dot = expect(cursor, TT.DOT)
        if isinstance(dot, Failure):
            return dot

        name = expect(dot.cursor, TT.IDENT, "field name after '.'")
        if isinstance(name, Failure):
            return name

        return Success(Field(name.value.value, name.cursor.span_from(cursor)), name.cursor)

    # ========================================================================
    # Primary Expressions
    # ========================================================================

    def parse_primary_expr(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[SyntaxNode]:
        """
        Parse primary expressions:
        - Literals (numbers, strings, true, false, nil)
        - Identifiers
        - Parenthesized expressions
        - Array literals
        """
        ctx.hit('primary_expr')

        result = self._primary(cursor, ctx)
        if isinstance(result, Failure) and result.recoverable and result.offset == cursor.offset:
            # Nothing here starts an expression
            return Failure.at(cursor, "expression")
        return result

    def parse_literal(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[Literal]:
        if not cursor.check(*LITERAL_TYPES):
            return Failure.at(cursor, "literal")

        tok = cursor.current
        nxt = cursor.advance()
        return Success(Literal(tok.type, _literal_value(tok), nxt.span_from(cursor)), nxt)

    def parse_identifier(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[Identifier]:
        if not cursor.check(TT.IDENT):
            return Failure.at(cursor, "identifier")

        tok = cursor.current
        nxt = cursor.advance()
        return Success(Identifier(tok.value, nxt.span_from(cursor)), nxt)

    def parse_group(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[Group]:
        """Parse parenthesized expression: ( expr )"""
        opened = expect(cursor, TT.LPAR)
        if isinstance(opened, Failure):
            return opened

        inner = ctx.descend(opened.cursor)
        if isinstance(inner, Failure):
            return inner

        expr = self.parse_expr(opened.cursor, inner)
        if isinstance(expr, Failure):
            return expr

        closed = expect(expr.cursor, TT.RPAR, opener=opened.value)
        if isinstance(closed, Failure):
            return closed

        return Success(Group(expr.value, closed.cursor.span_from(cursor)), closed.cursor)

    def parse_array_literal(self, cursor: Cursor, ctx: ParseContext) -> ParseResult[ArrayLiteral]:
        """
        Parse array literal: [ row ; row ; ... ]

        Rows are separated by ';' and elements by ','; both accept one
        trailing separator, so [1;2] and [1;2;] are the same array.
        """
        ctx.hit('array_literal')

        opened = expect(cursor, TT.LSQB)
        if isinstance(opened, Failure):
            return opened

        inner = ctx.descend(opened.cursor)
        if isinstance(inner, Failure):
            return inner

        rows = self._array_rows(opened.cursor, inner)
        if isinstance(rows, Failure):
            return rows

        closed = expect(rows.cursor, TT.RSQB, opener=opened.value)
        if isinstance(closed, Failure):
            return closed

        return Success(ArrayLiteral(rows.value, closed.cursor.span_from(cursor)), closed.cursor)

    def parse_array_row(self, cursor: Cursor, ctx: ParseContext):
        """Parse one array row: expr, expr, ..."""
        ctx.hit('array_row')
        return self._row_items(cursor, ctx)


# ============================================================================
# Module Entry Points
# ============================================================================

def parse(
    source: str,
    *,
    max_depth: Optional[int] = None,
    stats: Optional[ParseStats] = None,
) -> Union[Parsed, ParseError]:
    """
    Parse one expression from the start of source.

    Returns Parsed(tree, consumed) or a ParseError value; never raises for
    bad input. Input after the expression is left for the caller to judge.
    """
    return Parser(max_depth=max_depth).parse(source, stats)


def parse_source(
    source: str,
    *,
    allow_partial: bool = False,
    max_depth: Optional[int] = None,
    stats: Optional[ParseStats] = None,
) -> SyntaxNode:
    """
    Parse source to a syntax tree, raising ParseError on failure.

    Unless allow_partial is set, anything left after the expression is
    reported as trailing input.
    """
    outcome = Parser(max_depth=max_depth).parse_tokens(source, stats)
    if isinstance(outcome, ParseError):
        raise outcome

    rest = outcome.cursor
    if not allow_partial and not rest.at_end:
        raise ParseError.from_failure(
            Failure.at(rest, "end of input", ErrorKind.TRAILING_INPUT),
            source,
        )
    return outcome.value


# ============================================================================
# Main - Tree Dump
# ============================================================================

if __name__ == '__main__':
    from lark import Tree

    args = [arg for arg in sys.argv[1:] if not arg.startswith('--')]

    # Read source from file or stdin
    if len(args) > 0 and args[0] != '-':
        with open(args[0], 'r') as f:
            source = f.read()
    else:
        source = sys.stdin.read()

    try:
        tree = parse_source(source)
    except ParseError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        sys.exit(1)

    print(Tree('expr', [to_tree(tree)]).pretty(), end='')
