"""Syntax tree produced by the parser.

Nodes are frozen dataclasses holding their children in tuples. Spans are
carried on every node but excluded from equality, so two parses of
equivalent source compare equal even when their offsets differ.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple, Union

from lark import Token, Tree
from typing_extensions import TypeAlias

from .cursor import Span
from .token_types import TT


class CmpOp(Enum):
    EQ = '=='
    NEQ = '!='
    LT = '<'
    LTE = '<='
    GT = '>'
    GTE = '>='

    @classmethod
    def from_token_type(cls, token_type: TT) -> CmpOp:
        return cls[token_type.name]


class ArithOp(Enum):
    PLUS = '+'
    MINUS = '-'
    STAR = '*'
    SLASH = '/'

    @classmethod
    def from_token_type(cls, token_type: TT) -> ArithOp:
        return cls[token_type.name]


# ---------- Expressions ----------

@dataclass(frozen=True)
class Literal:
    kind: TT
    value: Any
    span: Span = field(compare=False, repr=False)


@dataclass(frozen=True)
class Identifier:
    name: str
    span: Span = field(compare=False, repr=False)


@dataclass(frozen=True)
class ArrayLiteral:
    rows: Tuple[Tuple['SyntaxNode', ...], ...]
    span: Span = field(compare=False, repr=False)


@dataclass(frozen=True)
class Group:
    inner: 'SyntaxNode'
    span: Span = field(compare=False, repr=False)


@dataclass(frozen=True)
class Call:
    callee: 'SyntaxNode'
    args: Tuple['SyntaxNode', ...]
    span: Span = field(compare=False, repr=False)


@dataclass(frozen=True)
class Index:
    args: Tuple['SyntaxNode', ...]
    span: Span = field(compare=False, repr=False)


@dataclass(frozen=True)
class Field:
    name: str
    span: Span = field(compare=False, repr=False)


PostfixOp: TypeAlias = Union[Index, Field]


@dataclass(frozen=True)
class Postfix:
    base: 'SyntaxNode'
    ops: Tuple[PostfixOp, ...]
    span: Span = field(compare=False, repr=False)


@dataclass(frozen=True)
class UnaryOp:
    op: ArithOp
    operand: 'SyntaxNode'
    span: Span = field(compare=False, repr=False)


@dataclass(frozen=True)
class BinaryOp:
    left: 'SyntaxNode'
    op: ArithOp
    right: 'SyntaxNode'
    span: Span = field(compare=False, repr=False)


@dataclass(frozen=True)
class Comparison:
    first: 'SyntaxNode'
    chain: Tuple[Tuple[CmpOp, 'SyntaxNode'], ...]
    span: Span = field(compare=False, repr=False)


@dataclass(frozen=True)
class Assignment:
    target: 'SyntaxNode'
    value: 'SyntaxNode'
    span: Span = field(compare=False, repr=False)


SyntaxNode: TypeAlias = Union[
    Literal,
    Identifier,
    ArrayLiteral,
    Group,
    Call,
    Postfix,
    UnaryOp,
    BinaryOp,
    Comparison,
    Assignment,
]

AnyNode: TypeAlias = Union[SyntaxNode, Index, Field]


def is_assignable(node: SyntaxNode) -> bool:
    """Whether node can stand on the left of '='."""
    if isinstance(node, (Identifier, Postfix)):
        return True
    if isinstance(node, Group):
        return is_assignable(node.inner)
    if isinstance(node, ArrayLiteral):
        # [a, b] = ... destructures a single row
        return len(node.rows) == 1 and all(is_assignable(el) for el in node.rows[0])
    return False


def iter_children(node: AnyNode) -> Iterator[AnyNode]:
    """Direct children in source order."""
    if isinstance(node, ArrayLiteral):
        for row in node.rows:
            yield from row
    elif isinstance(node, Group):
        yield node.inner
    elif isinstance(node, Call):
        yield node.callee
        yield from node.args
    elif isinstance(node, Index):
        yield from node.args
    elif isinstance(node, Postfix):
        yield node.base
        yield from node.ops
    elif isinstance(node, UnaryOp):
        yield node.operand
    elif isinstance(node, BinaryOp):
        yield node.left
        yield node.right
    elif isinstance(node, Comparison):
        yield node.first
        for _, right in node.chain:
            yield right
    elif isinstance(node, Assignment):
        yield node.target
        yield node.value


def walk(node: AnyNode) -> Iterator[AnyNode]:
    """Pre-order traversal including postfix ops."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(iter_children(current))))


# ---------- Lark export ----------

def to_tree(node: AnyNode) -> Union[Tree, Token]:
    """Export a node as a lark Tree/Token for printing and comparison.

    Shapes:
      NUMBER/STRING/TRUE/FALSE/NIL/IDENT   - tokens carrying source text
      array(row(expr, ...), ...)
      group(expr)
      call(callee, args(expr, ...))
      postfix(base, index(expr, ...) | field(IDENT), ...)
      neg(expr)
      binop(left, OP, right)
      comparison(first, OP, right, OP, right, ...)
      assign(target, value)
    """
    # explicit post-order stack: prefix and assignment chains run thousands deep
    done: Dict[int, Union[Tree, Token]] = {}
    stack: List[Tuple[AnyNode, bool]] = [(node, False)]
    while stack:
        current, ready = stack.pop()
        if id(current) in done:
            continue
        if not ready:
            stack.append((current, True))
            stack.extend((child, False) for child in iter_children(current))
            continue
        done[id(current)] = _export_one(current, done)
    return done[id(node)]


def _export_one(node: AnyNode, done: Dict[int, Union[Tree, Token]]) -> Union[Tree, Token]:
    """Export one node whose children are already in done."""
    def sub(child: AnyNode) -> Union[Tree, Token]:
        return done[id(child)]

    if isinstance(node, Literal):
        return Token(node.kind.name, node.span.text)
    if isinstance(node, Identifier):
        return Token('IDENT', node.name)
    if isinstance(node, ArrayLiteral):
        return Tree('array', [Tree('row', [sub(el) for el in row]) for row in node.rows])
    if isinstance(node, Group):
        return Tree('group', [sub(node.inner)])
    if isinstance(node, Call):
        return Tree('call', [sub(node.callee), Tree('args', [sub(a) for a in node.args])])
    if isinstance(node, Index):
        return Tree('index', [sub(a) for a in node.args])
    if isinstance(node, Field):
        return Tree('field', [Token('IDENT', node.name)])
    if isinstance(node, Postfix):
        return Tree('postfix', [sub(node.base)] + [sub(op) for op in node.ops])
    if isinstance(node, UnaryOp):
        return Tree('neg', [sub(node.operand)])
    if isinstance(node, BinaryOp):
        op = Token(node.op.name, node.op.value)
        return Tree('binop', [sub(node.left), op, sub(node.right)])
    if isinstance(node, Comparison):
        children: list = [sub(node.first)]
        for op, right in node.chain:
            children.append(Token(op.name, op.value))
            children.append(sub(right))
        return Tree('comparison', children)
    if isinstance(node, Assignment):
        return Tree('assign', [sub(node.target), sub(node.value)])
    raise TypeError(f"not a syntax node: {node!r}")
