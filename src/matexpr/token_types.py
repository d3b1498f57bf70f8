"""
Token Types for the matexpr parser

Shared between lexer and parser to avoid circular dependencies.
"""

from typing import Any
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types - mirrors grammar terminals"""

    # Literals
    NUMBER = auto()
    STRING = auto()
    IDENT = auto()
    TRUE = auto()
    FALSE = auto()
    NIL = auto()

    # Arithmetic
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()

    # Comparison
    EQ = auto()
    NEQ = auto()
    LT = auto()
    LTE = auto()
    GT = auto()
    GTE = auto()

    # Assignment
    ASSIGN = auto()  # =

    # Punctuation
    LPAR = auto()
    RPAR = auto()
    LSQB = auto()
    RSQB = auto()
    DOT = auto()
    COMMA = auto()
    SEMI = auto()

    # Special
    EOF = auto()


LITERAL_TYPES = frozenset({TT.NUMBER, TT.STRING, TT.TRUE, TT.FALSE, TT.NIL})

COMPARE_TYPES = frozenset({TT.EQ, TT.NEQ, TT.LT, TT.LTE, TT.GT, TT.GTE})

# Display text for error messages
SYMBOLS = {
    TT.PLUS: '+',
    TT.MINUS: '-',
    TT.STAR: '*',
    TT.SLASH: '/',
    TT.EQ: '==',
    TT.NEQ: '!=',
    TT.LT: '<',
    TT.LTE: '<=',
    TT.GT: '>',
    TT.GTE: '>=',
    TT.ASSIGN: '=',
    TT.LPAR: '(',
    TT.RPAR: ')',
    TT.LSQB: '[',
    TT.RSQB: ']',
    TT.DOT: '.',
    TT.COMMA: ',',
    TT.SEMI: ';',
}


def describe(token_type: TT) -> str:
    """Human-readable name of a token type for 'expected X' messages"""
    if token_type in SYMBOLS:
        return f"'{SYMBOLS[token_type]}'"
    if token_type == TT.EOF:
        return "end of input"
    return token_type.name.lower()


@dataclass(frozen=True)
class Tok:
    """Token with position info"""

    type: TT
    value: Any
    line: int = 0
    column: int = 0
    offset: int = 0
    end: int = 0

    def __repr__(self):
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"
