"""
Lexer for matexpr - Recursive Descent Parser

Tokenizes expression source into a stream of tokens.

Features:
- Single-pass tokenization
- Position tracking (line, column, character offset)
- Newlines are plain whitespace; rows inside arrays are separated by ';'
"""

from typing import List

from .token_types import TT, Tok

# Character classes match grammar.lark: ASCII only
DIGITS = frozenset('0123456789')
IDENT_START = frozenset('abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_')
IDENT_CHARS = IDENT_START | DIGITS


def is_digit(ch: str) -> bool:
    return ch in DIGITS


def is_ident_start(ch: str) -> bool:
    return ch in IDENT_START


def is_ident_char(ch: str) -> bool:
    return ch in IDENT_CHARS


# ============================================================================
# Lexer Implementation
# ============================================================================

class LexError(Exception):
    """Lexical analysis error"""

    def __init__(self, message: str, line: int = 0, column: int = 0, offset: int = 0):
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset
        super().__init__(f"{message} at line {line}, col {column}")


class Lexer:
    """matexpr lexer."""

    # Keyword mapping
    KEYWORDS = {
        'true': TT.TRUE,
        'false': TT.FALSE,
        'nil': TT.NIL,
    }

    # Operator mapping: longest matches first to handle prefixes correctly
    OPERATORS = [
        # Two-character operators
        ('==', TT.EQ),
        ('!=', TT.NEQ),
        ('<=', TT.LTE),
        ('>=', TT.GTE),

        # Single-character operators
        ('+', TT.PLUS),
        ('-', TT.MINUS),
        ('*', TT.STAR),
        ('/', TT.SLASH),
        ('<', TT.LT),
        ('>', TT.GT),
        ('=', TT.ASSIGN),
        ('(', TT.LPAR),
        (')', TT.RPAR),
        ('[', TT.LSQB),
        (']', TT.RSQB),
        ('.', TT.DOT),
        (',', TT.COMMA),
        (';', TT.SEMI),
    ]

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Tok] = []

        # Start of the token being scanned
        self.start = 0
        self.start_line = 1
        self.start_column = 1

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokenize(self) -> List[Tok]:
        """Tokenize entire source, return token list"""
        while self.pos < len(self.source):
            self.scan_token()

        self.mark()
        self.emit(TT.EOF, None)
        return self.tokens

    def scan_token(self):
        """Scan next token"""
        # Skip whitespace, newlines included
        if self.skip_whitespace():
            return

        # Comments
        if self.peek() == '#':
            self.skip_comment()
            return

        self.mark()

        # String literals
        if self.peek() in ('"', "'"):
            self.scan_string()
            return

        # Numbers
        if is_digit(self.peek()):
            self.scan_number()
            return

        # Identifiers and keywords
        if is_ident_start(self.peek()):
            self.scan_identifier()
            return

        # Operators and punctuation
        self.scan_operator()

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_string(self):
        """Scan string literal: "..." or '...'"""
        quote = self.advance()
        value = quote  # Keep opening quote

        while self.pos < len(self.source) and self.peek() != quote:
            if self.peek() == '\\':
                # Keep escape sequence as-is
                value += self.advance()
                if self.pos < len(self.source):
                    value += self.advance()
            else:
                value += self.advance()

        if self.pos >= len(self.source):
            raise self.error("Unterminated string")

        value += self.advance()  # Closing quote
        self.emit(TT.STRING, value)

    def scan_number(self):
        """Scan number literal"""
        value = ''

        # Integer part
        while is_digit(self.peek()):
            value += self.advance()

        # Decimal part
        if self.peek() == '.' and is_digit(self.peek(1)):
            value += self.advance()  # .
            while is_digit(self.peek()):
                value += self.advance()

        # Scientific notation
        if self.peek() in ('e', 'E'):
            sign = 1 if self.peek(1) in ('+', '-') else 0
            if is_digit(self.peek(1 + sign)):
                value += self.advance(1 + sign)
                while is_digit(self.peek()):
                    value += self.advance()

        if is_ident_start(self.peek()):
            raise self.error("Invalid number suffix")

        # Keep as string to match Lark
        self.emit(TT.NUMBER, value)

    def scan_identifier(self):
        """Scan identifier or keyword"""
        value = ''

        while is_ident_char(self.peek()):
            value += self.advance()

        # Check if keyword
        token_type = self.KEYWORDS.get(value, TT.IDENT)
        self.emit(token_type, value)

    def scan_operator(self):
        """Scan operators and punctuation"""
        for op_str, op_type in self.OPERATORS:
            if self.source.startswith(op_str, self.pos):
                self.advance(len(op_str))
                self.emit(op_type, op_str)
                return

        ch = self.peek()
        raise self.error(f"Unexpected character '{ch}'")

    # ========================================================================
    # Utilities
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Look ahead at character"""
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def advance(self, n: int = 1) -> str:
        """Consume n characters and return them as a string"""
        if n < 0:
            raise ValueError(f"advance() requires n >= 0, got {n}")
        result = ''
        for _ in range(n):
            ch = self.source[self.pos] if self.pos < len(self.source) else '\0'
            result += ch
            self.pos += 1
            if ch == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return result

    def skip_whitespace(self) -> bool:
        """Skip whitespace and newlines, return True if any skipped"""
        skipped = False
        while self.peek() in (' ', '\t', '\n', '\r'):
            self.advance()
            skipped = True
        return skipped

    def skip_comment(self):
        """Skip comment until end of line"""
        while self.peek() not in ('\n', '\r', '\0'):
            self.advance()

    def mark(self):
        """Remember where the next token starts"""
        self.start = self.pos
        self.start_line = self.line
        self.start_column = self.column

    def emit(self, token_type: TT, value):
        """Emit a token spanning from the last mark to the current position"""
        tok = Tok(
            type=token_type,
            value=value,
            line=self.start_line,
            column=self.start_column,
            offset=self.start,
            end=self.pos,
        )
        self.tokens.append(tok)

    def error(self, message: str) -> LexError:
        return LexError(message, self.start_line, self.start_column, self.start)


def tokenize(source: str) -> List[Tok]:
    """Convenience function to tokenize source"""
    lexer = Lexer(source)
    return lexer.tokenize()

