"""matexpr: a linear-time recursive descent parser for nested array expressions."""

from .parser_rd import Parsed, Parser, parse, parse_source
from .results import ErrorKind, ParseError, ParseStats

__all__ = [
    "ErrorKind",
    "ParseError",
    "ParseStats",
    "Parsed",
    "Parser",
    "parse",
    "parse_source",
]
