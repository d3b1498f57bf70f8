from __future__ import annotations

from typing import List

import pytest

from matexpr import ErrorKind, ParseError, Parsed, parse, parse_source
from tests.support.harness import ErrorCase, parse_err

ERROR_CASES: List[ErrorCase] = [
    # brackets left open at end of input
    ErrorCase("open-array", "[1, 2", ErrorKind.UNTERMINATED_BRACKET, 5, "to close '['"),
    ErrorCase("open-call", "f(1", ErrorKind.UNTERMINATED_BRACKET, 3, "to close '('"),
    ErrorCase("open-group", "(x", ErrorKind.UNTERMINATED_BRACKET, 2, "')'"),
    ErrorCase("open-index", "m[1", ErrorKind.UNTERMINATED_BRACKET, 3, "']'"),
    ErrorCase("open-inner", "[[1], [2", ErrorKind.UNTERMINATED_BRACKET, 8, "from line 1, col 7"),
    # left side of '=' that cannot be assigned
    ErrorCase("assign-literal", "1 = 2", ErrorKind.INVALID_ASSIGNMENT_TARGET, 0),
    ErrorCase("assign-call", "f(x) = 1", ErrorKind.INVALID_ASSIGNMENT_TARGET, 0),
    ErrorCase("assign-sum", "a + b = c", ErrorKind.INVALID_ASSIGNMENT_TARGET, 0),
    ErrorCase("assign-compare", "a < b = c", ErrorKind.INVALID_ASSIGNMENT_TARGET, 0),
    ErrorCase("assign-array", "[1] = x", ErrorKind.INVALID_ASSIGNMENT_TARGET, 0),
    ErrorCase("assign-matrix", "[a; b] = x", ErrorKind.INVALID_ASSIGNMENT_TARGET, 0),
    ErrorCase("assign-negated", "-a = 1", ErrorKind.INVALID_ASSIGNMENT_TARGET, 0),
    ErrorCase("assign-chain-middle", "x = 1 + y = 2", ErrorKind.INVALID_ASSIGNMENT_TARGET, 4),
    ErrorCase("assign-in-array", "[a, 1 = 2]", ErrorKind.INVALID_ASSIGNMENT_TARGET, 4),
    # input runs out mid-expression
    ErrorCase("empty", "", ErrorKind.UNEXPECTED_END_OF_INPUT, 0, "expected expression"),
    ErrorCase("blank", "  # nothing\n", ErrorKind.UNEXPECTED_END_OF_INPUT, 12),
    ErrorCase("compare-missing-rhs", "a <", ErrorKind.UNEXPECTED_END_OF_INPUT, 3),
    ErrorCase("sum-missing-rhs", "1 +", ErrorKind.UNEXPECTED_END_OF_INPUT, 3),
    ErrorCase("assign-missing-value", "a = ", ErrorKind.UNEXPECTED_END_OF_INPUT, 4),
    ErrorCase("dangling-dot", "a.", ErrorKind.UNEXPECTED_END_OF_INPUT, 2, "field name"),
    # wrong token where an expression or closer belongs
    ErrorCase("lone-semicolon", "[;]", ErrorKind.UNEXPECTED_TOKEN, 1, "']'"),
    ErrorCase("empty-element", "[1,,2]", ErrorKind.UNEXPECTED_TOKEN, 3, "']'"),
    ErrorCase("empty-index", "a[]", ErrorKind.UNEXPECTED_TOKEN, 2, "expected expression"),
    ErrorCase("leading-comma-args", "f(,)", ErrorKind.UNEXPECTED_TOKEN, 2, "')'"),
    ErrorCase("numeric-field", "a.1", ErrorKind.UNEXPECTED_TOKEN, 2, "field name"),
    ErrorCase("stray-closer", ")", ErrorKind.UNEXPECTED_TOKEN, 0, "got ')'"),
    ErrorCase("missing-comma", "[1 2]", ErrorKind.UNEXPECTED_TOKEN, 3, "got '2'"),
    ErrorCase("mismatched-closer", "(1]", ErrorKind.UNEXPECTED_TOKEN, 2, "expected ')'"),
    ErrorCase("operator-first", "* 2", ErrorKind.UNEXPECTED_TOKEN, 0),
    # characters the lexer rejects
    ErrorCase("bad-char", "a @ b", ErrorKind.INVALID_TOKEN, 2, "Unexpected character '@'"),
    ErrorCase("open-string", "f('abc", ErrorKind.INVALID_TOKEN, 2, "Unterminated string"),
    ErrorCase("number-suffix", "12ab", ErrorKind.INVALID_TOKEN, 0, "Invalid number suffix"),
    ErrorCase("bang", "!x", ErrorKind.INVALID_TOKEN, 0),
    ErrorCase("superscript-digit", "\u00b2", ErrorKind.INVALID_TOKEN, 0, "Unexpected character"),
    ErrorCase("superscript-after-number", "1\u00b2", ErrorKind.INVALID_TOKEN, 1),
    ErrorCase("superscript-in-array", "[1, \u00b3]", ErrorKind.INVALID_TOKEN, 4),
    ErrorCase("superscript-after-name", "x\u00b2", ErrorKind.INVALID_TOKEN, 1),
]


@pytest.mark.parametrize("case", ERROR_CASES, ids=[c.name for c in ERROR_CASES])
def test_error_cases(case: ErrorCase) -> None:
    err = parse_err(case.source)

    assert err.kind == case.kind
    if case.offset is not None:
        assert err.offset == case.offset
    if case.msg is not None:
        assert case.msg in str(err)


def test_error_position_is_line_and_column() -> None:
    err = parse_err("[1,\n 2,\n 3")

    assert err.kind == ErrorKind.UNTERMINATED_BRACKET
    assert (err.line, err.column) == (3, 3)
    assert "to close '[' from line 1, col 1" in err.expected


def test_error_message_layout() -> None:
    err = parse_err("[1 2]")

    assert err.alternative == "array literal"
    assert err.found == "2"
    assert str(err) == (
        "unexpected token: expected ']', got '2' (while parsing array literal) "
        "at line 1, col 4"
    )


def test_end_of_input_message() -> None:
    err = parse_err("")

    assert err.found is None
    assert str(err) == "unexpected end of input: expected expression, got end of input at line 1, col 1"


def test_lex_error_keeps_lexer_detail() -> None:
    err = parse_err("x\n  @")

    assert err.kind == ErrorKind.INVALID_TOKEN
    assert err.detail == "Unexpected character '@'"
    assert (err.line, err.column) == (2, 3)


def test_invalid_target_points_at_target() -> None:
    err = parse_err("x = (a + b) = 1")

    assert err.kind == ErrorKind.INVALID_ASSIGNMENT_TARGET
    assert err.offset == 4
    assert err.found == "("


def test_grouped_name_is_a_target() -> None:
    assert isinstance(parse("(x) = 1"), Parsed)


def test_nesting_failure_is_not_masked_by_alternatives() -> None:
    err = parse_err("f([(((1)))])", max_depth=3)

    assert err.kind == ErrorKind.NESTING_TOO_DEEP
    assert err.offset == 5
    assert "at most 3 levels" in str(err)


def test_invalid_target_inside_list_is_not_trailing_separator() -> None:
    err = parse_err("[a, 1 = 2,]")

    assert err.kind == ErrorKind.INVALID_ASSIGNMENT_TARGET


@pytest.mark.parametrize(
    "source, offset",
    [("a b", 2), ("(1))", 3), ("[1] 2", 4), ("x = 1; y = 2", 5)],
)
def test_trailing_input(source: str, offset: int) -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_source(source)

    assert excinfo.value.kind == ErrorKind.TRAILING_INPUT
    assert excinfo.value.offset == offset


def test_trailing_input_allowed_when_partial() -> None:
    tree = parse_source("a b", allow_partial=True)

    assert tree == parse_source("a")


def test_parse_leaves_trailing_input_to_caller() -> None:
    outcome = parse("x = 1; y = 2")

    assert isinstance(outcome, Parsed)
    assert outcome.consumed == 5


def test_parse_source_raises_parse_error() -> None:
    with pytest.raises(ParseError, match="unterminated bracket"):
        parse_source("f(1, 2")


def test_parse_error_is_an_exception_value() -> None:
    outcome = parse("1 = 2")

    assert isinstance(outcome, ParseError)
    assert isinstance(outcome, Exception)
    assert outcome.kind == ErrorKind.INVALID_ASSIGNMENT_TARGET
