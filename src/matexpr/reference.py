"""Lark reference parser for differential checks against parser_rd.

The Earley parser built from grammar.lark accepts the same language as the
recursive descent parser but makes no promises about speed. Its output is
reshaped by Canonicalize so it compares equal to tree.to_tree() for the
same source.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, List, Union

from lark import Lark, Token, Transformer, Tree

GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")


@lru_cache(maxsize=1)
def build_reference_parser() -> Lark:
    return Lark(
        GRAMMAR_PATH.read_text(encoding="utf-8"),
        parser="earley",
        lexer="basic",
        start="start",
        maybe_placeholders=False,
        propagate_positions=True,
    )


class Canonicalize(Transformer):
    """Match the shapes documented on tree.to_tree()."""

    @staticmethod
    def _extend(base: Any, op: Tree) -> Tree:
        # consecutive index/field suffixes share one postfix node
        if isinstance(base, Tree) and base.data == "postfix":
            return Tree("postfix", list(base.children) + [op])
        return Tree("postfix", [base, op])

    def call(self, c: List[Any]) -> Tree:
        callee, *args = c
        return Tree("call", [callee, Tree("args", args)])

    def index(self, c: List[Any]) -> Tree:
        base, *subscripts = c
        return self._extend(base, Tree("index", subscripts))

    def field(self, c: List[Any]) -> Tree:
        base, name = c
        return self._extend(base, Tree("field", [name]))

    def neg(self, c: List[Any]) -> Tree:
        # drop the MINUS token
        return Tree("neg", [c[-1]])


def reference_parse(source: str) -> Union[Tree, Token]:
    """Parse source with the reference grammar; raises lark.UnexpectedInput."""
    tree = build_reference_parser().parse(source)
    return Canonicalize().transform(tree).children[0]
