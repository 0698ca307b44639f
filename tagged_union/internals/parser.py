"""Lark parser setup, AST construction and parse error reporting."""
from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

from lark import Lark, UnexpectedInput, UnexpectedCharacters, UnexpectedToken, Tree

from tagged_union.internals import errors as er
from tagged_union.internals.report import Reporter, Span
from tagged_union.semantics.ast import SourceFile
from tagged_union.semantics.ast_builder import ASTBuilder

GRAMMAR_PATH = Path(__file__).parent.parent / "grammar.lark"


@lru_cache(maxsize=None)
def get_parser() -> Lark:
    """Build the LALR parser once; Lark parsers are safe to reuse."""
    return Lark.open(
        str(GRAMMAR_PATH),
        parser="lalr",
        lexer="basic",
        propagate_positions=True,
        maybe_placeholders=False,
    )


def parse_tree(src: str) -> Tree:
    return get_parser().parse(src)


def parse_source(src: str, dump_parse: bool = False) -> SourceFile:
    """Parse declaration source into a SourceFile.

    Raises:
        lark.UnexpectedInput: on syntax errors.
    """
    tree = parse_tree(src)
    if dump_parse:
        print(tree.pretty())
    return ASTBuilder().build(tree)


def improve_parse_error(e: UnexpectedInput) -> str:
    """Turn a Lark exception into a one-line message."""
    if isinstance(e, UnexpectedToken):
        expected = sorted(e.expected) if e.expected else []
        got = e.token.value if e.token.type != "$END" else "end of input"
        if expected:
            shown = ", ".join(_describe_terminal(t) for t in expected[:6])
            more = "" if len(expected) <= 6 else ", ..."
            return f"unexpected '{got}', expected one of: {shown}{more}"
        return f"unexpected '{got}'"
    if isinstance(e, UnexpectedCharacters):
        return f"unexpected character '{e.char}'"
    return str(e).splitlines()[0]


def _describe_terminal(name: str) -> str:
    if re.fullmatch(r"__ANON_\d+", name):
        return "token"
    return name


def handle_parse_exception(exc: Exception, reporter: Reporter) -> bool:
    """Emit a diagnostic for a parse failure.

    Returns:
        True if the exception was handled, False otherwise.
    """
    if isinstance(exc, UnexpectedInput):
        span: Optional[Span] = None
        line = getattr(exc, "line", None)
        column = getattr(exc, "column", None)
        if isinstance(line, int) and line > 0 and isinstance(column, int):
            span = Span(line, column, line, column)
        er.emit(reporter, er.ERR.TU0100, span, detail=improve_parse_error(exc))
        return True
    return False
