"""Grammar-driven front end: grammar.lark + a Transformer into tree.py nodes.

Produces exactly the AST parser_rd builds for the same source, so either
front end can feed either evaluator.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Any, List

from lark import Lark, Transformer, UnexpectedCharacters, UnexpectedInput, UnexpectedToken

from .lexer_rd import ParseError
from .tree import (
    FALSE,
    Assign,
    Binary,
    Bool,
    Call,
    If,
    Lambda,
    Let,
    LetBinding,
    Node,
    Num,
    Prog,
    Str,
    Var,
)

GRAMMAR_PATH = Path(__file__).resolve().with_name("grammar.lark")

_ESCAPE_RE = re.compile(r"\\(.)", re.S)


def _present(children: List[Any]) -> List[Any]:
    """Drop the None placeholders lark inserts for unmatched [] groups."""
    return [c for c in children if c is not None]


class ToAst(Transformer):
    """Bottom-up conversion of the lark parse tree into AST nodes."""

    def start(self, c):
        return Prog(tuple(_present(c)))

    def assign(self, c):
        target, value = c
        return Assign(target, value)

    def binary(self, c):
        left, op, right = c
        return Binary(str(op), left, right)

    def call(self, c):
        func, *rest = c
        args = rest[0] if rest and rest[0] is not None else []
        return Call(func, tuple(args))

    def arglist(self, c):
        return _present(c)

    def num(self, c):
        return Num(float(c[0]))

    def string(self, c):
        return Str(_ESCAPE_RE.sub(r"\1", str(c[0])[1:-1]))

    def true(self, _):
        return Bool(True)

    def false(self, _):
        return Bool(False)

    def var(self, c):
        return Var(str(c[0]))

    def block(self, c):
        items = _present(c)
        if not items:
            return FALSE
        if len(items) == 1:
            return items[0]
        return Prog(tuple(items))

    def if_expr(self, c):
        cond, then, *rest = c
        else_ = rest[0] if rest else None
        return If(cond, then, else_)

    def params(self, c):
        return [str(tok) for tok in _present(c)]

    def lambda_expr(self, c):
        name, params, body = c
        return Lambda(tuple(params or ()), body, str(name) if name is not None else None)

    def vardefs(self, c):
        return _present(c)

    def vardef(self, c):
        name, init = c
        return LetBinding(str(name), init)

    def let_expr(self, c):
        defs, body = c
        return Let(tuple(defs or ()), body)

    def named_let(self, c):
        name, defs, body = c
        defs = defs or []
        func = Lambda(tuple(d.name for d in defs), body, str(name))
        return Call(func, tuple(d.init if d.init is not None else FALSE for d in defs))


@lru_cache(maxsize=None)
def make_parser() -> Lark:
    grammar = GRAMMAR_PATH.read_text(encoding="utf-8")
    return Lark(grammar, parser="lalr", maybe_placeholders=True)


def _error_message(exc: UnexpectedInput) -> str:
    if isinstance(exc, UnexpectedCharacters):
        return f"Can't handle character: {exc.char}"

    if isinstance(exc, UnexpectedToken):
        if exc.token.type == "$END":
            return "Unexpected end of input"
        return f"Unexpected token: {exc.token.type.lower()} {str(exc.token)!r}"

    return "Unexpected end of input"


def parse_source(source: str) -> Prog:
    try:
        tree = make_parser().parse(source)
    except UnexpectedInput as exc:
        line = exc.line if exc.line and exc.line > 0 else None
        column = exc.column if line is not None else None
        raise ParseError(_error_message(exc), line, column) from exc

    node: Node = ToAst().transform(tree)
    return node
