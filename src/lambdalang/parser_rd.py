"""
Recursive Descent Parser for λanguage

Structure:
- TokenStream from lexer_rd supplies classified tokens
- Parser: recursive descent for atoms, precedence climbing for binary ops
- AST: frozen node dataclasses from tree.py

The lark grammar in grammar.lark describes the same language and must
produce identical trees.
"""

from typing import Callable, List, NoReturn, Optional, TypeVar

from .lexer_rd import InputStream, ParseError, TokenStream
from .token_types import TT, Tok
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

__all__ = ["ParseError", "Parser", "PRECEDENCE", "parse", "parse_source"]

T = TypeVar("T")

# Binary operator precedence; all levels associate to the left.
PRECEDENCE = {
    "=": 1,
    "||": 2,
    "&&": 3,
    "<": 7, ">": 7, "<=": 7, ">=": 7, "==": 7, "!=": 7,
    "+": 10, "-": 10,
    "*": 20, "/": 20, "%": 20,
}

# ============================================================================
# Parser
# ============================================================================

class Parser:
    """
    Recursive descent parser for λanguage.

    Expression precedence (lowest to highest):
    1. assignment (=)
    2. or (||)
    3. and (&&)
    4. compare (<, >, <=, >=, ==, !=)
    5. add (+, -)
    6. mul (*, /, %)
    7. call (f(...), repeated)
    8. atom (literals, identifiers, parens, blocks, if, lambda, let)
    """

    def __init__(self, tokens: TokenStream):
        self.input = tokens

    # ========================================================================
    # Token Navigation
    # ========================================================================

    def is_punc(self, ch: Optional[str] = None) -> Optional[Tok]:
        tok = self.input.peek()
        if tok is not None and tok.type == TT.PUNC and (ch is None or tok.value == ch):
            return tok
        return None

    def is_kw(self, kw: Optional[str] = None) -> Optional[Tok]:
        tok = self.input.peek()
        if tok is not None and tok.type == TT.KW and (kw is None or tok.value == kw):
            return tok
        return None

    def is_op(self, op: Optional[str] = None) -> Optional[Tok]:
        tok = self.input.peek()
        if tok is not None and tok.type == TT.OP and (op is None or tok.value == op):
            return tok
        return None

    def skip_punc(self, ch: str) -> None:
        if self.is_punc(ch):
            self.input.next()
        else:
            self.input.croak(f'Expecting punctuation: "{ch}"')

    def skip_kw(self, kw: str) -> None:
        if self.is_kw(kw):
            self.input.next()
        else:
            self.input.croak(f'Expecting keyword: "{kw}"')

    def unexpected(self) -> NoReturn:
        tok = self.input.peek()
        if tok is None:
            self.input.croak("Unexpected end of input")
        self.input.croak(f"Unexpected token: {tok.type.name.lower()} {tok.value!r}")

    def delimited(self, start: str, stop: str, separator: str, parser: Callable[[], T]) -> List[T]:
        items: List[T] = []
        first = True
        self.skip_punc(start)

        while not self.input.eof():
            if self.is_punc(stop):
                break
            if first:
                first = False
            else:
                self.skip_punc(separator)
            if self.is_punc(stop):
                break
            items.append(parser())

        self.skip_punc(stop)
        return items

    # ========================================================================
    # Top-Level Parsing
    # ========================================================================

    def parse_toplevel(self) -> Prog:
        """Parse entire program"""
        prog = []

        while not self.input.eof():
            prog.append(self.parse_expression())
            if not self.input.eof():
                self.skip_punc(";")

        return Prog(tuple(prog))

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_expression(self) -> Node:
        return self.maybe_call(lambda: self.maybe_binary(self.parse_atom(), 0))

    def maybe_binary(self, left: Node, my_prec: int) -> Node:
        tok = self.is_op()
        if tok is None:
            return left

        his_prec = PRECEDENCE.get(tok.value)
        if his_prec is None or his_prec <= my_prec:
            return left

        self.input.next()
        right = self.maybe_binary(self.parse_atom(), his_prec)

        if tok.value == "=":
            node: Node = Assign(left, right)
        else:
            node = Binary(tok.value, left, right)

        return self.maybe_binary(node, my_prec)

    def maybe_call(self, expr: Callable[[], Node]) -> Node:
        node = expr()
        while self.is_punc("("):
            node = self.parse_call(node)
        return node

    def parse_call(self, func: Node) -> Call:
        return Call(func, tuple(self.delimited("(", ")", ",", self.parse_expression)))

    def parse_atom(self) -> Node:
        return self.maybe_call(self._parse_atom_inner)

    def _parse_atom_inner(self) -> Node:
        if self.is_punc("("):
            self.input.next()
            exp = self.parse_expression()
            self.skip_punc(")")
            return exp
        if self.is_punc("{"):
            return self.parse_prog()
        if self.is_kw("if"):
            return self.parse_if()
        if self.is_kw("true") or self.is_kw("false"):
            return self.parse_bool()
        if self.is_kw("lambda") or self.is_kw("λ"):
            self.input.next()
            return self.parse_lambda()
        if self.is_kw("let"):
            return self.parse_let()

        tok = self.input.peek()
        if tok is not None:
            if tok.type == TT.VAR:
                self.input.next()
                return Var(tok.value)
            if tok.type == TT.NUM:
                self.input.next()
                return Num(tok.value)
            if tok.type == TT.STR:
                self.input.next()
                return Str(tok.value)

        self.unexpected()

    def parse_prog(self) -> Node:
        prog = self.delimited("{", "}", ";", self.parse_expression)
        if not prog:
            return FALSE
        if len(prog) == 1:
            return prog[0]
        return Prog(tuple(prog))

    def parse_if(self) -> If:
        self.skip_kw("if")
        cond = self.parse_expression()
        if not self.is_punc("{"):
            self.skip_kw("then")
        then = self.parse_expression()

        else_: Optional[Node] = None
        if self.is_kw("else"):
            self.input.next()
            else_ = self.parse_expression()

        return If(cond, then, else_)

    def parse_bool(self) -> Bool:
        return Bool(self.input.next().value == "true")

    def parse_varname(self) -> str:
        tok = self.input.next()
        if tok is None or tok.type != TT.VAR:
            self.input.croak("Expecting variable name")
        return tok.value

    def parse_lambda(self) -> Lambda:
        name = None
        tok = self.input.peek()
        if tok is not None and tok.type == TT.VAR:
            name = self.input.next().value

        params = tuple(self.delimited("(", ")", ",", self.parse_varname))
        return Lambda(params, self.parse_expression(), name)

    def parse_vardef(self) -> LetBinding:
        name = self.parse_varname()
        if not self.is_op("="):
            tok = self.input.peek()
            received = tok.value if tok is not None else ""
            self.input.croak(f"Expected token '='. Received: '{received}'")
        self.input.next()
        return LetBinding(name, self.parse_expression())

    def parse_let(self) -> Node:
        self.skip_kw("let")
        tok = self.input.peek()

        if tok is not None and tok.type == TT.VAR:
            # named let: let loop (n = 10) body  ==>  (λ loop(n) body)(10)
            name = self.input.next().value
            defs = self.delimited("(", ")", ",", self.parse_vardef)
            func = Lambda(tuple(d.name for d in defs), self.parse_expression(), name)
            return Call(func, tuple(d.init if d.init is not None else FALSE for d in defs))

        defs = self.delimited("(", ")", ",", self.parse_vardef)
        return Let(tuple(defs), self.parse_expression())


def parse(tokens: TokenStream) -> Prog:
    """Parse a token stream into a top-level Prog node."""
    return Parser(tokens).parse_toplevel()


def parse_source(source: str) -> Prog:
    return parse(TokenStream(InputStream(source)))
