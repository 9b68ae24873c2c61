"""prompt_toolkit lexer for live λanguage syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .lexer_rd import ParseError, tokenize
from .token_types import TT, Tok

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "boolean": "ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "identifier": "",
    "function": "bold ansiyellow",
    "operator": "",
    "punctuation": "",
    "comment": "italic ansigray",
}

_TT_GROUP = {
    TT.KW: "keyword",
    TT.NUM: "number",
    TT.STR: "string",
    TT.VAR: "identifier",
    TT.OP: "operator",
    TT.PUNC: "punctuation",
}

BUILTIN_NAMES = frozenset(("print", "println", "time", "halt", "sleep", "call/cc", "CallCC"))


def _group(tok: Tok) -> str:
    if tok.type == TT.KW and tok.value in ("true", "false"):
        return "boolean"
    if tok.type == TT.VAR and tok.value in BUILTIN_NAMES:
        return "function"
    return _TT_GROUP.get(tok.type, "")


def _gap(text: str) -> StyleAndTextTuples:
    """Unstyled text between tokens; only comments get a style."""
    hash_at = text.find("#")
    if hash_at < 0:
        return [("", text)]

    return [("", text[:hash_at]), (GROUP_STYLE["comment"], text[hash_at:])]


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    try:
        tokens = tokenize(text)
    except ParseError:
        return [("", text)]

    result: StyleAndTextTuples = []
    pos = 0

    for tok in tokens:
        if tok.start_pos > pos:
            result.extend(_gap(text[pos:tok.start_pos]))

        style = GROUP_STYLE.get(_group(tok), "")
        result.append((style, text[tok.start_pos:tok.end_pos]))
        pos = tok.end_pos

    if pos < len(text):
        result.extend(_gap(text[pos:]))

    return result if result else [("", text)]


class LambdaLexer(Lexer):
    """prompt_toolkit Lexer that highlights λanguage source using the RD lexer."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines

        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
