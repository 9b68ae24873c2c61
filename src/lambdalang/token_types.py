"""
Token Types for the λanguage front end

Shared between lexer, parser and the REPL highlighter to avoid circular
dependencies.
"""

from typing import Any
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types - one per lexical class"""

    PUNC = auto()   # , ; ( ) { } [ ]
    NUM = auto()
    STR = auto()
    KW = auto()
    VAR = auto()
    OP = auto()


@dataclass
class Tok:
    """Token with position info (1-based line, 0-based column like the input stream)"""
    type: TT
    value: Any
    line: int
    column: int
    start_pos: int = 0
    end_pos: int = 0

    def __repr__(self):
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"
