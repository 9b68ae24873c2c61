"""
Lexer for λanguage - Recursive Descent front end

Two layers:
- InputStream: character stream with line/column tracking and croak()
- TokenStream: lazy classified tokens on top of an InputStream

Both expose peek(), next(), eof() and croak(message).
"""

from typing import Callable, Iterator, NoReturn, Optional

from .token_types import TT, Tok

# ============================================================================
# Errors
# ============================================================================

class ParseError(Exception):
    """Source-stage failure, reported as `message (line:column)`"""
    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(
            f"{message} ({line}:{column})" if line is not None else message
        )

# ============================================================================
# Character stream
# ============================================================================

class InputStream:
    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 0

    def next(self) -> str:
        ch = self.source[self.pos:self.pos + 1]
        self.pos += 1

        if ch == "\n":
            self.line += 1
            self.col = 0
        else:
            self.col += 1

        return ch

    def peek(self) -> str:
        return self.source[self.pos:self.pos + 1]

    def looking_at(self, text: str) -> bool:
        return self.source.startswith(text, self.pos)

    def eof(self) -> bool:
        return self.peek() == ""

    def croak(self, message: str) -> NoReturn:
        raise ParseError(message, self.line, self.col)

# ============================================================================
# Token stream
# ============================================================================

class TokenStream:
    """
    λanguage tokenizer.

    Identifiers may contain `?!-<>=` after the first character, so `set-car!`
    and `empty?` are plain names. Operators are read as maximal runs of
    operator characters; the parser decides whether the run is valid.
    """

    KEYWORDS = frozenset(('let', 'if', 'then', 'else', 'lambda', 'λ', 'true', 'false'))

    # Builtin names that contain an operator character.
    SLASHED_NAMES = ('call/cc',)

    OP_CHARS = "+-*/%=&|<>!"
    PUNC_CHARS = ",;(){}[]"
    WHITESPACE = " \t\n"

    def __init__(self, input: InputStream):
        self.input = input
        self.current: Optional[Tok] = None

    # ========================================================================
    # Character classes
    # ========================================================================

    @staticmethod
    def is_digit(ch: str) -> bool:
        return "0" <= ch <= "9"

    @staticmethod
    def is_id_start(ch: str) -> bool:
        return ("a" <= ch.lower() <= "z") or ch in "λ_"

    def is_id(self, ch: str) -> bool:
        return self.is_id_start(ch) or ch in "?!-<>=0123456789"

    def is_op_char(self, ch: str) -> bool:
        return ch in self.OP_CHARS

    def is_punc(self, ch: str) -> bool:
        return ch in self.PUNC_CHARS

    def is_whitespace(self, ch: str) -> bool:
        return ch in self.WHITESPACE

    # ========================================================================
    # Scanning
    # ========================================================================

    def read_while(self, predicate: Callable[[str], bool]) -> str:
        chars = []
        while not self.input.eof() and predicate(self.input.peek()):
            chars.append(self.input.next())
        return "".join(chars)

    def _start(self) -> Tok:
        """Placeholder token anchored at the current input position"""
        return Tok(TT.PUNC, None, self.input.line, self.input.col, self.input.pos)

    def _finish(self, tok: Tok, type_: TT, value) -> Tok:
        tok.type = type_
        tok.value = value
        tok.end_pos = self.input.pos
        return tok

    def read_number(self) -> Tok:
        tok = self._start()
        has_dot = False

        def accept(ch: str) -> bool:
            nonlocal has_dot
            if ch == ".":
                if has_dot:
                    return False
                has_dot = True
                return True
            return self.is_digit(ch)

        number = self.read_while(accept)
        return self._finish(tok, TT.NUM, float(number))

    def read_ident(self) -> Tok:
        tok = self._start()
        ident = self.read_while(self.is_id)

        for name in self.SLASHED_NAMES:
            head, _, tail = name.partition("/")
            if ident == head and self.input.looking_at("/" + tail):
                after = self.input.source[self.input.pos + len(tail) + 1:][:1]
                if not after or not self.is_id(after):
                    for _ in range(len(tail) + 1):
                        self.input.next()
                    ident = name
                    break

        return self._finish(tok, TT.KW if ident in self.KEYWORDS else TT.VAR, ident)

    def read_escaped(self, end: str) -> str:
        escaped = False
        chars = []
        self.input.next()

        while not self.input.eof():
            ch = self.input.next()
            if escaped:
                chars.append(ch)
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == end:
                break
            else:
                chars.append(ch)

        return "".join(chars)

    def read_string(self) -> Tok:
        tok = self._start()
        return self._finish(tok, TT.STR, self.read_escaped('"'))

    def skip_comment(self) -> None:
        self.read_while(lambda ch: ch != "\n")
        self.input.next()

    def read_next(self) -> Optional[Tok]:
        while True:
            self.read_while(self.is_whitespace)
            if self.input.eof():
                return None

            ch = self.input.peek()
            if ch == "#":
                self.skip_comment()
                continue
            break

        if ch == '"':
            return self.read_string()
        if self.is_digit(ch):
            return self.read_number()
        if self.is_id_start(ch):
            return self.read_ident()
        if self.is_punc(ch):
            tok = self._start()
            return self._finish(tok, TT.PUNC, self.input.next())
        if self.is_op_char(ch):
            tok = self._start()
            return self._finish(tok, TT.OP, self.read_while(self.is_op_char))

        self.input.croak(f"Can't handle character: {ch}")

    # ========================================================================
    # Public interface
    # ========================================================================

    def peek(self) -> Optional[Tok]:
        if self.current is None:
            self.current = self.read_next()
        return self.current

    def next(self) -> Optional[Tok]:
        tok = self.current
        self.current = None
        return tok if tok is not None else self.read_next()

    def eof(self) -> bool:
        return self.peek() is None

    def croak(self, message: str) -> NoReturn:
        self.input.croak(message)

    def __iter__(self) -> Iterator[Tok]:
        while not self.eof():
            yield self.next()


def tokenize(source: str) -> list[Tok]:
    """Tokenize entire source, return token list"""
    return list(TokenStream(InputStream(source)))
