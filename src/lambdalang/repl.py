"""Interactive REPL for λanguage, powered by prompt_toolkit."""

from __future__ import annotations

import asyncio
import os
import re
import sys
import traceback
from typing import Dict, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .lexer_rd import ParseError, tokenize
from .repl_highlight import LambdaLexer
from .runner import ParserKind, parse_program, run_cps_async, run_synchronous
from .runtime import MODES, Mode, make_global_env
from .token_types import TT
from .types import Environment, LambdaRuntimeError, Value
from .utils import DEBUG_PY_TRACE_VAR, debug_py_trace_enabled

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/mode": ("Show or switch the evaluator", "[sync|cps]"),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Reset the REPL environment", ""),
}

_OPENERS = {"(": ")", "{": "}", "[": "]"}
_CLOSERS = frozenset(_OPENERS.values())


def bracket_depth(text: str) -> int:
    """Net count of open brackets in *text*; 0 when balanced or unlexable."""
    try:
        tokens = tokenize(text)
    except ParseError:
        return 0

    depth = 0

    for tok in tokens:
        if tok.type != TT.PUNC:
            continue
        if tok.value in _OPENERS:
            depth += 1
        elif tok.value in _CLOSERS:
            depth = max(depth - 1, 0)

    return depth


class ReplState:
    """Root environments (one per mode) plus the active mode and parser."""

    def __init__(self, mode: Mode="sync", parser: ParserKind="rd"):
        self.mode: Mode = mode
        self.parser: ParserKind = parser
        self.envs: Dict[str, Environment] = {}

    @property
    def env(self) -> Environment:
        if self.mode not in self.envs:
            self.envs[self.mode] = make_global_env(self.mode)
        return self.envs[self.mode]

    def reset(self) -> None:
        self.envs.clear()

    def evaluate(self, text: str) -> Optional[Value]:
        ast = parse_program(text, self.parser)

        if self.mode == "cps":
            return asyncio.run(run_cps_async(ast, self.env))

        return run_synchronous(ast, self.env)


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


def _handle_slash(line: str, state: ReplState) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1].strip() if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/mode":
        if arg == "":
            print(f"Mode: {state.mode}")
        elif arg in MODES:
            state.mode = arg  # type: ignore[assignment]
            print(f"Mode: {state.mode}")
        else:
            print("Usage: /mode [sync|cps]", file=sys.stderr)
        return True

    if cmd == "/py-traceback":
        if arg.lower() in ("on", "1", "true", "yes"):
            os.environ[DEBUG_PY_TRACE_VAR] = "1"
        elif arg.lower() in ("off", "0", "false", "no"):
            os.environ.pop(DEBUG_PY_TRACE_VAR, None)
        elif arg == "":
            # Toggle.
            if debug_py_trace_enabled():
                os.environ.pop(DEBUG_PY_TRACE_VAR, None)
            else:
                os.environ[DEBUG_PY_TRACE_VAR] = "1"
        else:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        state_str = "on" if debug_py_trace_enabled() else "off"
        print(f"Python traceback: {state_str}")
        return True

    if cmd == "/reset":
        state.reset()
        print("Environment reset.")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def repl(mode: Mode="sync", parser: ParserKind="rd") -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    state = ReplState(mode, parser)

    history = InMemoryHistory()
    lexer = LambdaLexer()

    bindings = KeyBindings()

    @bindings.add("backspace")
    def _backspace(event):
        buf = event.app.current_buffer
        buf.delete_before_cursor(1)
        if buf.text.startswith("/"):
            buf.start_completion()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer
        depth = bracket_depth(buf.text)

        # Keep reading while brackets are open.
        if depth > 0 and not buf.text.startswith("/"):
            buf.insert_text("\n" + "  " * depth)
            return

        buf.validate_and_handle()

    session: PromptSession[str] = PromptSession(
        history=history,
        lexer=lexer,
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=True,
        prompt_continuation="... ",
    )

    print("λanguage repl. Ctrl-D to exit, / for commands")

    while True:
        try:
            text = session.prompt(f"{state.mode}> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        if _handle_slash(text, state):
            continue

        try:
            result = state.evaluate(text)
        except (ParseError, LambdaRuntimeError, RecursionError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            if debug_py_trace_enabled():
                print("\nPython traceback:", file=sys.stderr)
                print("".join(traceback.format_tb(exc.__traceback__)), file=sys.stderr, end="")
            continue

        if result is not None:
            print(repr(result))
