from __future__ import annotations

import asyncio
import logging
import sys
import traceback
from pathlib import Path
from typing import Callable, Literal, Optional, TextIO

from . import parse_lark, parser_rd
from .cps import CpsEvaluator
from .evaluator import eval_node
from .lexer_rd import ParseError
from .runtime import MODES, Mode, make_global_env
from .tree import Node, Prog, dump_json
from .types import Environment, LambdaRuntimeError, Value
from .utils import debug_py_trace_enabled, stringify

log = logging.getLogger(__name__)

ParserKind = Literal["rd", "lark"]
PARSERS = ("rd", "lark")

def parse_program(source: str, parser: ParserKind="rd") -> Prog:
    if parser == "rd":
        return parser_rd.parse_source(source)
    if parser == "lark":
        return parse_lark.parse_source(source)

    raise ValueError(f"Unknown parser {parser!r}")

def _root_env(mode: Mode, env: Optional[Environment], out: Optional[TextIO]) -> Environment:
    if env is None:
        return make_global_env(mode, out)

    if out is not None:
        env.out = out

    return env

def run_synchronous(ast: Node, env: Optional[Environment]=None, out: Optional[TextIO]=None) -> Value:
    """Evaluate `ast` directly and return its value."""
    return eval_node(ast, _root_env("sync", env, out))

def run_cps(
    ast: Node,
    env: Optional[Environment]=None,
    out: Optional[TextIO]=None,
    on_result: Optional[Callable[[Value], None]]=None,
    loop: Optional[asyncio.AbstractEventLoop]=None,
    stack_budget: Optional[int]=None,
) -> None:
    """Evaluate `ast` in CPS mode; the final value goes to `on_result`.

    Nothing is returned: a `sleep` leaves the rest of the program on the
    event loop and a `halt` means there is never a final value. By default
    the final value is written to the output stream.
    """
    env = _root_env("cps", env, out)

    if on_result is None:
        root = env
        on_result = lambda value: root.write_line(stringify(value))

    CpsEvaluator(stack_budget, loop=loop).run(ast, env, on_result)

async def run_cps_async(
    ast: Node,
    env: Optional[Environment]=None,
    out: Optional[TextIO]=None,
    stack_budget: Optional[int]=None,
) -> Optional[Value]:
    """Drive a CPS run on the running loop until it finishes or halts.

    Resolves with the final value, or None when the program halted with no
    resumption pending. Errors raised after a `sleep` are re-raised here.
    """
    loop = asyncio.get_running_loop()
    done: asyncio.Future = loop.create_future()
    machine = CpsEvaluator(stack_budget, loop=loop)

    def settle(value: Optional[Value]) -> None:
        if not done.done():
            done.set_result(value)

    def fail(exc: Exception) -> None:
        if not done.done():
            done.set_exception(exc)

    machine.on_error = fail
    machine.on_idle = lambda: settle(None)
    machine.run(ast, _root_env("cps", env, out), settle)

    result = await done
    log.debug("cps run finished after %d bounces", machine.bounces)
    return result

def run(source: str, mode: Mode="sync", parser: ParserKind="rd", out: Optional[TextIO]=None) -> Optional[Value]:
    ast = parse_program(source, parser)

    if mode == "sync":
        return run_synchronous(ast, out=out)
    if mode == "cps":
        return asyncio.run(run_cps_async(ast, out=out))

    raise ValueError(f"Unknown mode {mode!r}")

def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    if candidate.exists():
        return candidate.read_text(encoding="utf-8")

    return arg

def _set_mode(value: str) -> Mode:
    if value not in MODES:
        raise SystemExit(f"Unknown mode: {value} (expected one of {', '.join(MODES)})")
    return value  # type: ignore[return-value]

def main(argv: Optional[list]=None) -> None:
    mode: Mode = "sync"
    parser: ParserKind = "rd"
    dump_ast = False
    verbose = False
    arg = None
    it = iter(sys.argv[1:] if argv is None else argv)

    for token in it:
        if token == "--cps":
            mode = "cps"
            continue

        if token.startswith("--mode="):
            mode = _set_mode(token.split("=", 1)[1])
            continue

        if token == "--mode":
            try:
                mode = _set_mode(next(it))
            except StopIteration:
                raise SystemExit("--mode flag requires a value") from None
            continue

        if token == "--lark":
            parser = "lark"
            continue

        if token == "--ast":
            dump_ast = True
            continue

        if token in ("--verbose", "-v"):
            verbose = True
            continue

        if arg is None:
            arg = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(name)s: %(message)s")

    if arg is None and sys.stdin.isatty():
        from .repl import repl
        repl(mode=mode, parser=parser)
        return

    source = _load_source(arg)
    log.debug("running %d chars in %s mode (%s parser)", len(source), mode, parser)

    try:
        if dump_ast:
            print(dump_json(parse_program(source, parser)))
            return

        result = run(source, mode=mode, parser=parser)

        # cps runs report their final value; a halted run has none
        if mode == "cps" and result is not None:
            print(stringify(result))
    except (ParseError, LambdaRuntimeError, RecursionError) as exc:
        if debug_py_trace_enabled():
            traceback.print_exc()
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from None

if __name__ == "__main__":
    main()
