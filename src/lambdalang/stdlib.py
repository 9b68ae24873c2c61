"""Builtin functions registered through lambdalang.runtime, one set per mode.

Sync builtins take (env, args) and return a value. CPS builtins take
(machine, env, k, args) and continue through `k`, or deliberately never do.
"""

from __future__ import annotations

import time
from typing import List

from .runtime import register_cps, register_sync
from .types import (
    Continuation,
    Environment,
    LamBool,
    LamContinuation,
    ProgramHaltedError,
    Step,
    UnsupportedOperationError,
    Value,
)
from .eval.expr import require_number
from .utils import stringify

def _arg(args: List[Value], idx: int) -> Value:
    return args[idx] if idx < len(args) else LamBool(False)

def _render(args: List[Value]) -> str:
    return " ".join(stringify(arg) for arg in args)

def _report_elapsed(env: Environment, start: float) -> None:
    env.write_line(f"Time: {(time.perf_counter() - start) * 1000:.3f}ms")

# ---------------- Synchronous ----------------

@register_sync("print", arity=1)
@register_sync("println", arity=1)
def std_print(env: Environment, args: List[Value]) -> Value:
    env.write_line(_render(args))
    return LamBool(False)

@register_sync("time", arity=1)
def std_time(env: Environment, args: List[Value]) -> Value:
    from .evaluator import call_value  # local import to avoid cycle

    start = time.perf_counter()
    try:
        return call_value(_arg(args, 0), [], env)
    finally:
        _report_elapsed(env, start)

@register_sync("halt", arity=0)
def std_halt(_env: Environment, _args: List[Value]) -> Value:
    raise ProgramHaltedError()

@register_sync("sleep", arity=1)
def std_sleep(_env: Environment, _args: List[Value]) -> Value:
    raise UnsupportedOperationError("sleep is only available in CPS mode")

@register_sync("call/cc", "CallCC", arity=1)
def std_callcc(_env: Environment, _args: List[Value]) -> Value:
    raise UnsupportedOperationError("call/cc is only available in CPS mode")

# ---------------- Continuation-passing ----------------

@register_cps("print", arity=1)
@register_cps("println", arity=1)
def cps_print(_machine, env: Environment, k: Continuation, args: List[Value]) -> Step:
    env.write_line(_render(args))
    return k(LamBool(False))

@register_cps("time", arity=1)
def cps_time(machine, env: Environment, k: Continuation, args: List[Value]) -> Step:
    start = time.perf_counter()

    def k_done(result: Value) -> Step:
        _report_elapsed(env, start)
        return k(result)

    return machine.apply(_arg(args, 0), (), env, k_done)

@register_cps("halt", arity=0)
def cps_halt(_machine, _env: Environment, _k: Continuation, _args: List[Value]) -> Step:
    return None

@register_cps("sleep", arity=1)
def cps_sleep(machine, _env: Environment, k: Continuation, args: List[Value]) -> Step:
    milliseconds = require_number(_arg(args, 0))
    return machine.schedule(milliseconds, k, LamBool(False))

@register_cps("call/cc", "CallCC", arity=1)
def cps_callcc(machine, env: Environment, k: Continuation, args: List[Value]) -> Step:
    return machine.apply(_arg(args, 0), (LamContinuation(k),), env, k)
