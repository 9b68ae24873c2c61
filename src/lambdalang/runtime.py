from __future__ import annotations

import importlib
from typing import Callable, Dict, Literal, Optional, TextIO

from .types import (
    Builtins,
    CpsFn,
    Environment,
    LamBuiltin,
    SyncFn,
)

Mode = Literal["sync", "cps"]
MODES = ("sync", "cps")

_STDLIB_INITIALIZED = False

def init_stdlib() -> None:
    """Load the builtin module (idempotent) so register_* hooks run."""
    global _STDLIB_INITIALIZED

    if _STDLIB_INITIALIZED:
        return

    importlib.import_module("lambdalang.stdlib")
    _STDLIB_INITIALIZED = True

def _register(registry: Dict[str, LamBuiltin], mode: Mode, names: tuple, arity: Optional[int]):
    def dec(fn: Callable):
        for name in names:
            registry[name] = LamBuiltin(name=name, fn=fn, arity=arity, mode=mode)
        return fn

    return dec

def register_sync(*names: str, arity: Optional[int] = None) -> Callable[[SyncFn], SyncFn]:
    return _register(Builtins.sync_functions, "sync", names, arity)

def register_cps(*names: str, arity: Optional[int] = None) -> Callable[[CpsFn], CpsFn]:
    return _register(Builtins.cps_functions, "cps", names, arity)

def builtins_for(mode: Mode) -> Dict[str, LamBuiltin]:
    init_stdlib()

    if mode == "sync":
        return Builtins.sync_functions
    if mode == "cps":
        return Builtins.cps_functions

    raise ValueError(f"Unknown mode {mode!r}")

def make_global_env(mode: Mode = "sync", out: Optional[TextIO] = None) -> Environment:
    """Fresh root scope with the builtins of `mode` installed."""
    env = Environment(out=out)

    for name, fn in builtins_for(mode).items():
        env.define(name, fn)

    return env
