from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TextIO, Tuple
from typing_extensions import TypeAlias

from .tree import Lambda, Node

# ---------- Value Model ----------

@dataclass
class LamNumber:
    value: float
    def __repr__(self) -> str:
        v = self.value
        return str(int(v)) if v.is_integer() else str(v)

@dataclass
class LamString:
    value: str
    def __repr__(self) -> str:
        return f'"{self.value}"'

@dataclass
class LamBool:
    value: bool
    def __repr__(self) -> str:
        return "true" if self.value else "false"

@dataclass(eq=False)
class LamClosure:
    node: Lambda
    env: 'Environment'   # captured scope
    def __repr__(self) -> str:
        name = self.node.name
        return f"<lambda {name}>" if name else "<lambda>"

# Host function signatures. Sync builtins return their value; CPS builtins
# receive the evaluator and the continuation and produce through it.
SyncFn = Callable[['Environment', List['Value']], 'Value']
CpsFn = Callable[[Any, 'Environment', 'Continuation', List['Value']], 'Step']

@dataclass(eq=False)
class LamBuiltin:
    name: str
    fn: Callable[..., Any]
    arity: Optional[int] = None
    mode: str = "sync"            # evaluator whose calling convention `fn` follows
    def __repr__(self) -> str:
        return f"<builtin {self.name}>"

@dataclass(eq=False)
class LamContinuation:
    """Escape function handed out by call/cc: resumes `k` with its argument."""
    k: 'Continuation'
    def __repr__(self) -> str:
        return "<continuation>"

Value: TypeAlias = LamNumber | LamString | LamBool | LamClosure | LamBuiltin | LamContinuation

Continuation = Callable[[Value], 'Step']

# ---------- Environment ----------

class Environment:
    """One lexical scope: own bindings plus a non-owning link to the parent."""

    def __init__(self, parent: Optional['Environment']=None, out: Optional[TextIO]=None):
        self.parent = parent
        self.vars: Dict[str, Value] = {}
        self.out = out            # normally set on the root only

    def extend(self) -> 'Environment':
        return Environment(parent=self)

    def lookup(self, name: str) -> Optional['Environment']:
        scope: Optional[Environment] = self

        while scope is not None:
            if name in scope.vars:
                return scope
            scope = scope.parent

        return None

    def get(self, name: str) -> Value:
        scope = self.lookup(name)
        if scope is None:
            raise UndefinedVariableError(name)

        return scope.vars[name]

    def assign(self, name: str, val: Value) -> Value:
        scope = self.lookup(name)

        # globals can only be created from the root scope
        if scope is None and self.parent is not None:
            raise UndefinedVariableError(name)

        (scope or self).vars[name] = val
        return val

    def define(self, name: str, val: Value) -> Value:
        self.vars[name] = val
        return val

    def is_root(self) -> bool:
        return self.parent is None

    def output(self) -> TextIO:
        """Nearest stream set on this scope or an ancestor, else stdout."""
        scope: Optional[Environment] = self

        while scope is not None:
            if scope.out is not None:
                return scope.out
            scope = scope.parent

        return sys.stdout

    def write_line(self, text: str) -> None:
        self.output().write(text + "\n")

# ---------- Exceptions ----------

class LambdaRuntimeError(Exception):
    pass

class UndefinedVariableError(LambdaRuntimeError):
    def __init__(self, name: str):
        super().__init__(f"Undefined variable {name}")
        self.name = name

class InvalidAssignmentTargetError(LambdaRuntimeError):
    def __init__(self, node: Node):
        from .tree import dump_json
        super().__init__(f"Cannot assign to {dump_json(node, indent=None)}")
        self.node = node

class LambdaTypeError(LambdaRuntimeError):
    def __init__(self, expected: str, got: Any):
        super().__init__(f"Expected {expected} but got {got!r}")
        self.expected = expected
        self.got = got

class DivideByZeroError(LambdaRuntimeError):
    def __init__(self):
        super().__init__("Divide by zero")

class ProgramHaltedError(LambdaRuntimeError):
    def __init__(self):
        super().__init__("Program halted")

class UnsupportedOperationError(LambdaRuntimeError):
    def __init__(self, context: str):
        super().__init__(context)
        self.context = context

class LambdaInternalError(LambdaRuntimeError):
    pass

@dataclass(frozen=True)
class PendingContinuation:
    """The call to run next once the CPS step budget is spent.

    Returned (never raised) up through the tail calls of the CPS evaluator and
    consumed only by its driver loop; not a user-visible value.
    """
    fn: Callable[..., 'Step']
    args: Tuple[Any, ...]

# What every CPS function returns: nothing once a leg finishes, or the
# pending call when the guard trips.
Step = Optional[PendingContinuation]

# ---------- Builtin registries ----------

class Builtins:
    sync_functions: Dict[str, LamBuiltin] = {}
    cps_functions: Dict[str, LamBuiltin] = {}
