from __future__ import annotations

from ..tree import Lambda
from ..types import Environment, LamBool, LamClosure, Value

def is_truthy(val: Value) -> bool:
    # only `false` is falsy; 0 and "" are truthy
    match val:
        case LamBool(value=b):
            return b
        case _:
            return True

def make_closure(node: Lambda, env: Environment) -> LamClosure:
    """Close over `env`; a named lambda first gets a scope binding its own name."""
    if node.name:
        env = env.extend()
        closure = LamClosure(node, env)
        env.define(node.name, closure)
        return closure

    return LamClosure(node, env)

def bind_params(closure: LamClosure, args: list) -> Environment:
    """Child of the captured scope with params bound; missing args are false."""
    scope = closure.env.extend()

    for i, name in enumerate(closure.node.params):
        scope.define(name, args[i] if i < len(args) else LamBool(False))

    return scope
