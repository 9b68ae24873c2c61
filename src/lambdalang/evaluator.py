from __future__ import annotations

from typing import Callable, List

from .tree import Assign, Binary, Bool, Call, If, Lambda, Let, Node, Num, Prog, Str, Var
from .types import (
    Environment,
    InvalidAssignmentTargetError,
    LamBool,
    LamBuiltin,
    LamClosure,
    LamNumber,
    LamString,
    LambdaInternalError,
    LambdaTypeError,
    UnsupportedOperationError,
    Value,
)
from .eval.expr import apply_operator
from .eval.helpers import bind_params, is_truthy, make_closure

# ---------------- Core evaluator ----------------

def eval_node(n: Node, env: Environment) -> Value:
    handler = _NODE_DISPATCH.get(type(n))
    if handler is None:
        raise LambdaInternalError(f"I don't know how to evaluate {type(n).__name__}")

    return handler(n, env)

def call_value(func: Value, args: List[Value], env: Environment) -> Value:
    """Invoke a callable value; builtins run against the caller scope `env`."""
    match func:
        case LamClosure():
            return call_closure(func, args)
        case LamBuiltin(mode="sync", fn=fn):
            return fn(env, args)
        case LamBuiltin(name=name):
            raise UnsupportedOperationError(f"{name} is not callable in sync mode")
        case _:
            raise LambdaTypeError("function", func)

def call_closure(closure: LamClosure, args: List[Value]) -> Value:
    return eval_node(closure.node.body, bind_params(closure, args))

def _eval_num(n: Num, _env: Environment) -> Value:
    return LamNumber(n.value)

def _eval_str(n: Str, _env: Environment) -> Value:
    return LamString(n.value)

def _eval_bool(n: Bool, _env: Environment) -> Value:
    return LamBool(n.value)

def _eval_var(n: Var, env: Environment) -> Value:
    return env.get(n.name)

def _eval_assign(n: Assign, env: Environment) -> Value:
    if not isinstance(n.target, Var):
        raise InvalidAssignmentTargetError(n.target)

    return env.assign(n.target.name, eval_node(n.value, env))

def _eval_binary(n: Binary, env: Environment) -> Value:
    lhs = eval_node(n.left, env)
    rhs = eval_node(n.right, env)
    return apply_operator(n.op, lhs, rhs)

def _eval_lambda(n: Lambda, env: Environment) -> Value:
    return make_closure(n, env)

def _eval_if(n: If, env: Environment) -> Value:
    if is_truthy(eval_node(n.cond, env)):
        return eval_node(n.then, env)

    if n.else_ is not None:
        return eval_node(n.else_, env)

    return LamBool(False)

def _eval_prog(n: Prog, env: Environment) -> Value:
    val: Value = LamBool(False)

    for item in n.body:
        val = eval_node(item, env)

    return val

def _eval_call(n: Call, env: Environment) -> Value:
    func = eval_node(n.func, env)
    args = [eval_node(arg, env) for arg in n.args]
    return call_value(func, args, env)

def _eval_let(n: Let, env: Environment) -> Value:
    for binding in n.bindings:
        val = eval_node(binding.init, env) if binding.init is not None else LamBool(False)
        env = env.extend()
        env.define(binding.name, val)

    return eval_node(n.body, env)

_NODE_DISPATCH: dict[type, Callable[..., Value]] = {
    Num: _eval_num,
    Str: _eval_str,
    Bool: _eval_bool,
    Var: _eval_var,
    Assign: _eval_assign,
    Binary: _eval_binary,
    Lambda: _eval_lambda,
    If: _eval_if,
    Prog: _eval_prog,
    Call: _eval_call,
    Let: _eval_let,
}
