"""
Continuation-passing evaluator for λanguage.

Every evaluation step hands its result to a continuation instead of
returning it. Since all of those calls are tail calls, each function returns
whatever its tail call returns. Once the step budget of a leg is spent, the
guard returns a PendingContinuation instead of going deeper. That value
travels back up to `execute`, which starts a fresh leg with it. Host stack
depth therefore stays bounded however deep the λanguage recursion goes.

`sleep` arms an asyncio timer and returns without continuing, and `halt`
never continues at all. Both end the current leg early.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Optional, Sequence

from .tree import Assign, Binary, Bool, Call, If, Lambda, Let, Node, Num, Prog, Str, Var
from .types import (
    Continuation,
    Environment,
    InvalidAssignmentTargetError,
    LamBool,
    LamBuiltin,
    LamClosure,
    LamContinuation,
    LamNumber,
    LamString,
    LambdaInternalError,
    LambdaTypeError,
    PendingContinuation,
    Step,
    UnsupportedOperationError,
    Value,
)
from .eval.expr import apply_operator
from .eval.helpers import bind_params, is_truthy, make_closure
from .utils import stack_budget_from_env

log = logging.getLogger(__name__)


class CpsEvaluator:
    """One CPS execution context: step budget, timer bookkeeping, hooks.

    on_error receives exceptions raised while resuming after `sleep`, which
    otherwise surface through the event loop's exception handler. on_idle
    fires whenever a leg ends with no resumption left pending.
    """

    def __init__(self, stack_budget: Optional[int]=None, loop: Optional[asyncio.AbstractEventLoop]=None):
        if stack_budget is None:
            stack_budget = stack_budget_from_env()
        if stack_budget <= 0:
            raise ValueError("stack budget must be positive")

        self.stack_budget = stack_budget
        self.loop = loop
        self.remaining = stack_budget
        self.bounces = 0
        self.pending = 0

        self.on_error: Optional[Callable[[Exception], None]] = None
        self.on_idle: Optional[Callable[[], None]] = None

        self._dispatch: Dict[type, Callable[[Node, Environment, Continuation], Step]] = {
            Num: self._eval_num,
            Str: self._eval_str,
            Bool: self._eval_bool,
            Var: self._eval_var,
            Assign: self._eval_assign,
            Binary: self._eval_binary,
            Lambda: self._eval_lambda,
            If: self._eval_if,
            Prog: self._eval_prog,
            Call: self._eval_call,
            Let: self._eval_let,
        }

    # ---------------- Driver ----------------

    def guard(self, fn: Callable[..., Step], *args) -> Step:
        self.remaining -= 1
        if self.remaining < 0:
            return PendingContinuation(fn, args)
        return None

    def execute(self, fn: Callable[..., Step], *args) -> None:
        """Run fn(*args), restarting pending calls with a fresh budget until done."""
        step: Step = PendingContinuation(fn, args)
        legs = 0

        while step is not None:
            self.remaining = self.stack_budget
            step = step.fn(*step.args)
            legs += 1

        self.bounces += legs - 1
        if legs > 1:
            log.debug("execute: finished after %d legs", legs)

    def run(self, ast: Node, env: Environment, on_result: Callable[[Value], None]) -> None:
        def k_final(value: Value) -> Step:
            on_result(value)
            return None

        self.execute(self.evaluate, ast, env, k_final)
        self._notify_idle()

    # ---------------- Evaluation ----------------

    def evaluate(self, node: Node, env: Environment, k: Continuation) -> Step:
        bounce = self.guard(self.evaluate, node, env, k)
        if bounce is not None:
            return bounce

        handler = self._dispatch.get(type(node))
        if handler is None:
            raise LambdaInternalError(f"I don't know how to evaluate {type(node).__name__}")

        return handler(node, env, k)

    def _eval_num(self, n: Num, _env: Environment, k: Continuation) -> Step:
        return k(LamNumber(n.value))

    def _eval_str(self, n: Str, _env: Environment, k: Continuation) -> Step:
        return k(LamString(n.value))

    def _eval_bool(self, n: Bool, _env: Environment, k: Continuation) -> Step:
        return k(LamBool(n.value))

    def _eval_var(self, n: Var, env: Environment, k: Continuation) -> Step:
        return k(env.get(n.name))

    def _eval_assign(self, n: Assign, env: Environment, k: Continuation) -> Step:
        if not isinstance(n.target, Var):
            raise InvalidAssignmentTargetError(n.target)

        name = n.target.name

        def k_value(val: Value) -> Step:
            bounce = self.guard(k_value, val)
            if bounce is not None:
                return bounce
            return k(env.assign(name, val))

        return self.evaluate(n.value, env, k_value)

    def _eval_binary(self, n: Binary, env: Environment, k: Continuation) -> Step:
        def k_left(left: Value) -> Step:
            bounce = self.guard(k_left, left)
            if bounce is not None:
                return bounce

            def k_right(right: Value) -> Step:
                bounce = self.guard(k_right, right)
                if bounce is not None:
                    return bounce
                return k(apply_operator(n.op, left, right))

            return self.evaluate(n.right, env, k_right)

        return self.evaluate(n.left, env, k_left)

    def _eval_lambda(self, n: Lambda, env: Environment, k: Continuation) -> Step:
        return k(make_closure(n, env))

    def _eval_if(self, n: If, env: Environment, k: Continuation) -> Step:
        def k_cond(cond: Value) -> Step:
            bounce = self.guard(k_cond, cond)
            if bounce is not None:
                return bounce

            if is_truthy(cond):
                return self.evaluate(n.then, env, k)
            if n.else_ is not None:
                return self.evaluate(n.else_, env, k)
            return k(LamBool(False))

        return self.evaluate(n.cond, env, k_cond)

    def _eval_prog(self, n: Prog, env: Environment, k: Continuation) -> Step:
        body = n.body

        def loop(last: Value, i: int) -> Step:
            bounce = self.guard(loop, last, i)
            if bounce is not None:
                return bounce

            if i == len(body):
                return k(last)

            def k_item(val: Value) -> Step:
                bounce = self.guard(k_item, val)
                if bounce is not None:
                    return bounce
                return loop(val, i + 1)

            return self.evaluate(body[i], env, k_item)

        return loop(LamBool(False), 0)

    def _eval_call(self, n: Call, env: Environment, k: Continuation) -> Step:
        def k_func(func: Value) -> Step:
            bounce = self.guard(k_func, func)
            if bounce is not None:
                return bounce

            def loop(args: tuple) -> Step:
                bounce = self.guard(loop, args)
                if bounce is not None:
                    return bounce

                if len(args) == len(n.args):
                    return self.apply(func, args, env, k)

                def k_arg(val: Value) -> Step:
                    bounce = self.guard(k_arg, val)
                    if bounce is not None:
                        return bounce
                    return loop(args + (val,))

                return self.evaluate(n.args[len(args)], env, k_arg)

            return loop(())

        return self.evaluate(n.func, env, k_func)

    def _eval_let(self, n: Let, env: Environment, k: Continuation) -> Step:
        bindings = n.bindings

        def loop(scope: Environment, i: int) -> Step:
            bounce = self.guard(loop, scope, i)
            if bounce is not None:
                return bounce

            if i == len(bindings):
                return self.evaluate(n.body, scope, k)

            binding = bindings[i]

            def k_init(val: Value) -> Step:
                bounce = self.guard(k_init, val)
                if bounce is not None:
                    return bounce

                inner = scope.extend()
                inner.define(binding.name, val)
                return loop(inner, i + 1)

            if binding.init is None:
                return k_init(LamBool(False))

            return self.evaluate(binding.init, scope, k_init)

        return loop(env, 0)

    # ---------------- Calls ----------------

    def apply(self, func: Value, args: Sequence[Value], env: Environment, k: Continuation) -> Step:
        """Invoke `func` so that its result flows into `k`."""
        match func:
            case LamClosure():
                return self.call_closure(func, k, tuple(args))
            case LamBuiltin(mode="cps", fn=fn):
                return fn(self, env, k, list(args))
            case LamBuiltin(name=name):
                raise UnsupportedOperationError(f"{name} is not callable in CPS mode")
            case LamContinuation(k=resume):
                # escape: drop `k` and resume at the call/cc site
                return resume(args[0] if args else LamBool(False))
            case _:
                raise LambdaTypeError("function", func)

    def call_closure(self, closure: LamClosure, k: Continuation, args: tuple) -> Step:
        bounce = self.guard(self.call_closure, closure, k, args)
        if bounce is not None:
            return bounce

        return self.evaluate(closure.node.body, bind_params(closure, list(args)), k)

    # ---------------- Timers ----------------

    def event_loop(self) -> asyncio.AbstractEventLoop:
        if self.loop is not None:
            return self.loop

        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            raise UnsupportedOperationError("sleep needs a running asyncio event loop") from None

    def schedule(self, delay_ms: float, k: Continuation, value: Value) -> Step:
        """Resume `k` with `value` through the driver loop after `delay_ms`."""
        loop = self.event_loop()
        self.pending += 1
        log.debug("sleep: resuming in %sms (%d pending)", delay_ms, self.pending)
        loop.call_later(max(delay_ms, 0.0) / 1000.0, self._resume, k, value)
        return None

    def _resume(self, k: Continuation, value: Value) -> None:
        self.pending -= 1

        try:
            self.execute(k, value)
        except Exception as exc:
            if self.on_error is None:
                raise
            self.on_error(exc)
            return

        self._notify_idle()

    def _notify_idle(self) -> None:
        if self.pending == 0 and self.on_idle is not None:
            self.on_idle()

