from __future__ import annotations

import math
from typing import Any

from ..types import (
    DivideByZeroError,
    LamBool,
    LamBuiltin,
    LamClosure,
    LamContinuation,
    LamNumber,
    LamString,
    LambdaInternalError,
    LambdaTypeError,
    Value,
)
from .helpers import is_truthy

def require_number(value: Any) -> float:
    if not isinstance(value, LamNumber):
        raise LambdaTypeError("number", value)

    return value.value

def require_divisor(value: Any) -> float:
    num = require_number(value)
    if num == 0:
        raise DivideByZeroError()

    return num

def values_equal(lhs: Value, rhs: Value) -> bool:
    match (lhs, rhs):
        case (LamNumber(value=a), LamNumber(value=b)):
            return a == b
        case (LamString(value=a), LamString(value=b)):
            return a == b
        case (LamBool(value=a), LamBool(value=b)):
            return a == b
        case (
            (LamClosure(), LamClosure())
            | (LamBuiltin(), LamBuiltin())
            | (LamContinuation(), LamContinuation())
        ):
            return lhs is rhs
        case _:
            return False

def apply_operator(op: str, lhs: Value, rhs: Value) -> Value:
    """Combine two already-evaluated operands."""
    match op:
        case '+':
            return LamNumber(require_number(lhs) + require_number(rhs))
        case '-':
            return LamNumber(require_number(lhs) - require_number(rhs))
        case '*':
            return LamNumber(require_number(lhs) * require_number(rhs))
        case '/':
            return LamNumber(require_number(lhs) / require_divisor(rhs))
        case '%':
            # sign follows the dividend
            return LamNumber(math.fmod(require_number(lhs), require_divisor(rhs)))
        case '&&':
            return rhs if is_truthy(lhs) else LamBool(False)
        case '||':
            return lhs if is_truthy(lhs) else rhs
        case '<':
            return LamBool(require_number(lhs) < require_number(rhs))
        case '>':
            return LamBool(require_number(lhs) > require_number(rhs))
        case '<=':
            return LamBool(require_number(lhs) <= require_number(rhs))
        case '>=':
            return LamBool(require_number(lhs) >= require_number(rhs))
        case '==':
            return LamBool(values_equal(lhs, rhs))
        case '!=':
            return LamBool(not values_equal(lhs, rhs))

    raise LambdaInternalError(f"Can't apply operator {op}")
