from __future__ import annotations

import os as _os
from typing import Optional

from .types import (
    LamBool,
    LamBuiltin,
    LamClosure,
    LamContinuation,
    LamNumber,
    LamString,
    Value,
)

DEBUG_PY_TRACE_VAR = "LAMBDALANG_DEBUG_PY_TRACE"
STACK_BUDGET_VAR = "LAMBDALANG_STACK_BUDGET"
DEFAULT_STACK_BUDGET = 200


def debug_py_trace_enabled() -> bool:
    """Whether to print host tracebacks alongside λanguage errors."""
    return _os.environ.get(DEBUG_PY_TRACE_VAR, "") not in ("", "0")


def stack_budget_from_env() -> int:
    raw = _os.environ.get(STACK_BUDGET_VAR)
    if raw is None:
        return DEFAULT_STACK_BUDGET

    try:
        budget = int(raw)
    except ValueError:
        return DEFAULT_STACK_BUDGET

    return budget if budget > 0 else DEFAULT_STACK_BUDGET


def format_number(num: float) -> str:
    return str(int(num)) if num.is_integer() else repr(num)


def stringify(value: Optional[Value]) -> str:
    """Textual form used by print/println: strings unquoted, numbers bare."""
    match value:
        case LamString(value=s):
            return s
        case LamNumber(value=num):
            return format_number(num)
        case LamBool(value=b):
            return "true" if b else "false"
        case LamClosure() | LamBuiltin() | LamContinuation():
            return repr(value)
        case None:
            return "false"
        case _:
            return str(value)
