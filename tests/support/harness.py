from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Optional, Tuple

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from lambdalang.lexer_rd import InputStream, ParseError, TokenStream, tokenize
from lambdalang.parse_lark import parse_source as parse_lark
from lambdalang.parser_rd import parse_source as parse_rd
from lambdalang.runner import parse_program, run as run_program, run_cps_async, run_synchronous
from lambdalang.runtime import make_global_env
from lambdalang.types import (
    DivideByZeroError,
    Environment,
    InvalidAssignmentTargetError,
    LamBool,
    LamBuiltin,
    LamClosure,
    LamContinuation,
    LamNumber,
    LamString,
    LambdaInternalError,
    LambdaRuntimeError,
    LambdaTypeError,
    ProgramHaltedError,
    UndefinedVariableError,
    UnsupportedOperationError,
    Value,
)

RuntimeExpectation = Optional[Tuple[str, object]]

MODES = ("sync", "cps")


def verify_result(value: object, kind: str, expected: object) -> None:
    """Assert runtime result shape/value compatibility with expectations."""
    match kind:
        case "string":
            assert isinstance(
                value, LamString
            ), f"expected LamString, got {type(value).__name__}"
            assert (
                value.value == expected
            ), f"expected {expected!r}, got {value.value!r}"
            return
        case "number":
            assert isinstance(
                value, LamNumber
            ), f"expected number, got {type(value).__name__}"
            assert (
                abs(value.value - float(expected)) <= 1e-9
            ), f"expected {expected}, got {value.value}"
            return
        case "bool":
            assert isinstance(
                value, LamBool
            ), f"expected bool, got {type(value).__name__}"
            assert value.value is bool(
                expected
            ), f"expected {expected}, got {value.value}"
            return
        case "closure":
            assert isinstance(
                value, LamClosure
            ), f"expected LamClosure, got {type(value).__name__}"
            assert repr(value) == expected, f"expected {expected!r}, got {value!r}"
            return
        case "halted":
            assert value is None, f"expected no final value, got {value!r}"
            return
        case _:
            raise AssertionError(f"unknown expectation kind {kind}")


def run_capture(source: str, mode: str = "sync", parser: str = "rd") -> Tuple[Optional[Value], str]:
    """Run *source* and return (final value, everything the program printed)."""
    out = io.StringIO()
    value = run_program(source, mode=mode, parser=parser, out=out)
    return value, out.getvalue()


def run_runtime_case(
    source: str,
    expectation: RuntimeExpectation,
    expected_exc: Optional[type],
    mode: str = "sync",
) -> None:
    """Execute one runtime scenario with optional expected exception."""
    if expected_exc is not None:
        with pytest.raises(expected_exc):
            run_capture(source, mode)
        return

    result, _ = run_capture(source, mode)
    if expectation is not None:
        verify_result(result, expectation[0], expectation[1])
