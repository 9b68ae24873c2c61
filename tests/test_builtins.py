from __future__ import annotations

import re

import pytest

from lambdalang.runtime import builtins_for
from lambdalang.utils import stringify
from tests.support.harness import (
    MODES,
    LamBool,
    LamBuiltin,
    LamNumber,
    LamString,
    make_global_env,
    run_capture,
    verify_result,
)

PRINT_CASES = [
    pytest.param("println(42)", "42\n", id="integral-number"),
    pytest.param("println(2.5)", "2.5\n", id="fractional-number"),
    pytest.param("println(10 / 4)", "2.5\n", id="computed-fraction"),
    pytest.param("println(1 / 3 * 3)", "1\n", id="float-that-rounds-integral"),
    pytest.param('println("hi there")', "hi there\n", id="raw-string"),
    pytest.param("println(true); println(false)", "true\nfalse\n", id="booleans"),
    pytest.param("println(λ(x) x)", "<lambda>\n", id="anonymous-lambda"),
    pytest.param("println(λ named() 1)", "<lambda named>\n", id="named-lambda"),
    pytest.param("println(print)", "<builtin print>\n", id="builtin"),
    pytest.param('print("no"); print("newline?")', "no\nnewline?\n", id="print-adds-newline"),
    pytest.param('println(1, "a", true)', "1 a true\n", id="several-arguments"),
    pytest.param("println()", "\n", id="no-arguments"),
]


@pytest.mark.parametrize("mode", MODES)
@pytest.mark.parametrize("source, expected", PRINT_CASES)
def test_print_textual_form(source: str, expected: str, mode: str) -> None:
    _, out = run_capture(source, mode)
    assert out == expected


@pytest.mark.parametrize("mode", MODES)
def test_print_returns_false(mode: str) -> None:
    value, _ = run_capture("println(1)", mode)
    verify_result(value, "bool", False)


@pytest.mark.parametrize("mode", MODES)
def test_time_reports_and_yields_result(mode: str) -> None:
    value, out = run_capture('time(λ() { println("work"); 7 })', mode)
    verify_result(value, "number", 7)

    lines = out.splitlines()
    assert lines[0] == "work"
    assert re.fullmatch(r"Time: \d+\.\d{3}ms", lines[1])


@pytest.mark.parametrize("mode", MODES)
def test_builtin_registry_contents(mode: str) -> None:
    names = set(builtins_for(mode))
    assert names == {"print", "println", "time", "halt", "sleep", "call/cc", "CallCC"}
    assert all(fn.mode == mode for fn in builtins_for(mode).values())


def test_make_global_env_installs_fresh_root() -> None:
    first = make_global_env("sync")
    second = make_global_env("sync")
    first.define("x", LamNumber(1.0))

    assert first.is_root()
    assert isinstance(second.get("print"), LamBuiltin)
    assert second.lookup("x") is None


def test_unknown_mode_rejected() -> None:
    with pytest.raises(ValueError):
        make_global_env("lazy")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "value, expected",
    [
        (LamNumber(3.0), "3"),
        (LamNumber(-0.5), "-0.5"),
        (LamString("x y"), "x y"),
        (LamBool(True), "true"),
        (None, "false"),
    ],
)
def test_stringify(value, expected: str) -> None:
    assert stringify(value) == expected
