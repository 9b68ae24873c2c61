from __future__ import annotations

import io
from textwrap import dedent

import pytest

from tests.support.harness import (
    MODES,
    Environment,
    LamNumber,
    UndefinedVariableError,
    make_global_env,
    parse_program,
    run_capture,
    run_runtime_case,
    run_synchronous,
)

SCENARIOS = [
    pytest.param(
        "x = 1; f = λ() x = 2; f(); x",
        ("number", 2),
        None,
        id="assign-updates-defining-scope",
    ),
    pytest.param(
        "x = 1; f = λ(x) x = 5; f(0); x",
        ("number", 1),
        None,
        id="param-shadows-global",
    ),
    pytest.param(
        "x = 1; f = λ() x; x = 2; f()",
        ("number", 2),
        None,
        id="closure-sees-later-global-update",
    ),
    pytest.param(
        "f = λ() g(); g = λ() 9; f()",
        ("number", 9),
        None,
        id="late-bound-global-call",
    ),
    pytest.param(
        "make = λ(v) λ() v; a = make(1); b = make(2); a() + b() * 10",
        ("number", 21),
        None,
        id="closures-capture-separate-scopes",
    ),
    pytest.param(
        "let (y = 1) { y = 2; y }",
        ("number", 2),
        None,
        id="let-binding-is-assignable",
    ),
    pytest.param(
        "let (y = 1) y; y",
        None,
        UndefinedVariableError,
        id="let-binding-is-local",
    ),
    pytest.param(
        "f = λ(a) λ() b = a; f(1)()",
        None,
        UndefinedVariableError,
        id="no-implicit-global-from-closure",
    ),
    pytest.param(
        "λ fact(n) if n < 2 then 1 else n * fact(n - 1); fact",
        None,
        UndefinedVariableError,
        id="lambda-name-stays-private",
    ),
    pytest.param(
        "fact = λ me(n) if n < 2 then 1 else n * me(n - 1); fact(5)",
        ("number", 120),
        None,
        id="lambda-name-visible-inside",
    ),
]


@pytest.mark.parametrize("mode", MODES)
@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_scoping(source: str, expectation, expected_exc, mode: str) -> None:
    run_runtime_case(source, expectation, expected_exc, mode=mode)


@pytest.mark.parametrize("mode", MODES)
def test_let_shadowing_restores_outer(mode: str) -> None:
    source = dedent(
        """\
        let (x = 10) {
          let (x = x * 2, y = x * x) { println(x); println(y); };
          println(x);
        };
        """
    )
    _, out = run_capture(source, mode)
    assert out == "20\n400\n10\n"


def test_lookup_walks_parent_chain() -> None:
    root = Environment()
    child = root.extend().extend()
    root.define("a", LamNumber(1.0))

    assert child.lookup("a") is root
    assert child.get("a") == LamNumber(1.0)
    assert child.lookup("b") is None


def test_get_undefined_reports_name() -> None:
    with pytest.raises(UndefinedVariableError, match="Undefined variable nope") as exc_info:
        Environment().get("nope")

    assert exc_info.value.name == "nope"


def test_define_shadows_without_touching_parent() -> None:
    root = Environment()
    root.define("x", LamNumber(1.0))
    child = root.extend()
    child.define("x", LamNumber(2.0))

    assert child.get("x") == LamNumber(2.0)
    assert root.get("x") == LamNumber(1.0)


def test_assign_rules() -> None:
    root = Environment()
    child = root.extend()

    root.assign("g", LamNumber(1.0))
    assert root.get("g") == LamNumber(1.0)

    child.assign("g", LamNumber(2.0))
    assert root.get("g") == LamNumber(2.0)
    assert "g" not in child.vars

    with pytest.raises(UndefinedVariableError):
        child.assign("fresh", LamNumber(3.0))


def test_output_stream_is_inherited() -> None:
    out = io.StringIO()
    root = Environment(out=out)
    inner = root.extend().extend()

    assert inner.output() is out
    assert not inner.is_root()
    inner.write_line("hello")
    assert out.getvalue() == "hello\n"


def test_existing_scopes_follow_root_stream_change() -> None:
    first, second = io.StringIO(), io.StringIO()
    root = Environment(out=first)
    inner = root.extend()

    root.out = second
    inner.write_line("moved")

    assert first.getvalue() == ""
    assert second.getvalue() == "moved\n"


def test_closure_prints_to_rebound_run_output() -> None:
    env = make_global_env("sync", io.StringIO())
    run_synchronous(parse_program("show = λ me(x) println(x)"), env)

    out = io.StringIO()
    run_synchronous(parse_program("show(7)"), env, out=out)
    assert out.getvalue() == "7\n"


def test_write_line_defaults_to_stdout(capsys: pytest.CaptureFixture[str]) -> None:
    Environment().write_line("to stdout")
    assert capsys.readouterr().out == "to stdout\n"
