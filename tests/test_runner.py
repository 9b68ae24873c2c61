from __future__ import annotations

import asyncio
import io
import json

import pytest

from lambdalang.runner import main, parse_program, run_cps
from tests.support.harness import make_global_env, run_capture, verify_result


def _main(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[str, str]:
    main(list(argv))
    captured = capsys.readouterr()
    return captured.out, captured.err


def test_main_runs_literal_source(capsys: pytest.CaptureFixture[str]) -> None:
    out, err = _main(capsys, 'println("hi"); 1 + 1')
    assert out == "hi\n"
    assert err == ""


def test_main_runs_file(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "range.lam"
    path.write_text("r = λ(a) if a < 3 { println(a); r(a + 1) }; r(0)", encoding="utf-8")

    out, _ = _main(capsys, str(path))
    assert out == "0\n1\n2\n"


@pytest.mark.parametrize("flags", [["--cps"], ["--mode=cps"], ["--mode", "cps"]])
def test_main_cps_flags(flags: list, capsys: pytest.CaptureFixture[str]) -> None:
    out, _ = _main(capsys, *flags, 'sleep(1); println("late")')
    assert out == "late\nfalse\n"


@pytest.mark.parametrize(
    "source, expected",
    [
        pytest.param("1 + 2;", "3\n", id="number"),
        pytest.param('"done"', "done\n", id="string"),
        pytest.param('println("a"); halt(); 1', "a\n", id="halted-has-no-value"),
    ],
)
def test_main_cps_prints_final_value(source: str, expected: str, capsys: pytest.CaptureFixture[str]) -> None:
    out, _ = _main(capsys, "--cps", source)
    assert out == expected


def test_main_sync_does_not_print_final_value(capsys: pytest.CaptureFixture[str]) -> None:
    out, _ = _main(capsys, "1 + 2")
    assert out == ""


def test_main_lark_parser(capsys: pytest.CaptureFixture[str]) -> None:
    out, _ = _main(capsys, "--lark", "println(2 * 21)")
    assert out == "42\n"


def test_main_dumps_ast(capsys: pytest.CaptureFixture[str]) -> None:
    out, _ = _main(capsys, "--ast", "x = 1")
    data = json.loads(out)
    assert data["type"] == "prog"
    assert data["body"][0]["type"] == "assign"


@pytest.mark.parametrize(
    "source, message",
    [
        pytest.param("missing", "Error: Undefined variable missing", id="runtime"),
        pytest.param("f(", "Error: ", id="parse"),
        pytest.param("halt()", "Error: Program halted", id="halt-in-sync"),
    ],
)
def test_main_reports_errors(source: str, message: str, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main([source])

    assert exc_info.value.code == 1
    assert capsys.readouterr().err.startswith(message)


def test_main_rejects_unknown_mode() -> None:
    with pytest.raises(SystemExit, match="Unknown mode: lazy"):
        main(["--mode=lazy", "1"])


def test_main_rejects_extra_arguments() -> None:
    with pytest.raises(SystemExit, match="Unexpected argument: 2"):
        main(["1", "2"])


def test_parse_program_rejects_unknown_parser() -> None:
    with pytest.raises(ValueError):
        parse_program("1", "peg")  # type: ignore[arg-type]


def test_run_rejects_unknown_mode() -> None:
    with pytest.raises(ValueError):
        run_capture("1", "lazy")


def test_run_cps_on_explicit_loop() -> None:
    out = io.StringIO()
    seen: list = []

    async def scenario() -> None:
        loop = asyncio.get_running_loop()
        finished = loop.create_future()

        def on_result(value) -> None:
            seen.append(value)
            finished.set_result(None)

        run_cps(parse_program("sleep(1); 5"), out=out, on_result=on_result, loop=loop)
        assert seen == []
        await finished

    asyncio.run(scenario())
    verify_result(seen[0], "number", 5)


def test_shared_environment_persists_between_runs() -> None:
    from lambdalang.runner import run_synchronous

    env = make_global_env("sync", io.StringIO())
    run_synchronous(parse_program("x = 41"), env)
    verify_result(run_synchronous(parse_program("x + 1"), env), "number", 42)
