from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from safe_code_runner import (
    ErrorKind,
    EvaluationSummary,
    ExecutionResult,
    ProbeResult,
    TestCaseOutcome,
)
from scr import cli


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[tuple, dict]] = []


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    path = tmp_path / "solution.py"
    path.write_text("print(int(input()) + 1)\n", encoding="utf-8")
    return path


def test_cli_run_success(monkeypatch: pytest.MonkeyPatch, capsys, source_file: Path) -> None:
    recorder = _Recorder()

    def _fake_execute(*args, **kwargs):
        recorder.calls.append((args, kwargs))
        return ExecutionResult(success=True, output="5", execution_time_ms=12)

    monkeypatch.setattr(cli, "execute_code", _fake_execute)
    code = cli.main(["run", str(source_file), "-l", "python3", "--stdin", "4"])
    output = capsys.readouterr().out

    assert code == 0
    assert "Success (12 ms)" in output
    assert "5" in output
    args, kwargs = recorder.calls[0]
    assert args == ("print(int(input()) + 1)\n", "python3", "4", 5000)
    assert "policy" in kwargs


def test_cli_run_reads_stdin_file_and_reports_failure(
    monkeypatch: pytest.MonkeyPatch, capsys, source_file: Path, tmp_path: Path
) -> None:
    stdin_file = tmp_path / "input.txt"
    stdin_file.write_text("[1, 2]\n", encoding="utf-8")
    seen: list[str] = []

    def _fake_execute(code, language, stdin, time_limit_ms, **kwargs):
        seen.append(stdin)
        return ExecutionResult(
            success=False,
            error="Execution timeout (1 seconds)",
            execution_time_ms=1003,
            error_kind=ErrorKind.TIMEOUT,
        )

    monkeypatch.setattr(cli, "execute_code", _fake_execute)
    code = cli.main(
        ["run", str(source_file), "-l", "python", "--stdin-file", str(stdin_file), "--time-limit-ms", "1000"]
    )
    output = capsys.readouterr().out

    assert code == 1
    assert seen == ["[1, 2]\n"]
    assert "timeout" in output
    assert "Execution timeout (1 seconds)" in output


def test_cli_run_json(monkeypatch: pytest.MonkeyPatch, capsys, source_file: Path) -> None:
    monkeypatch.setattr(
        cli,
        "execute_code",
        lambda *a, **k: ExecutionResult(success=True, output="[red]5[/red]", execution_time_ms=3),
    )
    code = cli.main(["run", str(source_file), "-l", "python", "--json"])
    payload = json.loads(capsys.readouterr().out)

    assert code == 0
    assert payload["output"] == "[red]5[/red]"
    assert payload["errorKind"] == "none"
    assert payload["executionTimeMs"] == 3


def test_cli_evaluate(monkeypatch: pytest.MonkeyPatch, capsys, source_file: Path, tmp_path: Path) -> None:
    cases_file = tmp_path / "cases.json"
    cases_file.write_text(json.dumps([{"input": "4", "output": "5"}, {"input": "10", "output": "12"}]))
    seen: dict[str, object] = {}

    def _fake_evaluate(code, language, cases, time_limit_ms, **kwargs):
        seen.update(cases=cases, time_limit_ms=time_limit_ms, stop=kwargs["stop_after_compile_error"])
        return EvaluationSummary(
            results=[
                TestCaseOutcome("4", "5", "5", True, "", 10),
                TestCaseOutcome("10", "12", "11", False, "", 11),
            ],
            total_score=1,
            total_tests=2,
            percentage=50,
        )

    monkeypatch.setattr(cli, "evaluate_test_cases", _fake_evaluate)
    code = cli.main(
        ["evaluate", str(source_file), "-l", "python3", "--cases", str(cases_file), "--stop-after-compile-error"]
    )
    output = capsys.readouterr().out

    assert code == 1
    assert seen["cases"] == [{"input": "4", "output": "5"}, {"input": "10", "output": "12"}]
    assert seen["time_limit_ms"] is None
    assert seen["stop"] is True
    assert "Passed 1/2 (50%)" in output


def test_cli_evaluate_rejects_non_list_cases(source_file: Path, tmp_path: Path) -> None:
    cases_file = tmp_path / "cases.json"
    cases_file.write_text(json.dumps({"input": "4"}))
    with pytest.raises(ValueError, match="JSON list"):
        cli.main(["evaluate", str(source_file), "-l", "python", "--cases", str(cases_file)])


def test_cli_check_defaults_to_all_languages(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    seen: list[tuple[str, ...]] = []

    def _fake_check(languages, **kwargs):
        seen.append(languages)
        return {
            name: ProbeResult(available=name != "java", error=None if name != "java" else "Java compiler (javac) not found. Please install Java JDK.")
            for name in languages
        }

    monkeypatch.setattr(cli, "check_all_compilers", _fake_check)
    code = cli.main(["check"])
    output = capsys.readouterr().out

    assert code == 1
    assert seen == [("java", "python3", "cpp", "c")]
    assert "javac" in output


def test_cli_check_selected_languages(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setattr(
        cli,
        "check_all_compilers",
        lambda languages, **kwargs: {name: ProbeResult(available=True) for name in languages},
    )
    code = cli.main(["check", "c", "python"])
    output = capsys.readouterr().out
    assert code == 0
    assert "python" in output


def test_cli_policy_file_is_loaded(monkeypatch: pytest.MonkeyPatch, source_file: Path, tmp_path: Path) -> None:
    policy_file = tmp_path / "policy.toml"
    policy_file.write_text("[policy]\ncustom_input_time_limit_ms = 777\n", encoding="utf-8")
    seen: list[object] = []

    def _fake_execute(code, language, stdin, time_limit_ms, **kwargs):
        seen.append((time_limit_ms, kwargs["policy"].config_path))
        return ExecutionResult(success=True, output="", execution_time_ms=1)

    monkeypatch.setattr(cli, "execute_code", _fake_execute)
    assert cli.main(["--policy-file", str(policy_file), "run", str(source_file), "-l", "python"]) == 0
    assert seen == [(777, str(policy_file))]


def test_cli_top_level_help_examples(capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["--help"])
    output = capsys.readouterr().out
    assert exc.value.code == 0
    assert "Quick Examples:" in output
    assert "python -m scr check" in output


def test_cli_missing_language_is_a_usage_error(capsys, source_file: Path) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["run", str(source_file)])
    assert exc.value.code == 2
    assert "Error:" in capsys.readouterr().out


def test_cli_print_help_writes_to_requested_stream(capsys) -> None:
    parser = cli.build_parser()
    buffer = io.StringIO()
    parser.print_help(file=buffer)
    assert capsys.readouterr().out == ""
    help_text = buffer.getvalue()
    assert "Usage:" in help_text
    assert "safe-code-runner CLI" in help_text


def test_cli_zero_time_limit_is_rejected_not_defaulted(capsys, source_file: Path) -> None:
    code = cli.main(["run", str(source_file), "-l", "python", "--time-limit-ms", "0", "--json"])
    payload = json.loads(capsys.readouterr().out)

    assert code == 1
    assert payload["errorKind"] == "policy"
    assert payload["success"] is False
