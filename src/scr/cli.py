from __future__ import annotations

import argparse
import json
from functools import partial
from pathlib import Path
from typing import Any, Never, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich_argparse import RawTextRichHelpFormatter
from safe_code_runner import (
    EvaluationSummary,
    ExecutionResult,
    ProbeResult,
    RunnerPolicy,
    check_all_compilers,
    evaluate_test_cases,
    execute_code,
)
from safe_code_runner.runner import COMPILER_CHECK_LANGUAGES

_CONSOLE = Console(no_color=False)


class _CLIHelpFormatter(RawTextRichHelpFormatter):
    """Rich formatter with explicit high-contrast CLI styles.

    Example:
        ```python
        parser = argparse.ArgumentParser(formatter_class=_CLIHelpFormatter)
        ```
    """

    styles = {
        "argparse.args": "bold cyan",
        "argparse.groups": "bold magenta",
        "argparse.help": "white",
        "argparse.metavar": "bold yellow",
        "argparse.prog": "bold bright_blue",
        "argparse.syntax": "bold bright_white",
        "argparse.text": "bright_white",
    }


_HELP_FORMATTER = partial(
    _CLIHelpFormatter,
    max_help_position=34,
    width=120,
)


class _RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that renders errors via Rich.

    Example:
        ```python
        parser = _RichArgumentParser(prog="python -m scr")
        ```
    """

    def error(self, message: str) -> Never:
        """Render parse errors with Rich and exit.

        Example:
            ```python
            # parser.error("invalid usage")
            ```
        """
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {message}", border_style="red"))
        self.print_help()
        raise SystemExit(2)


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for running and grading submissions.

    Example:
        ```python
        parser = build_parser()
        ```
    """
    parser = _RichArgumentParser(
        prog="python -m scr",
        description=(
            "safe-code-runner CLI\n"
            "Compile and run C, C++, Java and Python submissions under a time limit.\n"
            "Isolation is a per-run directory plus a timeout; this is not a sandbox."
        ),
        epilog=(
            "Quick Examples:\n"
            "  python -m scr run solution.py -l python3 --stdin 4\n"
            "  python -m scr run Main.java -l java --stdin-file input.txt\n"
            "  python -m scr evaluate solution.cpp -l cpp --cases cases.json\n"
            "  python -m scr check\n"
            "  python -m scr check java c"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    parser.add_argument(
        "--policy-file",
        help=(
            "Load limits, denylist and toolchain names from a TOML file.\n"
            "Example: --policy-file ./policy.toml"
        ),
    )

    sub = parser.add_subparsers(
        dest="command",
        required=True,
        parser_class=_RichArgumentParser,
    )

    run_cmd = sub.add_parser(
        "run",
        help="Run a source file once against custom input.",
        description=(
            "Compile (if needed) and run one source file.\n"
            "Exits 0 when the program ran successfully."
        ),
        epilog=(
            "Examples:\n"
            "  python -m scr run solution.py -l python3 --stdin 4\n"
            "  python -m scr run solution.c -l c --time-limit-ms 1000 --json"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    run_cmd.add_argument("source", help="Path to the submission source file.")
    run_cmd.add_argument("-l", "--language", required=True, help="java, python, python3, cpp, c++ or c.")
    stdin_group = run_cmd.add_mutually_exclusive_group()
    stdin_group.add_argument("--stdin", default="", help="Text piped to the program's standard input.")
    stdin_group.add_argument("--stdin-file", help="File whose contents are piped to standard input.")
    run_cmd.add_argument(
        "--time-limit-ms",
        type=int,
        help="Wall-clock limit for the run phase (default: policy custom-input limit).",
    )
    run_cmd.add_argument("--json", action="store_true", help="Print the raw result as JSON.")

    eval_cmd = sub.add_parser(
        "evaluate",
        help="Grade a source file against a JSON list of test cases.",
        description=(
            "Run every test case in order and report score and percentage.\n"
            'Cases file: [{"input": "4", "output": "5"}, ...]'
        ),
        epilog=(
            "Examples:\n"
            "  python -m scr evaluate solution.py -l python --cases cases.json\n"
            "  python -m scr evaluate Main.java -l java --cases cases.json --stop-after-compile-error"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    eval_cmd.add_argument("source", help="Path to the submission source file.")
    eval_cmd.add_argument("-l", "--language", required=True, help="java, python, python3, cpp, c++ or c.")
    eval_cmd.add_argument("--cases", required=True, help="JSON file with a list of test cases.")
    eval_cmd.add_argument(
        "--time-limit-ms",
        type=int,
        help="Wall-clock limit per test case (default: policy default limit).",
    )
    eval_cmd.add_argument(
        "--stop-after-compile-error",
        action="store_true",
        help="Stop spawning once a case fails before execution (dry-run behaviour).",
    )
    eval_cmd.add_argument("--json", action="store_true", help="Print the raw summary as JSON.")

    check_cmd = sub.add_parser(
        "check",
        help="Show which language toolchains are installed.",
        description="Probe compilers and interpreters with their version command.",
        epilog=(
            "Examples:\n"
            "  python -m scr check\n"
            "  python -m scr check java python3"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    check_cmd.add_argument(
        "languages",
        nargs="*",
        help="Languages to probe (default: java python3 cpp c).",
    )

    return parser


def _load_policy(args: argparse.Namespace) -> RunnerPolicy:
    """Build the policy selected by global CLI flags.

    Example:
        ```python
        policy = _load_policy(args)
        ```
    """
    if args.policy_file:
        return RunnerPolicy.from_file(args.policy_file)
    return RunnerPolicy()


def _read_text(path: str) -> str:
    """Read a UTF-8 text file named on the command line.

    Example:
        ```python
        code = _read_text("solution.py")
        ```
    """
    return Path(path).read_text(encoding="utf-8")


def _load_cases(path: str) -> list[dict[str, Any]]:
    """Load a JSON list of test cases.

    Example:
        ```python
        cases = _load_cases("cases.json")
        ```
    """
    raw = json.loads(_read_text(path))
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise ValueError("Cases file must contain a JSON list of objects")
    return raw


def _print_result(result: ExecutionResult) -> None:
    """Render one execution result in a panel.

    Example:
        ```python
        _print_result(result)
        ```
    """
    if result.success:
        body = Text(result.output) if result.output else Text("(no output)", style="dim")
        title = f"Success ({result.execution_time_ms} ms)"
        style = "green"
    else:
        body = Text(result.error)
        title = f"{result.error_kind.value} ({result.execution_time_ms} ms)"
        style = "red"
    _CONSOLE.print(Panel(body, title=title, border_style=style))


def _print_summary(summary: EvaluationSummary) -> None:
    """Render per-case outcomes and the overall score.

    Example:
        ```python
        _print_summary(summary)
        ```
    """
    table = Table(title="Test Cases")
    table.add_column("#", style="cyan")
    table.add_column("Result")
    table.add_column("Expected", style="magenta")
    table.add_column("Actual")
    table.add_column("Time (ms)")
    table.add_column("Error")
    for index, outcome in enumerate(summary.results, start=1):
        table.add_row(
            str(index),
            "[green]PASS[/green]" if outcome.passed else "[red]FAIL[/red]",
            Text(outcome.expected_output.strip()),
            Text(outcome.actual_output.strip()),
            str(outcome.execution_time_ms),
            Text(outcome.error.strip().splitlines()[0] if outcome.error.strip() else ""),
        )
    _CONSOLE.print(table)
    style = "bold green" if summary.total_score == summary.total_tests else "bold yellow"
    _CONSOLE.print(
        Panel.fit(
            f"Passed {summary.total_score}/{summary.total_tests} ({summary.percentage}%)",
            style=style,
        )
    )


def _print_probes(report: dict[str, ProbeResult]) -> None:
    """Render toolchain availability in a rich table.

    Example:
        ```python
        _print_probes({"c": ProbeResult(available=True)})
        ```
    """
    table = Table(title="Toolchains")
    table.add_column("Language", style="cyan")
    table.add_column("Available")
    table.add_column("Details")
    for language, probe in report.items():
        table.add_row(
            language,
            "[green]yes[/green]" if probe.available else "[red]no[/red]",
            Text(probe.error or ""),
        )
    _CONSOLE.print(table)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the `scr` CLI command handler.

    Example:
        ```python
        code = main(["check", "python3"])
        ```
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    policy = _load_policy(args)

    if args.command == "run":
        stdin = _read_text(args.stdin_file) if args.stdin_file else args.stdin
        time_limit_ms = args.time_limit_ms
        if time_limit_ms is None:
            time_limit_ms = policy.custom_input_time_limit_ms
        result = execute_code(
            _read_text(args.source),
            args.language,
            stdin,
            time_limit_ms,
            policy=policy,
        )
        if args.json:
            _CONSOLE.print_json(json.dumps(result.to_dict()))
        else:
            _print_result(result)
        return 0 if result.success else 1
    if args.command == "evaluate":
        summary = evaluate_test_cases(
            _read_text(args.source),
            args.language,
            _load_cases(args.cases),
            args.time_limit_ms,
            policy=policy,
            stop_after_compile_error=args.stop_after_compile_error,
        )
        if args.json:
            _CONSOLE.print_json(json.dumps(summary.to_dict()))
        else:
            _print_summary(summary)
        return 0 if summary.total_score == summary.total_tests else 1
    if args.command == "check":
        languages = tuple(args.languages) or COMPILER_CHECK_LANGUAGES
        report = check_all_compilers(languages, policy=policy)
        _print_probes(report)
        return 0 if all(probe.available for probe in report.values()) else 1

    parser.error("Unhandled command")
