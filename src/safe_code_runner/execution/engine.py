from __future__ import annotations

from typing import Protocol

from .process import ProcessOutcome
from .types import ErrorKind, RunnerOutcome, Workspace


class LanguageRunner(Protocol):
    def run(
        self,
        source_code: str,
        stdin: str,
        workspace: Workspace,
        time_limit_ms: int,
    ) -> RunnerOutcome:
        """Compile (if needed) and execute one submission inside `workspace`.

        Example:
            ```python
            outcome = runner.run("print(input())", "hi", ws, time_limit_ms=2000)
            ```
        """
        ...


OUTPUT_LIMIT_MESSAGE = "Output limit exceeded"


def timeout_message(time_limit_ms: int) -> str:
    """Return the fixed, language-agnostic timeout message.

    Example:
        ```python
        timeout_message(1500)  # "Execution timeout (1.5 seconds)"
        ```
    """
    return f"Execution timeout ({time_limit_ms / 1000:g} seconds)"


def toolchain_missing_message(spawn_error: str) -> str:
    """Explain a spawn failure that happened after the availability probe passed.

    Example:
        ```python
        toolchain_missing_message("g++: No such file or directory")
        ```
    """
    return f"Toolchain unavailable: {spawn_error}. Please install it and ensure it is on PATH."


def classify_execution(outcome: ProcessOutcome, time_limit_ms: int) -> RunnerOutcome:
    """Turn the raw outcome of the run phase into a classified runner outcome.

    Example:
        ```python
        result = classify_execution(run_process(["./submission"], timeout_seconds=2), 2000)
        ```
    """
    if outcome.spawn_error is not None:
        return RunnerOutcome.failure(
            ErrorKind.TOOLCHAIN_MISSING, toolchain_missing_message(outcome.spawn_error)
        )
    if outcome.timed_out:
        return RunnerOutcome.failure(ErrorKind.TIMEOUT, timeout_message(time_limit_ms))
    if outcome.output_exceeded:
        return RunnerOutcome.failure(ErrorKind.RUNTIME, OUTPUT_LIMIT_MESSAGE, output=outcome.stdout.rstrip())
    if outcome.returncode != 0:
        error = outcome.stderr.strip() or f"Process exited with code {outcome.returncode}"
        return RunnerOutcome.failure(ErrorKind.RUNTIME, error, output=outcome.stdout.rstrip())
    return RunnerOutcome(success=True, output=outcome.stdout.rstrip())


def classify_compilation(outcome: ProcessOutcome, compile_timeout_seconds: int) -> RunnerOutcome | None:
    """Return a failed outcome for a failed compile step, or None if it succeeded.

    Example:
        ```python
        failed = classify_compilation(compile_outcome, 30)
        if failed is not None:
            return failed
        ```
    """
    if outcome.spawn_error is not None:
        return RunnerOutcome.failure(
            ErrorKind.TOOLCHAIN_MISSING, toolchain_missing_message(outcome.spawn_error)
        )
    if outcome.timed_out:
        return RunnerOutcome.failure(
            ErrorKind.COMPILATION,
            f"Compilation timed out after {compile_timeout_seconds} seconds",
        )
    if outcome.output_exceeded:
        diagnostics = outcome.stderr or outcome.stdout
        return RunnerOutcome.failure(ErrorKind.COMPILATION, f"{diagnostics}\n(compiler output truncated)".lstrip())
    if outcome.returncode != 0:
        error = outcome.stderr or outcome.stdout or f"Compiler exited with code {outcome.returncode}"
        return RunnerOutcome.failure(ErrorKind.COMPILATION, error)
    return None
