from __future__ import annotations

from dataclasses import dataclass

from .engine import classify_execution
from .process import run_process
from .types import RunnerOutcome, Workspace

SOURCE_STEM = "submission"


@dataclass(slots=True)
class InterpretedRunner:
    """Single-phase runner: hand the source file straight to an interpreter.

    Example:
        ```python
        runner = InterpretedRunner(interpreter="ruby", suffix=".rb")
        ```
    """

    interpreter: str
    suffix: str
    args: tuple[str, ...] = ()
    max_output_bytes: int = 128 * 1024

    def run(
        self,
        source_code: str,
        stdin: str,
        workspace: Workspace,
        time_limit_ms: int,
    ) -> RunnerOutcome:
        """Write the source into the workspace and interpret it with stdin piped in.

        Example:
            ```python
            outcome = runner.run("puts gets", "hi", ws, 2000)
            ```
        """
        source_path = workspace.path / f"{SOURCE_STEM}{self.suffix}"
        source_path.write_text(source_code, encoding="utf-8")
        executed = run_process(
            [self.interpreter, *self.args, source_path.name],
            stdin=stdin,
            timeout_seconds=time_limit_ms / 1000,
            cwd=workspace.path,
            max_output_bytes=self.max_output_bytes,
        )
        return classify_execution(executed, time_limit_ms)


def python_runner(interpreter: str = "python3", *, max_output_bytes: int = 128 * 1024) -> InterpretedRunner:
    """Return the interpreted runner configured for Python submissions.

    Example:
        ```python
        runner = python_runner("python3.12")
        ```
    """
    return InterpretedRunner(
        interpreter=interpreter,
        suffix=".py",
        max_output_bytes=max_output_bytes,
    )
