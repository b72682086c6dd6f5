from __future__ import annotations

from dataclasses import dataclass

from .engine import classify_compilation, classify_execution
from .process import run_process
from .types import RunnerOutcome, Workspace
from .workspace import remove_artifacts

SOURCE_STEM = "submission"


@dataclass(slots=True)
class CompiledRunner:
    """Two-phase runner for C and C++: compile to a native binary, then run it.

    The compile phase is bounded only by `compile_timeout_seconds`; the run
    phase is bounded by the caller's time limit.

    Example:
        ```python
        runner = CompiledRunner(compiler="g++", suffix=".cpp", flags=("-O2",))
        outcome = runner.run(source, "3 4", ws, time_limit_ms=2000)
        ```
    """

    compiler: str
    suffix: str
    flags: tuple[str, ...] = ()
    link_flags: tuple[str, ...] = ()
    compile_timeout_seconds: int = 30
    max_output_bytes: int = 128 * 1024

    def run(
        self,
        source_code: str,
        stdin: str,
        workspace: Workspace,
        time_limit_ms: int,
    ) -> RunnerOutcome:
        """Compile the submission and, only if that succeeds, execute the binary.

        Example:
            ```python
            outcome = runner.run("int main(){}", "", ws, 2000)
            ```
        """
        source_path = workspace.path / f"{SOURCE_STEM}{self.suffix}"
        binary_path = workspace.path / SOURCE_STEM
        source_path.write_text(source_code, encoding="utf-8")

        try:
            compiled = run_process(
                [
                    self.compiler,
                    *self.flags,
                    source_path.name,
                    "-o",
                    binary_path.name,
                    *self.link_flags,
                ],
                timeout_seconds=self.compile_timeout_seconds,
                cwd=workspace.path,
                max_output_bytes=self.max_output_bytes,
            )
            failed = classify_compilation(compiled, self.compile_timeout_seconds)
            if failed is not None:
                return failed

            executed = run_process(
                [str(binary_path)],
                stdin=stdin,
                timeout_seconds=time_limit_ms / 1000,
                cwd=workspace.path,
                max_output_bytes=self.max_output_bytes,
            )
        finally:
            remove_artifacts(binary_path, binary_path.with_suffix(".exe"))
        return classify_execution(executed, time_limit_ms)
