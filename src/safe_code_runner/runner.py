from __future__ import annotations

import time
from collections.abc import Callable

from structlog import get_logger

from .errors import UnsupportedLanguageError, WorkspaceError
from .execution.capabilities import probe_toolchain
from .execution.compiled import CompiledRunner
from .execution.engine import LanguageRunner
from .execution.interpreted import python_runner
from .execution.java import JavaRunner
from .execution.types import (
    ErrorKind,
    ExecutionRequest,
    ExecutionResult,
    Language,
    ProbeResult,
    RunnerOutcome,
    resolve_language,
)
from .execution.workspace import WorkspaceManager
from .policy import RunnerPolicy, find_banned_pattern, resolve_policy
from .sanitize import sanitize_for_log

logger = get_logger()

COMPILER_CHECK_LANGUAGES: tuple[str, ...] = ("java", "python3", "cpp", "c")

Prober = Callable[[Language], ProbeResult]


def build_runner(language: Language, policy: RunnerPolicy) -> LanguageRunner:
    """Return the language runner configured by `policy` for `language`.

    Example:
        ```python
        runner = build_runner(Language.CPP, RunnerPolicy())
        ```
    """
    tools = policy.toolchains
    if language is Language.PYTHON:
        return python_runner(tools.python, max_output_bytes=policy.max_output_bytes)
    if language is Language.JAVA:
        return JavaRunner(
            javac=tools.javac,
            java=tools.java,
            repairs=policy.java_repairs,
            compile_timeout_seconds=policy.compile_timeout_seconds,
            max_output_bytes=policy.max_output_bytes,
        )
    if language is Language.CPP:
        return CompiledRunner(
            compiler=tools.cpp,
            suffix=".cpp",
            flags=tools.cpp_flags,
            link_flags=tools.cpp_link_flags,
            compile_timeout_seconds=policy.compile_timeout_seconds,
            max_output_bytes=policy.max_output_bytes,
        )
    return CompiledRunner(
        compiler=tools.c,
        suffix=".c",
        flags=tools.c_flags,
        link_flags=tools.c_link_flags,
        compile_timeout_seconds=policy.compile_timeout_seconds,
        max_output_bytes=policy.max_output_bytes,
    )


def _elapsed_ms(started: float) -> int:
    """Return whole milliseconds elapsed since a `time.monotonic()` mark.

    Example:
        ```python
        ms = _elapsed_ms(time.monotonic())
        ```
    """
    return int(round((time.monotonic() - started) * 1000))


def _failure(kind: ErrorKind, error: str, started: float) -> ExecutionResult:
    """Build a failed result stamped with the elapsed time.

    Example:
        ```python
        result = _failure(ErrorKind.POLICY, "Invalid input types", time.monotonic())
        ```
    """
    return ExecutionResult(
        success=False,
        output="",
        error=error,
        execution_time_ms=_elapsed_ms(started),
        error_kind=kind,
    )


class ExecutionCoordinator:
    """Validate a request, pick its language runner, and normalize the verdict.

    Pre-flight checks run in a fixed order and none of them spawns the
    submission: input types, language, denylist scan, toolchain probe.
    Each request gets its own workspace, released on every exit path.

    Example:
        ```python
        coordinator = ExecutionCoordinator(RunnerPolicy())
        result = coordinator.execute(ExecutionRequest("print(input())", "python", stdin="hi"))
        ```
    """

    def __init__(
        self,
        policy: RunnerPolicy | None = None,
        *,
        workspaces: WorkspaceManager | None = None,
        prober: Prober | None = None,
    ) -> None:
        """Bind the coordinator to a policy, a workspace manager and a prober.

        Example:
            ```python
            coordinator = ExecutionCoordinator(RunnerPolicy(), prober=lambda lang: ProbeResult(True))
            ```
        """
        self._policy = policy or RunnerPolicy()
        self._workspaces = workspaces or WorkspaceManager(self._policy.resolved_workspace_root())
        self._prober = prober or self._probe

    @property
    def policy(self) -> RunnerPolicy:
        """Return the policy this coordinator enforces.

        Example:
            ```python
            coordinator.policy.default_time_limit_ms
            ```
        """
        return self._policy

    @property
    def workspaces(self) -> WorkspaceManager:
        """Return the workspace manager runs are allocated from.

        Example:
            ```python
            coordinator.workspaces.root
            ```
        """
        return self._workspaces

    def _probe(self, language: Language) -> ProbeResult:
        """Probe the configured toolchain for `language`.

        Example:
            ```python
            coordinator._probe(Language.C)
            ```
        """
        return probe_toolchain(
            language,
            self._policy.toolchains,
            timeout_seconds=self._policy.probe_timeout_seconds,
        )

    def check_compiler(self, language: str) -> ProbeResult:
        """Check toolchain availability for a caller-supplied language name.

        Example:
            ```python
            coordinator.check_compiler("c++")
            ```
        """
        try:
            resolved = resolve_language(language)
        except UnsupportedLanguageError as exc:
            return ProbeResult(available=False, error=str(exc))
        return self._prober(resolved)

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """Run one request end to end and return a normalized result.

        Example:
            ```python
            result = coordinator.execute(ExecutionRequest("print(1)", "python3"))
            ```
        """
        started = time.monotonic()

        if (
            not isinstance(request.source_code, str)
            or not isinstance(request.language, str)
            or not request.source_code
            or not request.language.strip()
        ):
            return _failure(ErrorKind.POLICY, "Invalid input types", started)
        if not isinstance(request.stdin, str):
            return _failure(ErrorKind.POLICY, "Invalid input types", started)
        time_limit_ms = request.time_limit_ms
        if isinstance(time_limit_ms, bool) or not isinstance(time_limit_ms, int) or time_limit_ms <= 0:
            return _failure(ErrorKind.POLICY, "Time limit must be a positive number of milliseconds", started)

        try:
            language = resolve_language(request.language)
        except UnsupportedLanguageError as exc:
            return _failure(ErrorKind.POLICY, str(exc), started)

        banned = find_banned_pattern(request.source_code, self._policy.banned_patterns)
        if banned is not None:
            logger.warning("Submission rejected by denylist", language=language.value, pattern=banned)
            return _failure(
                ErrorKind.POLICY,
                f"Potentially dangerous code detected: {banned}",
                started,
            )

        probe = self._prober(language)
        if not probe.available:
            return _failure(
                ErrorKind.TOOLCHAIN_MISSING,
                probe.error or f"Toolchain for {language.value} is not available",
                started,
            )

        try:
            workspace = self._workspaces.allocate()
        except WorkspaceError as exc:
            logger.error("Workspace allocation failed", error=sanitize_for_log(exc))
            return _failure(ErrorKind.RUNTIME, f"Execution failed: {exc}", started)

        logger.info("Run started", run_id=workspace.run_id, language=language.value)
        try:
            outcome = build_runner(language, self._policy).run(
                request.source_code,
                request.stdin,
                workspace,
                time_limit_ms,
            )
        except Exception as exc:
            logger.exception("Runner raised", run_id=workspace.run_id, language=language.value)
            outcome = RunnerOutcome.failure(ErrorKind.RUNTIME, str(exc) or "Execution failed")
        finally:
            self._workspaces.release(workspace)

        result = ExecutionResult.from_outcome(outcome, _elapsed_ms(started))
        logger.info(
            "Run finished",
            run_id=workspace.run_id,
            language=language.value,
            error_kind=result.error_kind.value,
            duration_ms=result.execution_time_ms,
        )
        return result


def execute_code(
    code: str,
    language: str,
    stdin: str = "",
    time_limit_ms: int | None = None,
    *,
    policy: RunnerPolicy | None = None,
    policy_file: str | None = None,
) -> ExecutionResult:
    """Compile (if needed) and run a submission once against `stdin`.

    Example:
        ```python
        from safe_code_runner import execute_code
        result = execute_code("print(int(input()) + 1)", "python3", stdin="4")
        result.output  # "5"
        ```
    """
    resolved_policy = resolve_policy(policy, policy_file)
    coordinator = ExecutionCoordinator(resolved_policy)
    return coordinator.execute(
        ExecutionRequest(
            source_code=code,
            language=language,
            stdin=stdin,
            time_limit_ms=resolved_policy.default_time_limit_ms if time_limit_ms is None else time_limit_ms,
        )
    )


def execute_with_custom_input(
    code: str,
    language: str,
    custom_input: str = "",
    time_limit_ms: int | None = None,
    *,
    policy: RunnerPolicy | None = None,
    policy_file: str | None = None,
) -> ExecutionResult:
    """Run a submission against ad-hoc input, with the longer interactive time limit.

    Example:
        ```python
        result = execute_with_custom_input(code, "java", custom_input="3\\n1 2 3")
        ```
    """
    resolved_policy = resolve_policy(policy, policy_file)
    if time_limit_ms is None:
        time_limit_ms = resolved_policy.custom_input_time_limit_ms
    return execute_code(code, language, custom_input, time_limit_ms, policy=resolved_policy)


def check_compiler_availability(
    language: str,
    *,
    policy: RunnerPolicy | None = None,
    policy_file: str | None = None,
) -> ProbeResult:
    """Report whether the toolchain for `language` is installed on this host.

    Example:
        ```python
        check_compiler_availability("java")  # ProbeResult(available=True, error=None)
        ```
    """
    return ExecutionCoordinator(resolve_policy(policy, policy_file)).check_compiler(language)


def check_all_compilers(
    languages: tuple[str, ...] = COMPILER_CHECK_LANGUAGES,
    *,
    policy: RunnerPolicy | None = None,
    policy_file: str | None = None,
) -> dict[str, ProbeResult]:
    """Probe several languages at once, keyed by the name asked for.

    Example:
        ```python
        report = check_all_compilers()  # {"java": ..., "python3": ..., "cpp": ..., "c": ...}
        ```
    """
    coordinator = ExecutionCoordinator(resolve_policy(policy, policy_file))
    return {language: coordinator.check_compiler(language) for language in languages}
