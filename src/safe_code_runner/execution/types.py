from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from ..errors import UnsupportedLanguageError


class Language(str, Enum):
    """Languages a submission can be written in."""

    C = "c"
    CPP = "cpp"
    JAVA = "java"
    PYTHON = "python"


class ErrorKind(str, Enum):
    """Classification of a failed execution. Exactly one is set per result."""

    NONE = "none"
    COMPILATION = "compilation"
    RUNTIME = "runtime"
    TIMEOUT = "timeout"
    POLICY = "policy"
    TOOLCHAIN_MISSING = "toolchain-missing"


_LANGUAGE_ALIASES: dict[str, Language] = {
    "c": Language.C,
    "cpp": Language.CPP,
    "c++": Language.CPP,
    "java": Language.JAVA,
    "python": Language.PYTHON,
    "python3": Language.PYTHON,
}

SUPPORTED_LANGUAGE_NAMES: tuple[str, ...] = tuple(_LANGUAGE_ALIASES)


def resolve_language(value: str | Language) -> Language:
    """Map a caller-supplied language name onto a `Language`.

    Matching is case-insensitive and ignores surrounding whitespace.

    Example:
        ```python
        lang = resolve_language("Python3")  # Language.PYTHON
        ```
    """
    if isinstance(value, Language):
        return value
    key = str(value).strip().lower()
    try:
        return _LANGUAGE_ALIASES[key]
    except KeyError:
        raise UnsupportedLanguageError(f"Unsupported language: {value}") from None


@dataclass(slots=True)
class ExecutionRequest:
    """One submission to compile (if needed) and run against a single stdin.

    Example:
        ```python
        req = ExecutionRequest(source_code="print(1)", language="python", time_limit_ms=2000)
        ```
    """

    source_code: str
    language: str
    stdin: str = ""
    time_limit_ms: int = 2000


@dataclass(slots=True)
class Workspace:
    """Per-run directory that owns every artifact of one in-flight run.

    Example:
        ```python
        ws = Workspace(run_id="3f2a...", path=Path("/tmp/safe-code-runner/run-3f2a..."))
        ```
    """

    run_id: str
    path: Path


@dataclass(slots=True)
class RunnerOutcome:
    """What a language runner reports; timing is added by the coordinator.

    Example:
        ```python
        out = RunnerOutcome(success=True, output="42")
        ```
    """

    success: bool
    output: str = ""
    error: str = ""
    error_kind: ErrorKind = ErrorKind.NONE

    @classmethod
    def failure(cls, kind: ErrorKind, error: str, output: str = "") -> "RunnerOutcome":
        """Build a failed outcome of the given kind.

        Example:
            ```python
            out = RunnerOutcome.failure(ErrorKind.RUNTIME, "Traceback ...")
            ```
        """
        return cls(success=False, output=output, error=error, error_kind=kind)


@dataclass(slots=True)
class ExecutionResult:
    """Normalized verdict of a single run.

    Example:
        ```python
        result = ExecutionResult(success=True, output="5", execution_time_ms=31)
        ```
    """

    success: bool
    output: str = ""
    error: str = ""
    execution_time_ms: int = 0
    error_kind: ErrorKind = ErrorKind.NONE

    def __post_init__(self) -> None:
        """Enforce the success/error-kind pairing.

        Example:
            ```python
            ExecutionResult(success=False, error="boom", error_kind=ErrorKind.RUNTIME)
            ```
        """
        if self.success and (self.error_kind is not ErrorKind.NONE or self.error):
            raise ValueError("A successful result cannot carry an error")
        if not self.success and self.error_kind is ErrorKind.NONE:
            raise ValueError("A failed result must carry an error kind")

    @classmethod
    def from_outcome(cls, outcome: RunnerOutcome, execution_time_ms: int) -> "ExecutionResult":
        """Attach wall-clock timing to a runner outcome.

        Example:
            ```python
            result = ExecutionResult.from_outcome(RunnerOutcome(success=True, output="1"), 12)
            ```
        """
        return cls(
            success=outcome.success,
            output=outcome.output,
            error="" if outcome.success else outcome.error,
            execution_time_ms=execution_time_ms,
            error_kind=outcome.error_kind,
        )

    def to_dict(self) -> dict[str, Any]:
        """Render the result with the external contract's key names.

        Example:
            ```python
            payload = result.to_dict()  # {"success": True, "executionTimeMs": 31, ...}
            ```
        """
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "executionTimeMs": self.execution_time_ms,
            "errorKind": self.error_kind.value,
        }


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Whether a language's toolchain is reachable on this host.

    Example:
        ```python
        probe = ProbeResult(available=False, error="G++ compiler not found. Please install GCC/G++.")
        ```
    """

    available: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Render the probe result, omitting `error` when available.

        Example:
            ```python
            ProbeResult(available=True).to_dict()  # {"available": True}
            ```
        """
        if self.available:
            return {"available": True}
        return {"available": False, "error": self.error}
