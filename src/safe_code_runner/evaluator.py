from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from structlog import get_logger

from .execution.types import ErrorKind, ExecutionRequest, ExecutionResult
from .policy import RunnerPolicy, resolve_policy
from .runner import ExecutionCoordinator

logger = get_logger()

# Failures that do not depend on the test case's input: every later case
# would fail the same way.
INPUT_INDEPENDENT_FAILURES = frozenset(
    {ErrorKind.COMPILATION, ErrorKind.POLICY, ErrorKind.TOOLCHAIN_MISSING}
)


@dataclass(frozen=True, slots=True)
class TestCase:
    """One stdin / expected-stdout pair supplied by the grading layer.

    Example:
        ```python
        case = TestCase(input="4", expected_output="5")
        ```
    """

    __test__ = False

    input: str
    expected_output: str

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "TestCase":
        """Accept the stored `{"input", "output"}` shape or an explicit expected key.

        Example:
            ```python
            TestCase.from_dict({"input": "4", "output": "5"})
            ```
        """
        for key in ("expected_output", "expectedOutput", "output"):
            if key in raw:
                expected = raw[key]
                break
        else:
            raise ValueError("Test case is missing its expected output")
        return cls(input=str(raw.get("input", "") or ""), expected_output=str(expected))


@dataclass(slots=True)
class TestCaseOutcome:
    """Verdict for one test case.

    Example:
        ```python
        outcome = TestCaseOutcome("4", "5", "5", passed=True, error="", execution_time_ms=20)
        ```
    """

    __test__ = False

    input: str
    expected_output: str
    actual_output: str
    passed: bool
    error: str
    execution_time_ms: int
    error_kind: ErrorKind = ErrorKind.NONE

    def to_dict(self) -> dict[str, Any]:
        """Render the outcome with the external contract's key names.

        Example:
            ```python
            outcome.to_dict()["actualOutput"]
            ```
        """
        return {
            "input": self.input,
            "expectedOutput": self.expected_output,
            "actualOutput": self.actual_output,
            "passed": self.passed,
            "error": self.error,
            "executionTimeMs": self.execution_time_ms,
            "errorKind": self.error_kind.value,
        }


@dataclass(slots=True)
class EvaluationSummary:
    """Aggregate of every test case in one evaluation call.

    Example:
        ```python
        summary = EvaluationSummary(results=[], total_score=0, total_tests=0, percentage=0)
        ```
    """

    results: list[TestCaseOutcome] = field(default_factory=list)
    total_score: int = 0
    total_tests: int = 0
    percentage: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Render the summary with the external contract's key names.

        Example:
            ```python
            summary.to_dict()["totalScore"]
            ```
        """
        return {
            "results": [outcome.to_dict() for outcome in self.results],
            "totalScore": self.total_score,
            "totalTests": self.total_tests,
            "percentage": self.percentage,
        }


def outputs_match(actual: str, expected: str) -> bool:
    """Compare outputs by exact equality after a single trim of each side.

    Example:
        ```python
        outputs_match("5\\n", " 5")  # True
        ```
    """
    return actual.strip() == expected.strip()


def score_percentage(passed: int, total: int) -> int:
    """Return the rounded pass percentage, 0 when there are no cases.

    Rounds half up, so 1 of 8 scores 13.

    Example:
        ```python
        score_percentage(1, 2)  # 50
        ```
    """
    if total <= 0:
        return 0
    return (200 * passed + total) // (2 * total)


def _coerce_case(case: TestCase | Mapping[str, Any]) -> TestCase:
    """Accept `TestCase` instances or raw mappings.

    Example:
        ```python
        _coerce_case({"input": "1", "output": "2"})
        ```
    """
    if isinstance(case, TestCase):
        return case
    return TestCase.from_dict(case)


def _outcome_for(case: TestCase, result: ExecutionResult) -> TestCaseOutcome:
    """Judge one execution result against its test case.

    Example:
        ```python
        _outcome_for(TestCase("4", "5"), ExecutionResult(success=True, output="5"))
        ```
    """
    return TestCaseOutcome(
        input=case.input,
        expected_output=case.expected_output,
        actual_output=result.output,
        passed=result.success and outputs_match(result.output, case.expected_output),
        error=result.error,
        execution_time_ms=result.execution_time_ms,
        error_kind=result.error_kind,
    )


class TestCaseEvaluator:
    """Run a submission against every test case, in order, and score it.

    Example:
        ```python
        evaluator = TestCaseEvaluator(ExecutionCoordinator(RunnerPolicy()))
        summary = evaluator.evaluate("print(input())", "python", [TestCase("a", "a")])
        ```
    """

    __test__ = False

    def __init__(self, coordinator: ExecutionCoordinator) -> None:
        """Bind the evaluator to the coordinator that performs each run.

        Example:
            ```python
            evaluator = TestCaseEvaluator(ExecutionCoordinator())
            ```
        """
        self._coordinator = coordinator

    def evaluate(
        self,
        code: str,
        language: str,
        test_cases: Iterable[TestCase | Mapping[str, Any]],
        time_limit_ms: int | None = None,
        *,
        stop_after_compile_error: bool = False,
    ) -> EvaluationSummary:
        """Evaluate every case; never aborts early unless asked to.

        With `stop_after_compile_error`, a compilation, policy or toolchain
        failure is copied onto the remaining cases instead of re-running
        them, so the result list still has one entry per case.

        Example:
            ```python
            summary = evaluator.evaluate(code, "cpp", cases, 2000, stop_after_compile_error=True)
            ```
        """
        cases = [_coerce_case(case) for case in test_cases]
        limit = self._coordinator.policy.default_time_limit_ms if time_limit_ms is None else time_limit_ms

        results: list[TestCaseOutcome] = []
        repeated_failure: ExecutionResult | None = None
        for case in cases:
            if repeated_failure is not None:
                result = repeated_failure
            else:
                result = self._coordinator.execute(
                    ExecutionRequest(
                        source_code=code,
                        language=language,
                        stdin=case.input,
                        time_limit_ms=limit,
                    )
                )
                if stop_after_compile_error and result.error_kind in INPUT_INDEPENDENT_FAILURES:
                    repeated_failure = ExecutionResult(
                        success=False,
                        output="",
                        error=result.error,
                        execution_time_ms=0,
                        error_kind=result.error_kind,
                    )
            results.append(_outcome_for(case, result))

        total_score = sum(1 for outcome in results if outcome.passed)
        summary = EvaluationSummary(
            results=results,
            total_score=total_score,
            total_tests=len(cases),
            percentage=score_percentage(total_score, len(cases)),
        )
        logger.info(
            "Evaluation finished",
            total_score=summary.total_score,
            total_tests=summary.total_tests,
            percentage=summary.percentage,
        )
        return summary


def evaluate_test_cases(
    code: str,
    language: str,
    test_cases: Iterable[TestCase | Mapping[str, Any]],
    time_limit_ms: int | None = None,
    *,
    policy: RunnerPolicy | None = None,
    policy_file: str | None = None,
    stop_after_compile_error: bool = False,
) -> EvaluationSummary:
    """Grade a submission against a set of test cases.

    Example:
        ```python
        from safe_code_runner import evaluate_test_cases
        summary = evaluate_test_cases(
            "print(int(input()) + 1)",
            "python3",
            [{"input": "4", "output": "5"}, {"input": "10", "output": "12"}],
        )
        summary.percentage  # 50
        ```
    """
    coordinator = ExecutionCoordinator(resolve_policy(policy, policy_file))
    return TestCaseEvaluator(coordinator).evaluate(
        code,
        language,
        test_cases,
        time_limit_ms,
        stop_after_compile_error=stop_after_compile_error,
    )
