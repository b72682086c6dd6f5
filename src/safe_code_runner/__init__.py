from .evaluator import EvaluationSummary, TestCase, TestCaseOutcome, evaluate_test_cases
from .execution.types import ErrorKind, ExecutionResult, Language, ProbeResult
from .policy import RunnerPolicy
from .runner import (
    ExecutionCoordinator,
    check_all_compilers,
    check_compiler_availability,
    execute_code,
    execute_with_custom_input,
)

__all__ = [
    "ErrorKind",
    "EvaluationSummary",
    "ExecutionCoordinator",
    "ExecutionResult",
    "Language",
    "ProbeResult",
    "RunnerPolicy",
    "TestCase",
    "TestCaseOutcome",
    "check_all_compilers",
    "check_compiler_availability",
    "evaluate_test_cases",
    "execute_code",
    "execute_with_custom_input",
]
