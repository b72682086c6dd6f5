import pytest

from safe_code_runner import ErrorKind, ExecutionResult, Language, ProbeResult
from safe_code_runner.errors import UnsupportedLanguageError
from safe_code_runner.execution.types import resolve_language


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("java", Language.JAVA),
        ("Java", Language.JAVA),
        ("python", Language.PYTHON),
        ("PYTHON3", Language.PYTHON),
        ("cpp", Language.CPP),
        ("C++", Language.CPP),
        ("c", Language.C),
        ("  c  ", Language.C),
    ],
)
def test_resolve_language_aliases(name: str, expected: Language) -> None:
    assert resolve_language(name) is expected


def test_resolve_language_rejects_unknown() -> None:
    with pytest.raises(UnsupportedLanguageError, match="Unsupported language: ruby"):
        resolve_language("ruby")


def test_unsupported_language_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        resolve_language("")


def test_success_result_cannot_carry_error() -> None:
    with pytest.raises(ValueError):
        ExecutionResult(success=True, error="boom")
    with pytest.raises(ValueError):
        ExecutionResult(success=True, error_kind=ErrorKind.RUNTIME)


def test_failed_result_requires_error_kind() -> None:
    with pytest.raises(ValueError):
        ExecutionResult(success=False, error="boom")


def test_result_to_dict_uses_contract_keys() -> None:
    result = ExecutionResult(
        success=False,
        error="Execution timeout (1 seconds)",
        execution_time_ms=1004,
        error_kind=ErrorKind.TIMEOUT,
    )
    assert result.to_dict() == {
        "success": False,
        "output": "",
        "error": "Execution timeout (1 seconds)",
        "executionTimeMs": 1004,
        "errorKind": "timeout",
    }


def test_probe_result_omits_error_when_available() -> None:
    assert ProbeResult(available=True).to_dict() == {"available": True}
    assert ProbeResult(available=False, error="missing").to_dict() == {
        "available": False,
        "error": "missing",
    }
