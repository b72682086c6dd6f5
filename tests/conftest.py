import sys
from pathlib import Path

import pytest

from safe_code_runner import ProbeResult, RunnerPolicy
from safe_code_runner.policy import ToolchainSettings


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    return tmp_path / "workspaces"


@pytest.fixture
def policy(workspace_root: Path) -> RunnerPolicy:
    """Default policy, but with the current interpreter and a private workspace root."""
    return RunnerPolicy(
        workspace_root=str(workspace_root),
        toolchains=ToolchainSettings(python=sys.executable),
    )


@pytest.fixture
def always_available():
    calls: list[str] = []

    def _probe(language) -> ProbeResult:
        calls.append(language.value)
        return ProbeResult(available=True)

    _probe.calls = calls  # type: ignore[attr-defined]
    return _probe
