from __future__ import annotations

import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_FALLBACK_TOOLCHAINS: dict[str, Any] = {
    "python": "python3",
    "javac": "javac",
    "java": "java",
    "cpp": "g++",
    "c": "gcc",
    "cpp_flags": ["-O2"],
    "c_flags": ["-O2"],
    "cpp_link_flags": [],
    "c_link_flags": ["-lm"],
}


def _default_policy_path() -> Path:
    """Return bundled default policy TOML path.

    Example:
        ```python
        path = _default_policy_path()
        ```
    """
    return Path(__file__).with_name("default_policy.toml")


def _read_policy_toml(path: Path) -> dict[str, Any]:
    """Read policy TOML and return normalized policy dictionary.

    Example:
        ```python
        raw = _read_policy_toml(Path("/tmp/policy.toml"))
        ```
    """
    if not path.exists():
        return {
            "default_time_limit_ms": 2000,
            "custom_input_time_limit_ms": 5000,
            "compile_timeout_seconds": 30,
            "probe_timeout_seconds": 10,
            "max_output_kb": 128,
            "java_repairs": True,
            "banned_patterns": [
                "eval(",
                "exec(",
                "import os",
                "import subprocess",
                "from os import",
                "from subprocess import",
            ],
            "toolchains": dict(_FALLBACK_TOOLCHAINS),
        }
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    policy_obj = raw.get("policy", raw)
    if not isinstance(policy_obj, dict):
        raise ValueError("Policy config must be a TOML table")
    return policy_obj


def _list_of_str(value: Any, field_name: str) -> list[str]:
    """Validate and normalize a list-of-strings policy field.

    Example:
        ```python
        patterns = _list_of_str(["eval(", "exec("], "banned_patterns")
        ```
    """
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be a list of strings")
    out: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"'{field_name}' must contain only strings")
        out.append(item)
    return out


def _positive_int(value: Any, field_name: str) -> int:
    """Validate a strictly positive integer policy field.

    Example:
        ```python
        limit = _positive_int(2000, "default_time_limit_ms")
        ```
    """
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"'{field_name}' must be a positive integer")
    return value


@dataclass(frozen=True, slots=True)
class ToolchainSettings:
    """Executable names and flags for every supported toolchain.

    Example:
        ```python
        tools = ToolchainSettings(python="python3.12", cpp="clang++")
        ```
    """

    python: str = "python3"
    javac: str = "javac"
    java: str = "java"
    cpp: str = "g++"
    c: str = "gcc"
    cpp_flags: tuple[str, ...] = ("-O2",)
    c_flags: tuple[str, ...] = ("-O2",)
    cpp_link_flags: tuple[str, ...] = ()
    c_link_flags: tuple[str, ...] = ("-lm",)

    @classmethod
    def from_mapping(cls, raw: Any) -> "ToolchainSettings":
        """Build toolchain settings from a `[policy.toolchains]` table.

        Example:
            ```python
            tools = ToolchainSettings.from_mapping({"c": "clang", "c_flags": ["-O0"]})
            ```
        """
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ValueError("'toolchains' must be a TOML table")
        defaults = cls()
        values: dict[str, Any] = {}
        for name in ("python", "javac", "java", "cpp", "c"):
            item = raw.get(name, getattr(defaults, name))
            if not isinstance(item, str) or not item.strip():
                raise ValueError(f"'toolchains.{name}' must be a non-empty string")
            values[name] = item.strip()
        for name in ("cpp_flags", "c_flags", "cpp_link_flags", "c_link_flags"):
            if name in raw:
                values[name] = tuple(_list_of_str(raw[name], f"toolchains.{name}"))
        return cls(**values)


_DEFAULT_POLICY_RAW = _read_policy_toml(_default_policy_path())
DEFAULT_TIME_LIMIT_MS = int(_DEFAULT_POLICY_RAW.get("default_time_limit_ms", 2000))
DEFAULT_CUSTOM_INPUT_TIME_LIMIT_MS = int(
    _DEFAULT_POLICY_RAW.get("custom_input_time_limit_ms", 5000)
)
DEFAULT_COMPILE_TIMEOUT_SECONDS = int(_DEFAULT_POLICY_RAW.get("compile_timeout_seconds", 30))
DEFAULT_PROBE_TIMEOUT_SECONDS = int(_DEFAULT_POLICY_RAW.get("probe_timeout_seconds", 10))
DEFAULT_MAX_OUTPUT_KB = int(_DEFAULT_POLICY_RAW.get("max_output_kb", 128))
DEFAULT_JAVA_REPAIRS = bool(_DEFAULT_POLICY_RAW.get("java_repairs", True))
DEFAULT_BANNED_PATTERNS = _list_of_str(
    _DEFAULT_POLICY_RAW.get("banned_patterns", []), "banned_patterns"
)
DEFAULT_TOOLCHAINS = ToolchainSettings.from_mapping(
    _DEFAULT_POLICY_RAW.get("toolchains", _FALLBACK_TOOLCHAINS)
)


def default_workspace_root() -> Path:
    """Return the shared parent directory for per-run workspaces.

    Example:
        ```python
        root = default_workspace_root()  # e.g. /tmp/safe-code-runner
        ```
    """
    return Path(tempfile.gettempdir()) / "safe-code-runner"


@dataclass(slots=True)
class RunnerPolicy:
    """Execution policy for student submissions.

    Example:
        ```python
        policy = RunnerPolicy(default_time_limit_ms=1000, banned_patterns=["eval("])
        ```
    """

    default_time_limit_ms: int = DEFAULT_TIME_LIMIT_MS
    custom_input_time_limit_ms: int = DEFAULT_CUSTOM_INPUT_TIME_LIMIT_MS
    compile_timeout_seconds: int = DEFAULT_COMPILE_TIMEOUT_SECONDS
    probe_timeout_seconds: int = DEFAULT_PROBE_TIMEOUT_SECONDS
    max_output_kb: int = DEFAULT_MAX_OUTPUT_KB
    java_repairs: bool = DEFAULT_JAVA_REPAIRS
    banned_patterns: list[str] = field(default_factory=lambda: DEFAULT_BANNED_PATTERNS.copy())
    toolchains: ToolchainSettings = DEFAULT_TOOLCHAINS
    workspace_root: str | None = None
    config_path: str | None = None

    def __post_init__(self) -> None:
        """Validate numeric limits after dataclass initialization.

        Example:
            ```python
            RunnerPolicy(default_time_limit_ms=500)
            ```
        """
        for name in (
            "default_time_limit_ms",
            "custom_input_time_limit_ms",
            "compile_timeout_seconds",
            "probe_timeout_seconds",
            "max_output_kb",
        ):
            _positive_int(getattr(self, name), name)
        self.banned_patterns = _list_of_str(self.banned_patterns, "banned_patterns")

    @property
    def max_output_bytes(self) -> int:
        """Return the captured-output cap in bytes.

        Example:
            ```python
            RunnerPolicy(max_output_kb=1).max_output_bytes  # 1024
            ```
        """
        return self.max_output_kb * 1024

    def resolved_workspace_root(self) -> Path:
        """Return the workspace root, falling back to the system temp dir.

        Example:
            ```python
            root = RunnerPolicy(workspace_root="/srv/runs").resolved_workspace_root()
            ```
        """
        if self.workspace_root:
            return Path(self.workspace_root).expanduser()
        return default_workspace_root()

    @classmethod
    def from_file(cls, config_path: str) -> "RunnerPolicy":
        """Create a policy instance from a TOML file.

        Example:
            ```python
            policy = RunnerPolicy.from_file("/tmp/policy.toml")
            ```
        """
        raw = _read_policy_toml(Path(config_path))
        workspace_root = raw.get("workspace_root")
        if workspace_root is not None and not isinstance(workspace_root, str):
            raise ValueError("'workspace_root' must be a string")
        return cls(
            default_time_limit_ms=raw.get("default_time_limit_ms", DEFAULT_TIME_LIMIT_MS),
            custom_input_time_limit_ms=raw.get(
                "custom_input_time_limit_ms", DEFAULT_CUSTOM_INPUT_TIME_LIMIT_MS
            ),
            compile_timeout_seconds=raw.get(
                "compile_timeout_seconds", DEFAULT_COMPILE_TIMEOUT_SECONDS
            ),
            probe_timeout_seconds=raw.get("probe_timeout_seconds", DEFAULT_PROBE_TIMEOUT_SECONDS),
            max_output_kb=raw.get("max_output_kb", DEFAULT_MAX_OUTPUT_KB),
            java_repairs=bool(raw.get("java_repairs", DEFAULT_JAVA_REPAIRS)),
            banned_patterns=_list_of_str(
                raw.get("banned_patterns", DEFAULT_BANNED_PATTERNS), "banned_patterns"
            ),
            toolchains=ToolchainSettings.from_mapping(raw.get("toolchains")),
            workspace_root=workspace_root,
            config_path=config_path,
        )


def find_banned_pattern(source_code: str, patterns: list[str]) -> str | None:
    """Return the first denylisted substring present in the source, if any.

    This is a cheap first-line filter over raw text, not an isolation boundary.

    Example:
        ```python
        hit = find_banned_pattern("import os\\nprint(1)", ["import os"])  # "import os"
        ```
    """
    for pattern in patterns:
        if pattern and pattern in source_code:
            return pattern
    return None


def resolve_policy(policy: RunnerPolicy | None, policy_file: str | None) -> RunnerPolicy:
    """Resolve the effective policy object for a run.

    Example:
        ```python
        policy = resolve_policy(None, "/tmp/policy.toml")
        ```
    """
    if policy is not None and policy_file is not None:
        raise ValueError("Provide either 'policy' or 'policy_file', not both")
    if policy is None and policy_file is not None:
        return RunnerPolicy.from_file(policy_file)
    if policy is None:
        return RunnerPolicy()
    if policy.config_path is not None:
        return RunnerPolicy.from_file(policy.config_path)
    return policy
