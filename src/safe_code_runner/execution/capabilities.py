from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass

from structlog import get_logger

from ..errors import UnsupportedLanguageError
from ..policy import ToolchainSettings
from .types import Language, ProbeResult, resolve_language

logger = get_logger()


@dataclass(frozen=True, slots=True)
class ToolchainProbe:
    """How to check one language's toolchain, and what to say when it is missing.

    Example:
        ```python
        probe = ToolchainProbe("gcc", ("--version",), "GCC compiler not found. Please install GCC.")
        ```
    """

    binary: str
    version_args: tuple[str, ...]
    missing_message: str


def probe_for_language(language: Language, toolchains: ToolchainSettings) -> ToolchainProbe:
    """Return the version-query probe for a language's toolchain.

    Example:
        ```python
        probe = probe_for_language(Language.JAVA, ToolchainSettings())
        ```
    """
    if language is Language.JAVA:
        return ToolchainProbe(
            toolchains.javac,
            ("-version",),
            "Java compiler (javac) not found. Please install Java JDK.",
        )
    if language is Language.PYTHON:
        return ToolchainProbe(
            toolchains.python,
            ("--version",),
            "Python3 not found. Please install Python 3.",
        )
    if language is Language.CPP:
        return ToolchainProbe(
            toolchains.cpp,
            ("--version",),
            "G++ compiler not found. Please install GCC/G++.",
        )
    return ToolchainProbe(
        toolchains.c,
        ("--version",),
        "GCC compiler not found. Please install GCC.",
    )


def probe_toolchain(
    language: str | Language,
    toolchains: ToolchainSettings,
    *,
    timeout_seconds: float = 10,
) -> ProbeResult:
    """Check whether the toolchain for `language` is reachable on this host.

    The answer is advisory: a toolchain can still vanish between this probe
    and the run, so runners handle spawn failures on their own too.

    Example:
        ```python
        result = probe_toolchain("cpp", ToolchainSettings())
        ```
    """
    try:
        resolved = resolve_language(language)
    except UnsupportedLanguageError as exc:
        return ProbeResult(available=False, error=str(exc))

    probe = probe_for_language(resolved, toolchains)
    if shutil.which(probe.binary) is None:
        logger.info("Toolchain not on PATH", language=resolved.value, binary=probe.binary)
        return ProbeResult(available=False, error=probe.missing_message)
    try:
        completed = subprocess.run(
            [probe.binary, *probe.version_args],
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.info(
            "Toolchain probe failed",
            language=resolved.value,
            binary=probe.binary,
            error=type(exc).__name__,
        )
        return ProbeResult(available=False, error=probe.missing_message)
    if completed.returncode != 0:
        logger.info(
            "Toolchain probe exited non-zero",
            language=resolved.value,
            binary=probe.binary,
            returncode=completed.returncode,
        )
        return ProbeResult(available=False, error=probe.missing_message)
    return ProbeResult(available=True)
