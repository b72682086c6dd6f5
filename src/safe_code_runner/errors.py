from __future__ import annotations


class CodeRunnerError(Exception):
    """Base class for errors raised by safe-code-runner itself.

    Example:
        ```python
        raise CodeRunnerError("something went wrong")
        ```
    """


class UnsupportedLanguageError(CodeRunnerError, ValueError):
    """Raised when a language name does not map to a known toolchain.

    Example:
        ```python
        raise UnsupportedLanguageError("Unsupported language: ruby")
        ```
    """


class WorkspaceError(CodeRunnerError, OSError):
    """Raised when a per-run workspace directory cannot be created.

    Example:
        ```python
        raise WorkspaceError("Cannot create workspace root /tmp/scr")
        ```
    """
