from .engine import LanguageRunner
from .types import ErrorKind, ExecutionRequest, ExecutionResult, Language, RunnerOutcome, Workspace
from .workspace import WorkspaceManager

__all__ = [
    "ErrorKind",
    "ExecutionRequest",
    "ExecutionResult",
    "Language",
    "LanguageRunner",
    "RunnerOutcome",
    "Workspace",
    "WorkspaceManager",
]
