from __future__ import annotations

import secrets
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from structlog import get_logger

from ..errors import WorkspaceError
from ..sanitize import sanitize_for_log
from .types import Workspace

logger = get_logger()

_RUN_PREFIX = "run-"
_MAX_ALLOCATION_ATTEMPTS = 5


def new_run_id() -> str:
    """Return a cryptographically random, collision-free run identifier.

    Example:
        ```python
        run_id = new_run_id()  # 32 hex characters
        ```
    """
    return secrets.token_hex(16)


def remove_artifacts(*paths: Path) -> None:
    """Delete build artifacts a runner produced, ignoring ones already gone.

    Example:
        ```python
        remove_artifacts(ws.path / "submission", ws.path / "Main.class")
        ```
    """
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Artifact cleanup failed", path=str(path), error=sanitize_for_log(exc))


class WorkspaceManager:
    """Allocate and release per-run directories under one shared root.

    Each run owns exactly one `run-<token>` directory, so concurrent runs
    never share file names even when a compiler mandates a fixed one.

    Example:
        ```python
        manager = WorkspaceManager(Path("/tmp/safe-code-runner"))
        with manager.session() as ws:
            (ws.path / "submission.py").write_text("print(1)")
        ```
    """

    def __init__(self, root: Path) -> None:
        """Remember the workspace root; it is created lazily on allocation.

        Example:
            ```python
            manager = WorkspaceManager(Path("/tmp/safe-code-runner"))
            ```
        """
        self._root = root

    @property
    def root(self) -> Path:
        """Return the shared workspace root.

        Example:
            ```python
            manager.root
            ```
        """
        return self._root

    def path_for(self, run_id: str) -> Path:
        """Return the directory a run id maps to.

        Example:
            ```python
            path = manager.path_for("ab12")  # <root>/run-ab12
            ```
        """
        return self._root / f"{_RUN_PREFIX}{run_id}"

    def allocate(self) -> Workspace:
        """Create a fresh, empty workspace directory for one run.

        Example:
            ```python
            ws = manager.allocate()
            ```
        """
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WorkspaceError(f"Cannot create workspace root {self._root}: {exc}") from exc

        for _ in range(_MAX_ALLOCATION_ATTEMPTS):
            run_id = new_run_id()
            path = self.path_for(run_id)
            try:
                path.mkdir(mode=0o700)
            except FileExistsError:
                continue
            except OSError as exc:
                raise WorkspaceError(f"Cannot create workspace {path}: {exc}") from exc
            return Workspace(run_id=run_id, path=path)
        raise WorkspaceError("Could not allocate a unique workspace directory")

    def release(self, workspace: Workspace) -> None:
        """Remove a run's directory and everything in it. Safe to call twice.

        Example:
            ```python
            manager.release(ws)
            ```
        """
        path = self.path_for(workspace.run_id)
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as exc:
            logger.warning(
                "Workspace cleanup failed",
                run_id=workspace.run_id,
                error=sanitize_for_log(exc),
            )

    @contextmanager
    def session(self) -> Iterator[Workspace]:
        """Allocate a workspace and release it on every exit path.

        Example:
            ```python
            with manager.session() as ws:
                ...
            ```
        """
        workspace = self.allocate()
        try:
            yield workspace
        finally:
            self.release(workspace)
