from __future__ import annotations

import io
import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Sequence

from structlog import get_logger

logger = get_logger()

_CHUNK_SIZE = 64 * 1024
_POLL_INTERVAL_SECONDS = 0.05
_READER_JOIN_SECONDS = 1.0


@dataclass(slots=True)
class ProcessOutcome:
    """Raw result of one spawned process.

    Example:
        ```python
        out = ProcessOutcome(stdout="5\\n", stderr="", returncode=0, timed_out=False)
        ```
    """

    stdout: str
    stderr: str
    returncode: int
    timed_out: bool
    spawn_error: str | None = None
    output_exceeded: bool = False

    @property
    def ok(self) -> bool:
        """Return True when the process ran to a zero exit.

        Example:
            ```python
            if outcome.ok: ...
            ```
        """
        return (
            not self.timed_out
            and not self.output_exceeded
            and self.spawn_error is None
            and self.returncode == 0
        )


def _drain(stream: io.BufferedReader, sink: bytearray, limit: int, overflow: threading.Event) -> None:
    """Read `stream` to EOF, keeping at most `limit` bytes in `sink`.

    Example:
        ```python
        _drain(proc.stdout, buffer, 1024, overflow)
        ```
    """
    try:
        while chunk := stream.read1(_CHUNK_SIZE):
            room = limit - len(sink)
            if room > 0:
                sink.extend(chunk[:room])
            if len(chunk) > room:
                overflow.set()
    except (OSError, ValueError):
        # Pipe closed while the process group was being torn down.
        pass
    finally:
        stream.close()


def _feed(stream: IO[bytes], data: bytes) -> None:
    """Write all of `data` to the child's stdin, then close it.

    Example:
        ```python
        _feed(proc.stdin, b"4\\n")
        ```
    """
    try:
        if data:
            stream.write(data)
    except (OSError, ValueError):
        # Child exited without reading its input.
        pass
    finally:
        try:
            stream.close()
        except OSError:
            pass


def _kill_group(proc: subprocess.Popen[bytes]) -> None:
    """Kill the child and every process left in its session.

    Example:
        ```python
        _kill_group(proc)
        ```
    """
    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
    if proc.poll() is None:
        proc.kill()


def _start_thread(target: Any, *args: Any) -> threading.Thread:
    """Start a daemon helper thread for one pipe.

    Example:
        ```python
        reader = _start_thread(_drain, proc.stdout, buffer, limit, overflow)
        ```
    """
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


def run_process(
    command: Sequence[str],
    *,
    stdin: str = "",
    timeout_seconds: float,
    cwd: Path | None = None,
    max_output_bytes: int = 128 * 1024,
) -> ProcessOutcome:
    """Spawn a process, feed stdin once, and wait for it under a hard timeout.

    stdin is written in full and then closed, so an empty string means the
    child sees EOF immediately. The child leads its own session; once it
    exits, times out, or writes more than `max_output_bytes` to either
    stream, the whole session is killed so no descendant outlives the run.
    At most `max_output_bytes` per stream is ever held in memory. A binary
    that cannot be spawned at all is reported through `spawn_error` instead
    of raising.

    Example:
        ```python
        out = run_process(["python3", "main.py"], stdin="4\\n", timeout_seconds=2, cwd=ws.path)
        ```
    """
    try:
        proc = subprocess.Popen(
            list(command),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
            start_new_session=True,
        )
    except OSError as exc:
        return ProcessOutcome(
            stdout="",
            stderr="",
            returncode=127,
            timed_out=False,
            spawn_error=f"{command[0]}: {exc.strerror or exc}",
        )

    stdout_buf = bytearray()
    stderr_buf = bytearray()
    overflow = threading.Event()
    assert proc.stdin is not None and proc.stdout is not None and proc.stderr is not None
    helpers = [
        _start_thread(_feed, proc.stdin, stdin.encode("utf-8")),
        _start_thread(_drain, proc.stdout, stdout_buf, max_output_bytes, overflow),
        _start_thread(_drain, proc.stderr, stderr_buf, max_output_bytes, overflow),
    ]

    deadline = time.monotonic() + timeout_seconds
    timed_out = False
    try:
        while not overflow.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                timed_out = True
                break
            try:
                proc.wait(timeout=min(_POLL_INTERVAL_SECONDS, remaining))
                break
            except subprocess.TimeoutExpired:
                continue
    finally:
        _kill_group(proc)
        proc.wait()
        for helper in helpers:
            helper.join(_READER_JOIN_SECONDS)

    if timed_out:
        logger.warning("Process timed out", command=command[0], timeout_seconds=timeout_seconds)
        return ProcessOutcome(stdout="", stderr="", returncode=124, timed_out=True)
    output_exceeded = overflow.is_set()
    if output_exceeded:
        logger.warning("Process output limit exceeded", command=command[0], limit_bytes=max_output_bytes)
    return ProcessOutcome(
        stdout=stdout_buf.decode("utf-8", errors="replace"),
        stderr=stderr_buf.decode("utf-8", errors="replace"),
        returncode=proc.returncode,
        timed_out=False,
        output_exceeded=output_exceeded,
    )
