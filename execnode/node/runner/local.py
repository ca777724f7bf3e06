"""Local process execution engine.

``LocalCommandRunner`` runs a command line through a local shell and returns
a ``CommandResult`` that is bounded in time no matter how the started program
behaves.

Completion detection
--------------------

Completion means *the started process exited*, not *its output reached EOF*.
Programs that spawn detached background children (IPC clients, daemons,
``cmd & ...``) hand the children a copy of the stdout/stderr write ends. The
pipes then stay open after the started process is gone, and anything that
waits for EOF (``communicate()``, or an asyncio process whose ``wait()`` is
tied to pipe closure) blocks for the lifetime of those children.

So the engine uses three daemon threads per run:

- an exit watcher blocking on ``Popen.wait()`` (``waitpid``), which only
  depends on the process itself,
- one reader per pipe, copying whatever bytes are available into a buffer.

Each thread resolves an asyncio future on the caller's loop. The caller races
the exit future against the timeout, then gives the readers a short bounded
drain window to deliver what is already buffered. Output that is still
arriving after the window is dropped and a warning is logged.
"""

from __future__ import annotations

import asyncio
import os
import subprocess
import threading
import time
from typing import IO, Any, Dict, List, Optional

from execnode.core.logging_config import get_logger

from ..schemas.command import CommandRequest, CommandResult
from .invocation import build_invocation, merge_environment
from .process_tree import kill_process_tree

logger = get_logger(__name__)

#: Grace window for buffered output after the process exited (or was killed).
OUTPUT_DRAIN_TIMEOUT_MS = 500

_READ_CHUNK_BYTES = 64 * 1024


def _resolve_threadsafe(loop: asyncio.AbstractEventLoop, future: "asyncio.Future[Any]", value: Any) -> None:
    def _set() -> None:
        if not future.done():
            future.set_result(value)

    try:
        loop.call_soon_threadsafe(_set)
    except RuntimeError:
        # The loop is closed: the run that was waiting is gone.
        logger.debug("[EXEC] Event loop closed before a process notification could be delivered")


class _PipeCollector:
    """Copy one pipe into memory on a daemon thread; ``finished`` resolves at EOF."""

    def __init__(self, stream: IO[bytes], loop: asyncio.AbstractEventLoop, name: str) -> None:
        self._stream = stream
        self._loop = loop
        self._chunks: List[bytes] = []
        self._lock = threading.Lock()
        self.finished: "asyncio.Future[None]" = loop.create_future()
        self._thread = threading.Thread(target=self._pump, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _pump(self) -> None:
        try:
            while True:
                chunk = self._stream.read1(_READ_CHUNK_BYTES)
                if not chunk:
                    break
                with self._lock:
                    self._chunks.append(chunk)
        except (OSError, ValueError) as e:
            logger.debug(f"[EXEC] Pipe reader {self._thread.name} stopped: {e}")
        finally:
            try:
                self._stream.close()
            except OSError:
                pass
            _resolve_threadsafe(self._loop, self.finished, None)

    def text(self) -> str:
        """Decoded, right-trimmed snapshot of everything captured so far."""
        with self._lock:
            data = b"".join(self._chunks)
        return data.decode("utf-8", errors="replace").rstrip()


def _watch_exit(proc: subprocess.Popen, loop: asyncio.AbstractEventLoop) -> "asyncio.Future[int]":
    """Resolve a future with the exit code as soon as ``proc`` exits."""
    future: "asyncio.Future[int]" = loop.create_future()

    def _wait() -> None:
        try:
            code = proc.wait()
        except Exception as e:
            logger.warning(f"[EXEC] Waiting for PID {proc.pid} failed: {e}")
            code = proc.returncode if proc.returncode is not None else -1
        _resolve_threadsafe(loop, future, code)

    threading.Thread(target=_wait, name=f"execnode-{proc.pid}-exit", daemon=True).start()
    return future


def _platform_popen_kwargs() -> Dict[str, Any]:
    if os.name == "nt":
        return {"creationflags": getattr(subprocess, "CREATE_NO_WINDOW", 0)}
    # Own session: the process group id equals the pid, so the whole group can be signalled.
    return {"start_new_session": True}


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class LocalCommandRunner:
    """Run commands with local shells (``sh``/``bash``/``cmd``/``pwsh``/``powershell``).

    Swap with another ``CommandRunner`` implementation for sandboxed or remote execution.
    """

    name = "local"

    def __init__(
        self,
        *,
        default_shell: Optional[str] = None,
        drain_timeout_ms: int = OUTPUT_DRAIN_TIMEOUT_MS,
    ) -> None:
        """
        Args:
            default_shell: Shell used when a request names none or an unknown one.
            drain_timeout_ms: Grace window for buffered output after exit.
        """
        self._default_shell = default_shell
        self._drain_timeout_ms = max(drain_timeout_ms, 0)

    @property
    def drain_timeout_ms(self) -> int:
        return self._drain_timeout_ms

    async def run(self, request: CommandRequest) -> CommandResult:
        """
        Execute ``request`` and wait for the process to exit, time out, or be cancelled.

        Returns:
            CommandResult: ``timed_out`` with ``exit_code == -1`` when the timeout fired
            (the process tree is killed); ``exit_code == -1`` with a ``Failed to start``
            stderr when the process could not be started.

        Raises:
            asyncio.CancelledError: When the calling task is cancelled. The process tree
                is killed before the cancellation propagates.
        """
        invocation = build_invocation(request, self._default_shell)
        logger.info(f"[EXEC] {invocation}")

        loop = asyncio.get_running_loop()
        started = time.monotonic()

        try:
            proc = subprocess.Popen(
                invocation.popen_args(),
                cwd=request.cwd or None,
                env=merge_environment(request.env),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                **_platform_popen_kwargs(),
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            logger.error(f"[EXEC] Failed to start process: {e}")
            return CommandResult(stderr=f"Failed to start: {e}", exit_code=-1, duration_ms=_elapsed_ms(started))

        stdout = _PipeCollector(proc.stdout, loop, f"execnode-{proc.pid}-stdout")
        stderr = _PipeCollector(proc.stderr, loop, f"execnode-{proc.pid}-stderr")
        stdout.start()
        stderr.start()
        exited = _watch_exit(proc, loop)

        timed_out = False
        try:
            if request.timeout_ms > 0:
                try:
                    await asyncio.wait_for(asyncio.shield(exited), timeout=request.timeout_ms / 1000)
                except asyncio.TimeoutError:
                    timed_out = True
                    logger.warning(f"[EXEC] Process timed out after {request.timeout_ms}ms")
                    kill_process_tree(proc.pid)
            else:
                await asyncio.shield(exited)

            _, pending = await asyncio.wait(
                {stdout.finished, stderr.finished},
                timeout=self._drain_timeout_ms / 1000,
            )
        except asyncio.CancelledError:
            logger.warning(f"[EXEC] Run cancelled, killing process tree of PID {proc.pid}")
            kill_process_tree(proc.pid)
            raise

        if pending:
            logger.warning("[EXEC] Output drain timed out; child processes may hold the pipe open")

        result = CommandResult(
            stdout=stdout.text(),
            stderr=stderr.text(),
            exit_code=-1 if timed_out else exited.result(),
            timed_out=timed_out,
            duration_ms=_elapsed_ms(started),
        )
        logger.info(
            f"[EXEC] Exit={result.exit_code} Duration={result.duration_ms}ms TimedOut={timed_out} "
            f"Stdout={len(result.stdout)}chars Stderr={len(result.stderr)}chars"
        )
        return result
