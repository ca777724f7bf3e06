"""Best-effort termination of a process and all of its descendants."""

from __future__ import annotations

import os
import signal

import psutil

from execnode.core.logging_config import get_logger

logger = get_logger(__name__)


def kill_process_tree(pid: int, *, include_group: bool = True) -> None:
    """Kill ``pid`` and every descendant process.

    Descendants are collected before the parent is killed so that children
    re-parented after the parent dies are still reached. On POSIX the process
    is also started as a session leader, so its whole process group is
    signalled too; that catches descendants that already lost their parent.

    Already-exited processes are ignored, so calling this more than once is
    safe. Failures are logged, never raised.
    """
    try:
        parent = psutil.Process(pid)
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        logger.debug(f"[EXEC] PID {pid} already terminated")
        children = []
        parent = None
    except psutil.Error as e:
        logger.warning(f"[EXEC] Failed to inspect process tree of PID {pid}: {e}")
        children = []
        parent = None

    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass
        except psutil.Error as e:
            logger.warning(f"[EXEC] Failed to kill child PID {child.pid}: {e}")

    if parent is not None:
        try:
            parent.kill()
        except psutil.NoSuchProcess:
            pass
        except psutil.Error as e:
            logger.warning(f"[EXEC] Failed to kill PID {pid}: {e}")

    if include_group and os.name == "posix":
        try:
            os.killpg(pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.warning(f"[EXEC] Failed to kill process group {pid}: {e}")
