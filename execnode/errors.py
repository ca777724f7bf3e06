"""Error types for the execnode package.

Most failures are reported as ``NodeInvokeResponse`` errors or as failure
fields of a ``CommandResult``; the exceptions below cover the few places
where a caller has to react to a failure programmatically.
"""

from __future__ import annotations

from pathlib import Path


class ExecNodeError(Exception):
    """Base error for all execnode exceptions."""


class PolicyPersistenceError(ExecNodeError):
    """Raised when a policy mutation cannot be written to its backing file."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to persist exec policy to '{path}': {reason}")
        self.path = path


class UnknownCommandError(ExecNodeError):
    """Raised when no registered capability handles a command name."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Unknown command: {command}")
        self.command = command
