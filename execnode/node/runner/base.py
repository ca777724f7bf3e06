"""Command runner protocol.

A runner executes exactly one ``CommandRequest`` and always returns a
``CommandResult``:

- timeouts and start failures are reported inside the result,
- task cancellation is the only thing that escapes (as ``asyncio.CancelledError``).

``LocalCommandRunner`` is the default backend; sandboxed, containerized or
remote backends satisfy the same protocol.
"""

from __future__ import annotations

from typing import Protocol

from ..schemas.command import CommandRequest, CommandResult


class CommandRunner(Protocol):
    """Protocol for command execution backends."""

    name: str

    async def run(self, request: CommandRequest) -> CommandResult: ...
