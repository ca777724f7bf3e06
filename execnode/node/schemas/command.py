"""Command execution request/result schemas.

``CommandRequest`` is what a ``CommandRunner`` executes and ``CommandResult``
is what it always hands back. Timeouts and start failures are *results*, not
exceptions, so the result carries its own failure fields.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field, field_validator

from .base import BaseSchema


class CommandRequest(BaseSchema):
    """A single command line to run.

    Attributes:
        command: Program or script text. Blank values are rejected on construction.
        args: Extra arguments appended to ``command`` when composing the command line.
        shell: Interpreter name (``sh``, ``bash``, ``cmd``, ``pwsh``, ``powershell`` ...).
        cwd: Working directory for the process.
        env: Variables merged over the inherited environment.
        timeout_ms: Deadline for the process to exit; ``<= 0`` disables it.
    """

    command: str
    args: Optional[List[str]] = None
    shell: Optional[str] = None
    cwd: Optional[str] = None
    env: Optional[Dict[str, str]] = None
    timeout_ms: int = 30000

    @field_validator("command")
    @classmethod
    def _command_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("command must not be empty")
        return value


class CommandResult(BaseSchema):
    """Outcome of one command run.

    ``exit_code`` is ``-1`` when the process timed out or could not be started;
    it is only meaningful when ``timed_out`` is false.
    """

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    timed_out: bool = False
    duration_ms: int = Field(default=0, ge=0)
