"""Translate a ``CommandRequest`` into a concrete interpreter invocation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple, Union

from ..schemas.command import CommandRequest
from ..shells import SHELL_COMMANDS, resolve_shell


@dataclass(frozen=True)
class Invocation:
    """Interpreter, its flags and the composed command line."""

    shell: str
    executable: str
    flags: Tuple[str, ...]
    command_line: str

    @property
    def argv(self) -> List[str]:
        return [self.executable, *self.flags, self.command_line]

    def popen_args(self) -> Union[str, List[str]]:
        """Argument form for ``subprocess.Popen``.

        On Windows the command line is handed over verbatim so ``cmd.exe`` and
        PowerShell see it unquoted.
        """
        if os.name == "nt":
            return " ".join([self.executable, *self.flags, self.command_line])
        return self.argv

    def __str__(self) -> str:
        return " ".join([self.executable, *self.flags, self.command_line])


def compose_command_line(command: str, args: Optional[List[str]] = None) -> str:
    """Join ``command`` and ``args`` with single spaces."""
    if args:
        return " ".join([command, *args])
    return command


def build_invocation(request: CommandRequest, default_shell: Optional[str] = None) -> Invocation:
    """Pick the interpreter for ``request`` and compose its command line.

    Unknown shell names fall back to the configured default, then to the
    platform default.
    """
    shell = resolve_shell(request.shell, default_shell)
    executable, flags = SHELL_COMMANDS[shell]
    return Invocation(
        shell=shell,
        executable=executable,
        flags=flags,
        command_line=compose_command_line(request.command, request.args),
    )


def merge_environment(overrides: Optional[Mapping[str, str]], base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Return ``base`` (the current environment by default) updated with ``overrides``."""
    env = dict(os.environ if base is None else base)
    if overrides:
        env.update({str(k): str(v) for k, v in overrides.items()})
    return env
