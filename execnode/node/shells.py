"""Shell name resolution shared by the exec policy and the runners."""

from __future__ import annotations

import os
from typing import Dict, Optional, Tuple

#: Canonical shell used when a request does not name one.
PLATFORM_DEFAULT_SHELL = "powershell" if os.name == "nt" else "sh"

# shell name -> (executable, flags preceding the command line)
SHELL_COMMANDS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "sh": ("/bin/sh", ("-c",)),
    "bash": ("bash", ("-c",)),
    "zsh": ("zsh", ("-c",)),
    "cmd": ("cmd.exe", ("/C",)),
    "pwsh": ("pwsh", ("-NoProfile", "-NonInteractive", "-Command")),
    "powershell": ("powershell.exe", ("-NoProfile", "-NonInteractive", "-Command")),
}


def normalize_shell(shell: Optional[str], default: Optional[str] = None) -> str:
    """Return the lower-cased shell name, falling back to ``default`` or the platform default."""
    name = (shell or "").strip().lower()
    if name:
        return name
    fallback = (default or "").strip().lower()
    return fallback or PLATFORM_DEFAULT_SHELL


def resolve_shell(shell: Optional[str], default: Optional[str] = None) -> str:
    """
    Return the shell that will actually run a command.

    Names missing from ``SHELL_COMMANDS`` fall back to ``default``, then to the
    platform default. The exec policy and the runners both go through this so a
    shell-scoped rule is always checked against the interpreter that runs.
    """
    name = normalize_shell(shell, default)
    if name in SHELL_COMMANDS:
        return name
    name = normalize_shell(default)
    if name in SHELL_COMMANDS:
        return name
    return PLATFORM_DEFAULT_SHELL
