"""Command execution backends."""

from .base import CommandRunner
from .invocation import SHELL_COMMANDS, Invocation, build_invocation, compose_command_line, merge_environment
from .local import OUTPUT_DRAIN_TIMEOUT_MS, LocalCommandRunner
from .process_tree import kill_process_tree

__all__ = [
    "OUTPUT_DRAIN_TIMEOUT_MS",
    "SHELL_COMMANDS",
    "CommandRunner",
    "Invocation",
    "LocalCommandRunner",
    "build_invocation",
    "compose_command_line",
    "kill_process_tree",
    "merge_environment",
]
