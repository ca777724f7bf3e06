"""``system.*`` commands: notifications, gated command execution and executable lookup.

``system.run`` is the security-sensitive command of the node. Before a
``CommandRequest`` reaches the runner it passes, in order:

1. a runner must be attached,
2. the ``command`` argument must be present and not blank,
3. the exec approval policy, when one is attached, must allow it. A
   ``prompt`` verdict is handed to the approval handler, and is a denial
   when no handler is attached or the handler declines.
"""

from __future__ import annotations

import inspect
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from execnode.core.logging_config import get_logger
from execnode.errors import ExecNodeError

from ..policy.exec_approval import ExecApprovalPolicy
from ..policy.models import ExecApprovalAction, ExecApprovalResult, ExecApprovalRule
from ..runner.base import CommandRunner
from ..runner.invocation import compose_command_line
from ..schemas.command import CommandRequest
from ..schemas.invoke import NodeInvokeRequest, NodeInvokeResponse
from ..shells import resolve_shell
from .base import NodeCapabilityBase

logger = get_logger(__name__)

DEFAULT_NOTIFY_TITLE = "execnode"
DEFAULT_RUN_TIMEOUT_MS = 30000
DEFAULT_PATHEXT = ".EXE;.CMD;.BAT;.COM"


@dataclass(frozen=True)
class SystemNotifyArgs:
    """Notification requested through ``system.notify``; presented by the listeners."""

    title: str
    body: str = ""
    subtitle: Optional[str] = None
    play_sound: bool = True


NotifyListener = Callable[[SystemNotifyArgs], Union[None, Awaitable[None]]]
ApprovalHandler = Callable[[CommandRequest, ExecApprovalResult], Awaitable[bool]]


def resolve_executable(name: str) -> Optional[str]:
    """
    Resolve a bare executable name to a full path by searching ``PATH``.

    Names containing ``/`` or ``\\`` are rejected so that callers cannot look up
    arbitrary filesystem locations. On Windows every ``PATHEXT`` extension is
    tried; elsewhere the name itself must be a regular file.

    Returns:
        The first matching path, or None.
    """
    if "/" in name or "\\" in name:
        return None

    if os.name == "nt":
        pathext = os.environ.get("PATHEXT") or DEFAULT_PATHEXT
        extensions = [ext.lower() for ext in pathext.split(";") if ext]
    else:
        extensions = [""]

    for directory in os.environ.get("PATH", "").split(os.pathsep):
        if not directory:
            continue
        for ext in extensions:
            candidate = os.path.join(directory, name + ext)
            if os.path.isfile(candidate):
                return candidate
    return None


class SystemCapability(NodeCapabilityBase):
    """
    Capability for the ``system`` category.

    The command runner, the approval policy and the approval handler are
    collaborators set after construction (or through the constructor), so a
    host can swap them at runtime: a local runner for a sandboxed one, or no
    policy at all.
    """

    CATEGORY = "system"
    COMMANDS = (
        "system.notify",
        "system.run",
        "system.which",
        "system.execApprovals.get",
        "system.execApprovals.set",
    )

    def __init__(
        self,
        *,
        runner: Optional[CommandRunner] = None,
        policy: Optional[ExecApprovalPolicy] = None,
        approval_handler: Optional[ApprovalHandler] = None,
        default_timeout_ms: int = DEFAULT_RUN_TIMEOUT_MS,
        default_shell: Optional[str] = None,
    ) -> None:
        self._runner = runner
        self._policy = policy
        self._approval_handler = approval_handler
        self._default_timeout_ms = default_timeout_ms
        self._default_shell = default_shell
        self._notify_listeners: List[NotifyListener] = []

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def command_runner(self) -> Optional[CommandRunner]:
        return self._runner

    @property
    def approval_policy(self) -> Optional[ExecApprovalPolicy]:
        return self._policy

    def set_command_runner(self, runner: Optional[CommandRunner]) -> None:
        """Attach the runner used by ``system.run`` (local, sandboxed, remote...)."""
        self._runner = runner

    def set_approval_policy(self, policy: Optional[ExecApprovalPolicy]) -> None:
        """Attach the exec approval policy; with None every command reaches the runner."""
        self._policy = policy

    def set_approval_handler(self, handler: Optional[ApprovalHandler]) -> None:
        """
        Attach the approver consulted for ``prompt`` verdicts.

        The handler receives the request and the policy verdict and returns
        True to let the command run.
        """
        self._approval_handler = handler

    def add_notify_listener(self, listener: NotifyListener) -> None:
        self._notify_listeners.append(listener)

    def remove_notify_listener(self, listener: NotifyListener) -> None:
        if listener in self._notify_listeners:
            self._notify_listeners.remove(listener)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(self, request: NodeInvokeRequest) -> NodeInvokeResponse:
        command = request.command
        if command == "system.notify":
            response = await self._handle_notify(request.args)
        elif command == "system.run":
            response = await self._handle_run(request.args)
        elif command == "system.which":
            response = self._handle_which(request.args)
        elif command == "system.execApprovals.get":
            response = self._handle_exec_approvals_get()
        elif command == "system.execApprovals.set":
            response = self._handle_exec_approvals_set(request.args)
        else:
            response = self.error(f"Unknown command: {command}")
        return response.model_copy(update={"id": request.id})

    # ------------------------------------------------------------------
    # system.notify
    # ------------------------------------------------------------------

    async def _handle_notify(self, args: Mapping[str, Any]) -> NodeInvokeResponse:
        notify = SystemNotifyArgs(
            title=self.get_string_arg(args, "title", DEFAULT_NOTIFY_TITLE),
            body=self.get_string_arg(args, "body", ""),
            subtitle=self.get_string_arg(args, "subtitle"),
            play_sound=self.get_bool_arg(args, "sound", True),
        )
        logger.info(f"system.notify: {notify.title} - {notify.body}")

        for listener in list(self._notify_listeners):
            try:
                outcome = listener(notify)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(f"system.notify listener failed: {e}", exc_info=True)

        return self.success({"sent": True})

    # ------------------------------------------------------------------
    # system.run
    # ------------------------------------------------------------------

    async def _handle_run(self, args: Mapping[str, Any]) -> NodeInvokeResponse:
        if self._runner is None:
            return self.error("Command execution not available")

        command, command_args = self._parse_run_command(args)
        if command is None or not command.strip():
            return self.error("Missing command parameter")

        # Policy and runner must agree on the interpreter, so unknown names resolve here
        shell = resolve_shell(self.get_string_arg(args, "shell"), self._default_shell)
        cwd = self.get_string_arg(args, "cwd")
        timeout_ms = self.get_int_arg(args, "timeoutMs", self.get_int_arg(args, "timeout", self._default_timeout_ms))
        env = self._parse_env(args)

        cmd_request = CommandRequest(
            command=command,
            args=command_args,
            shell=shell,
            cwd=cwd,
            env=env,
            timeout_ms=timeout_ms,
        )
        logger.info(f"system.run: {command} (shell={shell}, timeout={timeout_ms}ms)")

        denial = await self._check_approval(cmd_request)
        if denial is not None:
            logger.warning(f"system.run DENIED: {command} ({denial})")
            return self.error(f"Command denied by exec policy: {denial}")

        try:
            result = await self._runner.run(cmd_request)
        except Exception as e:
            logger.error(f"system.run failed: {e}", exc_info=True)
            return self.error(f"Execution failed: {e}")

        return self.success(result.to_wire())

    def _parse_run_command(self, args: Mapping[str, Any]):
        """Normalize the argv-list and string forms of ``command`` to ``(command, args)``."""
        raw = args.get("command")
        if isinstance(raw, list):
            argv = self.get_string_list_arg(args, "command") or []
            if not argv:
                return None, None
            return argv[0], (argv[1:] or None)
        if isinstance(raw, str):
            return raw, (self.get_string_list_arg(args, "args") or None)
        return None, None

    @staticmethod
    def _parse_env(args: Mapping[str, Any]) -> Optional[Dict[str, str]]:
        raw = args.get("env")
        if not isinstance(raw, dict):
            return None
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    async def _check_approval(self, request: CommandRequest) -> Optional[str]:
        """Return the denial reason, or None when ``request`` may run."""
        if self._policy is None:
            return None

        # The policy sees the line the shell will run, args included.
        verdict = self._policy.evaluate(compose_command_line(request.command, request.args), request.shell)
        if verdict.allowed:
            return None
        if not verdict.requires_prompt:
            return verdict.reason

        if self._approval_handler is None:
            return f"{verdict.reason} (no approver attached)"
        try:
            approved = await self._approval_handler(request, verdict)
        except Exception as e:
            logger.error(f"system.run approval handler failed: {e}", exc_info=True)
            return f"{verdict.reason} (approval failed: {e})"
        if not approved:
            return f"{verdict.reason} (declined)"
        logger.info(f"system.run approved by handler: {request.command}")
        return None

    # ------------------------------------------------------------------
    # system.which
    # ------------------------------------------------------------------

    def _handle_which(self, args: Mapping[str, Any]) -> NodeInvokeResponse:
        bins = [b.strip() for b in self.get_string_list_arg(args, "bins") or [] if b.strip()]
        if not bins:
            return self.error("Missing bins parameter")

        found: Dict[str, str] = {}
        for name in bins:
            path = resolve_executable(name)
            if path is not None:
                found[name] = path

        logger.info(f"system.which: queried {len(bins)} bins, found {len(found)}")
        return self.success({"bins": found})

    # ------------------------------------------------------------------
    # system.execApprovals.*
    # ------------------------------------------------------------------

    def _handle_exec_approvals_get(self) -> NodeInvokeResponse:
        if self._policy is None:
            return self.success({"enabled": False, "message": "No exec policy configured"})

        data = self._policy.get_policy_data()
        return self.success(
            {
                "enabled": True,
                "defaultAction": data.default_action.value,
                "rules": [rule.to_wire() for rule in data.rules],
            }
        )

    def _handle_exec_approvals_set(self, args: Mapping[str, Any]) -> NodeInvokeResponse:
        if self._policy is None:
            return self.error("No exec policy configured")

        try:
            raw_rules = args.get("rules")
            if not isinstance(raw_rules, list):
                raw_rules = []
            rules = [self._parse_rule(item) for item in raw_rules if isinstance(item, dict)]
            default_text = self.get_string_arg(args, "defaultAction")
            default_action = ExecApprovalAction.parse(default_text) if default_text is not None else None

            self._policy.set_rules(rules, default_action)
        except (ExecNodeError, ValueError) as e:
            logger.error(f"system.execApprovals.set failed: {e}", exc_info=True)
            return self.error(f"Failed to update policy: {e}")

        logger.info(f"Exec approval policy updated: {len(rules)} rules")
        return self.success({"updated": True, "ruleCount": len(rules)})

    def _parse_rule(self, raw: Mapping[str, Any]) -> ExecApprovalRule:
        return ExecApprovalRule(
            pattern=self.get_string_arg(raw, "pattern", "*"),
            action=ExecApprovalAction.parse(self.get_string_arg(raw, "action")),
            shells=self.get_string_list_arg(raw, "shells") or [],
            description=self.get_string_arg(raw, "description"),
            enabled=self.get_bool_arg(raw, "enabled", True),
        )
