"""Convenience factories for wiring a node.

This module builds the default collaborators from ``Settings``: the exec
approval policy, the local command runner, the ``system`` capability and the
capability registry that routes invocation envelopes to them.

The intent is to keep host wiring and tests concise, while still allowing
deployments to pass their own runner, policy or sibling capabilities.
"""

from __future__ import annotations

from typing import Optional

from execnode.core.config import Settings
from execnode.core.config import settings as default_settings
from execnode.core.logging_config import get_logger, setup_logging

from .capabilities.base import NodeCapability
from .capabilities.registry import CapabilityRegistry
from .capabilities.system import SystemCapability
from .policy.exec_approval import ExecApprovalPolicy
from .runner.base import CommandRunner
from .runner.local import LocalCommandRunner

logger = get_logger(__name__)


def build_exec_policy(settings: Optional[Settings] = None) -> Optional[ExecApprovalPolicy]:
    """Load the exec approval policy from the configured ``policy_dir``; None when the policy is disabled."""
    execution = (settings or default_settings).execution
    if not execution.policy_enabled:
        logger.warning("Exec approval policy is disabled: system.run executes every command")
        return None
    return ExecApprovalPolicy(execution.policy_dir, default_shell=execution.default_shell)


def build_command_runner(settings: Optional[Settings] = None) -> LocalCommandRunner:
    execution = (settings or default_settings).execution
    return LocalCommandRunner(
        default_shell=execution.default_shell,
        drain_timeout_ms=execution.output_drain_timeout_ms,
    )


def build_system_capability(
    settings: Optional[Settings] = None,
    *,
    runner: Optional[CommandRunner] = None,
    policy: Optional[ExecApprovalPolicy] = None,
) -> SystemCapability:
    """Build the ``system`` capability; missing collaborators are built from ``settings``."""
    settings = settings or default_settings
    execution = settings.execution
    return SystemCapability(
        runner=runner if runner is not None else build_command_runner(settings),
        policy=policy if policy is not None else build_exec_policy(settings),
        default_timeout_ms=execution.run_timeout_ms,
        default_shell=execution.default_shell,
    )


def build_default_registry(
    settings: Optional[Settings] = None,
    *extra_capabilities: NodeCapability,
    configure_logging: bool = False,
) -> CapabilityRegistry:
    """Build the default ``CapabilityRegistry``.

    The ``system`` capability is registered first, followed by
    ``extra_capabilities`` in the given order, so ``system.*`` commands cannot
    be shadowed by a sibling capability.

    Args:
        settings: Node settings; the module-level ``settings`` when omitted.
        extra_capabilities: Sibling capabilities (screen, camera, canvas ...).
        configure_logging: Call ``setup_logging`` with the levels from ``settings``.
    """
    settings = settings or default_settings
    if configure_logging:
        log_config = settings.logging
        setup_logging(
            log_level=log_config.level,
            log_format=log_config.format,
            enable_file=log_config.enable_file,
        )

    reg = CapabilityRegistry()
    reg.register(build_system_capability(settings))
    for cap in extra_capabilities:
        reg.register(cap)
    logger.info(f"Node registry ready: categories={reg.categories}")
    return reg
