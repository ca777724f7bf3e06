"""Capability dispatch for node commands.

A *capability* handles every command of one category (``system.*``,
``screen.*`` ...).

- The transport decodes a ``NodeInvokeRequest`` envelope.
- ``CapabilityRegistry.dispatch`` routes it to the first capability whose
  ``can_handle`` accepts the command name.
- The capability answers with a ``NodeInvokeResponse``; failures become error
  responses at the registry boundary.

This package exports:

- ``NodeCapability``: protocol for async capability execution.
- ``NodeCapabilityBase``: base class with a static command list, response
  helpers and typed argument readers.
- ``CapabilityRegistry``: ordered, first-match dispatch.
- ``SystemCapability``: ``system.notify``/``run``/``which``/``execApprovals.*``.
"""

from .base import NodeCapability, NodeCapabilityBase
from .registry import CapabilityRegistry
from .system import SystemCapability, SystemNotifyArgs, resolve_executable

__all__ = [
    "CapabilityRegistry",
    "NodeCapability",
    "NodeCapabilityBase",
    "SystemCapability",
    "SystemNotifyArgs",
    "resolve_executable",
]
