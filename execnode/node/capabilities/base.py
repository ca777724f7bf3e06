from __future__ import annotations

"""Capability protocol and shared helpers.

A capability groups remote-invocable commands under one category prefix
(``system.run``, ``screen.capture`` ...). The ``CapabilityRegistry`` routes a
``NodeInvokeRequest`` to the first capability whose ``can_handle`` accepts
the command name and awaits its ``execute``.

Capabilities should:

- answer with a ``NodeInvokeResponse`` for every outcome they can describe,
  including bad arguments and refused commands,
- let ``asyncio.CancelledError`` propagate untouched,
- read their arguments through the typed ``get_*_arg`` helpers so that a
  value of the wrong JSON type degrades to the default instead of raising.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ..schemas.invoke import NodeInvokeRequest, NodeInvokeResponse


@runtime_checkable
class NodeCapability(Protocol):
    """Protocol for capability implementations."""

    @property
    def category(self) -> str: ...

    @property
    def commands(self) -> Sequence[str]: ...

    def can_handle(self, command: str) -> bool: ...

    async def execute(self, request: NodeInvokeRequest) -> NodeInvokeResponse: ...


class NodeCapabilityBase(ABC):
    """
    Convenience base class for capabilities with a static command list.

    Subclasses declare ``CATEGORY`` and ``COMMANDS`` as class attributes and
    implement ``execute``. ``can_handle`` is an exact, case-sensitive
    membership test against ``COMMANDS``.
    """

    CATEGORY: ClassVar[str] = ""
    COMMANDS: ClassVar[Tuple[str, ...]] = ()

    @property
    def category(self) -> str:
        return self.CATEGORY

    @property
    def commands(self) -> Sequence[str]:
        return self.COMMANDS

    def can_handle(self, command: str) -> bool:
        return command in self.COMMANDS

    @abstractmethod
    async def execute(self, request: NodeInvokeRequest) -> NodeInvokeResponse: ...

    # ------------------------------------------------------------------
    # Response helpers
    # ------------------------------------------------------------------

    @staticmethod
    def success(payload: Any = None, *, id: str = "") -> NodeInvokeResponse:
        return NodeInvokeResponse.success(payload, id=id)

    @staticmethod
    def error(message: str, *, id: str = "") -> NodeInvokeResponse:
        return NodeInvokeResponse.failure(message, id=id)

    # ------------------------------------------------------------------
    # Typed argument readers
    # ------------------------------------------------------------------

    @staticmethod
    def get_string_arg(args: Optional[Mapping[str, Any]], name: str, default: Optional[str] = None) -> Optional[str]:
        """Return ``args[name]`` when it is a string, else ``default``."""
        value = (args or {}).get(name)
        return value if isinstance(value, str) else default

    @staticmethod
    def get_int_arg(args: Optional[Mapping[str, Any]], name: str, default: int) -> int:
        """
        Return ``args[name]`` as an int.

        Integral floats (``60000.0``) are accepted. Booleans, strings and
        fractional numbers yield ``default``.
        """
        value = (args or {}).get(name)
        if isinstance(value, bool):
            return default
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return default

    @staticmethod
    def get_bool_arg(args: Optional[Mapping[str, Any]], name: str, default: bool) -> bool:
        value = (args or {}).get(name)
        return value if isinstance(value, bool) else default

    @staticmethod
    def get_string_list_arg(args: Optional[Mapping[str, Any]], name: str) -> Optional[List[str]]:
        """
        Return the string items of the list ``args[name]``.

        Non-string items are skipped. Returns ``None`` when the argument is
        missing or is not a list.
        """
        value = (args or {}).get(name)
        if not isinstance(value, (list, tuple)):
            return None
        return [item for item in value if isinstance(item, str)]
