from __future__ import annotations

"""Capability registry.

The registry holds the capabilities of one node in registration order and
routes each ``NodeInvokeRequest`` to the first capability that claims the
command name.

It is also the error boundary of the node: whatever happens inside a
capability, ``dispatch`` answers with a ``NodeInvokeResponse``. Only task
cancellation escapes.
"""

import asyncio
from typing import List, Optional

from execnode.core.logging_config import get_logger
from execnode.errors import UnknownCommandError

from ..schemas.invoke import NodeInvokeRequest, NodeInvokeResponse
from .base import NodeCapability

logger = get_logger(__name__)


class CapabilityRegistry:
    """
    Ordered collection of capabilities with first-match dispatch.

    Notes:
        - ``register`` appends; when two capabilities claim the same command,
          the one registered first wins.
        - ``resolve`` raises ``UnknownCommandError`` when nothing handles the command.
    """

    def __init__(self) -> None:
        """Initialize an empty capability registry."""
        self._caps: List[NodeCapability] = []

    def register(self, cap: NodeCapability) -> None:
        """
        Register a capability implementation.

        Args:
            cap: The capability instance to register.
        """
        self._caps.append(cap)
        logger.debug(f"Registered capability '{cap.category}' with {len(cap.commands)} commands")

    def find(self, command: str) -> Optional[NodeCapability]:
        """
        Return the first registered capability that handles ``command``.

        Args:
            command: Full command name, e.g. ``system.run``.

        Returns:
            The capability, or None if no capability handles the command.
        """
        for cap in self._caps:
            if cap.can_handle(command):
                return cap
        return None

    def resolve(self, command: str) -> NodeCapability:
        """
        Same as ``find`` but raising for unknown commands.

        Raises:
            UnknownCommandError: If no capability handles ``command``.
        """
        cap = self.find(command)
        if cap is None:
            raise UnknownCommandError(command)
        return cap

    @property
    def capabilities(self) -> List[NodeCapability]:
        return list(self._caps)

    @property
    def commands(self) -> List[str]:
        """Every advertised command, in registration order, without duplicates."""
        seen: List[str] = []
        for cap in self._caps:
            for command in cap.commands:
                if command not in seen:
                    seen.append(command)
        return seen

    @property
    def categories(self) -> List[str]:
        seen: List[str] = []
        for cap in self._caps:
            if cap.category not in seen:
                seen.append(cap.category)
        return seen

    async def dispatch(self, request: NodeInvokeRequest) -> NodeInvokeResponse:
        """
        Route ``request`` to its capability and return the response.

        The response always carries the request ``id``.

        Returns:
            NodeInvokeResponse: ``Unknown command: <name>`` when nothing handles the
            command; ``<category>.<verb> failed: <error>`` when the capability raised.

        Raises:
            asyncio.CancelledError: When the calling task is cancelled.
        """
        try:
            cap = self.resolve(request.command)
        except UnknownCommandError as e:
            logger.warning(f"No capability handles '{e.command}'")
            return NodeInvokeResponse.failure(str(e), id=request.id)

        try:
            response = await cap.execute(request)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Capability '{cap.category}' failed on '{request.command}': {e}", exc_info=True)
            return NodeInvokeResponse.failure(f"{request.command} failed: {e}", id=request.id)

        if response.id != request.id:
            response = response.model_copy(update={"id": request.id})
        return response
