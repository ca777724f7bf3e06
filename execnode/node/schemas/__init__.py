"""Pydantic schemas shared by the node subsystems."""

from .base import BaseSchema
from .command import CommandRequest, CommandResult
from .invoke import NodeInvokeRequest, NodeInvokeResponse

__all__ = [
    "BaseSchema",
    "CommandRequest",
    "CommandResult",
    "NodeInvokeRequest",
    "NodeInvokeResponse",
]
