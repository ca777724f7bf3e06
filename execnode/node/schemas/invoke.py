"""Dispatch envelope schemas.

The transport (out of scope for this package) decodes an inbound frame into a
``NodeInvokeRequest`` and encodes the ``NodeInvokeResponse`` it gets back.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from .base import BaseSchema


class NodeInvokeRequest(BaseSchema):
    """Remote invocation of one ``<category>.<verb>`` command."""

    id: str = ""
    command: str
    args: Dict[str, Any] = Field(default_factory=dict)


class NodeInvokeResponse(BaseSchema):
    """Response to a ``NodeInvokeRequest``.

    Exactly one of ``payload`` (when ``ok``) or ``error`` (when not ``ok``) is set.
    """

    id: str = ""
    ok: bool
    payload: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, payload: Any = None, *, id: str = "") -> "NodeInvokeResponse":
        return cls(id=id, ok=True, payload=payload)

    @classmethod
    def failure(cls, error: str, *, id: str = "") -> "NodeInvokeResponse":
        return cls(id=id, ok=False, error=error)
