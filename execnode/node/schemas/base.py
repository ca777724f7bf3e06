"""Pydantic base schema utilities for node models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all node schemas.

    Configures common Pydantic behaviors:
    - ``alias_generator=to_camel``: the wire form (JSON payloads, the policy file) uses camelCase keys.
    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``extra="forbid"``: Prevent unknown fields from slipping into the model, ensuring strict validation.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_wire(self) -> dict:
        """Dump to a JSON-compatible dict keyed by camelCase aliases."""
        return self.model_dump(mode="json", by_alias=True)
