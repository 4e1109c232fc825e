"""Shared pydantic bases for the realtime wire format.

Python attributes stay snake_case; the wire uses camelCase in both directions.
"""

from typing import Any

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _accept_either(name: str) -> AliasChoices:
    return AliasChoices(to_camel(name), name)


class WireModel(BaseModel):
    """Outbound schema: read from ORM attributes, dump with camelCase keys."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict ready to be placed in an event's ``data``."""
        return self.model_dump(mode="json", by_alias=True)


class InboundModel(BaseModel):
    """Inbound schema: accepts camelCase (or snake_case) keys, ignores extras."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        alias_generator=AliasGenerator(
            validation_alias=_accept_either,
            serialization_alias=to_camel,
        ),
    )
