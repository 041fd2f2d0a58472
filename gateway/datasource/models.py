"""
Shared model bases for data source results and queries.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DomainModel(BaseModel):
    """Immutable result model, serialized with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class GatewayQuery(BaseModel):
    """Immutable request parameters for one gateway operation."""

    model_config = ConfigDict(frozen=True)

    def cache_params(self) -> dict[str, Any]:
        """Parameters that identify the request in the cache."""
        return self.model_dump()
