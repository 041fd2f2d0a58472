"""
Base data source interface.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from gateway.services.client import ServiceClient
from gateway.services.errors import InvalidResponseError

S = TypeVar("S", bound=BaseModel)


class BaseDataSource(ABC):
    """
    Abstract base class for all upstream adapters.

    All data sources should:
    - Use ServiceClient for HTTP requests (timeouts, retries, error mapping)
    - Validate upstream payloads with a pydantic schema
    - Return immutable pydantic models
    - Let errors propagate; stale fallback happens in the Gateway
    """

    def __init__(self, client: ServiceClient | None = None):
        from gateway.services.client import get_service_client

        self.client = client if client is not None else get_service_client()

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Unique identifier for this data source."""
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if the data source is properly configured."""
        ...

    def parse(self, schema: type[S], payload: Mapping[str, Any]) -> S:
        """Validate an upstream payload, turning schema failures into InvalidResponseError."""
        try:
            return schema.model_validate(payload)
        except ValidationError as e:
            raise InvalidResponseError(
                f"Unexpected response shape from '{self.service_id}': "
                f"{e.error_count()} validation error(s), first: {e.errors()[0]['msg']}",
                service_id=self.service_id,
            ) from e
