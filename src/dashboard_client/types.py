"""
Type definitions for dashboard_client.
"""
from typing import (
    Any,
    Dict,
    Literal,
    Optional,
    Protocol,
    TypedDict,
    Union,
)
from dataclasses import dataclass


# HTTP methods exposed by the client
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

# Methods whose payload is a JSON body; the others carry query params
BODY_METHODS = ("POST", "PUT", "PATCH")

QueryParams = Dict[str, Union[str, int, float, bool, None]]


@dataclass
class RequestContext:
    """What the client knows about a call before it reaches the transport."""

    method: HttpMethod
    path: str
    key: str
    headers: Optional[Dict[str, str]] = None
    json: Optional[Any] = None
    params: Optional[QueryParams] = None


class ClientResponse(TypedDict):
    """Response returned to callers."""

    status: int
    status_text: str
    headers: Dict[str, str]
    data: Any
    ok: bool


class Serializer(Protocol):
    """Serializer protocol for custom JSON handling."""

    def serialize(self, data: Any) -> str:
        """Serialize data to string."""
        ...

    def deserialize(self, text: str) -> Any:
        """Deserialize string to data."""
        ...

