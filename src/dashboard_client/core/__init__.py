"""
Core modules for dashboard_client.
"""
from .client import AsyncApiClient
from .request_builder import (
    build_url,
    build_headers,
    build_body,
    create_request_context,
)

__all__ = [
    "AsyncApiClient",
    "build_url",
    "build_headers",
    "build_body",
    "create_request_context",
]
