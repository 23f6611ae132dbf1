"""
Factory functions for creating API clients.

The process-wide default client backs the module-level ``cancel_request``
and ``cancel_all_requests`` helpers used by page-navigation code.
"""
from pathlib import Path
from typing import Dict, List, Optional, Union

import httpx

from .config import ClientConfig, TimeoutConfig, config_from_env, load_config
from .core.client import AsyncApiClient
from .session import SessionExpiryHandler
from .types import Serializer

_default_client: Optional[AsyncApiClient] = None


def create_client(
    base_url: str,
    httpx_client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[Union[float, TimeoutConfig]] = None,
    with_credentials: bool = True,
    default_headers: Optional[Dict[str, str]] = None,
    dedupe_methods: Optional[List[str]] = None,
    trace: bool = False,
    session_handler: Optional[SessionExpiryHandler] = None,
    serializer: Optional[Serializer] = None,
) -> AsyncApiClient:
    """
    Create an API client with the given configuration.

    Args:
        base_url: Base URL for all requests.
        httpx_client: Pre-configured httpx.AsyncClient.
        timeout: Request timeout (seconds or TimeoutConfig).
        with_credentials: Keep cookies between calls.
        default_headers: Default headers for all requests.
        dedupe_methods: Methods whose identical in-flight calls are shared.
            Default: GET and DELETE.
        trace: Print requests and responses to the console.
        session_handler: Login redirect strategy for 401 responses.
        serializer: JSON serializer for request and response bodies.

    Example:
        client = create_client(
            base_url="https://pay.example.com",
            session_handler=SessionExpiryHandler(navigate, current_path),
        )
        async with client:
            response = await client.get("/api/v1/user/info")
    """
    config = ClientConfig(
        base_url=base_url,
        timeout=timeout,
        with_credentials=with_credentials,
        headers=default_headers or {},
        trace=trace,
        serializer=serializer,
    )
    if dedupe_methods is not None:
        config.dedupe_methods = list(dedupe_methods)

    return AsyncApiClient(config, httpx_client=httpx_client, session_handler=session_handler)


def create_client_from_env(
    config_dir: Optional[Union[str, Path]] = None,
    session_handler: Optional[SessionExpiryHandler] = None,
) -> AsyncApiClient:
    """
    Create a client from server.{APP_ENV}.yaml (when ``config_dir`` is
    given) and API_* environment variables.
    """
    config = load_config(config_dir) if config_dir is not None else config_from_env()
    return AsyncApiClient(config, session_handler=session_handler)


def get_default_client() -> AsyncApiClient:
    """Return the process default client, creating it from the environment."""
    global _default_client
    if _default_client is None:
        _default_client = create_client_from_env()
    return _default_client


def set_default_client(client: Optional[AsyncApiClient]) -> None:
    """Install (or with None, forget) the process default client."""
    global _default_client
    _default_client = client


def cancel_request(method: str, url: str) -> int:
    """Cancel the matching in-flight request(s) of the default client."""
    if _default_client is None:
        return 0
    return _default_client.cancel_request(method, url)


def cancel_all_requests() -> int:
    """Cancel every in-flight request of the default client."""
    if _default_client is None:
        return 0
    return _default_client.cancel_all_requests()
