"""
Request builder utilities for dashboard_client.
"""
from typing import Any, Dict, Optional, Union
from urllib.parse import urlencode, urljoin, urlparse

from ..types import BODY_METHODS, QueryParams, RequestContext, Serializer
from ..config import ResolvedConfig
from ..request_key import encode_request_key


def build_url(
    base_url: str,
    path: str,
    query: Optional[QueryParams] = None,
) -> str:
    """Build full URL from base and path."""
    if path.startswith(("http://", "https://")):
        url = path
    elif path.startswith("/"):
        # Keep the base path prefix, e.g. https://host/api + /v1/user
        parsed = urlparse(base_url)
        base_path = parsed.path.rstrip("/")
        url = f"{parsed.scheme}://{parsed.netloc}{base_path}{path}"
    elif path:
        if not base_url.endswith("/"):
            base_url = base_url + "/"
        url = urljoin(base_url, path)
    else:
        url = base_url

    if query:
        query_str = urlencode(
            {k: _query_value(v) for k, v in query.items() if v is not None}
        )
        if query_str:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{query_str}"

    return url


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_headers(
    config: ResolvedConfig,
    headers: Optional[Dict[str, str]] = None,
    has_body: bool = False,
) -> Dict[str, str]:
    """Merge default and per-call headers."""
    result = dict(config.headers)

    if headers:
        result.update(headers)

    lower_keys = {k.lower() for k in result}
    if has_body and "content-type" not in lower_keys:
        result["content-type"] = config.content_type

    if "accept" not in lower_keys:
        result["accept"] = "application/json"

    return result


def build_body(
    json_data: Optional[Any] = None,
    serializer: Optional[Serializer] = None,
) -> Optional[Union[str, bytes]]:
    """Serialize the JSON body, if any."""
    if json_data is not None and serializer:
        return serializer.serialize(json_data)
    return None


def create_request_context(
    method: str,
    path: str,
    headers: Optional[Dict[str, str]] = None,
    json_data: Optional[Any] = None,
    params: Optional[QueryParams] = None,
) -> RequestContext:
    """
    Create the request context, including its identity.

    Body methods are keyed by their JSON body, the others by their query
    params.
    """
    method = method.upper()
    payload = json_data if method in BODY_METHODS else params
    return RequestContext(
        method=method,
        path=path,
        key=encode_request_key(method, path, payload),
        headers=headers,
        json=json_data,
        params=params,
    )
