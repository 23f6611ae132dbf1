"""
Request identity used for deduplication and cancellation.
"""
import json
import logging
from typing import Any, Optional

logger = logging.getLogger("dashboard_client.request_key")


def _serialize_payload(payload: Any) -> str:
    """Deterministic JSON rendering of a body or query mapping."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def base_request_key(method: str, url: str) -> str:
    """Key without payload: ``{METHOD}_{URL}``."""
    return f"{method.upper()}_{url}"


def encode_request_key(method: str, url: str, payload: Optional[Any] = None) -> str:
    """
    Derive the identity of a request.

    Two calls with the same method, url and payload map to the same key.
    A payload that cannot be serialized (circular reference, values JSON
    does not know, keys that cannot be sorted) degrades to the bare
    ``{METHOD}_{URL}`` key, so structurally different bodies sent to the
    same endpoint may then share an identity.
    """
    base_key = base_request_key(method, url)

    if not payload:
        return base_key

    try:
        return f"{base_key}_{_serialize_payload(payload)}"
    except (TypeError, ValueError, OverflowError, RecursionError) as e:
        logger.debug(f"encode_request_key: payload not serializable for {base_key}: {e}")
        return base_key
