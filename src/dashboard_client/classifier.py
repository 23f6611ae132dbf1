"""
Maps transport outcomes to the closed ErrorKind taxonomy.

Classification order (first match wins):
cancelled, 401, 403, 404, 400, 5xx, timeout, network, server-supplied
error payload, fallback.
"""
import asyncio
import errno
from typing import Any, Dict, Optional

import httpx

from .errors import ApiError, ErrorKind

TIMEOUT_CODES = {"ECONNABORTED", "ETIMEDOUT"}
NETWORK_CODES = {"ECONNREFUSED", "ECONNRESET", "ENOTFOUND", "EAI_AGAIN", "ERR_NETWORK"}
NETWORK_MESSAGES = ("Network Error", "Failed to fetch")


def _error_code(error: BaseException) -> Optional[str]:
    """String error code (``ECONNREFUSED``...) carried by the exception, if any."""
    code = getattr(error, "code", None)
    if isinstance(code, str):
        return code
    err_no = getattr(error, "errno", None)
    if isinstance(err_no, int):
        return errno.errorcode.get(err_no)
    return None


def _response_payload(response: Optional[httpx.Response]) -> Dict[str, Any]:
    """Decoded error body; anything that is not a JSON object counts as empty."""
    if response is None:
        return {}
    try:
        payload = response.json()
    except (ValueError, UnicodeDecodeError, httpx.ResponseNotRead):
        return {}
    return payload if isinstance(payload, dict) else {}


def _response_of(error: BaseException) -> Optional[httpx.Response]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response
    response = getattr(error, "response", None)
    return response if isinstance(response, httpx.Response) else None


def is_timeout(error: BaseException) -> bool:
    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return True
    return _error_code(error) in TIMEOUT_CODES


def is_network_failure(error: BaseException, response: Optional[httpx.Response]) -> bool:
    """No response came back, or the transport reported a connection problem."""
    if isinstance(error, (httpx.TransportError, OSError)):
        return True
    if _error_code(error) in NETWORK_CODES:
        return True
    message = str(error)
    if any(pattern in message for pattern in NETWORK_MESSAGES):
        return True
    # httpx.HTTPError without a response is a failed exchange
    return response is None and isinstance(error, httpx.HTTPError)


def classify(error: BaseException, *, cancel_reason: Optional[str] = None) -> ApiError:
    """
    Turn a transport or HTTP failure into an ApiError.

    Args:
        error: Exception raised while issuing the request. HTTP error
            statuses arrive as ``httpx.HTTPStatusError``.
        cancel_reason: Reason recorded on the cancellation handle, used as
            the message of a cancelled request.

    Returns:
        The classified error. An ApiError input is returned unchanged.
    """
    if isinstance(error, ApiError):
        return error

    if isinstance(error, asyncio.CancelledError):
        reason = cancel_reason or (str(error.args[0]) if error.args else None)
        return ApiError.cancel(reason)

    response = _response_of(error)
    payload = _response_payload(response)
    server_message = payload.get("error_msg") or None
    server_code = payload.get("error_code")
    details = payload.get("details")

    if response is not None:
        status = response.status_code

        if status == 401:
            return ApiError(ErrorKind.UNAUTHENTICATED, server_message, server_code, status)

        if status == 403:
            return ApiError(ErrorKind.FORBIDDEN, server_message, server_code, status)

        if status == 404:
            return ApiError(ErrorKind.NOT_FOUND, server_message, server_code, status)

        if status == 400:
            return ApiError(ErrorKind.VALIDATION, server_message, server_code, status, details)

        if status >= 500:
            return ApiError(ErrorKind.SERVER, server_message, server_code, status, details)

    if is_timeout(error):
        return ApiError(ErrorKind.TIMEOUT, code=_error_code(error))

    if is_network_failure(error, response):
        return ApiError(ErrorKind.NETWORK, code=_error_code(error))

    if server_message:
        return ApiError(
            ErrorKind.GENERIC,
            server_message,
            server_code,
            response.status_code if response is not None else None,
            details,
        )

    return ApiError(
        ErrorKind.GENERIC,
        str(error) or None,
        status=response.status_code if response is not None else None,
    )
