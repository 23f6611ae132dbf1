"""
HTTP client runtime for the payment dashboard.

Deduplicates identical in-flight requests, lets callers cancel them,
classifies every failure into one ErrorKind and sends the user back to
login when the session expires.
"""
from .types import (
    HttpMethod,
    ClientResponse,
    RequestContext,
    Serializer,
)
from .config import (
    ApiClientSettings,
    ClientConfig,
    TimeoutConfig,
    DefaultSerializer,
    config_from_env,
    load_config,
)
from .errors import ApiError, ErrorKind, is_cancel_error
from .request_key import encode_request_key
from .pending import (
    PendingEntry,
    PendingRequestStore,
    MemoryPendingRequestStore,
    create_memory_pending_store,
)
from .cancellation import CancellationHandle, CancellationRegistry
from .classifier import classify
from .session import (
    ReturnPathStore,
    MemoryReturnPathStore,
    SessionExpiryHandler,
    RETURN_PATH_KEY,
)
from .core.client import AsyncApiClient
from .factory import (
    create_client,
    create_client_from_env,
    get_default_client,
    set_default_client,
    cancel_request,
    cancel_all_requests,
)

__all__ = [
    # Types
    "HttpMethod",
    "ClientResponse",
    "RequestContext",
    "Serializer",
    # Config
    "ApiClientSettings",
    "ClientConfig",
    "TimeoutConfig",
    "DefaultSerializer",
    "config_from_env",
    "load_config",
    # Errors
    "ApiError",
    "ErrorKind",
    "is_cancel_error",
    "classify",
    # Identity, in-flight tracking, cancellation
    "encode_request_key",
    "PendingEntry",
    "PendingRequestStore",
    "MemoryPendingRequestStore",
    "create_memory_pending_store",
    "CancellationHandle",
    "CancellationRegistry",
    # Session
    "ReturnPathStore",
    "MemoryReturnPathStore",
    "SessionExpiryHandler",
    "RETURN_PATH_KEY",
    # Client
    "AsyncApiClient",
    # Factory
    "create_client",
    "create_client_from_env",
    "get_default_client",
    "set_default_client",
    "cancel_request",
    "cancel_all_requests",
]

__version__ = "0.1.0"
