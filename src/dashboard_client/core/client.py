"""
Dashboard API client on top of httpx.

Each call is identified by method, url and payload. While a call is in
flight, identical calls join it instead of hitting the network again,
and every call can be cancelled from outside by method and url.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..cancellation import CancellationHandle, CancellationRegistry
from ..classifier import classify
from ..config import ClientConfig, ResolvedConfig, resolve_config
from ..console import print_request, print_response
from ..errors import ErrorKind
from ..pending import MemoryPendingRequestStore, PendingEntry, PendingRequestStore
from ..session import SessionExpiryHandler
from ..types import ClientResponse, HttpMethod, QueryParams, RequestContext
from .request_builder import (
    build_body,
    build_headers,
    build_url,
    create_request_context,
)

logger = logging.getLogger("dashboard_client.client")

RESET_REASON = "client reset"


class AsyncApiClient:
    """Asynchronous API client with in-flight deduplication and cancellation."""

    def __init__(
        self,
        config: ClientConfig,
        httpx_client: Optional[httpx.AsyncClient] = None,
        session_handler: Optional[SessionExpiryHandler] = None,
        pending_store: Optional[PendingRequestStore] = None,
        cancellation: Optional[CancellationRegistry] = None,
    ):
        self._config: ResolvedConfig = resolve_config(config)
        if httpx_client is not None:
            self._client = httpx_client
        else:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    connect=self._config.timeout.connect,
                    read=self._config.timeout.read,
                    write=self._config.timeout.write,
                    pool=self._config.timeout.connect,
                ),
            )
        if not self._config.with_credentials:
            self._client.cookies.clear()
        self._session_handler = session_handler
        self._pending = pending_store or MemoryPendingRequestStore()
        self._cancellation = cancellation or CancellationRegistry()
        self._tasks: Dict["asyncio.Task[ClientResponse]", CancellationHandle] = {}
        self._closed = False

    @property
    def config(self) -> ResolvedConfig:
        return self._config

    @property
    def in_flight(self) -> List[str]:
        """Identities of the requests currently shared between callers."""
        return self._pending.keys()

    @property
    def cancellation(self) -> CancellationRegistry:
        return self._cancellation

    async def request(
        self,
        method: HttpMethod = "GET",
        path: str = "/",
        *,
        json: Optional[Any] = None,
        params: Optional[QueryParams] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ClientResponse:
        """
        Issue a request, or join the identical one already in flight.

        Raises:
            ApiError: Any failure, classified. Cancelled requests raise an
                ApiError whose ``cancelled`` is True.
            RuntimeError: The client has been closed.
        """
        if self._closed:
            raise RuntimeError("Client has been closed")

        context = create_request_context(method, path, headers, json, params)
        dedupe = context.method in self._config.dedupe_methods

        if dedupe:
            entry = self._pending.get(context.key)
            if entry is not None:
                entry.subscribers += 1
                logger.debug(
                    f"AsyncApiClient.request: joining in-flight {context.key} "
                    f"(subscribers={entry.subscribers})"
                )
                return await self._await_settlement(entry.task, entry.handle)

        handle = self._cancellation.create(context.key, context.method, context.path)
        task = asyncio.get_running_loop().create_task(
            self._execute(context, handle, timeout),
            name=f"dashboard_client:{context.key}",
        )
        handle.task = task
        self._tasks[task] = handle

        if dedupe:
            self._pending.set(context.key, PendingEntry(context.key, task, handle=handle))
        task.add_done_callback(
            lambda t: self._on_settled(context.key, handle, t)
        )

        logger.debug(f"AsyncApiClient.request: issued {context.key}")
        return await self._await_settlement(task, handle)

    async def _await_settlement(
        self,
        task: "asyncio.Task[ClientResponse]",
        handle: Optional[CancellationHandle],
    ) -> ClientResponse:
        # shield: one caller going away must not abort the shared call
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError as e:
            if not task.cancelled():
                raise
            reason = handle.reason if handle is not None else None
            logger.debug(f"AsyncApiClient: {task.get_name()} cancelled: {reason}")
            raise classify(e, cancel_reason=reason) from None

    def _on_settled(
        self,
        key: str,
        handle: CancellationHandle,
        task: "asyncio.Task[ClientResponse]",
    ) -> None:
        self._tasks.pop(task, None)
        self._cancellation.discard(key, handle)
        self._pending.delete(key, task)
        if not task.cancelled():
            # Mark the outcome as retrieved when every caller went away
            task.exception()

    async def _execute(
        self,
        context: RequestContext,
        handle: CancellationHandle,
        timeout: Optional[float],
    ) -> ClientResponse:
        url = context.path
        try:
            url = build_url(self._config.base_url, context.path, context.params)
            has_body = context.json is not None
            request_headers = build_headers(self._config, context.headers, has_body)
            request_body = build_body(context.json, self._config.serializer)

            if self._config.trace:
                print_request(context.method, url, request_headers, context.json)

            response = await self._client.request(
                method=context.method,
                url=url,
                headers=request_headers,
                content=request_body,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
            if response.status_code >= 400:
                raise httpx.HTTPStatusError(
                    f"HTTP {response.status_code} {response.reason_phrase or ''} "
                    f"for {context.method} {url}",
                    request=response.request,
                    response=response,
                )
        except Exception as exc:
            self._cancellation.discard(context.key, handle)
            error = classify(exc)

            if error.kind is ErrorKind.UNAUTHENTICATED and self._session_handler is not None:
                await self._session_handler.handle()

            logger.warning(
                f"AsyncApiClient: {context.method} {url} failed: "
                f"kind={error.kind.value} status={error.status} message={error.message}"
            )
            raise error from exc
        finally:
            if not self._config.with_credentials:
                self._client.cookies.clear()

        return self._to_response(url, response)

    def _to_response(self, url: str, response: httpx.Response) -> ClientResponse:
        response_headers = dict(response.headers)
        text = response.text

        try:
            data = self._config.serializer.deserialize(text) if text else None
        except ValueError:
            data = text

        if self._config.trace:
            print_response(
                url, response.status_code, response.reason_phrase or "", response_headers, data
            )

        return ClientResponse(
            status=response.status_code,
            status_text=response.reason_phrase or "",
            headers=response_headers,
            data=data,
            ok=200 <= response.status_code < 300,
        )

    async def get(
        self,
        path: str,
        *,
        params: Optional[QueryParams] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ClientResponse:
        """GET request."""
        return await self.request("GET", path, params=params, headers=headers, timeout=timeout)

    async def post(
        self,
        path: str,
        json: Optional[Any] = None,
        *,
        params: Optional[QueryParams] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ClientResponse:
        """POST request."""
        return await self.request(
            "POST", path, json=json, params=params, headers=headers, timeout=timeout
        )

    async def put(
        self,
        path: str,
        json: Optional[Any] = None,
        *,
        params: Optional[QueryParams] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ClientResponse:
        """PUT request."""
        return await self.request(
            "PUT", path, json=json, params=params, headers=headers, timeout=timeout
        )

    async def patch(
        self,
        path: str,
        json: Optional[Any] = None,
        *,
        params: Optional[QueryParams] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ClientResponse:
        """PATCH request."""
        return await self.request(
            "PATCH", path, json=json, params=params, headers=headers, timeout=timeout
        )

    async def delete(
        self,
        path: str,
        *,
        params: Optional[QueryParams] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ClientResponse:
        """DELETE request."""
        return await self.request(
            "DELETE", path, params=params, headers=headers, timeout=timeout
        )

    def cancel_request(self, method: str, path: str) -> int:
        """Cancel the in-flight requests sent with ``method`` to ``path``."""
        return self._cancellation.cancel_by_key(method, path)

    def cancel_all_requests(self) -> int:
        """Cancel every in-flight request, e.g. when the page is left."""
        return self._cancellation.cancel_all()

    def reset(self) -> None:
        """
        Cancel everything and empty both maps.

        Also cancels calls parked by a session-expiry redirect, which the
        cancellation registry no longer tracks.
        """
        self._cancellation.cancel_all(RESET_REASON)
        for handle in list(self._tasks.values()):
            handle.cancel(RESET_REASON)
        self._pending.clear()
        self._cancellation.clear()
        if self._session_handler is not None:
            self._session_handler.reset()

    async def close(self) -> None:
        """Cancel outstanding calls and close the underlying httpx client."""
        self.reset()
        self._closed = True
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncApiClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()
