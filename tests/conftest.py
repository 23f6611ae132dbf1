"""
Shared fixtures for dashboard_client tests.
"""
import asyncio
from typing import Callable, List, Optional, Union
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from dashboard_client import factory
from dashboard_client.config import ClientConfig
from dashboard_client.core.client import AsyncApiClient

BASE_URL = "https://pay.example.com"

Responder = Callable[[httpx.Request], Union[httpx.Response, Exception]]


class RecordingHandler:
    """MockTransport handler that records calls and can hold them open."""

    def __init__(self, responder: Optional[Responder] = None) -> None:
        self.calls: List[httpx.Request] = []
        self.gate: Optional[asyncio.Event] = None
        self.responder: Responder = responder or (
            lambda request: httpx.Response(200, json={"data": {"path": request.url.path}})
        )

    def hold(self) -> asyncio.Event:
        """Keep requests open until the returned event is set."""
        self.gate = asyncio.Event()
        return self.gate

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.gate is not None:
            await self.gate.wait()
        result = self.responder(request)
        if isinstance(result, Exception):
            raise result
        return result


async def settle(ticks: int = 20) -> None:
    """Let scheduled tasks and callbacks run."""
    for _ in range(ticks):
        await asyncio.sleep(0)


async def wait_for_calls(handler: RecordingHandler, count: int, ticks: int = 100) -> None:
    for _ in range(ticks):
        if len(handler.calls) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} transport calls, got {len(handler.calls)}")


@pytest.fixture
def client_config():
    """Sample ClientConfig for testing."""
    return ClientConfig(base_url=BASE_URL)


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def mock_transport_client(handler):
    """Real httpx.AsyncClient backed by the recording handler."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
async def api_client(client_config, mock_transport_client):
    client = AsyncApiClient(client_config, httpx_client=mock_transport_client)
    yield client
    await client.close()


@pytest.fixture
def mock_httpx_async_client():
    """Mock httpx.AsyncClient for testing."""
    client = AsyncMock(spec=httpx.AsyncClient)
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def mock_response():
    """Mock httpx.Response for testing."""
    response = MagicMock()
    response.status_code = 200
    response.reason_phrase = "OK"
    response.headers = {"content-type": "application/json"}
    response.text = '{"success": true}'
    return response


@pytest.fixture(autouse=True)
def reset_default_client():
    """Keep the process default client from leaking between tests."""
    factory.set_default_client(None)
    yield
    factory.set_default_client(None)
