"""Root-level pytest fixtures for all tests.

Provides shared fakes for the collaborators the core talks to:
- Push channel transports with scripted connection failures
- An httpx transport serving canned REST responses
- A recording dashboard observer
- A recording sleep for backoff and loading-floor assertions
"""

import json
from typing import Any

import httpx
import pytest

from relaydesk.events import DashboardEventEmitter
from relaydesk.protocol import SessionCredentials


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests that take a long time to run"
    )


# ============================================================================
# Push channel fakes
# ============================================================================


class FakeChannelTransport:
    """In-memory ChannelTransport. Records emits, replays server events."""

    def __init__(self, factory: "FakeTransportFactory"):
        self._factory = factory
        self._listener = None
        self.connected = False
        self.emitted: list[tuple[str, Any]] = []
        self.disconnect_calls = 0

    def set_listener(self, listener):
        self._listener = listener

    async def connect(self, url: str) -> None:
        self._factory.connect_calls += 1
        if self._factory.failures > 0:
            self._factory.failures -= 1
            raise ConnectionError(f"connection refused: {url}")
        self.connected = True

    async def emit(self, event: str, data: Any) -> None:
        if self._factory.emit_error is not None:
            raise self._factory.emit_error
        self.emitted.append((event, data))

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    async def server_event(self, event: str, data: Any = None) -> None:
        """Deliver an event as if the server had sent it."""
        await self._listener(event, data)

    async def drop(self, reason: str = "transport close") -> None:
        """Simulate the server side closing the connection."""
        self.connected = False
        await self._listener("disconnect", reason)


class FakeTransportFactory:
    """Transport factory whose first ``failures`` connects are refused."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.connect_calls = 0
        self.emit_error: Exception | None = None
        self.created: list[FakeChannelTransport] = []

    def __call__(self) -> FakeChannelTransport:
        transport = FakeChannelTransport(self)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeChannelTransport:
        return self.created[-1]


class RecordingSleep:
    """Awaitable sleep stand-in that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def transport_factory():
    """Factory building fake channel transports; set ``.failures`` to script refusals."""
    return FakeTransportFactory()


@pytest.fixture
def recording_sleep():
    """Sleep replacement recording each requested delay."""
    return RecordingSleep()


# ============================================================================
# REST fakes
# ============================================================================


class FakeApiTransport(httpx.AsyncBaseTransport):
    """Mock transport that returns canned responses per (method, path).

    A route value is ``(status, body)``; a body of type str is sent raw.
    A list of values is served in order, the last one repeating.
    """

    def __init__(self, routes: dict[tuple[str, str], Any]):
        self._routes = routes
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request):
        self.requests.append(request)
        route = self._routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "not found"}, request=request)
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if isinstance(route, Exception):
            raise route
        status, body = route
        if isinstance(body, str):
            return httpx.Response(status, text=body, request=request)
        return httpx.Response(status, json=body, request=request)

    def json_bodies(self, path: str) -> list[dict]:
        """Decoded JSON bodies of every request sent to ``path``."""
        return [json.loads(r.content) for r in self.requests if r.url.path == path]


@pytest.fixture
def api_transport_factory():
    """Build a FakeApiTransport from a route table."""
    return FakeApiTransport


@pytest.fixture
def make_api_client():
    """Attach a FakeApiTransport to a client, as ``async with`` would."""

    def _make(client_cls, routes: dict, base_url: str = "http://127.0.0.1:3000"):
        transport = FakeApiTransport(routes)
        client = client_cls(base_url=base_url)
        client._client = httpx.AsyncClient(transport=transport, base_url=base_url)
        return client, transport

    return _make


# ============================================================================
# Dashboard fakes
# ============================================================================


class RecordingObserver:
    """Dashboard observer that keeps every event it receives."""

    def __init__(self):
        self.jobs: list[list] = []
        self.conversations: list[list] = []
        self.messages: list[tuple[str, list]] = []
        self.notices: list = []
        self.reauth: list[str] = []
        self.channel_status: list[bool] = []

    async def on_jobs_changed(self, records):
        self.jobs.append(records)

    async def on_conversations_changed(self, conversations):
        self.conversations.append(conversations)

    async def on_messages_changed(self, conversation_id, messages):
        self.messages.append((conversation_id, messages))

    async def on_notice(self, notice):
        self.notices.append(notice)

    async def on_reauth_required(self, resource):
        self.reauth.append(resource)

    async def on_channel_status(self, connected):
        self.channel_status.append(connected)


@pytest.fixture
def observer():
    """A fresh recording observer."""
    return RecordingObserver()


@pytest.fixture
def emitter(observer):
    """Emitter with the recording observer attached."""
    emitter = DashboardEventEmitter()
    emitter.add_observer(observer)
    return emitter


@pytest.fixture
def credentials():
    """Operator session used by messaging tests."""
    return SessionCredentials(
        jsessionid="ajax:123",
        li_at="AQEDAT-secret",
        mailbox_urn="urn:li:fsd_profile:ACoAAOperator1",
        profile_urn="urn:li:fsd_profile:ACoAAOperator1",
    )
