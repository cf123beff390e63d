import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from vapi_client.exceptions import TransportError
from vapi_client.protocol import CallTransport, Configuration, WebCallResponse
from vapi_client.session import Vapi

ROOM_URL = "https://vapi.daily.co/abc123"


class FakeTransport(CallTransport):
    """In-memory transport that reports back like Daily does."""

    def __init__(self, handler, join_error=None, leave_error=None, send_error=None,
                 emit_joined=True, emit_left=True, join_hook=None,
                 fail_leave_when_released=False):
        self.handler = handler
        self.join_error = join_error
        self.leave_error = leave_error
        self.send_error = send_error
        self.emit_joined = emit_joined
        self.emit_left = emit_left
        self.join_hook = join_hook
        self.fail_leave_when_released = fail_leave_when_released
        self.joins = []
        self.leave_count = 0
        self.sent = []
        self.released = False

    async def join(self, url, settings):
        self.joins.append((url, settings))
        if self.join_hook is not None:
            self.join_hook(self)
        if self.join_error is not None:
            raise self.join_error
        if self.emit_joined:
            self.handler.on_call_state_updated(self, "joined")

    async def leave(self):
        self.leave_count += 1
        if self.released and self.fail_leave_when_released:
            raise TransportError("Transport has been released")
        if self.leave_error is not None:
            raise self.leave_error
        if self.emit_left:
            self.handler.on_call_state_updated(self, "left")

    async def send_app_message(self, data, participant_id=None):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((data, participant_id))

    def release(self):
        self.released = True


class FakeTransportFactory:
    """Creates FakeTransports with the configured options and keeps them."""

    def __init__(self):
        self.options = {}
        self.created: list[FakeTransport] = []

    def __call__(self, handler):
        transport = FakeTransport(handler, **self.options)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


async def settle():
    """Let spawned fire-and-forget tasks run to completion."""
    for _ in range(5):
        await asyncio.sleep(0)


def drain(subscription):
    events = []
    while (event := subscription.get_nowait()) is not None:
        events.append(event)
    return events


@pytest.fixture
def configuration():
    return Configuration(public_key="test-public-key", host="api.test.vapi.ai")


@pytest.fixture
def web_call_response():
    return WebCallResponse.model_validate({"id": "call-1", "webCallUrl": ROOM_URL})


@pytest.fixture
def mock_gateway(web_call_response):
    gateway = MagicMock()
    gateway.create_web_call = AsyncMock(return_value=web_call_response)
    return gateway


@pytest.fixture
def transport_factory():
    return FakeTransportFactory()


@pytest.fixture
def vapi(configuration, transport_factory, mock_gateway):
    return Vapi(configuration, transport_factory=transport_factory, gateway=mock_gateway)


@pytest.fixture
def mock_client_session():
    """Mock aiohttp.ClientSession returning a configurable response."""
    mock_resp = MagicMock()
    mock_resp.status = 201
    mock_resp.charset = "utf-8"
    mock_resp.read = AsyncMock(return_value=f'{{"id": "call-1", "webCallUrl": "{ROOM_URL}"}}'.encode())

    mock_session = MagicMock()
    mock_session.post.return_value = AsyncMock(
        __aenter__=AsyncMock(return_value=mock_resp), __aexit__=AsyncMock(return_value=None)
    )
    mock_session.__aenter__.return_value = mock_session
    mock_session.__aexit__.return_value = None
    mock_session.response = mock_resp
    return mock_session
