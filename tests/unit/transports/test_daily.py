from unittest.mock import MagicMock

import pytest

from conftest import settle
from vapi_client.exceptions import TransportError
from vapi_client.protocol import MediaSettings, Participant
from vapi_client.transports.daily import (
    DailyCallTransport,
    encode_app_message,
    participant_from_daily,
)


@pytest.fixture
def mock_call_client(monkeypatch):
    """Mock daily.CallClient to avoid native initialization."""
    mock_client = MagicMock()
    mock_cls = MagicMock(return_value=mock_client)
    monkeypatch.setattr("vapi_client.transports.daily.CallClient", mock_cls)
    monkeypatch.setattr("vapi_client.transports.daily.Daily", MagicMock())
    mock_client.cls = mock_cls
    return mock_client

@pytest.fixture
def handler():
    return MagicMock()


def test_participant_from_daily():
    participant = participant_from_daily(
        {
            "id": "abc",
            "info": {"userName": "Vapi Speaker", "isLocal": False},
            "media": {"microphone": {"state": "playable", "subscribed": "subscribed"}},
        }
    )
    assert participant == Participant(
        id="abc", user_name="Vapi Speaker", microphone_state="playable", local=False
    )

def test_participant_from_daily_sparse():
    assert participant_from_daily({"id": "abc"}) == Participant(id="abc")

def test_encode_app_message():
    assert encode_app_message('{"type":"hang"}') == b'"{\\"type\\":\\"hang\\"}"'
    assert encode_app_message({"type": "hang"}) == b'{"type": "hang"}'
    assert encode_app_message(b"raw") == b"raw"


@pytest.mark.asyncio
async def test_join(mock_call_client, handler):
    mock_call_client.join.side_effect = lambda url, client_settings, completion: completion({}, None)
    transport = DailyCallTransport(handler)

    await transport.join("https://vapi.daily.co/room", MediaSettings(camera=False, microphone=True))

    _, kwargs = mock_call_client.join.call_args
    assert mock_call_client.join.call_args.args == ("https://vapi.daily.co/room",)
    assert kwargs["client_settings"] == {
        "inputs": {"camera": {"isEnabled": False}, "microphone": {"isEnabled": True}}
    }

@pytest.mark.asyncio
async def test_join_error(mock_call_client, handler):
    mock_call_client.join.side_effect = lambda url, client_settings, completion: completion(None, "no such room")
    transport = DailyCallTransport(handler)

    with pytest.raises(TransportError, match="no such room"):
        await transport.join("https://vapi.daily.co/room", MediaSettings())

@pytest.mark.asyncio
async def test_leave(mock_call_client, handler):
    mock_call_client.leave.side_effect = lambda completion: completion(None)
    transport = DailyCallTransport(handler)

    await transport.leave()

    mock_call_client.leave.assert_called_once()

@pytest.mark.asyncio
async def test_send_app_message_to_everyone(mock_call_client, handler):
    mock_call_client.send_app_message.side_effect = lambda message, participant, completion: completion(None)
    transport = DailyCallTransport(handler)

    await transport.send_app_message(b'{"message": "playable"}')

    args = mock_call_client.send_app_message.call_args.args
    assert args == ({"message": "playable"}, None)

@pytest.mark.asyncio
async def test_send_app_message_error(mock_call_client, handler):
    mock_call_client.send_app_message.side_effect = (
        lambda message, participant, completion: completion("not joined")
    )
    transport = DailyCallTransport(handler)

    with pytest.raises(TransportError, match="not joined"):
        await transport.send_app_message(b'{"message": "playable"}')

@pytest.mark.asyncio
async def test_release(mock_call_client, handler):
    transport = DailyCallTransport(handler)

    transport.release()
    transport.release()

    mock_call_client.release.assert_called_once()
    with pytest.raises(TransportError, match="released"):
        await transport.leave()

@pytest.mark.asyncio
async def test_events_forwarded_to_handler(mock_call_client, handler):
    transport = DailyCallTransport(handler)
    event_handler = mock_call_client.cls.call_args.kwargs["event_handler"]

    event_handler.on_call_state_updated("joined")
    event_handler.on_error("network down")
    event_handler.on_app_message('{"type":"hang"}', "p-1")
    event_handler.on_participant_updated(
        {"id": "p-1", "info": {"userName": "Vapi Speaker"}, "media": {"microphone": {"state": "playable"}}}
    )
    # Nothing reaches the handler until the loop runs
    handler.on_call_state_updated.assert_not_called()
    await settle()

    handler.on_call_state_updated.assert_called_once_with(transport, "joined")
    handler.on_error.assert_called_once_with(transport, "network down")
    handler.on_app_message.assert_called_once_with(transport, b'"{\\"type\\":\\"hang\\"}"', "p-1")
    handler.on_participant_updated.assert_called_once_with(
        transport, Participant(id="p-1", user_name="Vapi Speaker", microphone_state="playable")
    )
