# vapi_client/transports/daily.py
"""
Daily.co Call Transport

This module implements the CallTransport interface on top of daily-python.
Daily invokes its completions and event callbacks on its own worker thread;
everything is handed back to the asyncio loop that created the transport
before it reaches the session.
"""

import asyncio
import json
from typing import Any

from daily import CallClient, Daily, EventHandler
from loguru import logger

from ..exceptions import TransportError
from ..protocol import CallTransport, MediaSettings, Participant, TransportEventHandler


def participant_from_daily(data: dict[str, Any]) -> Participant:
    """Convert a Daily participant dict into a Participant."""
    info = data.get("info") or {}
    microphone = (data.get("media") or {}).get("microphone") or {}
    return Participant(
        id=str(data.get("id", "")),
        user_name=info.get("userName"),
        microphone_state=microphone.get("state"),
        local=bool(info.get("isLocal", False)),
    )


def encode_app_message(message: Any) -> bytes:
    """Serialise a message received from Daily back into its wire form."""
    if isinstance(message, bytes):
        return message
    return json.dumps(message).encode("utf-8")


class _DailyEventHandler(EventHandler):
    """Forwards daily-python events to the owning transport."""

    def __new__(cls, *args, **kwargs):
        return super().__new__(cls)

    def __init__(self, transport: "DailyCallTransport"):
        super().__init__()
        self._transport = transport

    def on_call_state_updated(self, state: str) -> None:
        self._transport._dispatch("on_call_state_updated", state)

    def on_participant_updated(self, participant: dict[str, Any]) -> None:
        self._transport._dispatch("on_participant_updated", participant_from_daily(participant))

    def on_error(self, message: str) -> None:
        self._transport._dispatch("on_error", message)

    def on_app_message(self, message: Any, sender: str) -> None:
        self._transport._dispatch("on_app_message", encode_app_message(message), sender)


class DailyCallTransport(CallTransport):
    """
    CallTransport implementation for Daily rooms.

    One instance is created per call and must be released afterwards.
    """

    _daily_initialized = False

    def __init__(self, handler: TransportEventHandler):
        """
        Initialize the transport.

        Args:
            handler: Receives call state, participant, error and app message
                callbacks on the current event loop.
        """
        if not DailyCallTransport._daily_initialized:
            DailyCallTransport._daily_initialized = True
            Daily.init()
        self._handler = handler
        self._loop = asyncio.get_running_loop()
        self._client: CallClient | None = CallClient(event_handler=_DailyEventHandler(self))

    def _dispatch(self, callback: str, *args) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(getattr(self._handler, callback), self, *args)

    def _completion(self, future: asyncio.Future, with_data: bool = False):
        def _set(error):
            if future.done():
                return
            if error:
                future.set_exception(TransportError(str(error)))
            else:
                future.set_result(None)

        if with_data:
            def handle_response(data, error):
                future.get_loop().call_soon_threadsafe(_set, error)
        else:
            def handle_response(error):
                future.get_loop().call_soon_threadsafe(_set, error)
        return handle_response

    def _require_client(self) -> CallClient:
        if self._client is None:
            raise TransportError("Transport has been released")
        return self._client

    async def join(self, url: str, settings: MediaSettings) -> None:
        client = self._require_client()
        future = self._loop.create_future()
        logger.info(f"Joining Daily room {url}")
        client.join(
            url,
            client_settings={
                "inputs": {
                    "camera": {"isEnabled": settings.camera},
                    "microphone": {"isEnabled": settings.microphone},
                }
            },
            completion=self._completion(future, with_data=True),
        )
        await future

    async def leave(self) -> None:
        client = self._require_client()
        future = self._loop.create_future()
        client.leave(completion=self._completion(future))
        await future

    async def send_app_message(self, data: bytes, participant_id: str | None = None) -> None:
        client = self._require_client()
        future = self._loop.create_future()
        client.send_app_message(
            json.loads(data), participant_id, completion=self._completion(future)
        )
        await future

    def release(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        client.release()
