# vapi_client/session.py
"""
Vapi Call Session

This module provides the main entry point of the client. A Vapi instance
creates web calls on the backend, joins the returned room through a
real-time transport and republishes what happens in the room as events.

Only one call can be in progress per instance. All state changes happen on
the event loop that drives the instance; transports are expected to deliver
their callbacks on that loop.
"""

import asyncio
import json
from collections.abc import Callable, Coroutine
from enum import Enum
from typing import Any

from loguru import logger

from .config import load_configuration
from .events import EventStream
from .exceptions import (
    AlreadyInCallError,
    CallCancelledError,
    DecodingError,
    StartCallError,
    TransportError,
    VapiError,
)
from .gateway import WebCallGateway
from .messages import decode_app_message
from .protocol import (
    ASSISTANT_SPEAKER_NAME,
    CallEnded,
    CallError,
    CallStarted,
    CallTransport,
    Configuration,
    DEFAULT_HOST,
    Event,
    MediaSettings,
    Participant,
    TransportCallState,
    TransportEventHandler,
    WebCallResponse,
)

PLAYABLE_MESSAGE = json.dumps({"message": "playable"}).encode("utf-8")
MICROPHONE_PLAYABLE = "playable"

TransportFactory = Callable[[TransportEventHandler], CallTransport]


class SessionState(str, Enum):
    IDLE = "idle"
    JOINING = "joining"
    ACTIVE = "active"


def daily_transport_factory(handler: TransportEventHandler) -> CallTransport:
    """Create a Daily transport reporting to the given handler."""
    from .transports.daily import DailyCallTransport

    return DailyCallTransport(handler)


def _as_transport_error(error: Exception) -> TransportError:
    if isinstance(error, TransportError):
        return error
    return TransportError(str(error) or type(error).__name__)


class Vapi(TransportEventHandler):
    """
    Client for voice calls with a Vapi assistant.

    Usage:
        vapi = Vapi.from_public_key("pk-...")
        async with vapi.events.subscribe() as events:
            await vapi.start(assistant_id="...")
            async for event in events:
                ...

    If stop() is called while start() is still in flight, stop() wins: the
    call is torn down as soon as start() reaches a point where it can be,
    and start() raises CallCancelledError.
    """

    def __init__(
        self,
        configuration: Configuration,
        transport_factory: TransportFactory | None = None,
        gateway: WebCallGateway | None = None,
    ):
        """
        Initialize the client.

        Args:
            configuration: Backend host and public key.
            transport_factory: Creates one transport per call. Defaults to Daily.
            gateway: Web call gateway. Defaults to one built from the configuration.
        """
        self._configuration = configuration
        self._transport_factory = transport_factory or daily_transport_factory
        self._gateway = gateway or WebCallGateway(configuration)
        self._events = EventStream()

        self._state = SessionState.IDLE
        self._transport: CallTransport | None = None
        self._starting = False
        self._stop_requested = False
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_public_key(cls, public_key: str, host: str | None = None, **kwargs) -> "Vapi":
        return cls(Configuration(public_key=public_key, host=host or DEFAULT_HOST), **kwargs)

    @classmethod
    def from_env(cls, config_path: str | None = None, **kwargs) -> "Vapi":
        """Build a client from the environment and an optional YAML file."""
        return cls(load_configuration(config_path), **kwargs)

    @property
    def configuration(self) -> Configuration:
        return self._configuration

    @property
    def events(self) -> EventStream:
        return self._events

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def in_call(self) -> bool:
        return self._state is not SessionState.IDLE

    # ── Public API ─────────────────────────────────────────────────

    async def start(
        self, assistant_id: str | None = None, assistant: dict[str, Any] | None = None
    ) -> WebCallResponse:
        """
        Start a call with an assistant and join it.

        Exactly one of ``assistant_id`` or ``assistant`` must be given.

        Args:
            assistant_id: Id of an assistant configured on the backend.
            assistant: Inline assistant definition.

        Returns:
            WebCallResponse: The backend reply for the created call.

        Raises:
            AlreadyInCallError: If a call is already in progress.
            StartCallError: If the call could not be created or joined. The
                underlying error is available as ``__cause__``.
            CallCancelledError: If stop() was called before the call was set up.
        """
        if self._state is not SessionState.IDLE:
            raise AlreadyInCallError()

        self._state = SessionState.JOINING
        self._starting = True
        self._stop_requested = False
        try:
            return await self._start_call(assistant_id, assistant)
        finally:
            self._starting = False
            self._stop_requested = False
            if self._transport is None:
                self._state = SessionState.IDLE

    def stop(self) -> None:
        """
        Leave the current call without waiting for it to end.

        The outcome is reported on the event stream as CallEnded, or as
        CallError if leaving fails. Does nothing when no call is in progress.
        """
        if self._state is SessionState.IDLE:
            return
        if self._starting:
            logger.info("Stop requested while the call is starting")
            self._stop_requested = True
            return
        transport = self._transport
        if transport is None:
            return
        logger.info("Leaving call")
        self._spawn(self._leave(transport))

    # ── Call lifecycle ─────────────────────────────────────────────

    async def _start_call(
        self, assistant_id: str | None, assistant: dict[str, Any] | None
    ) -> WebCallResponse:
        try:
            response = await self._gateway.create_web_call(assistant_id, assistant)
        except VapiError as e:
            logger.error(f"Unable to create web call: {e}")
            self._publish(CallError(e))
            raise StartCallError(f"Unable to create web call: {e}") from e

        if self._stop_requested:
            raise CallCancelledError("Call was stopped before joining")

        transport = self._transport_factory(self)
        self._transport = transport
        try:
            await transport.join(
                str(response.web_call_url), MediaSettings(camera=False, microphone=True)
            )
        except asyncio.CancelledError:
            self._release(transport)
            raise
        except Exception as e:
            error = _as_transport_error(e)
            if self._transport is transport:
                self._call_did_fail(transport, error)
            raise StartCallError(f"Unable to join call: {error}") from error

        if self._transport is not transport:
            raise StartCallError("Call ended while joining")

        if self._stop_requested:
            await self._leave(transport)
            raise CallCancelledError("Call was stopped while joining")

        self._state = SessionState.ACTIVE
        logger.info(f"Joined call {response.web_call_url}")
        return response

    async def _leave(self, transport: CallTransport) -> None:
        try:
            await transport.leave()
        except Exception as e:
            if self._transport is not transport:
                logger.debug(f"Ignoring leave failure from a released transport: {e}")
                return
            self._call_did_fail(transport, _as_transport_error(e))
            return
        # The transport's "left" notification may arrive later; it is
        # ignored then since the transport has been released.
        if self._transport is transport:
            self._call_did_leave(transport)

    def _call_did_join(self, transport: CallTransport) -> None:
        logger.info("Successfully joined call.")
        self._state = SessionState.ACTIVE
        self._publish(CallStarted())

    def _call_did_leave(self, transport: CallTransport) -> None:
        logger.info("Successfully left call.")
        self._release(transport)
        self._publish(CallEnded())

    def _call_did_fail(self, transport: CallTransport, error: Exception) -> None:
        logger.error(f"Got error while joining/leaving call: {error}")
        self._release(transport)
        self._publish(CallError(error))

    def _release(self, transport: CallTransport) -> None:
        if self._transport is transport:
            self._transport = None
            if not self._starting:
                self._state = SessionState.IDLE
        try:
            transport.release()
        except Exception:
            logger.exception("Error releasing transport")

    def _publish(self, event: Event) -> None:
        self._events.publish(event)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_current(self, transport: CallTransport, callback: str) -> bool:
        if transport is self._transport:
            return True
        logger.debug(f"Ignoring {callback} from a released transport")
        return False

    async def _send_playable(self, transport: CallTransport) -> None:
        try:
            await transport.send_app_message(PLAYABLE_MESSAGE)
        except Exception as e:
            logger.error(f"Error sending message: {e}")

    # ── TransportEventHandler ──────────────────────────────────────

    def on_call_state_updated(self, transport: CallTransport, state: str) -> None:
        if not self._is_current(transport, f"call state {state!r}"):
            return
        if state == TransportCallState.JOINED:
            self._call_did_join(transport)
        elif state == TransportCallState.LEFT:
            self._call_did_leave(transport)
        else:
            logger.debug(f"Ignoring call state {state!r}")

    def on_participant_updated(self, transport: CallTransport, participant: Participant) -> None:
        if not self._is_current(transport, "participant update"):
            return
        is_playable = participant.microphone_state == MICROPHONE_PLAYABLE
        is_assistant_speaker = participant.user_name == ASSISTANT_SPEAKER_NAME
        if not (is_playable and is_assistant_speaker):
            return
        logger.debug(f"Assistant speaker {participant.id} is playable")
        self._spawn(self._send_playable(transport))

    def on_error(self, transport: CallTransport, message: str) -> None:
        if not self._is_current(transport, "error"):
            return
        self._call_did_fail(transport, TransportError(message))

    def on_app_message(self, transport: CallTransport, data: bytes, sender: str) -> None:
        if not self._is_current(transport, "app message"):
            return
        try:
            event = decode_app_message(data)
        except DecodingError as e:
            text = data.decode("utf-8", errors="replace")
            logger.warning(f'Error parsing app message "{text}" from {sender}: {e}')
            return
        self._publish(event)
