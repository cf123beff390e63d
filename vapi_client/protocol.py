# vapi_client/protocol.py
"""
Vapi Client Protocol Definitions

This module defines the data model shared by the call session, the message
codec and the transport adapters. It establishes the contract between the
session logic and any real-time transport implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import AnyUrl, BaseModel, ConfigDict, Field

DEFAULT_HOST = "api.vapi.ai"

# Display name the assistant's audio track joins the room with
ASSISTANT_SPEAKER_NAME = "Vapi Speaker"


@dataclass(frozen=True)
class Configuration:
    """
    Connection settings for the calling backend.

    Attributes:
        public_key: Public API key, sent as a bearer token.
        host: Backend host name (no scheme, no path).
    """

    public_key: str
    host: str = DEFAULT_HOST


class WebCallResponse(BaseModel):
    """Backend reply to a web call request. Only the join URL is required."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    web_call_url: AnyUrl = Field(alias="webCallUrl")


class Transcript(BaseModel):
    """A speech-to-text fragment published by the assistant."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    role: Literal["user", "assistant"]
    transcript_type: Literal["partial", "final"] = Field(alias="transcriptType")
    transcript: str

    @property
    def is_final(self) -> bool:
        return self.transcript_type == "final"


@dataclass(frozen=True)
class FunctionCall:
    """
    A function invocation requested by the assistant.

    Attributes:
        name: Name of the function to run on the host side.
        parameters: Arbitrary JSON arguments, passed through untouched.
    """

    name: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Participant:
    """
    Transport-neutral view of a room participant.

    Attributes:
        id: Transport-specific participant identifier.
        user_name: Display name the participant joined with.
        microphone_state: Microphone track state (e.g. "playable", "off").
        local: Whether this is the local participant.
    """

    id: str
    user_name: str | None = None
    microphone_state: str | None = None
    local: bool = False


@dataclass(frozen=True)
class MediaSettings:
    """Local media inputs to enable when joining a room."""

    camera: bool = False
    microphone: bool = True


class EventType(str, Enum):
    """Kinds of events published on the event stream."""

    CALL_STARTED = "call-started"
    CALL_ENDED = "call-ended"
    TRANSCRIPT = "transcript"
    FUNCTION_CALL = "function-call"
    HANG = "hang"
    ERROR = "error"


@dataclass(frozen=True)
class Event:
    """Base class for everything published on the event stream."""

    type = None  # overridden per subclass


@dataclass(frozen=True)
class CallStarted(Event):
    type = EventType.CALL_STARTED


@dataclass(frozen=True)
class CallEnded(Event):
    type = EventType.CALL_ENDED


@dataclass(frozen=True)
class TranscriptReceived(Event):
    transcript: Transcript
    type = EventType.TRANSCRIPT


@dataclass(frozen=True)
class FunctionCallRequested(Event):
    function_call: FunctionCall
    type = EventType.FUNCTION_CALL


@dataclass(frozen=True)
class HangRequested(Event):
    type = EventType.HANG


@dataclass(frozen=True)
class CallError(Event):
    error: Exception
    type = EventType.ERROR


class TransportCallState(str, Enum):
    """Call states reported by a transport that the session reacts to."""

    JOINED = "joined"
    LEFT = "left"


class TransportEventHandler(ABC):
    """
    Callback surface a transport reports into.

    Every callback receives the transport that raised it so that late
    notifications from a released transport can be told apart. Callbacks
    are always invoked on the event loop that owns the handler.
    """

    @abstractmethod
    def on_call_state_updated(self, transport: "CallTransport", state: str) -> None:
        ...

    @abstractmethod
    def on_participant_updated(
        self, transport: "CallTransport", participant: Participant
    ) -> None:
        ...

    @abstractmethod
    def on_error(self, transport: "CallTransport", message: str) -> None:
        ...

    @abstractmethod
    def on_app_message(self, transport: "CallTransport", data: bytes, sender: str) -> None:
        ...


class CallTransport(ABC):
    """
    Abstract Base Class for real-time transports.

    A transport instance represents a single call: it is created for one
    join, reports back through its TransportEventHandler, and is released
    once the call is over.
    """

    @abstractmethod
    async def join(self, url: str, settings: MediaSettings) -> None:
        """
        Join the room at the given URL.

        Args:
            url: Room URL returned by the backend.
            settings: Local media inputs to enable.

        Raises:
            TransportError: If the transport could not join.
        """
        ...

    @abstractmethod
    async def leave(self) -> None:
        """
        Leave the room.

        Raises:
            TransportError: If the transport could not leave cleanly.
        """
        ...

    @abstractmethod
    async def send_app_message(self, data: bytes, participant_id: str | None = None) -> None:
        """
        Send a JSON application message.

        Args:
            data: UTF-8 JSON payload.
            participant_id: Recipient, or None to broadcast to everyone.
        """
        ...

    def release(self) -> None:
        """Free any resources held by the transport. Safe to call twice."""
