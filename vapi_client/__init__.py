"""Client for voice calls with Vapi assistants."""

from .config import load_configuration
from .events import EventStream, Subscription
from .exceptions import (
    AlreadyInCallError,
    CallCancelledError,
    DecodingError,
    InvalidInputError,
    NetworkError,
    StartCallError,
    TransportError,
    VapiError,
)
from .gateway import WebCallGateway
from .messages import decode_app_message, unescape_app_message
from .protocol import (
    CallEnded,
    CallError,
    CallStarted,
    CallTransport,
    Configuration,
    Event,
    EventType,
    FunctionCall,
    FunctionCallRequested,
    HangRequested,
    MediaSettings,
    Participant,
    Transcript,
    TranscriptReceived,
    TransportEventHandler,
    WebCallResponse,
)
from .session import SessionState, Vapi

__all__ = [
    "AlreadyInCallError",
    "CallCancelledError",
    "CallEnded",
    "CallError",
    "CallStarted",
    "CallTransport",
    "Configuration",
    "DecodingError",
    "Event",
    "EventStream",
    "EventType",
    "FunctionCall",
    "FunctionCallRequested",
    "HangRequested",
    "InvalidInputError",
    "MediaSettings",
    "NetworkError",
    "Participant",
    "SessionState",
    "StartCallError",
    "Subscription",
    "Transcript",
    "TranscriptReceived",
    "TransportError",
    "TransportEventHandler",
    "Vapi",
    "VapiError",
    "WebCallGateway",
    "WebCallResponse",
    "decode_app_message",
    "load_configuration",
    "unescape_app_message",
]
