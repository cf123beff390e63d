# vapi_client/messages.py
"""
App Message Codec

The transport delivers the assistant's app messages as a JSON document that
was itself encoded as a JSON string literal, e.g. ``"{\\"type\\":\\"hang\\"}"``.
This module peels that extra layer off and turns the payload into one of the
typed events from vapi_client.protocol.
"""

import json
from typing import Any

from pydantic import ValidationError

from .exceptions import DecodingError
from .protocol import (
    Event,
    FunctionCall,
    FunctionCallRequested,
    HangRequested,
    Transcript,
    TranscriptReceived,
)

MESSAGE_TYPE_FUNCTION_CALL = "functionCall"
MESSAGE_TYPE_HANG = "hang"
MESSAGE_TYPE_TRANSCRIPT = "transcript"


def unescape_app_message(raw: bytes) -> bytes:
    """
    Remove the string-literal wrapping the transport puts around app messages.

    Strips one leading and one trailing double quote, then un-escapes
    backslashes before quotes. Input that is not wrapped in quotes and has
    no escape sequences comes back unchanged. Clean JSON that does contain
    escaped quotes or backslashes inside its string values is altered, so
    this must only be applied to frames known to be double-encoded.

    Args:
        raw: Bytes as received from the transport.

    Returns:
        bytes: The unwrapped JSON payload, or ``raw`` if it is not valid UTF-8.
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw

    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]

    # Backslashes first, so that \\" is not turned into a bare quote
    text = text.replace("\\\\", "\\")
    text = text.replace('\\"', '"')

    try:
        return text.encode("utf-8")
    except UnicodeEncodeError:
        return raw


def _parse_object(data: bytes) -> dict[str, Any]:
    try:
        message = json.loads(data)
    except ValueError as e:
        raise DecodingError(f"App message isn't valid JSON: {e}") from e
    if not isinstance(message, dict):
        raise DecodingError("App message isn't a valid JSON object")
    return message


def _decode_function_call(data: bytes) -> FunctionCallRequested:
    message = _parse_object(data)

    function_call = message.get("functionCall")
    if not isinstance(function_call, dict):
        raise DecodingError("App message missing functionCall", field="functionCall")

    name = function_call.get("name")
    if not isinstance(name, str):
        raise DecodingError("App message missing name", field="name")

    parameters = function_call.get("parameters")
    if not isinstance(parameters, dict):
        raise DecodingError("App message missing parameters", field="parameters")

    return FunctionCallRequested(FunctionCall(name=name, parameters=parameters))


def _decode_transcript(data: bytes) -> TranscriptReceived:
    try:
        transcript = Transcript.model_validate_json(data)
    except ValidationError as e:
        raise DecodingError(f"Invalid transcript message: {e}") from e
    return TranscriptReceived(transcript)


def decode_app_message(raw: bytes) -> Event:
    """
    Decode a raw app message into an event.

    Args:
        raw: Bytes as received from the transport (still double-encoded).

    Returns:
        Event: A FunctionCallRequested, HangRequested or TranscriptReceived.

    Raises:
        DecodingError: If the payload is malformed or of an unknown type.
    """
    data = unescape_app_message(raw)
    message = _parse_object(data)

    message_type = message.get("type")
    if not isinstance(message_type, str):
        raise DecodingError("App message missing type", field="type")

    if message_type == MESSAGE_TYPE_FUNCTION_CALL:
        return _decode_function_call(data)
    if message_type == MESSAGE_TYPE_HANG:
        return HangRequested()
    if message_type == MESSAGE_TYPE_TRANSCRIPT:
        return _decode_transcript(data)

    raise DecodingError(f"Unrecognized message type: {message_type!r}", field="type")
