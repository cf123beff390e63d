# vapi_client/gateway.py
"""
Web Call Gateway

Creates web calls on the backend. A web call request names an assistant,
either by id or by inline definition, and the backend answers with the URL
of the real-time room to join.
"""

import codecs
import json
from typing import Any

import aiohttp
from loguru import logger
from pydantic import ValidationError

from .exceptions import DecodingError, InvalidInputError, NetworkError
from .protocol import Configuration, WebCallResponse

WEB_CALL_PATH = "/call/web"


def _body_charset(declared: str | None) -> str:
    """Charset to decode a response body with, utf-8 unless a known one is declared."""
    if declared:
        try:
            return codecs.lookup(declared).name
        except LookupError:
            logger.warning(f"Unknown response charset {declared}, decoding as utf-8")
    return "utf-8"


def build_web_call_body(
    assistant_id: str | None = None, assistant: dict[str, Any] | None = None
) -> dict[str, Any]:
    """
    Build the request body for a web call.

    Args:
        assistant_id: Id of an assistant configured on the backend.
        assistant: Inline assistant definition.

    Returns:
        dict: Either ``{"assistantId": ...}`` or ``{"assistant": ...}``.

    Raises:
        InvalidInputError: If neither or both targets are given.
    """
    if (assistant_id is None) == (assistant is None):
        raise InvalidInputError("Exactly one of assistant_id or assistant must be given")
    if assistant_id is not None:
        if not isinstance(assistant_id, str) or not assistant_id:
            raise InvalidInputError("assistant_id must be a non-empty string")
        return {"assistantId": assistant_id}
    if not isinstance(assistant, dict):
        raise InvalidInputError("assistant must be a JSON object")
    return {"assistant": assistant}


class WebCallGateway:
    """
    HTTP client for the web call endpoint.

    Every request is a single attempt: transport-level retries are left to
    whoever configures the aiohttp session.
    """

    def __init__(self, configuration: Configuration, timeout: aiohttp.ClientTimeout | None = None):
        """
        Initialize the gateway.

        Args:
            configuration: Backend host and public key.
            timeout: Optional request timeout; aiohttp's default otherwise.
        """
        self.configuration = configuration
        self.timeout = timeout

    @property
    def url(self) -> str:
        host = self.configuration.host
        if not host or any(c in host for c in "/ ?#@"):
            raise InvalidInputError(f"Invalid host: {host!r}")
        return f"https://{host}{WEB_CALL_PATH}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.configuration.public_key}",
            "Content-Type": "application/json",
        }

    async def create_web_call(
        self, assistant_id: str | None = None, assistant: dict[str, Any] | None = None
    ) -> WebCallResponse:
        """
        Create a web call for the given assistant.

        Args:
            assistant_id: Id of an assistant configured on the backend.
            assistant: Inline assistant definition.

        Returns:
            WebCallResponse: The backend reply, including the room URL.

        Raises:
            InvalidInputError: If the request could not be built.
            NetworkError: If the request failed or returned a non-2xx status.
            DecodingError: If the response body is not a valid web call response.
        """
        body = build_web_call_body(assistant_id, assistant)
        url = self.url
        try:
            payload = json.dumps(body)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Request body is not JSON serializable: {e}") from e

        logger.debug(f"Creating web call at {url}")
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, headers=self._headers(), data=payload) as resp:
                    raw = await resp.read()
                    charset = _body_charset(resp.charset)
                    if not 200 <= resp.status < 300:
                        text = raw.decode(charset, errors="replace")
                        raise NetworkError(
                            f"Failed to create web call ({resp.status}): {text}",
                            status=resp.status,
                        )
        except aiohttp.ClientError as e:
            raise NetworkError(f"Failed to create web call: {e}", cause=e) from e
        except TimeoutError as e:
            raise NetworkError("Timed out creating web call", cause=e) from e

        try:
            text = raw.decode(charset)
        except UnicodeDecodeError as e:
            raise DecodingError(f"Web call response is not valid {charset}: {e}") from e
        try:
            response = WebCallResponse.model_validate_json(text)
        except ValidationError as e:
            raise DecodingError(f"Invalid web call response: {e}", field="webCallUrl") from e

        logger.info(f"Web call created, room {response.web_call_url}")
        return response
