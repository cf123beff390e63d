# vapi_client/exceptions.py
"""Exceptions raised by the Vapi client."""


class VapiError(Exception):
    """Base class for all client errors."""


class InvalidInputError(VapiError):
    """Raised when a request cannot be built from the given arguments."""


class NetworkError(VapiError):
    """
    Raised when the backend request fails or returns a non-2xx status.

    Attributes:
        cause: The underlying exception, if any.
        status: HTTP status code, if a response was received.
    """

    def __init__(self, message: str, cause: BaseException | None = None, status: int | None = None):
        super().__init__(message)
        self.cause = cause
        self.status = status


class DecodingError(VapiError):
    """
    Raised when a response or app message does not have the expected shape.

    Attributes:
        field: Name of the missing or invalid field, if known.
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class AlreadyInCallError(VapiError):
    """Raised when a call is started while another one is in progress."""

    def __init__(self, message: str = "A call is already in progress"):
        super().__init__(message)


class TransportError(VapiError):
    """Raised when the real-time transport fails to join or leave."""


class StartCallError(VapiError):
    """Raised by start() when the call could not be set up. Chained to the cause."""


class CallCancelledError(VapiError):
    """Raised by start() when stop() was called before the call was set up."""
