"""Exceptions for the Emby client."""

from __future__ import annotations


class EmbyError(Exception):
    """Base exception for the Emby client.

    Attributes:
        status: HTTP status code of the response, when one was received.
    """

    def __init__(self, message: str = "", status: int | None = None) -> None:
        """Initialize the exception.

        Args:
            message: The error message.
            status: Optional HTTP status code.
        """
        super().__init__(message)
        self.status = status


class EmbyConfigurationError(EmbyError):
    """Exception raised when the client identity is missing or invalid.

    This is fatal: it is raised at configuration or client construction,
    never while a request is in flight.
    """


class EmbyTransportError(EmbyError):
    """Exception raised when the transport fails to deliver a response.

    Covers network errors, timeouts, TLS failures and HTTP error statuses
    reported by the transport.
    """


class EmbyConnectionError(EmbyTransportError):
    """Exception raised when connection to the Emby server fails.

    This includes refused connections and DNS resolution failures.
    """


class EmbyTimeoutError(EmbyConnectionError):
    """Exception raised when a request times out.

    Inherits from EmbyConnectionError as timeouts are a form of connection failure.
    """


class EmbySSLError(EmbyConnectionError):
    """Exception raised for SSL/TLS certificate errors."""


class EmbyHTTPError(EmbyTransportError):
    """Exception raised when the server answers with a non-2xx status.

    Attributes:
        reason: HTTP reason phrase.
        text: Response body text, if any.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        reason: str | None = None,
        text: str | None = None,
    ) -> None:
        """Initialize with response details.

        Args:
            message: The error message.
            status: HTTP status code.
            reason: HTTP reason phrase.
            text: Response body text.
        """
        super().__init__(message, status=status)
        self.reason = reason
        self.text = text


class EmbyAuthenticationError(EmbyHTTPError):
    """Exception raised when authentication fails.

    Raised for HTTP 401 or 403 responses from the Emby server.
    """


class EmbyNotFoundError(EmbyHTTPError):
    """Exception raised for HTTP 404 responses from the Emby server."""


class EmbyServerError(EmbyError):
    """Exception raised when the server answers with plain text instead of JSON.

    Emby reports logical failures (wrong password, rejected configuration)
    as a text body, often on an otherwise successful status.

    Attributes:
        text: The raw response text.
    """

    def __init__(self, text: str, status: int | None = None) -> None:
        """Initialize server error.

        Args:
            text: The response body text.
            status: HTTP status code.
        """
        super().__init__(text, status=status)
        self.text = text


class EmbyDecodeError(EmbyError):
    """Exception raised when a response cannot be decoded.

    Either the JSON does not match the expected shape (the original error is
    chained as ``__cause__``) or the body is missing entirely.
    """
