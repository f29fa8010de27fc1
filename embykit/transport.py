"""HTTP transport for the Emby client.

The request pipeline talks to the network through the :class:`Transport`
protocol. :class:`AiohttpTransport` is the default implementation; tests and
embedding applications can supply their own.

A transport never raises for network or HTTP failures. It reports them in
:attr:`ResponseEnvelope.error` so the pipeline can classify every outcome in
one place. An error status with a plain-text body is not flagged here: the
pipeline reports it as an :class:`~embykit.exceptions.EmbyServerError`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, Self

import aiohttp
from yarl import URL

from .const import DEFAULT_TIMEOUT, DEFAULT_VERIFY_SSL
from .exceptions import (
    EmbyAuthenticationError,
    EmbyConnectionError,
    EmbyHTTPError,
    EmbyNotFoundError,
    EmbySSLError,
    EmbyTimeoutError,
    EmbyTransportError,
)

_LOGGER = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class UploadFile:
    """File part of a multipart upload."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class TransferProgress:
    """Download progress of a response body.

    Attributes:
        received: Bytes received so far.
        expected: Total bytes expected, or None when the length is unknown.
    """

    received: int
    expected: int | None = None

    @property
    def percent(self) -> float | None:
        """Return completion in percent, or None when the length is unknown."""
        if not self.expected:
            return None
        return min(100.0, self.received * 100.0 / self.expected)


ProgressSink = Callable[[TransferProgress], Awaitable[None]]


@dataclass(slots=True)
class OutgoingRequest:
    """Fully resolved request handed to a transport.

    The URL already carries the encoded query string and the headers already
    include authentication.
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    json: Any = None
    data: Mapping[str, object] | None = None
    body: bytes | None = None
    files: Mapping[str, UploadFile] | None = None
    timeout: float | None = None
    progress: ProgressSink | None = None


@dataclass(slots=True)
class ResponseEnvelope:
    """Everything a transport learned about one request.

    Attributes:
        status: HTTP status code, or None when no response was received.
        content: Raw body bytes.
        json: Parsed JSON body, or None when the body is empty or not JSON.
        text: Decoded body text, or None when the body is empty.
        error: Transport failure, or None.
        reason: HTTP reason phrase.
    """

    status: int | None = None
    content: bytes = b""
    json: Any = None
    text: str | None = None
    error: EmbyTransportError | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        """Return True for a 2xx response without transport error."""
        return self.error is None and self.status is not None and 200 <= self.status < 300

    @classmethod
    def from_body(
        cls,
        status: int,
        content: bytes,
        reason: str | None = None,
        encoding: str | None = None,
    ) -> Self:
        """Build an envelope from a received body, parsing JSON when possible."""
        text: str | None = None
        parsed: Any = None
        if content:
            text = content.decode(encoding or "utf-8", errors="replace")
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None
        return cls(status=status, content=content, json=parsed, text=text, reason=reason)


class Transport(Protocol):
    """Asynchronous HTTP transport."""

    async def send(self, request: OutgoingRequest) -> ResponseEnvelope:
        """Send the request and report the outcome."""

    async def close(self) -> None:
        """Release network resources."""


def http_error_for_status(
    status: int,
    reason: str | None,
    url: str,
    text: str | None = None,
) -> EmbyHTTPError:
    """Map a non-2xx status to the matching exception.

    Args:
        status: HTTP status code.
        reason: HTTP reason phrase.
        url: Requested URL, for the message.
        text: Response body text.

    Returns:
        EmbyAuthenticationError for 401/403, EmbyNotFoundError for 404,
        EmbyHTTPError otherwise.
    """
    reason = reason or ""
    if status in (401, 403):
        return EmbyAuthenticationError(
            f"Authentication failed: {status} {reason}".rstrip(),
            status=status,
            reason=reason,
            text=text,
        )
    if status == 404:
        return EmbyNotFoundError(
            f"Resource not found: {url}", status=status, reason=reason, text=text
        )
    return EmbyHTTPError(
        reason or f"HTTP error: {status}", status=status, reason=reason, text=text
    )


class AiohttpTransport:
    """Transport backed by an :class:`aiohttp.ClientSession`.

    Example:
        ```python
        transport = AiohttpTransport(timeout=30)
        envelope = await transport.send(OutgoingRequest("GET", url))
        await transport.close()
        ```
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = DEFAULT_VERIFY_SSL,
    ) -> None:
        """Initialize the transport.

        Args:
            session: Optional aiohttp session to reuse. If not provided,
                     a new session will be created on first use.
            timeout: Default request timeout in seconds.
            verify_ssl: Whether to verify TLS certificates.
        """
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._verify_ssl = verify_ssl

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session.

        Returns:
            Active aiohttp client session.
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    def _get_ssl_context(self) -> bool:
        """Return False to disable certificate verification, True otherwise."""
        return self._verify_ssl

    @staticmethod
    def _build_payload(request: OutgoingRequest) -> dict[str, Any]:
        """Pick the body argument for aiohttp from the request."""
        if request.files:
            form = aiohttp.FormData()
            for name, value in (request.data or {}).items():
                form.add_field(name, str(value))
            for name, upload in request.files.items():
                form.add_field(
                    name,
                    upload.content,
                    filename=upload.filename,
                    content_type=upload.content_type,
                )
            return {"data": form}
        if request.body is not None:
            return {"data": request.body}
        if request.json is not None:
            return {"json": request.json}
        if request.data:
            return {"data": {name: str(value) for name, value in request.data.items()}}
        return {}

    async def _read_body(
        self,
        response: aiohttp.ClientResponse,
        progress: ProgressSink | None,
    ) -> bytes:
        """Read the response body, reporting progress per chunk when asked."""
        if progress is None:
            return await response.read()
        chunks: list[bytes] = []
        received = 0
        expected = response.content_length
        async for chunk in response.content.iter_chunked(_CHUNK_SIZE):
            chunks.append(chunk)
            received += len(chunk)
            await progress(TransferProgress(received=received, expected=expected))
        return b"".join(chunks)

    async def send(self, request: OutgoingRequest) -> ResponseEnvelope:
        """Send a request and capture the response or failure.

        Args:
            request: Resolved request.

        Returns:
            Envelope describing the outcome. Failures are reported in
            ``error`` and never raised.
        """
        session = await self._get_session()
        timeout = (
            aiohttp.ClientTimeout(total=request.timeout)
            if request.timeout is not None
            else self._timeout
        )

        try:
            async with session.request(
                request.method,
                URL(request.url, encoded=True),
                headers=request.headers,
                ssl=self._get_ssl_context(),
                timeout=timeout,
                **self._build_payload(request),
            ) as response:
                content = await self._read_body(response, request.progress)
                envelope = ResponseEnvelope.from_body(
                    response.status,
                    content,
                    reason=response.reason,
                    encoding=response.charset,
                )
                _LOGGER.debug(
                    "Emby API response: %s %s for %s %s",
                    response.status,
                    response.reason,
                    request.method,
                    request.url,
                )
                # Plain-text bodies on error statuses are classified by the pipeline
                if response.status >= 400 and (envelope.json is not None or not envelope.text):
                    envelope.error = http_error_for_status(
                        response.status, response.reason, request.url, envelope.text
                    )
                return envelope

        except aiohttp.ClientSSLError as err:
            _LOGGER.debug("Emby API SSL error for %s %s: %s", request.method, request.url, err)
            return ResponseEnvelope(error=EmbySSLError(f"SSL certificate error: {err}"))

        except TimeoutError:
            _LOGGER.debug("Emby API timeout for %s %s", request.method, request.url)
            return ResponseEnvelope(
                error=EmbyTimeoutError(f"Request timed out after {timeout.total}s")
            )

        except aiohttp.ClientConnectorError as err:
            _LOGGER.debug(
                "Emby API connection error for %s %s: %s", request.method, request.url, err
            )
            return ResponseEnvelope(error=EmbyConnectionError(f"Failed to connect: {err}"))

        except aiohttp.ClientError as err:
            _LOGGER.debug("Emby API client error for %s %s: %s", request.method, request.url, err)
            return ResponseEnvelope(error=EmbyConnectionError(f"Client error: {err}"))

    async def close(self) -> None:
        """Close the session.

        Only closes the session if it was created by this transport.
        Sessions provided externally are not closed.
        """
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
