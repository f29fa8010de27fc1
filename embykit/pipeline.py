"""Request pipeline for the Emby API.

Every data call goes through :meth:`RequestPipeline.execute`. The pipeline
adds authentication headers, sends the request through the transport,
classifies the response and decodes it into a :data:`Result`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, NoReturn, TypeAlias, TypeVar

from .const import (
    CONTENT_TYPE_JSON,
    HEADER_AUTHORIZATION,
    HEADER_TOKEN,
    HTTP_GET,
    HTTP_UNAUTHORIZED,
    USER_AGENT_TEMPLATE,
    sanitize_api_key,
)
from .exceptions import EmbyDecodeError, EmbyError, EmbyServerError, EmbyTransportError
from .query import encode_query
from .transport import (
    OutgoingRequest,
    ResponseEnvelope,
    TransferProgress,
    Transport,
    UploadFile,
)

_LOGGER = logging.getLogger(__name__)

# Version for User-Agent header
__version__ = "0.1.0"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result. ``Ok(None)`` is the unit value of void calls."""

    value: T

    @property
    def ok(self) -> bool:
        """Return True."""
        return True

    def unwrap(self) -> T:
        """Return the value."""
        return self.value


@dataclass(frozen=True, slots=True)
class Err:
    """Failed result carrying exactly one error."""

    error: EmbyError

    @property
    def ok(self) -> bool:
        """Return False."""
        return False

    def unwrap(self) -> NoReturn:
        """Raise the carried error."""
        raise self.error


Result: TypeAlias = Ok[T] | Err

Completion = Callable[[Any], Awaitable[None] | None]


@dataclass(slots=True)
class RequestDescriptor:
    """Description of one API request.

    Attributes:
        method: HTTP method.
        path: Path relative to the base URL, or an absolute http(s) URL.
        params: Query parameters; nested mappings and sequences are flattened.
        json: JSON body.
        headers: Extra headers. Authentication headers always win.
        body: Raw body bytes, sent instead of ``json``.
        data: Form fields, sent alongside ``files`` or url-encoded on their own.
        files: Multipart file parts.
        progress: Called with download progress of the response body.
        timeout: Per-request timeout in seconds.
        include_auth: Whether to send the authentication headers.
    """

    method: str = HTTP_GET
    path: str = ""
    params: Mapping[str, object] = field(default_factory=dict)
    json: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None
    data: Mapping[str, object] | None = None
    files: Mapping[str, UploadFile] | None = None
    progress: Callable[[TransferProgress], Awaitable[None] | None] | None = None
    timeout: float | None = None
    include_auth: bool = True


class DeliveryContext:
    """Serial executor for completions.

    Callables run one at a time in submission order of lock acquisition, so
    two completions delivered through the same context never overlap, even
    when they are coroutines that await.
    """

    def __init__(self) -> None:
        """Initialize the context."""
        self._lock = asyncio.Lock()

    async def run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run ``func(*args)`` inside the context, awaiting it if needed."""
        async with self._lock:
            result = func(*args)
            if inspect.isawaitable(result):
                result = await result
            return result


class RequestPipeline:
    """Executes requests and turns responses into results.

    Attributes:
        on_token_invalid: Called when the server answers 401. It runs at most
            once per failing request, before the failure is delivered.
    """

    def __init__(
        self,
        base_url: str,
        transport: Transport,
        authorization_header: str,
        token_getter: Callable[[], str | None],
        on_token_invalid: Callable[[], None] | None = None,
        delivery: DeliveryContext | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            base_url: Server base URL including port.
            transport: Transport used to send requests.
            authorization_header: Precomputed ``X-Emby-Authorization`` value.
            token_getter: Returns the current access token. It is called once
                per request at send time.
            on_token_invalid: Optional callback for 401 responses.
            delivery: Serial context for completions. A new one by default.
        """
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._authorization_header = authorization_header
        self._token_getter = token_getter
        self.on_token_invalid = on_token_invalid
        self._delivery = delivery or DeliveryContext()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def base_url(self) -> str:
        """Return the base URL without trailing slash."""
        return self._base_url

    @property
    def delivery(self) -> DeliveryContext:
        """Return the delivery context."""
        return self._delivery

    @property
    def pending(self) -> frozenset[asyncio.Task[None]]:
        """Return requests submitted with :meth:`submit` that are still running."""
        return frozenset(self._tasks)

    def build_headers(
        self,
        include_auth: bool = True,
        extra: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        """Build headers for API requests.

        Args:
            include_auth: Whether to include authentication headers.
            extra: Additional headers. Authentication headers override them.

        Returns:
            Dictionary of HTTP headers.
        """
        headers = {
            "User-Agent": USER_AGENT_TEMPLATE.format(version=__version__),
            "Accept": CONTENT_TYPE_JSON,
        }
        if extra:
            headers.update(extra)
        if include_auth:
            headers[HEADER_AUTHORIZATION] = self._authorization_header
            token = self._token_getter()
            if token:
                headers[HEADER_TOKEN] = token
        return headers

    def build_url(self, path: str, params: Mapping[str, object] | None = None) -> str:
        """Resolve ``path`` against the base URL and append the query string."""
        if path.startswith(("http://", "https://")):
            url = path
        else:
            url = f"{self._base_url}/{path.lstrip('/')}"
        if params:
            url = f"{url}?{encode_query(params)}"
        return url

    def _prepare(self, descriptor: RequestDescriptor) -> OutgoingRequest:
        """Resolve a descriptor into a transport request."""
        headers = self.build_headers(descriptor.include_auth, descriptor.headers)
        progress = descriptor.progress

        async def progress_sink(update: TransferProgress) -> None:
            await self._delivery.run(progress, update)

        return OutgoingRequest(
            method=descriptor.method,
            url=self.build_url(descriptor.path, descriptor.params),
            headers=headers,
            json=descriptor.json,
            data=descriptor.data,
            body=descriptor.body,
            files=descriptor.files,
            timeout=descriptor.timeout,
            progress=progress_sink if progress is not None else None,
        )

    def _notify_token_invalid(self) -> None:
        """Invoke the token-invalid callback, if any."""
        if self.on_token_invalid is None:
            return
        _LOGGER.debug("Emby access token rejected by server")
        try:
            self.on_token_invalid()
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Error in token invalid callback")

    def classify(
        self,
        envelope: ResponseEnvelope,
        decoder: Callable[[Any], T] | None,
        path: str = "",
    ) -> Result[T]:
        """Turn a response envelope into a result.

        Args:
            envelope: What the transport reported.
            decoder: Maps parsed JSON to the expected type. None means the
                call returns nothing.
            path: Request path, for log messages.

        Returns:
            Ok with the decoded value, or Err with exactly one error.
        """
        if envelope.error is not None:
            if envelope.status == HTTP_UNAUTHORIZED:
                self._notify_token_invalid()
            _LOGGER.debug("Emby API request %s failed: %s", path, envelope.error)
            return Err(envelope.error)

        if envelope.json is not None:
            if decoder is None:
                return Ok(None)  # type: ignore[arg-type]
            try:
                return Ok(decoder(envelope.json))
            except Exception as err:  # noqa: BLE001
                _LOGGER.warning("Emby API returned unexpected JSON for %s: %r", path, err)
                decode_error = EmbyDecodeError(
                    f"Failed to decode response: {err!r}", status=envelope.status
                )
                decode_error.__cause__ = err
                return Err(decode_error)

        if envelope.text:
            if envelope.status == HTTP_UNAUTHORIZED:
                self._notify_token_invalid()
            _LOGGER.debug("Emby API returned text for %s: %s", path, envelope.text)
            return Err(EmbyServerError(envelope.text, status=envelope.status))

        if decoder is None:
            return Ok(None)  # type: ignore[arg-type]
        return Err(EmbyDecodeError("missing body", status=envelope.status))

    async def send(self, descriptor: RequestDescriptor) -> ResponseEnvelope:
        """Send a descriptor through the transport without classifying the response.

        A transport that raises instead of reporting the failure in the
        envelope is treated as a transport error.
        """
        request = self._prepare(descriptor)
        _LOGGER.debug(
            "Emby API request: %s %s (auth=%s, token=%s)",
            descriptor.method,
            descriptor.path,
            descriptor.include_auth,
            sanitize_api_key(request.headers.get(HEADER_TOKEN)),
        )
        try:
            return await self._transport.send(request)
        except Exception as err:  # noqa: BLE001
            _LOGGER.exception("Emby transport raised for %s %s", descriptor.method, descriptor.path)
            error = EmbyTransportError(f"Transport failed: {err!r}")
            error.__cause__ = err
            return ResponseEnvelope(error=error)

    async def execute(
        self,
        descriptor: RequestDescriptor,
        decoder: Callable[[Any], T] | None = None,
    ) -> Result[T]:
        """Execute a request and return its result.

        Classification, and with it the token-invalid callback, runs inside
        the delivery context. The caller's own continuation after the await
        does not: use :meth:`submit` when completions must never overlap.

        Args:
            descriptor: The request.
            decoder: Maps parsed JSON to the expected type, or None for calls
                without a payload.

        Returns:
            Ok with the decoded value, or Err.
        """
        envelope = await self.send(descriptor)
        result: Result[T] = await self._delivery.run(
            self.classify, envelope, decoder, descriptor.path
        )
        return result

    def submit(
        self,
        descriptor: RequestDescriptor,
        decoder: Callable[[Any], T] | None,
        completion: Completion,
    ) -> None:
        """Schedule a request and deliver its result to ``completion``.

        Returns immediately. Completions of one pipeline run serially in the
        delivery context. Must be called from within a running event loop.

        Args:
            descriptor: The request.
            decoder: Maps parsed JSON to the expected type, or None.
            completion: Receives the Result. May be a coroutine function.
        """

        async def _deliver(result: Result[T]) -> None:
            try:
                outcome = completion(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Error in completion for %s", descriptor.path)

        async def _run() -> None:
            envelope = await self.send(descriptor)

            async def _classify_and_deliver() -> None:
                await _deliver(self.classify(envelope, decoder, descriptor.path))

            await self._delivery.run(_classify_and_deliver)

        task = asyncio.get_running_loop().create_task(_run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
