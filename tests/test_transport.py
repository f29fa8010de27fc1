"""Tests for the aiohttp transport."""

from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from embykit.client import EmbyClient
from embykit.exceptions import (
    EmbyAuthenticationError,
    EmbyConnectionError,
    EmbyHTTPError,
    EmbyNotFoundError,
    EmbyServerError,
    EmbySSLError,
    EmbyTimeoutError,
)
from embykit.identity import ClientIdentity
from embykit.transport import (
    AiohttpTransport,
    OutgoingRequest,
    ResponseEnvelope,
    TransferProgress,
    UploadFile,
    http_error_for_status,
)

URL = "http://emby.local:8096/System/Info"


def _mock_response(
    status: int = 200,
    body: bytes = b"",
    reason: str = "OK",
) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.reason = reason
    mock_response.charset = "utf-8"
    mock_response.content_length = len(body)
    mock_response.read = AsyncMock(return_value=body)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)
    return mock_response


def _mock_session(response: MagicMock | None = None, side_effect: Exception | None = None) -> MagicMock:
    mock_session = MagicMock()
    if side_effect is not None:
        mock_session.request = MagicMock(side_effect=side_effect)
    else:
        mock_session.request = MagicMock(return_value=response)
    mock_session.closed = False
    mock_session.close = AsyncMock()
    return mock_session


class TestSend:
    """Test successful sends."""

    @pytest.mark.asyncio
    async def test_json_response(self) -> None:
        """Test a JSON body is parsed into the envelope."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session = _mock_session(_mock_response(body=b'{"Id": "srv"}'))
            mock_session_class.return_value = mock_session

            transport = AiohttpTransport()
            envelope = await transport.send(OutgoingRequest("GET", URL))
            await transport.close()

            assert envelope.ok
            assert envelope.status == 200
            assert envelope.json == {"Id": "srv"}
            assert envelope.text == '{"Id": "srv"}'
            assert envelope.error is None

    @pytest.mark.asyncio
    async def test_text_response(self) -> None:
        """Test a non-JSON body is kept as text only."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(_mock_response(body=b"hello"))

            transport = AiohttpTransport()
            envelope = await transport.send(OutgoingRequest("GET", URL))

            assert envelope.json is None
            assert envelope.text == "hello"

    @pytest.mark.asyncio
    async def test_request_arguments(self) -> None:
        """Test method, encoded URL, headers and SSL flag are passed through."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session = _mock_session(_mock_response())
            mock_session_class.return_value = mock_session

            transport = AiohttpTransport(verify_ssl=False)
            await transport.send(
                OutgoingRequest(
                    "POST",
                    "http://emby.local:8096/Items?Fields%5BA%5D=1",
                    headers={"X-Emby-Token": "t"},
                    json={"a": 1},
                )
            )

            call_args = mock_session.request.call_args
            assert call_args.args[0] == "POST"
            assert str(call_args.args[1]) == "http://emby.local:8096/Items?Fields%5BA%5D=1"
            assert call_args.kwargs["headers"] == {"X-Emby-Token": "t"}
            assert call_args.kwargs["ssl"] is False
            assert call_args.kwargs["json"] == {"a": 1}

    @pytest.mark.asyncio
    async def test_per_request_timeout(self) -> None:
        """Test a request timeout overrides the default."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session = _mock_session(_mock_response())
            mock_session_class.return_value = mock_session

            transport = AiohttpTransport(timeout=10)
            await transport.send(OutgoingRequest("GET", URL, timeout=2))

            assert mock_session.request.call_args.kwargs["timeout"].total == 2

    @pytest.mark.asyncio
    async def test_progress_reported_per_chunk(self) -> None:
        """Test the body is streamed when progress is requested."""

        async def chunks() -> AsyncIterator[bytes]:
            yield b"ab"
            yield b"cd"

        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_response = _mock_response()
            mock_response.content_length = 4
            mock_response.content.iter_chunked = MagicMock(return_value=chunks())
            mock_session_class.return_value = _mock_session(mock_response)

            updates: list[TransferProgress] = []
            progress = AsyncMock(side_effect=updates.append)

            transport = AiohttpTransport()
            envelope = await transport.send(OutgoingRequest("GET", URL, progress=progress))

            assert envelope.content == b"abcd"
            assert updates == [
                TransferProgress(received=2, expected=4),
                TransferProgress(received=4, expected=4),
            ]


class TestPayload:
    """Test payload selection."""

    def test_files_become_form_data(self) -> None:
        """Test uploads are sent as multipart form data."""
        payload = AiohttpTransport._build_payload(
            OutgoingRequest(
                "POST",
                URL,
                data={"Name": "x"},
                files={"file": UploadFile("a.png", b"\x89PNG", "image/png")},
            )
        )
        assert isinstance(payload["data"], aiohttp.FormData)

    def test_body_wins_over_json(self) -> None:
        """Test raw bytes are sent unchanged."""
        payload = AiohttpTransport._build_payload(
            OutgoingRequest("POST", URL, body=b"raw", json={"a": 1})
        )
        assert payload == {"data": b"raw"}

    def test_json(self) -> None:
        """Test JSON bodies use the json argument."""
        payload = AiohttpTransport._build_payload(OutgoingRequest("POST", URL, json={"a": 1}))
        assert payload == {"json": {"a": 1}}

    def test_form_fields(self) -> None:
        """Test plain form fields are stringified."""
        payload = AiohttpTransport._build_payload(OutgoingRequest("POST", URL, data={"n": 1}))
        assert payload == {"data": {"n": "1"}}

    def test_no_payload(self) -> None:
        """Test requests without a body send nothing."""
        assert AiohttpTransport._build_payload(OutgoingRequest("GET", URL)) == {}


class TestErrors:
    """Test failure reporting."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "error_class"),
        [
            (401, EmbyAuthenticationError),
            (403, EmbyAuthenticationError),
            (404, EmbyNotFoundError),
            (500, EmbyHTTPError),
        ],
    )
    async def test_http_status_mapped(self, status: int, error_class: type[Exception]) -> None:
        """Test error statuses are reported in the envelope."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(
                _mock_response(status=status, body=b"", reason="Error")
            )

            transport = AiohttpTransport()
            envelope = await transport.send(OutgoingRequest("GET", URL))

            assert not envelope.ok
            assert envelope.status == status
            assert isinstance(envelope.error, error_class)
            assert envelope.error.status == status
            assert envelope.error.text is None

    @pytest.mark.asyncio
    async def test_http_status_with_json_body(self) -> None:
        """Test a JSON body on an error status is still an HTTP error."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(
                _mock_response(status=400, body=b'{"Error": "bad"}', reason="Bad Request")
            )

            transport = AiohttpTransport()
            envelope = await transport.send(OutgoingRequest("GET", URL))

            assert isinstance(envelope.error, EmbyHTTPError)
            assert envelope.json == {"Error": "bad"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 404, 500])
    async def test_http_status_with_text_body_left_unflagged(self, status: int) -> None:
        """Test a plain-text rejection is passed on for classification."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(
                _mock_response(status=status, body=b"Invalid user or password entered.")
            )

            transport = AiohttpTransport()
            envelope = await transport.send(OutgoingRequest("GET", URL))

            assert envelope.error is None
            assert not envelope.ok
            assert envelope.status == status
            assert envelope.text == "Invalid user or password entered."

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        """Test connection failures are reported, not raised."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(
                side_effect=aiohttp.ClientConnectorError(MagicMock(), OSError("Connection refused"))
            )

            transport = AiohttpTransport()
            envelope = await transport.send(OutgoingRequest("GET", URL))

            assert envelope.status is None
            assert isinstance(envelope.error, EmbyConnectionError)

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        """Test timeouts are reported as EmbyTimeoutError."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(side_effect=TimeoutError())

            transport = AiohttpTransport()
            envelope = await transport.send(OutgoingRequest("GET", URL))

            assert isinstance(envelope.error, EmbyTimeoutError)

    @pytest.mark.asyncio
    async def test_ssl_error(self) -> None:
        """Test certificate failures are reported as EmbySSLError."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            ssl_error = OSError("SSL certificate verify failed")
            mock_session_class.return_value = _mock_session(
                side_effect=aiohttp.ClientSSLError(MagicMock(), ssl_error)
            )

            transport = AiohttpTransport()
            envelope = await transport.send(OutgoingRequest("GET", URL))

            assert isinstance(envelope.error, EmbySSLError)

    @pytest.mark.asyncio
    async def test_generic_client_error(self) -> None:
        """Test other aiohttp errors are connection errors."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(
                side_effect=aiohttp.ClientPayloadError("truncated")
            )

            transport = AiohttpTransport()
            envelope = await transport.send(OutgoingRequest("GET", URL))

            assert isinstance(envelope.error, EmbyConnectionError)

    def test_http_error_without_reason(self) -> None:
        """Test a missing reason falls back to the status."""
        error = http_error_for_status(502, None, URL)
        assert str(error) == "HTTP error: 502"


class TestSessionOwnership:
    """Test session lifecycle."""

    @pytest.mark.asyncio
    async def test_owned_session_closed(self) -> None:
        """Test a session created by the transport is closed."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session = _mock_session(_mock_response())
            mock_session_class.return_value = mock_session

            transport = AiohttpTransport()
            await transport.send(OutgoingRequest("GET", URL))
            await transport.close()

            mock_session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_external_session_not_closed(self) -> None:
        """Test a caller's session is left open."""
        mock_session = _mock_session(_mock_response())
        transport = AiohttpTransport(session=mock_session)

        await transport.send(OutgoingRequest("GET", URL))
        await transport.close()

        mock_session.close.assert_not_called()


class TestEnvelope:
    """Test envelope construction."""

    def test_empty_body(self) -> None:
        """Test an empty body has neither JSON nor text."""
        envelope = ResponseEnvelope.from_body(200, b"")
        assert envelope.json is None
        assert envelope.text is None
        assert envelope.ok

    def test_non_2xx_is_not_ok(self) -> None:
        """Test only 2xx statuses are ok."""
        assert not ResponseEnvelope.from_body(302, b"").ok
        assert not ResponseEnvelope().ok

    def test_progress_percent(self) -> None:
        """Test percent is None without a known length."""
        assert TransferProgress(received=5).percent is None
        assert TransferProgress(received=1, expected=4).percent == 25.0


class TestTextRejections:
    """Test plain-text rejections on error statuses through a client."""

    @pytest.mark.asyncio
    async def test_500_text_is_server_error(self, identity: ClientIdentity) -> None:
        """Test a 500 with a text body raises EmbyServerError with the text."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(
                _mock_response(
                    status=500,
                    body=b"Invalid user or password entered.",
                    reason="Internal Server Error",
                )
            )

            client = EmbyClient("http://emby.local:8096", user_id="u1", access_token="tok")
            with pytest.raises(EmbyServerError) as exc_info:
                await client.async_update_password("old", "new")
            await client.close()

            assert exc_info.value.text == "Invalid user or password entered."
            assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_401_text_notifies_once(self, identity: ClientIdentity) -> None:
        """Test a 401 with a text body fires the callback once and fails."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(
                _mock_response(status=401, body=b"Access token is invalid or expired.")
            )
            callback = MagicMock()

            client = EmbyClient(
                "http://emby.local:8096",
                user_id="u1",
                access_token="stale",
                on_token_invalid=callback,
            )
            with pytest.raises(EmbyServerError) as exc_info:
                await client.async_get_user_info()
            await client.close()

            callback.assert_called_once_with()
            assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_empty_error_status_is_http_error(self, identity: ClientIdentity) -> None:
        """Test an error status without body stays an HTTP error."""
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(
                _mock_response(status=503, reason="Service Unavailable")
            )

            client = EmbyClient("http://emby.local:8096", user_id="u1", access_token="tok")
            with pytest.raises(EmbyHTTPError, match="Service Unavailable"):
                await client.async_get_server_info()
            await client.close()
