"""Fixtures for embykit tests."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from embykit.identity import ClientIdentity, configure, reset_configuration
from embykit.transport import OutgoingRequest, ResponseEnvelope


class FakeTransport:
    """Transport returning scripted envelopes and recording requests."""

    def __init__(self, *responses: ResponseEnvelope) -> None:
        self.responses = list(responses)
        self.requests: list[OutgoingRequest] = []
        self.closed = False

    async def send(self, request: OutgoingRequest) -> ResponseEnvelope:
        self.requests.append(request)
        if not self.responses:
            return ResponseEnvelope(status=204)
        return self.responses.pop(0)

    async def close(self) -> None:
        self.closed = True


def json_response(status: int, body: bytes) -> ResponseEnvelope:
    """Build an envelope the way AiohttpTransport would for a received body."""
    return ResponseEnvelope.from_body(status, body, reason="OK")


@pytest.fixture(autouse=True)
def reset_identity() -> Generator[None]:
    """Start every test without a configured identity."""
    reset_configuration()
    yield
    reset_configuration()


@pytest.fixture
def identity() -> ClientIdentity:
    """Configure and return the process identity."""
    return configure("demo", "1.0.0", "abc123", "desktop")


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Return an empty fake transport."""
    return FakeTransport()


@pytest.fixture
def mock_server_info() -> dict[str, Any]:
    """Return mock server info response."""
    return {
        "Id": "test-server-id-12345",
        "ServerName": "Test Emby Server",
        "Version": "4.9.2.0",
        "OperatingSystem": "Linux",
        "HasPendingRestart": False,
        "IsShuttingDown": False,
        "LocalAddress": "http://192.168.1.100:8096",
    }


@pytest.fixture
def mock_items_response() -> dict[str, Any]:
    """Return a paged items response."""
    return {
        "Items": [
            {
                "Id": "item-1",
                "Name": "Movie One",
                "Type": "Movie",
                "RunTimeTicks": 72_000_000_000,
                "ImageTags": {"Primary": "p1", "Logo": "l1"},
                "BackdropImageTags": ["bd1"],
            },
            {
                "Id": "item-2",
                "Name": "Episode Two",
                "Type": "Episode",
                "ParentBackdropImageTags": ["pbd"],
                "ParentBackdropItemId": "series-1",
            },
        ],
        "TotalRecordCount": 42,
        "StartIndex": 10,
    }
