"""Fire-and-forget playback reporting.

Playback start, progress and stop events keep the server's "now playing"
view and resume positions up to date. Playback must continue whether or not
the server accepts them, so reporting never raises and never returns a
result: outcomes are logged and discarded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from .const import (
    CONTENT_TYPE_JSON,
    ENDPOINT_SESSION_PLAYING,
    ENDPOINT_SESSION_PROGRESS,
    ENDPOINT_SESSION_STOPPED,
    HTTP_POST,
)
from .transport import OutgoingRequest

if TYPE_CHECKING:
    from .const import PlaybackProgressInfo, PlaybackStartInfo, PlaybackStopInfo
    from .pipeline import RequestPipeline
    from .transport import Transport

_LOGGER = logging.getLogger(__name__)


class SessionReporter:
    """Posts playback events without waiting for or decoding the response."""

    def __init__(self, pipeline: RequestPipeline, transport: Transport) -> None:
        """Initialize the reporter.

        Args:
            pipeline: Pipeline whose headers and base URL are reused.
            transport: Transport used to post events.
        """
        self._pipeline = pipeline
        self._transport = transport
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> frozenset[asyncio.Task[None]]:
        """Return reports that are still being sent."""
        return frozenset(self._tasks)

    def report_start(self, info: PlaybackStartInfo) -> None:
        """Report that playback started."""
        self._report(ENDPOINT_SESSION_PLAYING, info)

    def report_progress(self, info: PlaybackProgressInfo) -> None:
        """Report playback position or state changes."""
        self._report(ENDPOINT_SESSION_PROGRESS, info)

    def report_stopped(self, info: PlaybackStopInfo) -> None:
        """Report that playback stopped."""
        self._report(ENDPOINT_SESSION_STOPPED, info)

    def _report(self, endpoint: str, body: Mapping[str, object]) -> None:
        """Schedule a report and return immediately."""
        request = OutgoingRequest(
            method=HTTP_POST,
            url=self._pipeline.build_url(endpoint),
            # Headers are built now so the report carries the token current at call time
            headers=self._pipeline.build_headers(extra={"Content-Type": CONTENT_TYPE_JSON}),
            json=dict(body),
        )
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _LOGGER.debug("No running event loop, dropping playback report to %s", endpoint)
            return
        task = loop.create_task(self._send(endpoint, request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, endpoint: str, request: OutgoingRequest) -> None:
        """Send one report, discarding the outcome."""
        try:
            envelope = await self._transport.send(request)
        except Exception as err:  # noqa: BLE001
            _LOGGER.debug("Playback report to %s failed: %s", endpoint, err)
            return
        if envelope.error is not None:
            _LOGGER.debug("Playback report to %s failed: %s", endpoint, envelope.error)
        else:
            _LOGGER.debug("Playback report to %s sent (%s)", endpoint, envelope.status)

    async def close(self) -> None:
        """Wait for reports that are still in flight."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
