"""Async client library for the Emby media server API."""

from __future__ import annotations

from .client import EmbyClient, seconds_from_ticks, seconds_to_ticks, ticks_to_seconds
from .exceptions import (
    EmbyAuthenticationError,
    EmbyConfigurationError,
    EmbyConnectionError,
    EmbyDecodeError,
    EmbyError,
    EmbyHTTPError,
    EmbyNotFoundError,
    EmbyServerError,
    EmbySSLError,
    EmbyTimeoutError,
    EmbyTransportError,
)
from .identity import ClientIdentity, configure, get_identity, reset_configuration
from .models import AuthenticationResult, EmbyItem, ItemsPage
from .pipeline import (
    DeliveryContext,
    Err,
    Ok,
    RequestDescriptor,
    RequestPipeline,
    Result,
    __version__,
)
from .query import encode_query, percent_encode, query_components
from .reporter import SessionReporter
from .transport import (
    AiohttpTransport,
    OutgoingRequest,
    ResponseEnvelope,
    TransferProgress,
    Transport,
    UploadFile,
)
from .urls import MediaURLBuilder

__all__ = [
    "AiohttpTransport",
    "AuthenticationResult",
    "ClientIdentity",
    "DeliveryContext",
    "EmbyAuthenticationError",
    "EmbyClient",
    "EmbyConfigurationError",
    "EmbyConnectionError",
    "EmbyDecodeError",
    "EmbyError",
    "EmbyHTTPError",
    "EmbyItem",
    "EmbyNotFoundError",
    "EmbySSLError",
    "EmbyServerError",
    "EmbyTimeoutError",
    "EmbyTransportError",
    "Err",
    "ItemsPage",
    "MediaURLBuilder",
    "Ok",
    "OutgoingRequest",
    "RequestDescriptor",
    "RequestPipeline",
    "ResponseEnvelope",
    "Result",
    "SessionReporter",
    "TransferProgress",
    "Transport",
    "UploadFile",
    "__version__",
    "configure",
    "encode_query",
    "get_identity",
    "percent_encode",
    "query_components",
    "reset_configuration",
    "seconds_from_ticks",
    "seconds_to_ticks",
    "ticks_to_seconds",
]
