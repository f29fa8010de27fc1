"""Client identity configuration.

The identity (client name, app version, device id and device name) is sent
with every request in the ``X-Emby-Authorization`` header. It is configured
once per process with :func:`configure` and then shared by every client, or
passed explicitly to a client as ``identity=``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, fields
from urllib.parse import quote

from .const import AUTHORIZATION_SCHEME
from .exceptions import EmbyConfigurationError

_LOGGER = logging.getLogger(__name__)

_configured: ClientIdentity | None = None


@dataclass(frozen=True, slots=True)
class ClientIdentity:
    """Immutable description of this client application and device.

    Attributes:
        client_name: Application name reported to the server.
        app_version: Application version.
        device_id: Stable identifier of this device.
        device_name: Human-readable device name.
    """

    client_name: str
    app_version: str
    device_id: str
    device_name: str

    def __post_init__(self) -> None:
        """Reject empty values."""
        for item in fields(self):
            if not getattr(self, item.name):
                raise EmbyConfigurationError(f"{item.name} can not be empty")

    def authorization_header(self, user_id: str = "") -> str:
        """Build the ``X-Emby-Authorization`` header value.

        Args:
            user_id: Logged in user. A random UUID is used when empty.

        Returns:
            Header value such as
            ``Emby UserId=<id>,Client=<client>,Device=<device>,DeviceId=<id>,Version=<v>``.
        """
        return ",".join(
            [
                f"{AUTHORIZATION_SCHEME} UserId={user_id or str(uuid.uuid4()).upper()}",
                f"Client={self.client_name}",
                f"Device={quote(self.device_name, safe='')}",
                f"DeviceId={self.device_id}",
                f"Version={self.app_version}",
            ]
        )


def configure(
    client_name: str,
    app_version: str,
    device_id: str,
    device_name: str,
) -> ClientIdentity:
    """Set the process-wide client identity.

    Calling again with the same values is a no-op.

    Args:
        client_name: Application name.
        app_version: Application version.
        device_id: Device identifier.
        device_name: Device name.

    Returns:
        The configured identity.

    Raises:
        EmbyConfigurationError: A value is empty, or a different identity
            was already configured.
    """
    global _configured  # noqa: PLW0603

    identity = ClientIdentity(
        client_name=client_name,
        app_version=app_version,
        device_id=device_id,
        device_name=device_name,
    )
    if _configured is None:
        _LOGGER.debug("Configured Emby client identity %s/%s", client_name, app_version)
        _configured = identity
    elif _configured != identity:
        raise EmbyConfigurationError("Client identity is already configured")
    return _configured


def get_identity() -> ClientIdentity:
    """Return the configured identity.

    Raises:
        EmbyConfigurationError: configure() has not been called.
    """
    if _configured is None:
        raise EmbyConfigurationError("Please call embykit.configure() before creating a client")
    return _configured


def reset_configuration() -> None:
    """Forget the configured identity. Intended for tests."""
    global _configured  # noqa: PLW0603
    _configured = None
