"""
Socket.IO transport for the realtime channel.

Each connection attempt gets a fresh `socketio.Client` with the library's
own reconnection turned off; retry policy belongs to RealtimeChannel.
"""

import logging
from typing import Callable, Optional
from urllib.parse import urlsplit

import socketio
from socketio.exceptions import ConnectionError as SocketIOConnectionError, SocketIOError

from .errors import ConnectionFailedError, TransportError

logger = logging.getLogger(__name__)


def endpoint_url(page_origin: str, backend_host: Optional[str] = None) -> str:
    """
    Derive the channel endpoint from the host page's origin.

    The scheme mirrors the page (https -> https, anything else -> http; the
    websocket upgrade follows as wss/ws). `backend_host` overrides the
    origin's host:port.
    """
    parts = urlsplit(page_origin)
    scheme = 'https' if parts.scheme in ('https', 'wss') else 'http'
    host = backend_host or parts.netloc or parts.path
    return f"{scheme}://{host}"


class SocketIOTransport:
    def __init__(self, connect_timeout: float = 10.0):
        self.connect_timeout = connect_timeout
        self._client: Optional[socketio.Client] = None

    @property
    def connected(self) -> bool:
        return self._client is not None and self._client.connected

    def open(self, url: str, on_message: Callable[[str], None],
             on_close: Callable[[], None]) -> None:
        """
        Connect and block until the transport is established.

        Frames arrive on the client's read thread via `on_message`;
        `on_close` fires once when the connection goes away for any reason.

        Raises:
            ConnectionFailedError: if the server cannot be reached
        """
        client = socketio.Client(reconnection=False, logger=False, engineio_logger=False)

        def handle_message(data):
            on_message(data)

        def handle_disconnect(*args):
            on_close()

        client.on('message', handle_message)
        client.on('disconnect', handle_disconnect)

        try:
            client.connect(url, transports=['websocket'], wait_timeout=self.connect_timeout)
        except SocketIOConnectionError as e:
            raise ConnectionFailedError(f"Could not connect to {url}: {e}") from e

        self._client = client

    def send(self, text: str) -> None:
        if not self.connected:
            raise TransportError("Transport is not connected")
        try:
            self._client.send(text)
        except SocketIOError as e:
            raise TransportError(f"Send failed: {e}") from e

    def close(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.disconnect()
        except Exception as e:
            logger.warning(f"Error while closing transport: {e}")
