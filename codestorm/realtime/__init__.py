"""Realtime channel - resilient client connection to the contest event server."""

from .channel import (
    RealtimeChannel, ChannelConfig, ChannelOptions, ConnectionState, MAX_RECONNECT_ATTEMPTS,
)
from .errors import ChannelError, ConnectionFailedError, TransportError, ReconnectExhaustedError
from .messages import ChannelMessage, EventType, MessageFormatError
from .transport import SocketIOTransport, endpoint_url

__all__ = [
    'RealtimeChannel', 'ChannelConfig', 'ChannelOptions', 'ConnectionState',
    'MAX_RECONNECT_ATTEMPTS',
    'ChannelError', 'ConnectionFailedError', 'TransportError', 'ReconnectExhaustedError',
    'ChannelMessage', 'EventType', 'MessageFormatError',
    'SocketIOTransport', 'endpoint_url',
]
