"""Exceptions raised by the realtime channel."""


class ChannelError(Exception):
    """Base class for realtime channel failures."""


class ConnectionFailedError(ChannelError):
    """The transport could not be established."""


class TransportError(ChannelError):
    """A frame could not be written to an open transport."""


class ReconnectExhaustedError(ChannelError):
    """Every reconnect attempt failed; the channel is in the FAILED state."""

    def __init__(self, attempts: int):
        super().__init__(f"Gave up after {attempts} reconnect attempts")
        self.attempts = attempts
