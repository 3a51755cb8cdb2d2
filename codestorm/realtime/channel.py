"""
RealtimeChannel: one logical duplex event connection to the contest server.

State machine:

    IDLE -> CONNECTING -> OPEN -> CLOSING -> IDLE
                           |
                           v  (unexpected loss)
                      RECONNECTING -> CONNECTING -> OPEN
                           |
                           v  (retry budget spent)
                         FAILED

Transport callbacks arrive on the Socket.IO read thread and reconnect timers
fire on their own threads, so connection state and the handler table are
guarded by a re-entrant lock. Handlers are invoked outside that lock, one
frame at a time, in registration order.
"""

import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import ChannelError, ConnectionFailedError, ReconnectExhaustedError, TransportError
from .messages import ChannelMessage, EventType, MessageFormatError, event_name
from .transport import SocketIOTransport, endpoint_url

logger = logging.getLogger(__name__)

MAX_RECONNECT_ATTEMPTS = 5

Handler = Callable[[Any], None]


class ConnectionState(Enum):
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    RECONNECTING = "RECONNECTING"
    CLOSING = "CLOSING"
    FAILED = "FAILED"


@dataclass
class ChannelConfig:
    """
    Connection settings.

    Attributes:
        url: Server endpoint (see transport.endpoint_url)
        base_delay: Seconds; attempt N waits base_delay * N
        max_delay: Optional ceiling on a single reconnect delay
        connect_timeout: Seconds to wait for the transport handshake
    """
    url: str
    base_delay: float = 1.0
    max_delay: Optional[float] = None
    connect_timeout: float = 10.0

    @classmethod
    def from_env(cls, page_origin: Optional[str] = None) -> 'ChannelConfig':
        origin = page_origin or os.environ.get('CODESTORM_PAGE_ORIGIN', 'http://localhost:8080')
        backend_host = os.environ.get('CODESTORM_BACKEND_HOST', 'localhost:3001')
        max_delay = os.environ.get('CODESTORM_RECONNECT_MAX_DELAY')
        return cls(
            url=endpoint_url(origin, backend_host),
            base_delay=float(os.environ.get('CODESTORM_RECONNECT_DELAY', 1.0)),
            max_delay=float(max_delay) if max_delay else None,
        )


@dataclass
class ChannelOptions:
    """
    Host callbacks.

    Attributes:
        on_message: Called with every decoded frame after type handlers ran
        on_state_change: Called with (previous, current) on each transition
        on_error: Called with ReconnectExhaustedError when the channel fails
    """
    on_message: Optional[Callable[[ChannelMessage], None]] = None
    on_state_change: Optional[Callable[[ConnectionState, ConnectionState], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None


class RealtimeChannel:
    def __init__(self, config: ChannelConfig, options: Optional[ChannelOptions] = None,
                 transport_factory: Optional[Callable[[], Any]] = None,
                 timer_factory: Callable[..., Any] = threading.Timer):
        self.config = config
        self.options = options or ChannelOptions()
        self._transport_factory = transport_factory or (
            lambda: SocketIOTransport(connect_timeout=config.connect_timeout)
        )
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._dispatch_lock = threading.RLock()

        self._state = ConnectionState.IDLE
        self._transport = None
        self._reconnect_timer = None
        self._reconnect_attempts = 0
        self._user_id: Optional[str] = None
        self._topic_id: Optional[str] = None
        self._authenticated = False
        self._handlers: Dict[str, List[Handler]] = {}

    def __enter__(self) -> 'RealtimeChannel':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.OPEN

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def current_topic(self) -> Optional[str]:
        return self._topic_id

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    def connect(self, user_id: Optional[str] = None) -> None:
        """
        Open the connection and block until the transport is established.

        If `user_id` is given an authenticate request goes out immediately;
        the result arrives later as an `authenticated` or
        `authentication_failed` event.

        Raises:
            ChannelError: if the channel is not IDLE or FAILED
            ConnectionFailedError: if the server cannot be reached; the
                channel is back in IDLE and does not retry
        """
        with self._lock:
            if self._state not in (ConnectionState.IDLE, ConnectionState.FAILED):
                raise ChannelError(f"Cannot connect while {self._state.value}")
            self._cancel_reconnect_timer()
            self._user_id = user_id
            self._reconnect_attempts = 0
            self._transition(ConnectionState.CONNECTING)

        try:
            self._open_transport()
        except ConnectionFailedError as e:
            logger.error(f"Connection to {self.config.url} failed: {e}")
            self._transition(ConnectionState.IDLE, expected=ConnectionState.CONNECTING)
            raise
        except Exception:
            logger.exception(f"Unexpected error connecting to {self.config.url}")
            self._transition(ConnectionState.IDLE, expected=ConnectionState.CONNECTING)
            raise

    def retry_connection(self) -> None:
        """Manual recovery after FAILED, reusing the last identity."""
        logger.info("Manual connection retry requested")
        self.connect(self._user_id)

    def disconnect(self) -> None:
        """
        Close the connection and reset the channel completely.

        Identity, topic, authentication, retry counter and every registered
        handler are dropped. A pending reconnect timer is cancelled.
        """
        with self._lock:
            was_idle = self._state == ConnectionState.IDLE
            self._cancel_reconnect_timer()
            transport, self._transport = self._transport, None
            self._authenticated = False
            self._user_id = None
            self._topic_id = None
            self._reconnect_attempts = 0
            self._handlers.clear()
            if was_idle:
                return
            self._transition(ConnectionState.CLOSING)

        if transport is not None:
            transport.close()
        self._transition(ConnectionState.IDLE, expected=ConnectionState.CLOSING)
        logger.info("Realtime channel disconnected")

    def _open_transport(self) -> None:
        transport = self._transport_factory()
        closed_early = threading.Event()

        def handle_close():
            closed_early.set()
            self._handle_transport_closed(transport)

        logger.info(f"Connecting to {self.config.url}")
        transport.open(
            self.config.url,
            on_message=self._handle_frame,
            on_close=handle_close,
        )

        # a close seen after this check finds the transport installed and reconnects
        with self._lock:
            dropped = closed_early.is_set()
            stale = dropped or self._state != ConnectionState.CONNECTING
            if not stale:
                self._transport = transport
                self._reconnect_attempts = 0
                self._transition(ConnectionState.OPEN)
            user_id = self._user_id

        if stale:
            transport.close()
            if dropped:
                raise ConnectionFailedError(f"Connection to {self.config.url} closed during handshake")
            # disconnect() ran during the handshake
            return

        logger.info(f"Connected to {self.config.url}")

        if user_id:
            self.authenticate(user_id)

    def _handle_transport_closed(self, transport) -> None:
        with self._lock:
            if transport is not self._transport or self._state != ConnectionState.OPEN:
                return
            self._transport = None
            self._authenticated = False
            self._topic_id = None
            self._transition(ConnectionState.RECONNECTING)

        logger.warning("Realtime connection lost")
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        with self._lock:
            if self._state != ConnectionState.RECONNECTING:
                return
            if self._reconnect_attempts >= MAX_RECONNECT_ATTEMPTS:
                exhausted = True
            else:
                exhausted = False
                self._reconnect_attempts += 1
                attempt = self._reconnect_attempts
                delay = self.config.base_delay * attempt
                if self.config.max_delay is not None:
                    delay = min(delay, self.config.max_delay)
                timer = self._timer_factory(delay, self._reconnect)
                timer.daemon = True
                self._reconnect_timer = timer
                timer.start()

        if exhausted:
            attempts = self._reconnect_attempts
            logger.error(f"Max reconnection attempts reached ({attempts}); channel failed")
            self._transition(ConnectionState.FAILED, expected=ConnectionState.RECONNECTING)
            if self.options.on_error:
                self.options.on_error(ReconnectExhaustedError(attempts))
            return

        logger.info(f"Reconnecting ({attempt}/{MAX_RECONNECT_ATTEMPTS}) in {delay}s")

    def _reconnect(self) -> None:
        with self._lock:
            if self._state != ConnectionState.RECONNECTING:
                return
            self._reconnect_timer = None
            attempt = self._reconnect_attempts
            self._transition(ConnectionState.CONNECTING)

        try:
            self._open_transport()
        except ConnectionFailedError as e:
            logger.warning(f"Reconnect attempt {attempt} failed: {e}")
        except Exception:
            logger.exception(f"Unexpected error in reconnect attempt {attempt}")
        else:
            return

        if self._transition(ConnectionState.RECONNECTING, expected=ConnectionState.CONNECTING):
            self._schedule_reconnect()

    def _cancel_reconnect_timer(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _transition(self, new_state: ConnectionState,
                    expected: Optional[ConnectionState] = None) -> bool:
        """
        Move to `new_state`, optionally only from `expected`. Returns True if moved.

        on_state_change may run with the channel lock held and must not block.
        """
        with self._lock:
            previous = self._state
            if expected is not None and previous != expected:
                return False
            self._state = new_state

        if previous != new_state:
            logger.debug(f"Channel state {previous.value} -> {new_state.value}")
            if self.options.on_state_change:
                self.options.on_state_change(previous, new_state)
        return True

    # =========================================================================
    # Outbound requests
    # =========================================================================

    def authenticate(self, user_id: str) -> bool:
        """Send an authenticate request. Dropped unless the channel is OPEN."""
        with self._lock:
            if self._state != ConnectionState.OPEN:
                logger.debug(f"authenticate dropped: channel is {self._state.value}")
                return False
            self._user_id = user_id
        return self._send(EventType.AUTHENTICATE, {'userId': user_id})

    def join_topic(self, topic_id: str) -> bool:
        """Subscribe to a contest topic. Dropped unless OPEN and authenticated."""
        with self._lock:
            if self._state != ConnectionState.OPEN or not self._authenticated:
                logger.debug(f"join_topic({topic_id}) dropped: not open and authenticated")
                return False
            self._topic_id = topic_id
        return self._send(EventType.JOIN_CONTEST, {'contestId': topic_id})

    def leave_topic(self) -> bool:
        """Unsubscribe from the current topic. Dropped unless OPEN and authenticated."""
        with self._lock:
            if self._state != ConnectionState.OPEN or not self._authenticated:
                logger.debug("leave_topic dropped: not open and authenticated")
                return False
            self._topic_id = None
        return self._send(EventType.LEAVE_CONTEST, {})

    def _send(self, event_type: Union[EventType, str], payload: Any) -> bool:
        name = event_name(event_type)
        with self._lock:
            transport = self._transport if self._state == ConnectionState.OPEN else None
            state = self._state
        if transport is None:
            logger.warning(f"Cannot send '{name}': channel is {state.value}")
            return False

        try:
            transport.send(ChannelMessage(name, payload).encode())
        except TransportError as e:
            logger.error(f"Error sending '{name}': {e}")
            return False
        return True

    # =========================================================================
    # Handler registry and inbound dispatch
    # =========================================================================

    def on(self, event_type: Union[EventType, str], handler: Handler) -> None:
        """Register a handler. Several handlers per event run in registration order."""
        with self._lock:
            self._handlers.setdefault(event_name(event_type), []).append(handler)

    def off(self, event_type: Union[EventType, str], handler: Handler) -> None:
        """Remove the first registration of `handler`; unknown handlers are ignored."""
        with self._lock:
            handlers = self._handlers.get(event_name(event_type))
            if handlers and handler in handlers:
                handlers.remove(handler)

    def handler_count(self, event_type: Union[EventType, str, None] = None) -> int:
        with self._lock:
            if event_type is None:
                return sum(len(handlers) for handlers in self._handlers.values())
            return len(self._handlers.get(event_name(event_type), []))

    def on_submission_update(self, handler: Handler) -> None:
        self.on(EventType.SUBMISSION_UPDATE, handler)

    def on_leaderboard_update(self, handler: Handler) -> None:
        self.on(EventType.LEADERBOARD_UPDATE, handler)

    def on_contest_phase_change(self, handler: Handler) -> None:
        self.on(EventType.CONTEST_PHASE_CHANGE, handler)

    def on_system_control_update(self, handler: Handler) -> None:
        self.on(EventType.SYSTEM_CONTROL_UPDATE, handler)

    def on_judge_queue_update(self, handler: Handler) -> None:
        self.on(EventType.JUDGE_QUEUE_UPDATE, handler)

    def on_analytics_update(self, handler: Handler) -> None:
        self.on(EventType.ANALYTICS_UPDATE, handler)

    def on_attendance_update(self, handler: Handler) -> None:
        self.on(EventType.ATTENDANCE_UPDATE, handler)

    def _handle_frame(self, raw) -> None:
        try:
            message = ChannelMessage.decode(raw)
        except MessageFormatError as e:
            logger.warning(f"Dropping malformed frame: {e}")
            return

        with self._dispatch_lock:
            self._dispatch(message)

    def _dispatch(self, message: ChannelMessage) -> None:
        if message.type == EventType.AUTHENTICATED.value:
            with self._lock:
                is_open = self._state == ConnectionState.OPEN
                if is_open:
                    self._authenticated = True
            if is_open:
                logger.info(f"Channel authenticated as {self._user_id}")
            else:
                logger.warning(f"Ignoring authenticated frame while {self._state.value}")
        elif message.type == EventType.AUTHENTICATION_FAILED.value:
            with self._lock:
                self._authenticated = False
                self._topic_id = None
            logger.error("Channel authentication failed")

        with self._lock:
            handlers = list(self._handlers.get(message.type, ()))

        for handler in handlers:
            try:
                handler(message.payload)
            except Exception:
                logger.exception(f"Handler for '{message.type}' raised")

        if self.options.on_message:
            try:
                self.options.on_message(message)
            except Exception:
                logger.exception(f"on_message callback raised for '{message.type}'")
