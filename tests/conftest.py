import json

import pytest

from codestorm.realtime.channel import ChannelConfig, ChannelOptions, RealtimeChannel
from codestorm.realtime.errors import ConnectionFailedError
from codestorm.realtime.messages import ChannelMessage


class FakeTransport:
    """
    In-memory stand-in for SocketIOTransport.

    `fail` scripts open(): False succeeds, True is refused, 'closed' drops
    the connection before open() returns, an exception instance is raised.
    """

    def __init__(self, fail=False):
        self.fail = fail
        self.url = None
        self.sent = []
        self.closed = False
        self.on_message = None
        self.on_close = None

    def open(self, url, on_message, on_close):
        if isinstance(self.fail, Exception):
            raise self.fail
        if self.fail == 'closed':
            on_close()
            return
        if self.fail:
            raise ConnectionFailedError(f"refused: {url}")
        self.url = url
        self.on_message = on_message
        self.on_close = on_close

    def send(self, text):
        self.sent.append(json.loads(text))

    def close(self):
        self.closed = True

    def deliver(self, event_type, payload=None):
        self.on_message(ChannelMessage(event_type, payload).encode())

    def drop(self):
        self.on_close()

    def sent_types(self):
        return [frame['type'] for frame in self.sent]


class TransportFactory:
    """Hands out FakeTransports; queue `fail` values in `failures` to script outcomes."""

    def __init__(self):
        self.failures = []
        self.created = []

    def __call__(self):
        fail = self.failures.pop(0) if self.failures else False
        transport = FakeTransport(fail=fail)
        self.created.append(transport)
        return transport

    @property
    def latest(self):
        return self.created[-1]


class FakeTimer:
    def __init__(self, delay, function):
        self.delay = delay
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


class TimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, delay, function):
        timer = FakeTimer(delay, function)
        self.timers.append(timer)
        return timer

    @property
    def delays(self):
        return [timer.delay for timer in self.timers]

    @property
    def latest(self):
        return self.timers[-1]


@pytest.fixture
def transports():
    return TransportFactory()


@pytest.fixture
def timers():
    return TimerFactory()


@pytest.fixture
def recorder():
    """Collects state transitions, errors and whole messages from ChannelOptions."""
    class Recorder:
        def __init__(self):
            self.states = []
            self.errors = []
            self.messages = []

        def options(self):
            return ChannelOptions(
                on_message=self.messages.append,
                on_state_change=lambda old, new: self.states.append((old, new)),
                on_error=self.errors.append,
            )

    return Recorder()


@pytest.fixture
def channel(transports, timers, recorder):
    config = ChannelConfig(url='http://localhost:3001', base_delay=1.0)
    return RealtimeChannel(config, recorder.options(),
                           transport_factory=transports, timer_factory=timers)


@pytest.fixture
def users_file(tmp_path):
    path = tmp_path / 'users.json'
    path.write_text(json.dumps({
        'users': [
            {'id': 'u-admin', 'username': 'admin', 'role': 'admin', 'contests': []},
            {'id': 'u-judge', 'username': 'judge1', 'role': 'judge', 'contests': ['spring-open']},
            {'id': 'u-alice', 'username': 'alice', 'role': 'participant', 'contests': ['spring-open']},
            {'id': 'u-carol', 'username': 'carol', 'role': 'participant', 'contests': ['fall-cup']},
            {'id': 'u-viewer', 'username': 'viewer', 'permissions': [100]},
        ]
    }))
    return path
