import json

import pytest

from codestorm.realtime.messages import ChannelMessage, EventType, MessageFormatError, event_name


def test_encode_uses_wire_names():
    message = ChannelMessage(EventType.JOIN_CONTEST, {'contestId': 'spring-open'})
    data = json.loads(message.encode())

    assert data['type'] == 'join_contest'
    assert data['payload'] == {'contestId': 'spring-open'}
    assert data['timestamp'].endswith('Z')
    assert 'T' in data['timestamp']


def test_decode_accepts_text_and_bytes():
    raw = '{"type": "leaderboard_update", "payload": [1, 2], "timestamp": "2026-10-19T10:00:00.000Z"}'

    for frame in (raw, raw.encode('utf-8')):
        message = ChannelMessage.decode(frame)
        assert message.type == 'leaderboard_update'
        assert message.payload == [1, 2]
        assert message.timestamp == '2026-10-19T10:00:00.000Z'


def test_decode_fills_missing_payload_and_timestamp():
    message = ChannelMessage.decode('{"type": "connected"}')
    assert message.payload is None
    assert message.timestamp


def test_unknown_event_types_are_allowed():
    message = ChannelMessage.decode('{"type": "scoreboard_frozen", "payload": {}}')
    assert message.type == 'scoreboard_frozen'


@pytest.mark.parametrize('frame', [
    'not json',
    '[1, 2, 3]',
    '"authenticated"',
    '{"payload": {}}',
    '{"type": 42}',
    b'\xff\xfe',
    None,
])
def test_malformed_frames_are_rejected(frame):
    with pytest.raises(MessageFormatError):
        ChannelMessage.decode(frame)


def test_message_format_error_is_a_value_error():
    assert issubclass(MessageFormatError, ValueError)


def test_event_name():
    assert event_name(EventType.AUTHENTICATED) == 'authenticated'
    assert event_name('custom_event') == 'custom_event'
