"""
Wire format for the realtime channel.

Every frame in either direction is one UTF-8 JSON object:
    {"type": "<event>", "payload": <any>, "timestamp": "<ISO-8601>"}
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union


class EventType(str, Enum):
    """Known event names. Peers may send others; they dispatch by string."""
    # inbound
    CONNECTED = 'connected'
    AUTHENTICATED = 'authenticated'
    AUTHENTICATION_FAILED = 'authentication_failed'
    CONTEST_JOINED = 'contest_joined'
    ERROR = 'error'
    SUBMISSION_UPDATE = 'submission_update'
    LEADERBOARD_UPDATE = 'leaderboard_update'
    CONTEST_PHASE_CHANGE = 'contest_phase_change'
    SYSTEM_CONTROL_UPDATE = 'system_control_update'
    JUDGE_QUEUE_UPDATE = 'judge_queue_update'
    ANALYTICS_UPDATE = 'analytics_update'
    ATTENDANCE_UPDATE = 'attendance_update'
    NEW_PROBLEM = 'new_problem'
    USER_UPDATE = 'user_update'
    GLOBAL_NOTIFICATION = 'global_notification'

    # outbound
    AUTHENTICATE = 'authenticate'
    JOIN_CONTEST = 'join_contest'
    LEAVE_CONTEST = 'leave_contest'


class MessageFormatError(ValueError):
    """A frame was not a JSON object with a string `type`."""


def event_name(event_type: Union[EventType, str]) -> str:
    """Normalize an EventType or plain string to the wire name."""
    if isinstance(event_type, EventType):
        return event_type.value
    return str(event_type)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with milliseconds and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass
class ChannelMessage:
    type: str
    payload: Any = None
    timestamp: str = field(default_factory=utc_timestamp)

    def __post_init__(self):
        self.type = event_name(self.type)

    def encode(self) -> str:
        return json.dumps({
            'type': self.type,
            'payload': self.payload,
            'timestamp': self.timestamp,
        }, separators=(',', ':'), default=str)

    @classmethod
    def decode(cls, raw: Union[str, bytes]) -> 'ChannelMessage':
        """
        Parse one frame.

        Raises:
            MessageFormatError: for invalid UTF-8, invalid JSON, a non-object
                document, or a missing / non-string `type`
        """
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw = raw.decode('utf-8')
            except UnicodeDecodeError as e:
                raise MessageFormatError(f"Frame is not UTF-8: {e}") from e
        if not isinstance(raw, str):
            raise MessageFormatError(f"Unsupported frame type {type(raw).__name__}")

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MessageFormatError(f"Frame is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise MessageFormatError("Frame is not a JSON object")
        if not isinstance(data.get('type'), str):
            raise MessageFormatError("Frame has no string 'type'")

        return cls(
            type=data['type'],
            payload=data.get('payload'),
            timestamp=data.get('timestamp') or utc_timestamp(),
        )
