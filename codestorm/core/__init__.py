"""Server-side session tracking and event fan-out for the realtime channel."""

from .user_directory import UserDirectory, UserRecord
from .session_manager import SessionManager, ClientSession
from .event_router import EventRouter, BroadcastOptions, EVENT_AUDIENCES

__all__ = [
    'UserDirectory', 'UserRecord', 'SessionManager', 'ClientSession',
    'EventRouter', 'BroadcastOptions', 'EVENT_AUDIENCES',
]
