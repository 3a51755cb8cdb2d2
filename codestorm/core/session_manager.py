"""
SessionManager: tracks connected Socket.IO clients on the server side.

Each connection starts anonymous, becomes bound to a roster user by an
authenticate request, and may then join one contest topic at a time.
"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional

from ..access.permissions import Permission
from .user_directory import UserDirectory, UserRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientSession:
    """
    One connected client.

    Attributes:
        session_id: The Socket.IO session ID
        user_id: Roster user bound by authenticate (None until then)
        permissions: Effective permission codes of that user
        contest_id: Contest topic the client joined, if any
        connected_at: Epoch seconds of the connect event
    """
    session_id: str
    user_id: Optional[str] = None
    permissions: FrozenSet[int] = field(default_factory=frozenset)
    contest_id: Optional[str] = None
    connected_at: float = field(default_factory=time.time)

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None


class SessionManager:
    def __init__(self, user_directory: UserDirectory):
        self.user_directory = user_directory
        self._lock = threading.RLock()
        self._sessions: Dict[str, ClientSession] = {}

    def register(self, session_id: str) -> ClientSession:
        with self._lock:
            session = ClientSession(session_id=session_id)
            self._sessions[session_id] = session
        logger.info(f"Client connected: {session_id}")
        return session

    def remove(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session:
            logger.info(f"Client disconnected: {session_id} (user {session.user_id})")

    def get(self, session_id: str) -> Optional[ClientSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def snapshot(self) -> List[ClientSession]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def authenticate(self, session_id: str, user_id: str) -> Optional[UserRecord]:
        """
        Bind a session to a roster user.

        Returns:
            The UserRecord on success, None for unknown users or sessions.
            A failed attempt leaves an earlier binding in place.
        """
        user = self.user_directory.get(user_id)
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or user is None:
                logger.warning(f"Authentication failed for session {session_id} (user {user_id})")
                return None
            self._sessions[session_id] = replace(
                session, user_id=user.user_id, permissions=user.permissions, contest_id=None
            )
        logger.info(f"Session {session_id} authenticated as {user.user_id}")
        return user

    def join_contest(self, session_id: str, contest_id: str) -> dict:
        """
        Subscribe a session to a contest topic.

        Contest controllers may join any contest; everyone else must be
        enrolled in it.

        Returns:
            dict with success and message
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or not session.authenticated:
                return {'success': False, 'message': 'Must authenticate first'}

            user = self.user_directory.get(session.user_id)
            enrolled = user is not None and contest_id in user.contests
            if not enrolled and Permission.CONTEST_CONTROL not in session.permissions:
                return {'success': False, 'message': 'Not enrolled in contest'}

            self._sessions[session_id] = replace(session, contest_id=contest_id)

        logger.info(f"Session {session_id} joined contest {contest_id}")
        return {'success': True, 'message': 'Joined contest', 'contest_id': contest_id}

    def leave_contest(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions[session_id] = replace(session, contest_id=None)
