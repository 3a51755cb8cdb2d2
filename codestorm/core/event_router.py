"""
EventRouter: delivers server events to the connected clients allowed to see them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..access.permissions import Permission, has_any
from ..realtime.messages import ChannelMessage, EventType, event_name
from .session_manager import ClientSession, SessionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BroadcastOptions:
    """
    Audience filter for one broadcast.

    Attributes:
        required_permissions: Recipient must hold ANY of these (empty = no check)
        contest_id: Recipient must have joined this contest
        exclude_user_id: Skip sessions bound to this user
        target_user_id: Only sessions bound to this user
    """
    required_permissions: Tuple[int, ...] = ()
    contest_id: Optional[str] = None
    exclude_user_id: Optional[str] = None
    target_user_id: Optional[str] = None

    def admits(self, session: ClientSession) -> bool:
        if self.target_user_id and session.user_id != self.target_user_id:
            return False
        if self.exclude_user_id and session.user_id == self.exclude_user_id:
            return False
        if self.contest_id and session.contest_id != self.contest_id:
            return False
        if self.required_permissions and not has_any(session.permissions, self.required_permissions):
            return False
        return True


# event type -> codes of which a recipient needs at least one
EVENT_AUDIENCES: Dict[str, Tuple[int, ...]] = {
    EventType.SUBMISSION_UPDATE.value: (
        Permission.ADD_SUBMISSION, Permission.JUDGE_QUEUE, Permission.CONTEST_CONTROL,
    ),
    EventType.LEADERBOARD_UPDATE.value: (),
    EventType.CONTEST_PHASE_CHANGE.value: (),
    EventType.SYSTEM_CONTROL_UPDATE.value: (Permission.CONTEST_CONTROL,),
    EventType.JUDGE_QUEUE_UPDATE.value: (Permission.JUDGE_QUEUE,),
    EventType.ANALYTICS_UPDATE.value: (Permission.ANALYTICS, Permission.CONTEST_CONTROL),
    EventType.ATTENDANCE_UPDATE.value: (Permission.ATTENDANCE, Permission.CONTEST_CONTROL),
    EventType.NEW_PROBLEM.value: (),
    EventType.USER_UPDATE.value: (),
    EventType.GLOBAL_NOTIFICATION.value: (),
}


class EventRouter:
    def __init__(self, socketio, session_manager: SessionManager):
        self.socketio = socketio
        self.session_manager = session_manager

    def broadcast(self, event_type: str, payload: Any = None,
                  options: Optional[BroadcastOptions] = None) -> int:
        """
        Send one frame to every session the options admit.

        Returns:
            Number of sessions the frame was sent to
        """
        options = options or BroadcastOptions()
        frame = ChannelMessage(event_type, payload).encode()

        delivered = 0
        for session in self.session_manager.snapshot():
            if not options.admits(session):
                continue
            self.socketio.send(frame, to=session.session_id)
            delivered += 1

        logger.info(f"Broadcasted {event_type} to {delivered} clients")
        return delivered

    def publish(self, event_type: str, payload: Any = None, contest_id: Optional[str] = None,
                target_user_id: Optional[str] = None,
                exclude_user_id: Optional[str] = None) -> int:
        """Broadcast using the default audience of `event_type`."""
        event_type = event_name(event_type)
        options = BroadcastOptions(
            required_permissions=EVENT_AUDIENCES.get(event_type, ()),
            contest_id=contest_id,
            exclude_user_id=exclude_user_id,
            target_user_id=target_user_id,
        )
        return self.broadcast(event_type, payload, options)
