"""
Socket.IO event handlers for the CodeStorm realtime channel.

Clients speak the JSON wire format over plain `message` frames; the `type`
field selects the handler.
"""

import logging
from flask import request
from flask_socketio import send

from codestorm.realtime.messages import ChannelMessage, EventType, MessageFormatError

logger = logging.getLogger(__name__)

# Global references
session_manager = None


def register_events(sio, sm):
    """Register all Socket.IO event handlers."""
    global session_manager
    session_manager = sm

    sio.on_event('connect', on_connect)
    sio.on_event('disconnect', on_disconnect)
    sio.on_event('message', on_message)

    logger.info("Socket.IO events registered")


def reply(event_type, payload=None):
    """Send one wire frame back to the requesting client."""
    send(ChannelMessage(event_type, payload).encode())


# =============================================================================
# PLATFORM HANDLERS
# =============================================================================

def on_connect(auth=None):
    session_manager.register(request.sid)
    reply(EventType.CONNECTED, {'message': 'Realtime connection established'})


def on_disconnect(reason=None):
    session_manager.remove(request.sid)


def on_message(data):
    try:
        message = ChannelMessage.decode(data)
    except MessageFormatError as e:
        logger.warning(f"Invalid frame from {request.sid}: {e}")
        reply(EventType.ERROR, {'message': 'Invalid message format'})
        return

    handler = MESSAGE_HANDLERS.get(message.type)
    if handler is None:
        logger.debug(f"Unhandled message type {message.type} from {request.sid}")
        return

    logger.info(f"Received {message.type} from {request.sid}")
    handler(message.payload)


# =============================================================================
# MESSAGE HANDLERS
# =============================================================================

def on_authenticate(payload):
    user_id = payload.get('userId') if isinstance(payload, dict) else None
    if not isinstance(user_id, str):
        reply(EventType.ERROR, {'message': 'Invalid authenticate payload'})
        return

    user = session_manager.authenticate(request.sid, user_id)
    if user is None:
        reply(EventType.AUTHENTICATION_FAILED, {'message': 'Invalid user ID'})
        return

    reply(EventType.AUTHENTICATED, {
        'userId': user.user_id,
        'permissions': sorted(int(code) for code in user.permissions),
    })


def on_join_contest(payload):
    contest_id = payload.get('contestId') if isinstance(payload, dict) else None
    if not isinstance(contest_id, str):
        reply(EventType.ERROR, {'message': 'Invalid join_contest payload'})
        return

    result = session_manager.join_contest(request.sid, contest_id)
    if result['success']:
        reply(EventType.CONTEST_JOINED, {'contestId': contest_id})
    else:
        reply(EventType.ERROR, {'message': result['message']})


def on_leave_contest(payload):
    session_manager.leave_contest(request.sid)


MESSAGE_HANDLERS = {
    EventType.AUTHENTICATE.value: on_authenticate,
    EventType.JOIN_CONTEST.value: on_join_contest,
    EventType.LEAVE_CONTEST.value: on_leave_contest,
}
