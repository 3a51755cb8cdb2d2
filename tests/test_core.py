import json
from unittest.mock import MagicMock

import pytest

from codestorm.access.permissions import Permission
from codestorm.core.event_router import BroadcastOptions, EventRouter
from codestorm.core.session_manager import SessionManager
from codestorm.core.user_directory import UserDirectory
from codestorm.realtime.messages import EventType


@pytest.fixture
def directory(users_file):
    return UserDirectory(users_file)


@pytest.fixture
def sessions(directory):
    return SessionManager(directory)


class TestUserDirectory:
    def test_role_permissions_are_expanded(self, directory):
        admin = directory.get('u-admin')
        assert Permission.CONTEST_CONTROL in admin.permissions
        assert Permission.TIMER_CONTROL in admin.permissions

        alice = directory.get('u-alice')
        assert alice.role == 'participant'
        assert Permission.ADD_SUBMISSION in alice.permissions
        assert Permission.JUDGE_QUEUE not in alice.permissions
        assert alice.contests == frozenset({'spring-open'})

    def test_explicit_permissions_without_role(self, directory):
        assert directory.get('u-viewer').permissions == frozenset({100})

    def test_unknown_user(self, directory):
        assert directory.get('u-nobody') is None
        assert len(directory) == 5

    def test_missing_file_gives_empty_roster(self, tmp_path):
        assert len(UserDirectory(tmp_path / 'absent.json')) == 0

    def test_corrupt_file_gives_empty_roster(self, tmp_path):
        path = tmp_path / 'users.json'
        path.write_text('{not json')
        assert len(UserDirectory(path)) == 0

    def test_entries_without_id_are_skipped(self, tmp_path):
        path = tmp_path / 'users.json'
        path.write_text(json.dumps({'users': [{'username': 'ghost'}, {'id': 'u-1'}]}))
        directory = UserDirectory(path)
        assert len(directory) == 1
        assert directory.get('u-1').permissions == frozenset()


class TestSessionManager:
    def test_register_and_remove(self, sessions):
        session = sessions.register('sid-1')
        assert not session.authenticated
        assert len(sessions) == 1

        sessions.remove('sid-1')
        sessions.remove('sid-1')
        assert len(sessions) == 0

    def test_authenticate_binds_user(self, sessions):
        sessions.register('sid-1')

        user = sessions.authenticate('sid-1', 'u-alice')

        assert user.user_id == 'u-alice'
        session = sessions.get('sid-1')
        assert session.authenticated
        assert session.permissions == user.permissions

    def test_failed_authentication_keeps_previous_binding(self, sessions):
        sessions.register('sid-1')
        sessions.authenticate('sid-1', 'u-alice')

        assert sessions.authenticate('sid-1', 'u-nobody') is None
        assert sessions.get('sid-1').user_id == 'u-alice'

    def test_authenticate_unknown_session(self, sessions):
        assert sessions.authenticate('sid-missing', 'u-alice') is None

    def test_join_requires_authentication(self, sessions):
        sessions.register('sid-1')
        result = sessions.join_contest('sid-1', 'spring-open')
        assert result == {'success': False, 'message': 'Must authenticate first'}

    def test_join_requires_enrollment(self, sessions):
        sessions.register('sid-1')
        sessions.authenticate('sid-1', 'u-carol')

        result = sessions.join_contest('sid-1', 'spring-open')

        assert not result['success']
        assert result['message'] == 'Not enrolled in contest'
        assert sessions.get('sid-1').contest_id is None

    def test_join_and_leave(self, sessions):
        sessions.register('sid-1')
        sessions.authenticate('sid-1', 'u-alice')

        result = sessions.join_contest('sid-1', 'spring-open')
        assert result['success']
        assert sessions.get('sid-1').contest_id == 'spring-open'

        sessions.leave_contest('sid-1')
        assert sessions.get('sid-1').contest_id is None

    def test_contest_control_may_join_any_contest(self, sessions):
        sessions.register('sid-1')
        sessions.authenticate('sid-1', 'u-admin')
        assert sessions.join_contest('sid-1', 'fall-cup')['success']

    def test_reauthentication_resets_contest(self, sessions):
        sessions.register('sid-1')
        sessions.authenticate('sid-1', 'u-alice')
        sessions.join_contest('sid-1', 'spring-open')

        sessions.authenticate('sid-1', 'u-judge')

        assert sessions.get('sid-1').contest_id is None


class TestEventRouter:
    @pytest.fixture
    def populated(self, sessions):
        for sid, user_id, contest in [
            ('sid-admin', 'u-admin', None),
            ('sid-judge', 'u-judge', 'spring-open'),
            ('sid-alice', 'u-alice', 'spring-open'),
            ('sid-carol', 'u-carol', 'fall-cup'),
        ]:
            sessions.register(sid)
            sessions.authenticate(sid, user_id)
            if contest:
                sessions.join_contest(sid, contest)
        sessions.register('sid-anon')
        return sessions

    @pytest.fixture
    def socketio(self):
        return MagicMock()

    @pytest.fixture
    def router(self, socketio, populated):
        return EventRouter(socketio, populated)

    @staticmethod
    def recipients(socketio):
        return sorted(call.kwargs['to'] for call in socketio.send.call_args_list)

    def test_broadcast_without_filter_reaches_everyone(self, router, socketio):
        assert router.broadcast('global_notification', {'text': 'hi'}) == 5

        frame = json.loads(socketio.send.call_args_list[0].args[0])
        assert frame['type'] == 'global_notification'
        assert frame['payload'] == {'text': 'hi'}

    def test_contest_filter(self, router, socketio):
        router.broadcast('leaderboard_update', [], BroadcastOptions(contest_id='spring-open'))
        assert self.recipients(socketio) == ['sid-alice', 'sid-judge']

    def test_permission_filter_uses_any_semantics(self, router, socketio):
        options = BroadcastOptions(required_permissions=(Permission.JUDGE_QUEUE, Permission.USERS))
        router.broadcast('custom', None, options)
        assert self.recipients(socketio) == ['sid-admin', 'sid-judge']

    def test_target_and_exclude(self, router, socketio):
        router.broadcast('user_update', {}, BroadcastOptions(target_user_id='u-carol'))
        assert self.recipients(socketio) == ['sid-carol']

        socketio.reset_mock()
        router.broadcast('user_update', {}, BroadcastOptions(exclude_user_id='u-carol'))
        assert 'sid-carol' not in self.recipients(socketio)

    def test_publish_applies_event_audience(self, router, socketio):
        router.publish(EventType.SYSTEM_CONTROL_UPDATE, {'paused': True})
        assert self.recipients(socketio) == ['sid-admin']

        socketio.reset_mock()
        router.publish('judge_queue_update', {'pending': 3})
        assert self.recipients(socketio) == ['sid-admin', 'sid-judge']

        socketio.reset_mock()
        router.publish('submission_update', {'id': 's1'}, contest_id='spring-open')
        assert self.recipients(socketio) == ['sid-alice', 'sid-judge']

    def test_publish_unknown_event_has_no_permission_filter(self, router, socketio):
        assert router.publish('scoreboard_frozen', {}) == 5
