"""
CodeStorm - contest realtime server.

Serves the route-provider API used for navigation and the Socket.IO endpoint
the realtime channel connects to.
"""

import os
import logging
import argparse
from pathlib import Path
from flask import Flask, jsonify, request
from flask_socketio import SocketIO

from codestorm.access.resolver import accessible_routes, default_route, is_route_accessible, role_type
from codestorm.access.routes import DEFAULT_ROUTES
from codestorm.core.event_router import EventRouter
from codestorm.core.session_manager import SessionManager
from codestorm.core.user_directory import UserDirectory
from events import register_events

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_ORIGINS = 'http://localhost:8080,http://localhost:5173,http://localhost:3000'


def create_app(data_dir=None, allowed_origins=None):
    """
    Build the Flask app and its Socket.IO server.

    Args:
        data_dir: Directory holding users.json (env CODESTORM_DATA_DIR, default 'data')
        allowed_origins: List of CORS origins for Socket.IO
            (env CODESTORM_ALLOWED_ORIGINS, comma separated)

    Returns:
        (app, socketio); components are in app.extensions['codestorm']
    """
    data_dir = Path(data_dir or os.environ.get('CODESTORM_DATA_DIR', 'data'))
    if allowed_origins is None:
        allowed_origins = [
            origin.strip()
            for origin in os.environ.get('CODESTORM_ALLOWED_ORIGINS', DEFAULT_ALLOWED_ORIGINS).split(',')
            if origin.strip()
        ]

    app = Flask(__name__)
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'codestorm-dev-secret')

    socketio = SocketIO(app, cors_allowed_origins=allowed_origins)

    user_directory = UserDirectory(data_dir / 'users.json')
    session_manager = SessionManager(user_directory)
    event_router = EventRouter(socketio, session_manager)

    register_events(socketio, session_manager)

    app.extensions['codestorm'] = {
        'user_directory': user_directory,
        'session_manager': session_manager,
        'event_router': event_router,
        'routes': DEFAULT_ROUTES,
    }

    def current_user():
        """Roster user named by the X-User-Id header or userId query parameter."""
        user_id = request.headers.get('X-User-Id') or request.args.get('userId')
        if not user_id:
            return None
        return user_directory.get(user_id)

    # =========================================================================
    # HTTP ROUTES
    # =========================================================================

    @app.route('/health')
    def health():
        """Health check endpoint."""
        return {
            'status': 'ok',
            'sessions': len(session_manager),
            'users': len(user_directory)
        }

    @app.route('/api/dynamic/user/routes-and-permissions')
    def routes_and_permissions():
        """Route table plus the caller's permissions and landing route."""
        user = current_user()
        if user is None:
            return jsonify({'error': 'Unauthorized'}), 401

        permissions = user.permissions
        return jsonify({
            'routes': [route.to_dict() for route in DEFAULT_ROUTES],
            'dynamicRoutes': [route.to_dict() for route in accessible_routes(permissions, DEFAULT_ROUTES)],
            'userPermissions': sorted(int(code) for code in permissions),
            'defaultRoute': default_route(permissions, DEFAULT_ROUTES),
            'roleType': role_type(permissions)
        })

    @app.route('/api/navigation/access')
    def navigation_access():
        """Check whether the caller may open a path."""
        user = current_user()
        if user is None:
            return jsonify({'error': 'Unauthorized'}), 401

        path = request.args.get('path', '')
        if is_route_accessible(path, user.permissions, DEFAULT_ROUTES):
            return jsonify({'path': path, 'accessible': True})
        return jsonify({'path': path, 'accessible': False, 'error': 'Access denied'}), 403

    @app.route('/api/events/<event_type>', methods=['POST'])
    def publish_event(event_type):
        """Fan a server event out to the realtime channel's subscribers."""
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'JSON object body required'}), 400

        delivered = event_router.publish(
            event_type,
            data.get('payload'),
            contest_id=data.get('contestId'),
            target_user_id=data.get('targetUserId'),
            exclude_user_id=data.get('excludeUserId')
        )
        return jsonify({'event': event_type, 'delivered': delivered})

    return app, socketio


app, socketio = create_app()


# =============================================================================
# MAIN
# =============================================================================

def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='CodeStorm realtime server',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment variables:
  SECRET_KEY                 - Flask secret key
  CODESTORM_DATA_DIR         - Directory holding users.json (default: data)
  CODESTORM_ALLOWED_ORIGINS  - Comma separated Socket.IO CORS origins
        """
    )
    parser.add_argument(
        '--host',
        type=str,
        default='0.0.0.0',
        help='Bind address (default: 0.0.0.0)'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=3001,
        help='Server port (default: 3001)'
    )
    parser.add_argument(
        '--data-dir',
        type=str,
        help='Directory holding users.json'
    )
    parser.add_argument(
        '--no-debug',
        action='store_true',
        help='Disable debug mode'
    )
    return parser.parse_args(argv)


if __name__ == '__main__':
    args = parse_args()

    if args.data_dir:
        app, socketio = create_app(data_dir=args.data_dir)

    logger.info("Starting CodeStorm realtime server...")
    logger.info(f"Route provider: http://<your-ip>:{args.port}/api/dynamic/user/routes-and-permissions")

    socketio.run(
        app,
        host=args.host,
        port=args.port,
        debug=not args.no_debug,
        allow_unsafe_werkzeug=True
    )
