"""
Access resolver: maps (permission set, route table) to visible routes and a
landing route.

Every function here is pure. Duplicate paths in a route table are a caller
error; the first matching path wins.
"""

from typing import Iterable, List, Sequence

from .permissions import Permission, has_all, has_any
from .routes import (
    ADMIN_USERS_PATH,
    CONTEST_CONTROL_PATH,
    DASHBOARD_PATH,
    JUDGE_QUEUE_PATH,
    PROBLEMS_PATH,
    UNAUTHENTICATED_PATH,
    RouteDescriptor,
)

# (permission, path) pairs evaluated top to bottom; first held-and-accessible wins
LANDING_PRIORITY = (
    (Permission.CONTEST_CONTROL, CONTEST_CONTROL_PATH),
    (Permission.USERS, ADMIN_USERS_PATH),
    (Permission.JUDGE_QUEUE, JUDGE_QUEUE_PATH),
    (Permission.PROBLEMS, PROBLEMS_PATH),
)

ROLE_ORDER = (
    (Permission.USERS, 'admin'),
    (Permission.JUDGE_QUEUE, 'judge'),
    (Permission.PROBLEMS, 'participant'),
)


def accessible_routes(permissions: Iterable[int],
                      routes: Sequence[RouteDescriptor]) -> List[RouteDescriptor]:
    """Routes whose required codes are all held, in table order."""
    held = frozenset(permissions)
    return [route for route in routes if has_all(held, route.required_permissions)]


def is_route_accessible(path: str, permissions: Iterable[int],
                        routes: Sequence[RouteDescriptor]) -> bool:
    """Exact-path lookup; a path missing from the table is never accessible."""
    for route in routes:
        if route.path == path:
            return has_all(permissions, route.required_permissions)
    return False


def default_route(permissions: Iterable[int], routes: Sequence[RouteDescriptor]) -> str:
    """
    Pick the landing path for a session.

    Contest controllers land on the control panel, user managers on the user
    admin page, judges on the queue and participants on the problem list.
    Anyone else gets the dashboard if they can see it, otherwise the first
    route they can open. No accessible route at all means the login page.
    """
    held = frozenset(permissions)
    accessible = accessible_routes(held, routes)
    if not accessible:
        return UNAUTHENTICATED_PATH

    accessible_paths = {route.path for route in accessible}
    for code, path in LANDING_PRIORITY:
        if code in held and path in accessible_paths:
            return path

    if DASHBOARD_PATH in accessible_paths:
        return DASHBOARD_PATH

    return accessible[0].path


def role_type(permissions: Iterable[int]) -> str:
    """Advisory UI label: admin, judge, participant or viewer."""
    held = frozenset(permissions)
    for code, role in ROLE_ORDER:
        if code in held:
            return role
    return 'viewer'


def visible_navigation(routes: Sequence[RouteDescriptor],
                       permissions: Iterable[int]) -> List[RouteDescriptor]:
    """Menu filter: an entry shows if ANY of its codes is held (or it needs none)."""
    held = frozenset(permissions)
    return [
        route for route in routes
        if not route.required_permissions or has_any(held, route.required_permissions)
    ]
