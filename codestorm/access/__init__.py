"""Access resolver - permission codes, route table and landing-route selection."""

from .permissions import (
    Permission, ROLE_PERMISSIONS, PERMISSION_PARENTS,
    has_permission, has_any, has_all, has_hierarchical, expand_inherited,
    role_display_name,
)
from .routes import RouteDescriptor, DEFAULT_ROUTES, UNAUTHENTICATED_PATH
from .resolver import (
    accessible_routes, is_route_accessible, default_route, role_type, visible_navigation,
)
from .provider import RouteProviderClient, RouteBundle, RouteProviderError

__all__ = [
    'Permission', 'ROLE_PERMISSIONS', 'PERMISSION_PARENTS',
    'has_permission', 'has_any', 'has_all', 'has_hierarchical', 'expand_inherited',
    'role_display_name',
    'RouteDescriptor', 'DEFAULT_ROUTES', 'UNAUTHENTICATED_PATH',
    'accessible_routes', 'is_route_accessible', 'default_route', 'role_type',
    'visible_navigation',
    'RouteProviderClient', 'RouteBundle', 'RouteProviderError',
]
