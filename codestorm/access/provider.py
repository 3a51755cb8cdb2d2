"""
HTTP client for the route-provider endpoint.

The server answers with the full route table and the caller's permission
codes; the resolver functions then run locally on that bundle.
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

import requests

from .resolver import accessible_routes, default_route, role_type
from .routes import RouteDescriptor

logger = logging.getLogger(__name__)

ROUTES_ENDPOINT = '/api/dynamic/user/routes-and-permissions'


class RouteProviderError(Exception):
    """The route table could not be fetched or was unusable."""


@dataclass
class RouteBundle:
    """Route table plus the permission set it should be resolved against."""
    routes: List[RouteDescriptor] = field(default_factory=list)
    permissions: FrozenSet[int] = field(default_factory=frozenset)

    def accessible(self) -> List[RouteDescriptor]:
        return accessible_routes(self.permissions, self.routes)

    def landing_route(self) -> str:
        return default_route(self.permissions, self.routes)

    def role_type(self) -> str:
        return role_type(self.permissions)


class RouteProviderClient:
    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: float = 10):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, user_id: str) -> RouteBundle:
        """
        Fetch the route table and permission codes for a user.

        Raises:
            RouteProviderError: on network failure, a non-200 status, or a
                payload without a route list
        """
        url = f"{self.base_url}{ROUTES_ENDPOINT}"
        try:
            response = self.session.get(url, headers={'X-User-Id': user_id}, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Route provider unreachable at {url}: {e}")
            raise RouteProviderError(f"Route provider unreachable: {e}") from e

        if response.status_code != 200:
            logger.error(f"Route provider returned {response.status_code}: {response.text}")
            raise RouteProviderError(f"Route provider returned {response.status_code}")

        try:
            data = response.json()
            routes = [RouteDescriptor.from_dict(item) for item in data['routes']]
            permissions = frozenset(int(code) for code in data.get('userPermissions', []))
        except (ValueError, KeyError, TypeError) as e:
            raise RouteProviderError(f"Malformed route provider payload: {e}") from e

        logger.debug(f"Fetched {len(routes)} routes for user {user_id}")
        return RouteBundle(routes=routes, permissions=permissions)
