"""
Route descriptors and the deployment's route table.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

from .permissions import Permission

DASHBOARD_PATH = '/'
PROBLEMS_PATH = '/problems'
JUDGE_QUEUE_PATH = '/judge'
ADMIN_USERS_PATH = '/admin/users'
CONTEST_CONTROL_PATH = '/admin/control'
UNAUTHENTICATED_PATH = '/login'


@dataclass(frozen=True)
class RouteDescriptor:
    """
    One navigable page of the host UI.

    Attributes:
        path: URL path, unique within a route table
        component: Name of the page component rendered for this path
        required_permissions: Codes that must ALL be held to open the page
        title: Menu label
        icon: Menu icon name
        priority: Optional menu rank; landing selection does not use it
    """
    path: str
    component: str
    required_permissions: FrozenSet[int] = field(default_factory=frozenset)
    title: str = ''
    icon: str = ''
    priority: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.required_permissions, frozenset):
            object.__setattr__(self, 'required_permissions',
                               frozenset(int(code) for code in self.required_permissions))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the route-provider's wire names."""
        data = {
            'path': self.path,
            'component': self.component,
            'title': self.title,
            'icon': self.icon,
            'requiredPermissions': sorted(int(code) for code in self.required_permissions),
        }
        if self.priority is not None:
            data['priority'] = self.priority
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RouteDescriptor':
        return cls(
            path=data['path'],
            component=data.get('component', ''),
            required_permissions=frozenset(int(c) for c in data.get('requiredPermissions', [])),
            title=data.get('title', ''),
            icon=data.get('icon', ''),
            priority=data.get('priority'),
        )


DEFAULT_ROUTES = (
    RouteDescriptor(DASHBOARD_PATH, 'Dashboard', frozenset({Permission.DASHBOARD}),
                    'Dashboard', 'Home'),
    RouteDescriptor(PROBLEMS_PATH, 'Problems', frozenset({Permission.PROBLEMS}),
                    'Problems', 'FileText'),
    RouteDescriptor('/leaderboard', 'Leaderboard', frozenset({Permission.DASHBOARD}),
                    'Leaderboard', 'Trophy'),
    RouteDescriptor(JUDGE_QUEUE_PATH, 'JudgeQueue', frozenset({Permission.JUDGE_QUEUE}),
                    'Judge Queue', 'Gavel'),
    RouteDescriptor('/submissions', 'MySubmissions', frozenset({Permission.ADD_SUBMISSION}),
                    'My Submissions', 'Send'),
    RouteDescriptor(ADMIN_USERS_PATH, 'AdminUsers', frozenset({Permission.USERS}),
                    'Users', 'Users'),
    RouteDescriptor('/admin/analytics', 'AdminAnalytics', frozenset({Permission.ANALYTICS}),
                    'Analytics', 'BarChart3'),
    RouteDescriptor('/admin/exports', 'AdminExports', frozenset({Permission.EXPORTS}),
                    'Exports', 'FileX'),
    RouteDescriptor(CONTEST_CONTROL_PATH, 'AdminControl', frozenset({Permission.CONTEST_CONTROL}),
                    'Contest Control', 'Settings'),
    RouteDescriptor('/admin/audit', 'AdminAudit', frozenset({Permission.AUDIT_LOG}),
                    'Audit Log', 'Shield'),
    RouteDescriptor('/admin/backup', 'AdminBackup', frozenset({Permission.BACKUP}),
                    'Backup', 'Database'),
    RouteDescriptor('/admin/attendance', 'AdminAttendance', frozenset({Permission.ATTENDANCE}),
                    'Attendance', 'Activity'),
)
