"""
Permission catalogue and set-membership helpers.

Permission codes are opaque integers. Numeric grouping (2xx problems,
3xx judging, 8xx contest control) is a naming convention only; every check
in this module is exact membership.
"""

import logging
from enum import IntEnum
from typing import Dict, FrozenSet, Iterable, Mapping, Set

logger = logging.getLogger(__name__)


class Permission(IntEnum):
    """Permission codes granted to roles in a CodeStorm deployment."""
    DASHBOARD = 100

    PROBLEMS = 200
    VIEW_QUESTION = 210
    ADD_SUBMISSION = 220
    TOTAL_SCORE = 230

    JUDGE_QUEUE = 300
    VIEW_SUBMISSION = 310
    VIEW_QUEUE_LIST = 320

    USERS = 500
    ANALYTICS = 600
    EXPORTS = 700

    CONTEST_CONTROL = 800
    TIMER_CONTROL = 810
    PHASE_CONTROL = 820
    DISPLAY_CONTROL = 830
    EMERGENCY_ACTIONS = 840
    PROBLEM_CONTROL = 850
    USER_CONTROL = 860

    AUDIT_LOG = 900
    BACKUP = 1000
    ATTENDANCE = 1100


ROLE_PERMISSIONS: Dict[str, FrozenSet[int]] = {
    'participant': frozenset({
        Permission.DASHBOARD,
        Permission.PROBLEMS,
        Permission.VIEW_QUESTION,
        Permission.ADD_SUBMISSION,
        Permission.TOTAL_SCORE,
    }),
    'judge': frozenset({
        Permission.DASHBOARD,
        Permission.JUDGE_QUEUE,
        Permission.VIEW_SUBMISSION,
        Permission.VIEW_QUEUE_LIST,
    }),
    'admin': frozenset(Permission),
}

# child -> parent; holding the parent grants the child
PERMISSION_PARENTS: Dict[int, int] = {
    Permission.VIEW_QUESTION: Permission.PROBLEMS,
    Permission.ADD_SUBMISSION: Permission.PROBLEMS,
    Permission.TOTAL_SCORE: Permission.PROBLEMS,
    Permission.VIEW_SUBMISSION: Permission.JUDGE_QUEUE,
    Permission.VIEW_QUEUE_LIST: Permission.JUDGE_QUEUE,
    Permission.TIMER_CONTROL: Permission.CONTEST_CONTROL,
    Permission.PHASE_CONTROL: Permission.CONTEST_CONTROL,
    Permission.DISPLAY_CONTROL: Permission.CONTEST_CONTROL,
    Permission.EMERGENCY_ACTIONS: Permission.CONTEST_CONTROL,
    Permission.PROBLEM_CONTROL: Permission.CONTEST_CONTROL,
    Permission.USER_CONTROL: Permission.CONTEST_CONTROL,
}

ROLE_DISPLAY_NAMES = {
    'admin': 'Administrator',
    'judge': 'Judge',
    'participant': 'Participant',
}


def has_permission(permissions: Iterable[int], code: int) -> bool:
    """Check if a permission set contains a specific code."""
    return code in set(permissions)


def has_any(permissions: Iterable[int], codes: Iterable[int]) -> bool:
    """True if at least one of `codes` is held. Empty `codes` is False."""
    held = set(permissions)
    return any(code in held for code in codes)


def has_all(permissions: Iterable[int], codes: Iterable[int]) -> bool:
    """True if every one of `codes` is held. Empty `codes` is vacuously True."""
    held = set(permissions)
    return all(code in held for code in codes)


def has_hierarchical(permissions: Iterable[int], code: int,
                     parents: Mapping[int, int] = PERMISSION_PARENTS) -> bool:
    """
    Check a code directly or through any ancestor in the parent table.

    The walk stops on the first repeated code, so a misconfigured cyclic
    table returns False instead of looping.

    Args:
        permissions: Codes held by the user
        code: The code being checked
        parents: Mapping of child code -> parent code

    Returns:
        True if `code` or one of its ancestors is held
    """
    held = set(permissions)
    visited: Set[int] = set()
    current = code
    while current not in visited:
        if current in held:
            return True
        visited.add(current)
        if current not in parents:
            return False
        current = parents[current]

    logger.warning(f"Cycle in permission hierarchy at code {current}")
    return False


def expand_inherited(permissions: Iterable[int],
                     parents: Mapping[int, int] = PERMISSION_PARENTS) -> FrozenSet[int]:
    """Return the held codes plus every code granted through the hierarchy."""
    held = frozenset(permissions)
    granted = {child for child in parents if has_hierarchical(held, child, parents)}
    return held | granted


def role_display_name(role_name: str) -> str:
    """Human-readable role name; unknown roles are returned unchanged."""
    return ROLE_DISPLAY_NAMES.get(role_name.lower(), role_name)
