"""
UserDirectory: the contest roster loaded from users.json.

File layout:
    {
      "users": [
        {"id": "u-1", "username": "alice", "role": "participant",
         "permissions": [230], "contests": ["spring-open"]}
      ]
    }

Effective permissions are the role's codes plus any explicit codes,
expanded through the permission hierarchy.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Optional

from ..access.permissions import ROLE_PERMISSIONS, expand_inherited

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    username: str = ''
    role: str = ''
    permissions: FrozenSet[int] = field(default_factory=frozenset)
    contests: FrozenSet[str] = field(default_factory=frozenset)


class UserDirectory:
    def __init__(self, users_file):
        self.users_file = Path(users_file)
        self._users: Dict[str, UserRecord] = {}
        self._load()

    def _load(self) -> None:
        """Load the roster. A missing or corrupt file leaves the directory empty."""
        if not self.users_file.exists():
            logger.info(f"No {self.users_file} found, starting with an empty roster.")
            return

        try:
            with open(self.users_file, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Failed to load {self.users_file}: {e}")
            return

        for entry in data.get('users', []):
            user_id = entry.get('id')
            if not user_id:
                logger.warning(f"Skipping roster entry without id: {entry}")
                continue

            role = entry.get('role', '')
            if role and role not in ROLE_PERMISSIONS:
                logger.warning(f"Unknown role '{role}' for user {user_id}")
            base = set(ROLE_PERMISSIONS.get(role, frozenset()))
            base.update(int(code) for code in entry.get('permissions', []))

            self._users[str(user_id)] = UserRecord(
                user_id=str(user_id),
                username=entry.get('username', ''),
                role=role,
                permissions=expand_inherited(base),
                contests=frozenset(str(c) for c in entry.get('contests', [])),
            )

        logger.info(f"Loaded {len(self._users)} users from {self.users_file}")

    def get(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(user_id)

    def __len__(self) -> int:
        return len(self._users)
