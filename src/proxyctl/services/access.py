"""Access: the authorization gate bound to one acting user.

Admins may do everything and see every record. Other users hold a
per-resource permission level (``manage``, ``view`` or ``hidden``) and a
visibility scope (``all`` or ``user``). The scope is returned to the caller,
which applies it to its own queries.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from proxyctl.domain.errors import AuthorizationError
from proxyctl.domain.types import PermissionLevel, Visibility
from proxyctl.services.contracts import AccessResult

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

_READ_ACTIONS = frozenset({"get", "list"})
_WRITE_ACTIONS = frozenset({"create", "update", "delete"})
_RESOURCE_COLUMNS = {"proxy_hosts": "permission_proxy_hosts"}


class Access:
    """Authorization gate for a single user.

    Args:
        user: A ``users`` row as returned by
            :class:`~proxyctl.infrastructure.repositories.UserRepository`.
    """

    def __init__(self, user: Mapping[str, Any]) -> None:
        self._user = dict(user)

    @property
    def user_id(self) -> int:
        return int(self._user["id"])

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in (self._user.get("roles") or [])

    async def can(self, permission: str, resource: Any = None) -> AccessResult:
        """Check *permission* (``"<resource>:<action>"``) for this user.

        *resource* is the target id or payload. Ownership is enforced by the
        caller through the returned visibility, so it is not inspected here.

        Raises AuthorizationError when the action is not allowed.
        """
        object_type, _, action = permission.partition(":")
        if object_type not in _RESOURCE_COLUMNS or action not in _READ_ACTIONS | _WRITE_ACTIONS:
            raise AuthorizationError(permission, "unknown permission")

        if self._user.get("is_disabled") or self._user.get("is_deleted"):
            raise AuthorizationError(permission, "user is disabled")

        if self.is_admin:
            return AccessResult(permission_visibility=Visibility.ALL, user_id=self.user_id)

        level = PermissionLevel(self._user.get(_RESOURCE_COLUMNS[object_type]) or "hidden")
        allowed = level is PermissionLevel.MANAGE or (
            level is PermissionLevel.VIEW and action in _READ_ACTIONS
        )
        if not allowed:
            logger.debug("Denied %s for user %s (level=%s)", permission, self.user_id, level)
            raise AuthorizationError(permission)

        visibility = Visibility(self._user.get("permission_visibility") or Visibility.USER)
        return AccessResult(permission_visibility=visibility, user_id=self.user_id)
