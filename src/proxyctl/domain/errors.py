"""Exception hierarchy for the proxy host lifecycle.

Every operation short-circuits on the first raised error. Collaborator
exceptions (SQLAlchemy, subprocess, ...) are not wrapped by the service
layer and surface with their own identity.
"""

from __future__ import annotations

from typing import Any


class ProxyCtlError(Exception):
    """Base class for all proxyctl errors."""

    code = "ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(ProxyCtlError):
    """User-correctable input problem, e.g. a domain name already in use."""

    code = "VALIDATION_FAILED"


class NotFoundError(ProxyCtlError):
    """Item is missing, soft-deleted, or outside the actor's visibility scope.

    The caller cannot tell the three cases apart.
    """

    code = "NOT_FOUND"

    def __init__(self, item_id: Any) -> None:
        super().__init__(f"Item not found: {item_id}", item_id=item_id)
        self.item_id = item_id


class InternalValidationError(ProxyCtlError):
    """An internal invariant was violated. Signals a bug, not bad input."""

    code = "INTERNAL_VALIDATION"


class AuthorizationError(ProxyCtlError):
    """The acting user may not perform the requested action."""

    code = "PERMISSION_DENIED"

    def __init__(self, permission: str, reason: str | None = None) -> None:
        message = f"Permission denied: {permission}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, permission=permission)
        self.permission = permission


class ConfigPublishError(ProxyCtlError):
    """A publisher command (config test, reload) exited non-zero."""

    code = "PUBLISH_FAILED"

    def __init__(self, command: list[str], returncode: int, stderr: str) -> None:
        super().__init__(
            f"Command failed ({returncode}): {' '.join(command)}",
            command=command,
            returncode=returncode,
            stderr=stderr,
        )
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
