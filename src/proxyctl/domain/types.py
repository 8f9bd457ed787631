"""Enumerations shared across layers."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class Association(StrEnum):
    """Relations of a proxy host that can be expanded on request."""

    OWNER = "owner"
    ACCESS_LIST = "access_list"
    CERTIFICATE = "certificate"


class HostType(StrEnum):
    """Host record types that claim domain names."""

    PROXY = "proxy"
    REDIRECTION = "redirection"
    DEAD = "dead"


class Visibility(StrEnum):
    """Scope of records an actor may see."""

    ALL = "all"
    USER = "user"


class PermissionLevel(StrEnum):
    """Per-resource permission level held by a non-admin user."""

    MANAGE = "manage"
    VIEW = "view"
    HIDDEN = "hidden"


class AuditAction(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


def parse_associations(expand: Iterable[Association | str] | None) -> frozenset[Association]:
    """Coerce an expand argument into a set of :class:`Association`.

    Raises ValueError for names outside the enumeration.
    """
    if expand is None:
        return frozenset()
    return frozenset(Association(item) for item in expand)
