"""Pluggy hook specifications for proxy host lifecycle events.

Hooks fire after the audit entry is written. Their failures are logged
and never fail the operation.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("proxyctl")


class ProxyCtlHookSpec:
    """Hook specifications for the proxyctl plugin system."""

    @hookspec
    def post_proxy_host_create(self, host: dict[str, Any], user_id: int) -> None:
        """Called after a proxy host is created and published."""

    @hookspec
    def post_proxy_host_update(
        self,
        host: dict[str, Any],
        fields_changed: list[str],
        user_id: int,
    ) -> None:
        """Called after a proxy host is updated."""

    @hookspec
    def post_proxy_host_delete(self, host: dict[str, Any], user_id: int) -> None:
        """Called after a proxy host is soft-deleted and unpublished."""
