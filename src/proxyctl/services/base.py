"""BaseService: shared foundation for service-layer classes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from proxyctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service classes that fire lifecycle hooks.

    Services own no storage. Collaborators are injected by the subclass
    constructor; the plugin manager is optional.
    """

    def __init__(self, plugins: PluginManager | None = None) -> None:
        self._plugins = plugins

    def _dispatch_event(self, hook_name: str, payload: dict[str, Any]) -> None:
        """Fire a lifecycle hook. No-op without a plugin manager.

        INVARIANT: Plugin failures are logged, never raised.
        """
        if self._plugins is None:
            return
        try:
            getattr(self._plugins.hook, hook_name)(**payload)
        except Exception:
            logger.warning("Event dispatch failed for %s", hook_name, exc_info=True)
