"""Runtime: the composition root for an embedding application.

Created once per process. Configures logging, lazily opens the database,
and wires the default collaborators into :class:`ProxyHostService`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from proxyctl.config.logging import configure_logging
from proxyctl.domain.errors import NotFoundError
from proxyctl.infrastructure.database.engine import init_database
from proxyctl.infrastructure.nginx import NginxConfigPublisher
from proxyctl.infrastructure.repositories import (
    AuditLogRepository,
    HostnameRegistry,
    ProxyHostRepository,
    UserRepository,
)
from proxyctl.plugins.manager import PluginManager
from proxyctl.services.access import Access
from proxyctl.services.proxy_host import ProxyHostService

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from proxyctl.config.settings import ProxyCtlSettings


class Runtime:
    """Owns the engine and the wired services.

    The engine is created on first use so constructing a Runtime never
    touches the filesystem.
    """

    def __init__(self, settings: ProxyCtlSettings) -> None:
        self.settings = settings
        self._engine: Engine | None = None
        self._proxy_hosts: ProxyHostService | None = None
        self._plugins: PluginManager | None = None

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = init_database(self.settings.resolve_path(self.settings.database.path))
        return self._engine

    @property
    def users(self) -> UserRepository:
        return UserRepository(self.engine)

    @property
    def audit_log(self) -> AuditLogRepository:
        return AuditLogRepository(self.engine)

    @property
    def plugins(self) -> PluginManager | None:
        """Loaded plugin manager, or None when plugins are disabled."""
        if self._plugins is None and self.settings.plugins.enabled:
            self._plugins = PluginManager()
            self._plugins.discover_and_load()
        return self._plugins

    @property
    def proxy_hosts(self) -> ProxyHostService:
        """The wired proxy host service (created on first access)."""
        if self._proxy_hosts is None:
            nginx = self.settings.nginx
            store = ProxyHostRepository(self.engine)
            template_dir = (
                self.settings.resolve_path(nginx.template_dir) if nginx.template_dir else None
            )
            publisher = NginxConfigPublisher(
                self.settings.resolve_path(nginx.config_dir),
                store=store,
                test_command=nginx.test_command,
                reload_command=nginx.reload_command,
                template_dir=template_dir,
            )
            self._proxy_hosts = ProxyHostService(
                store=store,
                hostnames=HostnameRegistry(self.engine),
                publisher=publisher,
                audit=self.audit_log,
                internal_meta_keys=self.settings.meta.internal_keys,
                plugins=self.plugins,
            )
        return self._proxy_hosts

    async def access_for(self, user_id: int) -> Access:
        """Build the authorization gate for a stored user.

        Raises NotFoundError if the user does not exist or is deleted.
        """
        user = await self.users.get_user(user_id)
        if user is None:
            raise NotFoundError(user_id)
        return Access(user)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self._proxy_hosts = None
        self._plugins = None
