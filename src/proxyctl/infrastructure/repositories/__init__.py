"""Repositories: named, typed storage operations used by the service layer.

Each public method is a coroutine. The blocking SQLAlchemy work runs in a
worker thread via :func:`asyncio.to_thread`.
"""

from proxyctl.infrastructure.repositories.audit_log import AuditLogRepository
from proxyctl.infrastructure.repositories.hostnames import HostnameRegistry
from proxyctl.infrastructure.repositories.proxy_hosts import ProxyHostRepository
from proxyctl.infrastructure.repositories.users import UserRepository

__all__ = [
    "AuditLogRepository",
    "HostnameRegistry",
    "ProxyHostRepository",
    "UserRepository",
]
