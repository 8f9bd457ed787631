"""Hostname registry: is a domain name already claimed by an active host?

Checks every host table, not only proxy hosts. The SQL ``LIKE`` narrows the
candidates; the exact, case-insensitive comparison happens in Python because
domain names are stored as JSON arrays.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import Table, select
from sqlalchemy.engine import Engine

from proxyctl.domain.types import HostType
from proxyctl.infrastructure.database.schema import dead_hosts, proxy_hosts, redirection_hosts
from proxyctl.services._helpers import load_json
from proxyctl.services.contracts import HostnameCheck

logger = logging.getLogger(__name__)

_HOST_TABLES: dict[HostType, Table] = {
    HostType.PROXY: proxy_hosts,
    HostType.REDIRECTION: redirection_hosts,
    HostType.DEAD: dead_hosts,
}


class HostnameRegistry:
    """Looks up domain name claims across all active host records."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def is_hostname_taken(
        self,
        hostname: str,
        host_type: HostType | str | None = None,
        exclude_id: int | None = None,
    ) -> HostnameCheck:
        """Check *hostname* against every active host.

        When both *host_type* and *exclude_id* are given, the record of that
        type with that id is ignored, so a host may keep its own names.
        """
        ignore = (HostType(host_type), exclude_id) if host_type and exclude_id else None
        taken = await asyncio.to_thread(self._is_taken, hostname, ignore)
        return HostnameCheck(hostname=hostname, is_taken=taken)

    def _is_taken(self, hostname: str, ignore: tuple[HostType, int] | None) -> bool:
        needle = hostname.lower()
        with self._engine.connect() as conn:
            for host_type, table in _HOST_TABLES.items():
                stmt = select(table.c.id, table.c.domain_names).where(
                    table.c.is_deleted == 0,
                    table.c.domain_names.contains(needle, autoescape=True),
                )
                for row in conn.execute(stmt):
                    if ignore is not None and ignore == (host_type, row.id):
                        continue
                    names = load_json(row.domain_names, [])
                    if any(str(name).lower() == needle for name in names):
                        logger.debug("Hostname %s is held by %s host %s", hostname, host_type, row.id)
                        return True
        return False
