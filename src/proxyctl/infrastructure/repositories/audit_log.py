"""Append-only audit log of actions performed on managed objects."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select
from sqlalchemy.engine import Engine

from proxyctl.infrastructure.database.schema import audit_log
from proxyctl.services._helpers import dump_json, load_json, now_iso

if TYPE_CHECKING:
    from proxyctl.services.access import Access
    from proxyctl.services.contracts import AuditEntry


class AuditLogRepository:
    """Writes immutable audit rows. There is no update or delete path."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def add(self, access: Access, entry: AuditEntry) -> int:
        """Record *entry* as performed by the acting user. Returns the row id."""
        return await asyncio.to_thread(self._add, access.user_id, entry)

    async def list_entries(
        self,
        *,
        object_type: str | None = None,
        object_id: int | None = None,
    ) -> list[dict[str, Any]]:
        """Entries oldest first, optionally filtered to one object."""
        return await asyncio.to_thread(self._list_entries, object_type, object_id)

    def _add(self, user_id: int, entry: AuditEntry) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(audit_log).values(
                    user_id=user_id,
                    object_type=entry.object_type,
                    object_id=entry.object_id,
                    action=str(entry.action),
                    meta=dump_json(entry.meta),
                    created_at=now_iso(),
                )
            )
            return int(result.inserted_primary_key[0])

    def _list_entries(self, object_type: str | None, object_id: int | None) -> list[dict[str, Any]]:
        stmt = select(audit_log).order_by(audit_log.c.id)
        if object_type is not None:
            stmt = stmt.where(audit_log.c.object_type == object_type)
        if object_id is not None:
            stmt = stmt.where(audit_log.c.object_id == object_id)
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [{**row, "meta": load_json(row["meta"], {})} for row in rows]
