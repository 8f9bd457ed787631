"""User records: owners of hosts and the identities actions run as."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.engine import Engine

from proxyctl.domain.types import PermissionLevel, Visibility
from proxyctl.infrastructure.database.schema import users
from proxyctl.services._helpers import dump_json, load_json, now_iso

# Columns never exposed when a user is expanded as a host owner.
_PRIVATE_COLUMNS = ("is_deleted", "permission_visibility", "permission_proxy_hosts")


def decode_user(row: Mapping[str, Any], *, public: bool = False) -> dict[str, Any]:
    """Convert a ``users`` row mapping into a plain dict."""
    data = dict(row)
    data["roles"] = load_json(data.get("roles"), [])
    data["is_disabled"] = bool(data.get("is_disabled"))
    data["is_deleted"] = bool(data.get("is_deleted"))
    if public:
        for key in _PRIVATE_COLUMNS:
            data.pop(key, None)
    return data


class UserRepository:
    """Encapsulates SQL for the ``users`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def add_user(
        self,
        email: str,
        name: str,
        *,
        roles: list[str] | None = None,
        nickname: str = "",
        visibility: Visibility = Visibility.USER,
        proxy_hosts: PermissionLevel = PermissionLevel.MANAGE,
    ) -> dict[str, Any]:
        """Insert a user and return the stored row."""
        return await asyncio.to_thread(
            self._add_user, email, name, roles or [], nickname, visibility, proxy_hosts
        )

    async def get_user(self, user_id: int) -> dict[str, Any] | None:
        """Fetch an active (not deleted) user by id."""
        return await asyncio.to_thread(self._get_user, user_id)

    def _add_user(
        self,
        email: str,
        name: str,
        roles: list[str],
        nickname: str,
        visibility: Visibility,
        proxy_hosts: PermissionLevel,
    ) -> dict[str, Any]:
        now = now_iso()
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(users).values(
                    email=email,
                    name=name,
                    nickname=nickname,
                    roles=dump_json(roles),
                    permission_visibility=str(visibility),
                    permission_proxy_hosts=str(proxy_hosts),
                    created_at=now,
                    updated_at=now,
                )
            )
            user_id = result.inserted_primary_key[0]
            row = conn.execute(select(users).where(users.c.id == user_id)).mappings().one()
        return decode_user(row)

    def _get_user(self, user_id: int) -> dict[str, Any] | None:
        stmt = select(users).where(users.c.id == user_id, users.c.is_deleted == 0)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return decode_user(row) if row is not None else None
