"""Storage access for proxy host records.

Rows leave this module as plain dicts with JSON columns decoded and integer
flags converted to ``bool``. Soft-deleted rows are never returned by the
``find_*`` methods.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Collection, Iterable, Mapping
from typing import Any

from sqlalchemy import Connection, delete, func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from proxyctl.domain.errors import NotFoundError, ValidationError
from proxyctl.domain.meta import merge_meta
from proxyctl.domain.types import Association
from proxyctl.infrastructure.database.schema import (
    access_lists,
    certificates,
    proxy_host_domains,
    proxy_hosts,
    users,
)
from proxyctl.infrastructure.repositories.users import decode_user
from proxyctl.services._helpers import dump_json, load_json, now_iso

logger = logging.getLogger(__name__)

_JSON_COLUMNS: dict[str, Any] = {"domain_names": [], "locations": [], "meta": {}}
_BOOL_COLUMNS = (
    "is_deleted",
    "ssl_forced",
    "hsts_enabled",
    "hsts_subdomains",
    "http2_support",
    "block_exploits",
    "caching_enabled",
    "allow_websocket_upgrade",
    "enabled",
)
# Columns a caller may write. id, owner_user_id, is_deleted and the
# timestamps are managed here.
_WRITABLE_COLUMNS = frozenset(
    {
        "domain_names",
        "forward_scheme",
        "forward_host",
        "forward_port",
        "access_list_id",
        "certificate_id",
        "ssl_forced",
        "hsts_enabled",
        "hsts_subdomains",
        "http2_support",
        "block_exploits",
        "caching_enabled",
        "allow_websocket_upgrade",
        "advanced_config",
        "locations",
        "enabled",
        "meta",
    }
)


def decode_host(row: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a ``proxy_hosts`` row mapping into a plain dict."""
    data = dict(row)
    for key, default in _JSON_COLUMNS.items():
        if key in data:
            data[key] = load_json(data[key], default)
    for key in _BOOL_COLUMNS:
        if key in data:
            data[key] = bool(data[key])
    return data


def _encode_values(values: Mapping[str, Any]) -> dict[str, Any]:
    encoded: dict[str, Any] = {}
    for key, value in values.items():
        if key not in _WRITABLE_COLUMNS:
            continue
        if key in _JSON_COLUMNS:
            encoded[key] = dump_json(value if value is not None else _JSON_COLUMNS[key])
        elif key in _BOOL_COLUMNS:
            encoded[key] = int(bool(value))
        else:
            encoded[key] = value
    return encoded


class ProxyHostRepository:
    """Encapsulates SQL for the ``proxy_hosts`` table and its domain guard."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def find_active_by_id(
        self,
        host_id: int,
        *,
        owner_user_id: int | None = None,
        expand: Collection[Association] = (),
        omit: Iterable[str] = (),
    ) -> dict[str, Any] | None:
        """Fetch one active host, optionally restricted to *owner_user_id*."""
        return await asyncio.to_thread(
            self._find_active_by_id, host_id, owner_user_id, frozenset(expand), tuple(omit)
        )

    async def find_active_filtered(
        self,
        *,
        owner_user_id: int | None = None,
        search: str | None = None,
        expand: Collection[Association] = (),
    ) -> list[dict[str, Any]]:
        """List active hosts ordered by domain names ascending, ignoring case.

        *search* is a case-insensitive substring match against any domain name.
        """
        return await asyncio.to_thread(
            self._find_active_filtered, owner_user_id, search, frozenset(expand)
        )

    async def insert_returning(self, values: Mapping[str, Any], *, owner_user_id: int) -> dict[str, Any]:
        """Insert a host and return the stored row.

        Raises ValidationError if another active host holds one of the names.
        """
        return await asyncio.to_thread(self._insert_returning, dict(values), owner_user_id)

    async def patch_returning_by_id(self, host_id: int, patch: Mapping[str, Any]) -> dict[str, Any]:
        """Apply a partial update and return the stored row.

        ``meta`` is merged into the stored meta rather than replacing it.
        """
        return await asyncio.to_thread(self._patch_returning_by_id, host_id, dict(patch))

    async def mark_deleted(self, host_id: int) -> None:
        """Soft-delete a host and release its domain names."""
        await asyncio.to_thread(self._mark_deleted, host_id)

    async def count_active(self, *, owner_user_id: int | None = None) -> int:
        """Count active hosts, optionally for a single owner."""
        return await asyncio.to_thread(self._count_active, owner_user_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _find_active_by_id(
        self,
        host_id: int,
        owner_user_id: int | None,
        expand: frozenset[Association],
        omit: tuple[str, ...],
    ) -> dict[str, Any] | None:
        stmt = select(proxy_hosts).where(proxy_hosts.c.is_deleted == 0, proxy_hosts.c.id == host_id)
        if owner_user_id is not None:
            stmt = stmt.where(proxy_hosts.c.owner_user_id == owner_user_id)

        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
            if row is None:
                return None
            host = decode_host(row)
            _expand(conn, [host], expand)

        for key in omit:
            host.pop(key, None)
        return host

    def _find_active_filtered(
        self,
        owner_user_id: int | None,
        search: str | None,
        expand: frozenset[Association],
    ) -> list[dict[str, Any]]:
        # One row per id: the search filter is a subquery, never a join.
        stmt = select(proxy_hosts).where(proxy_hosts.c.is_deleted == 0)
        if owner_user_id is not None:
            stmt = stmt.where(proxy_hosts.c.owner_user_id == owner_user_id)
        if search:
            matching = select(proxy_host_domains.c.proxy_host_id).where(
                proxy_host_domains.c.domain_name.contains(search.lower(), autoescape=True)
            )
            stmt = stmt.where(proxy_hosts.c.id.in_(matching))
        stmt = stmt.order_by(
            proxy_hosts.c.domain_names.collate("NOCASE").asc(), proxy_hosts.c.id.asc()
        )

        with self._engine.connect() as conn:
            hosts = [decode_host(row) for row in conn.execute(stmt).mappings().all()]
            _expand(conn, hosts, expand)
        return hosts

    def _insert_returning(self, values: dict[str, Any], owner_user_id: int) -> dict[str, Any]:
        now = now_iso()
        encoded = _encode_values(values)
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(proxy_hosts).values(
                    **encoded,
                    owner_user_id=owner_user_id,
                    is_deleted=0,
                    created_at=now,
                    updated_at=now,
                )
            )
            host_id = int(result.inserted_primary_key[0])
            _claim_domains(conn, host_id, values.get("domain_names") or [])
            row = conn.execute(select(proxy_hosts).where(proxy_hosts.c.id == host_id)).mappings().one()

        logger.debug("Inserted proxy host %s", host_id)
        return decode_host(row)

    def _patch_returning_by_id(self, host_id: int, patch: dict[str, Any]) -> dict[str, Any]:
        with self._engine.begin() as conn:
            current = conn.execute(
                select(proxy_hosts.c.meta).where(proxy_hosts.c.id == host_id)
            ).first()
            if current is None:
                raise NotFoundError(host_id)

            if "meta" in patch:
                patch["meta"] = merge_meta(load_json(current.meta, {}), patch["meta"])

            encoded = _encode_values(patch)
            conn.execute(
                update(proxy_hosts)
                .where(proxy_hosts.c.id == host_id)
                .values(**encoded, updated_at=now_iso())
            )

            if "domain_names" in patch:
                conn.execute(
                    delete(proxy_host_domains).where(proxy_host_domains.c.proxy_host_id == host_id)
                )
                _claim_domains(conn, host_id, patch["domain_names"] or [])

            row = conn.execute(select(proxy_hosts).where(proxy_hosts.c.id == host_id)).mappings().one()

        logger.debug("Patched proxy host %s fields=%s", host_id, sorted(encoded))
        return decode_host(row)

    def _mark_deleted(self, host_id: int) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                update(proxy_hosts)
                .where(proxy_hosts.c.id == host_id)
                .values(is_deleted=1, updated_at=now_iso())
            )
            conn.execute(
                delete(proxy_host_domains).where(proxy_host_domains.c.proxy_host_id == host_id)
            )
        logger.debug("Soft-deleted proxy host %s", host_id)

    def _count_active(self, owner_user_id: int | None) -> int:
        stmt = select(func.count(proxy_hosts.c.id)).where(proxy_hosts.c.is_deleted == 0)
        if owner_user_id is not None:
            stmt = stmt.where(proxy_hosts.c.owner_user_id == owner_user_id)
        with self._engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one() or 0)


def _claim_domains(conn: Connection, host_id: int, domain_names: Iterable[str]) -> None:
    """Write guard rows for *domain_names*. The primary key enforces uniqueness."""
    for name in domain_names:
        try:
            conn.execute(
                insert(proxy_host_domains).values(domain_name=name.lower(), proxy_host_id=host_id)
            )
        except IntegrityError as exc:
            raise ValidationError(f"{name} is already in use", hostname=name) from exc


def _expand(conn: Connection, hosts: list[dict[str, Any]], expand: frozenset[Association]) -> None:
    """Attach requested associations to each host dict in place."""
    if not hosts or not expand:
        return

    if Association.OWNER in expand:
        ids = {h["owner_user_id"] for h in hosts}
        rows = conn.execute(select(users).where(users.c.id.in_(ids))).mappings().all()
        by_id = {row["id"]: decode_user(row, public=True) for row in rows}
        for host in hosts:
            host["owner"] = by_id.get(host["owner_user_id"])

    if Association.ACCESS_LIST in expand:
        ids = {h["access_list_id"] for h in hosts if h.get("access_list_id")}
        rows = (
            conn.execute(
                select(access_lists).where(access_lists.c.id.in_(ids), access_lists.c.is_deleted == 0)
            )
            .mappings()
            .all()
            if ids
            else []
        )
        by_id = {row["id"]: _decode_related(row) for row in rows}
        for host in hosts:
            host["access_list"] = by_id.get(host.get("access_list_id"))

    if Association.CERTIFICATE in expand:
        ids = {h["certificate_id"] for h in hosts if h.get("certificate_id")}
        rows = (
            conn.execute(
                select(certificates).where(
                    certificates.c.id.in_(ids), certificates.c.is_deleted == 0
                )
            )
            .mappings()
            .all()
            if ids
            else []
        )
        by_id = {row["id"]: _decode_related(row) for row in rows}
        for host in hosts:
            host["certificate"] = by_id.get(host.get("certificate_id"))


def _decode_related(row: Mapping[str, Any]) -> dict[str, Any]:
    """Decode an access list or certificate row for embedding."""
    data = dict(row)
    data.pop("is_deleted", None)
    data["meta"] = load_json(data.get("meta"), {})
    if "domain_names" in data:
        data["domain_names"] = load_json(data["domain_names"], [])
    for key in ("satisfy_any", "pass_auth"):
        if key in data:
            data[key] = bool(data[key])
    return data
