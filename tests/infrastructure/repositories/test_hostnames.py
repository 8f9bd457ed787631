"""Tests for HostnameRegistry lookups across host types."""

from __future__ import annotations

from sqlalchemy import insert
from sqlalchemy.engine import Engine

from proxyctl.domain.types import HostType
from proxyctl.infrastructure.database.schema import dead_hosts
from proxyctl.infrastructure.repositories import HostnameRegistry, ProxyHostRepository
from proxyctl.services._helpers import dump_json, now_iso
from proxyctl.services.access import Access
from tests.conftest import host_payload


class TestHostnameRegistry:
    async def test_free_name(self, db_engine: Engine) -> None:
        check = await HostnameRegistry(db_engine).is_hostname_taken("a.example.com")
        assert check.hostname == "a.example.com"
        assert check.is_taken is False

    async def test_exact_match_only(
        self, db_engine: Engine, store: ProxyHostRepository, alice: Access
    ) -> None:
        await store.insert_returning(host_payload("www.a.example.com"), owner_user_id=alice.user_id)
        registry = HostnameRegistry(db_engine)
        assert (await registry.is_hostname_taken("a.example.com")).is_taken is False
        assert (await registry.is_hostname_taken("WWW.A.EXAMPLE.COM")).is_taken is True

    async def test_self_exclusion_needs_type_and_id(
        self, db_engine: Engine, store: ProxyHostRepository, alice: Access
    ) -> None:
        row = await store.insert_returning(
            host_payload("a.example.com"), owner_user_id=alice.user_id
        )
        registry = HostnameRegistry(db_engine)
        assert (
            await registry.is_hostname_taken("a.example.com", HostType.PROXY, row["id"])
        ).is_taken is False
        assert (await registry.is_hostname_taken("a.example.com", None, row["id"])).is_taken
        assert (
            await registry.is_hostname_taken("a.example.com", "dead", row["id"])
        ).is_taken is True

    async def test_deleted_rows_ignored(
        self, db_engine: Engine, store: ProxyHostRepository, alice: Access
    ) -> None:
        row = await store.insert_returning(
            host_payload("a.example.com"), owner_user_id=alice.user_id
        )
        await store.mark_deleted(row["id"])
        assert (
            await HostnameRegistry(db_engine).is_hostname_taken("a.example.com")
        ).is_taken is False

    async def test_other_host_types(self, db_engine: Engine, alice: Access) -> None:
        now = now_iso()
        with db_engine.begin() as conn:
            conn.execute(
                insert(dead_hosts).values(
                    owner_user_id=alice.user_id,
                    domain_names=dump_json(["gone.example.com"]),
                    created_at=now,
                    updated_at=now,
                )
            )
        check = await HostnameRegistry(db_engine).is_hostname_taken("gone.example.com")
        assert check.is_taken is True
