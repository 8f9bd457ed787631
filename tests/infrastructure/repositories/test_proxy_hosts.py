"""Tests for ProxyHostRepository: storage, soft delete and the domain guard."""

from __future__ import annotations

import pytest
from sqlalchemy import insert, select
from sqlalchemy.engine import Engine

from proxyctl.domain.errors import NotFoundError, ValidationError
from proxyctl.domain.types import Association
from proxyctl.infrastructure.database.schema import access_lists, proxy_host_domains
from proxyctl.infrastructure.repositories import ProxyHostRepository
from proxyctl.services._helpers import now_iso
from proxyctl.services.access import Access
from tests.conftest import host_payload


def _guard_rows(engine: Engine) -> dict[str, int]:
    with engine.connect() as conn:
        rows = conn.execute(select(proxy_host_domains)).all()
    return {row.domain_name: row.proxy_host_id for row in rows}


class TestInsert:
    async def test_insert_decodes_row(self, store: ProxyHostRepository, alice: Access) -> None:
        row = await store.insert_returning(
            host_payload("A.example.com", meta={"x": 1}, ssl_forced=True),
            owner_user_id=alice.user_id,
        )
        assert row["domain_names"] == ["A.example.com"]
        assert row["meta"] == {"x": 1}
        assert row["ssl_forced"] is True
        assert row["is_deleted"] is False
        assert row["locations"] == []
        assert row["created_at"] == row["updated_at"]

    async def test_unknown_columns_ignored(
        self, store: ProxyHostRepository, alice: Access
    ) -> None:
        row = await store.insert_returning(
            host_payload("a.example.com", is_deleted=True, id=99), owner_user_id=alice.user_id
        )
        assert row["is_deleted"] is False
        assert row["id"] != 99

    async def test_guard_rows_lower_cased(
        self, store: ProxyHostRepository, db_engine: Engine, alice: Access
    ) -> None:
        row = await store.insert_returning(
            host_payload("A.example.com", "b.example.com"), owner_user_id=alice.user_id
        )
        assert _guard_rows(db_engine) == {"a.example.com": row["id"], "b.example.com": row["id"]}

    async def test_guard_rejects_duplicate(
        self, store: ProxyHostRepository, alice: Access
    ) -> None:
        await store.insert_returning(host_payload("a.example.com"), owner_user_id=alice.user_id)
        with pytest.raises(ValidationError, match="A.EXAMPLE.COM is already in use"):
            await store.insert_returning(
                host_payload("A.EXAMPLE.COM"), owner_user_id=alice.user_id
            )
        assert await store.count_active() == 1


class TestPatch:
    async def test_meta_merged(self, store: ProxyHostRepository, alice: Access) -> None:
        row = await store.insert_returning(
            host_payload("a.example.com", meta={"a": 1}), owner_user_id=alice.user_id
        )
        patched = await store.patch_returning_by_id(row["id"], {"meta": {"b": 2}})
        assert patched["meta"] == {"a": 1, "b": 2}

    async def test_domain_change_moves_guard_rows(
        self, store: ProxyHostRepository, db_engine: Engine, alice: Access
    ) -> None:
        row = await store.insert_returning(
            host_payload("a.example.com"), owner_user_id=alice.user_id
        )
        await store.patch_returning_by_id(row["id"], {"domain_names": ["c.example.com"]})
        assert _guard_rows(db_engine) == {"c.example.com": row["id"]}

    async def test_conflicting_patch_rolls_back(
        self, store: ProxyHostRepository, alice: Access
    ) -> None:
        first = await store.insert_returning(
            host_payload("a.example.com"), owner_user_id=alice.user_id
        )
        second = await store.insert_returning(
            host_payload("b.example.com"), owner_user_id=alice.user_id
        )
        with pytest.raises(ValidationError):
            await store.patch_returning_by_id(
                second["id"], {"domain_names": ["a.example.com"], "forward_port": 1}
            )
        unchanged = await store.find_active_by_id(second["id"])
        assert unchanged["domain_names"] == ["b.example.com"]
        assert unchanged["forward_port"] == 8080
        assert first["id"] != second["id"]

    async def test_missing_row(self, store: ProxyHostRepository) -> None:
        with pytest.raises(NotFoundError):
            await store.patch_returning_by_id(42, {"forward_port": 1})


class TestFind:
    async def test_owner_scope(
        self, store: ProxyHostRepository, alice: Access, bob: Access
    ) -> None:
        row = await store.insert_returning(
            host_payload("a.example.com"), owner_user_id=alice.user_id
        )
        assert await store.find_active_by_id(row["id"], owner_user_id=bob.user_id) is None
        assert await store.find_active_by_id(row["id"], owner_user_id=alice.user_id) is not None

    async def test_mark_deleted(
        self, store: ProxyHostRepository, db_engine: Engine, alice: Access
    ) -> None:
        row = await store.insert_returning(
            host_payload("a.example.com"), owner_user_id=alice.user_id
        )
        await store.mark_deleted(row["id"])
        assert await store.find_active_by_id(row["id"]) is None
        assert await store.find_active_filtered() == []
        assert await store.count_active() == 0
        assert _guard_rows(db_engine) == {}

    async def test_expand_access_list(
        self, store: ProxyHostRepository, db_engine: Engine, alice: Access
    ) -> None:
        now = now_iso()
        with db_engine.begin() as conn:
            list_id = conn.execute(
                insert(access_lists).values(
                    owner_user_id=alice.user_id,
                    name="office",
                    meta='{"note": "x"}',
                    created_at=now,
                    updated_at=now,
                )
            ).inserted_primary_key[0]
        row = await store.insert_returning(
            host_payload("a.example.com", access_list_id=list_id), owner_user_id=alice.user_id
        )
        hosts = await store.find_active_filtered(expand={Association.ACCESS_LIST})
        assert hosts[0]["id"] == row["id"]
        assert hosts[0]["access_list"]["name"] == "office"
        assert hosts[0]["access_list"]["meta"] == {"note": "x"}
        assert hosts[0]["access_list"]["pass_auth"] is True

    async def test_count_by_owner(
        self, store: ProxyHostRepository, alice: Access, bob: Access
    ) -> None:
        await store.insert_returning(host_payload("a.example.com"), owner_user_id=alice.user_id)
        await store.insert_returning(host_payload("b.example.com"), owner_user_id=bob.user_id)
        assert await store.count_active(owner_user_id=alice.user_id) == 1
        assert await store.count_active() == 2
