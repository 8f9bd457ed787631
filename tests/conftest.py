"""Shared pytest fixtures and test helpers for proxyctl tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.engine import Engine

from proxyctl.config.settings import ProxyCtlSettings
from proxyctl.domain.types import PermissionLevel, Visibility
from proxyctl.infrastructure.database.engine import init_database
from proxyctl.infrastructure.repositories import (
    AuditLogRepository,
    HostnameRegistry,
    ProxyHostRepository,
    UserRepository,
)
from proxyctl.runtime import Runtime
from proxyctl.services.access import Access
from proxyctl.services.proxy_host import ProxyHostService


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ProxyCtlSettings:
    """Settings rooted at tmp_path with the nginx commands disabled."""
    monkeypatch.delenv("PROXYCTL_CONFIG", raising=False)
    return ProxyCtlSettings.load(
        data_root=tmp_path,
        nginx={"test_command": [], "reload_command": []},
        plugins={"enabled": False},
    )


@pytest.fixture
def db_engine(tmp_path: Path) -> Engine:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path / "proxyctl.db")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def runtime(settings: ProxyCtlSettings) -> Runtime:
    rt = Runtime(settings)
    try:
        yield rt
    finally:
        rt.close()


@pytest.fixture
def store(db_engine: Engine) -> ProxyHostRepository:
    return ProxyHostRepository(db_engine)


@pytest.fixture
def audit(db_engine: Engine) -> AuditLogRepository:
    return AuditLogRepository(db_engine)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def service(
    db_engine: Engine,
    store: ProxyHostRepository,
    publisher: RecordingPublisher,
    audit: AuditLogRepository,
) -> ProxyHostService:
    """ProxyHostService over a real database with a recording publisher."""
    return ProxyHostService(
        store=store,
        hostnames=HostnameRegistry(db_engine),
        publisher=publisher,
        audit=audit,
    )


@pytest.fixture
async def admin(db_engine: Engine) -> Access:
    return Access(await add_user(db_engine, "admin@example.com", roles=["admin"]))


@pytest.fixture
async def alice(db_engine: Engine) -> Access:
    return Access(await add_user(db_engine, "alice@example.com"))


@pytest.fixture
async def bob(db_engine: Engine) -> Access:
    return Access(await add_user(db_engine, "bob@example.com"))


@pytest.fixture
async def viewer(db_engine: Engine) -> Access:
    """Non-admin with view-only permission and unrestricted visibility."""
    return Access(
        await add_user(
            db_engine,
            "viewer@example.com",
            visibility=Visibility.ALL,
            proxy_hosts=PermissionLevel.VIEW,
        )
    )


# ---------------------------------------------------------------------------
# Shared test helpers (used across test modules)
# ---------------------------------------------------------------------------


class RecordingPublisher:
    """ConfigPublisher stand-in that records calls instead of touching nginx."""

    def __init__(self, *, fail_on: str | None = None) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.fail_on = fail_on

    async def configure(self, host: dict[str, Any]) -> dict[str, Any]:
        self._record("configure", host["id"])
        return host

    async def delete_config(self, host: dict[str, Any]) -> None:
        self._record("delete_config", host["id"])

    async def reload(self) -> None:
        self._record("reload", None)

    def _record(self, name: str, arg: Any) -> None:
        self.calls.append((name, arg))
        if self.fail_on == name:
            raise RuntimeError(f"{name} failed")


async def add_user(
    engine: Engine,
    email: str,
    *,
    roles: list[str] | None = None,
    visibility: Visibility = Visibility.USER,
    proxy_hosts: PermissionLevel = PermissionLevel.MANAGE,
) -> dict[str, Any]:
    """Insert a user and return its row."""
    return await UserRepository(engine).add_user(
        email,
        email.split("@")[0].title(),
        roles=roles,
        visibility=visibility,
        proxy_hosts=proxy_hosts,
    )


def host_payload(*domain_names: str, **overrides: Any) -> dict[str, Any]:
    """Minimal valid create payload."""
    return {
        "domain_names": list(domain_names),
        "forward_host": "10.0.0.2",
        "forward_port": 8080,
        **overrides,
    }
