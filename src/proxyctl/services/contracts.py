"""Typed contracts at the service boundary.

Payload models validate operation inputs before any stage runs, so a
malformed request fails fast with a pydantic error. The protocols describe
what :class:`~proxyctl.services.proxy_host.ProxyHostService` expects from
its collaborators. The default implementations live in
:mod:`proxyctl.infrastructure`.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

from proxyctl.domain.types import AuditAction, Association, HostType, Visibility


def _normalize_domain_names(names: list[str]) -> list[str]:
    """Strip whitespace, drop blanks and case-insensitive duplicates, keep order."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in names:
        name = raw.strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        result.append(name)
    if not result:
        raise ValueError("at least one domain name is required")
    return result


# ── Payloads ─────────────────────────────────────────────────────────


class Location(BaseModel):
    """A custom location block inside a proxy host."""

    model_config = ConfigDict(extra="allow")

    path: str = Field(min_length=1)
    forward_scheme: Literal["http", "https"] = "http"
    forward_host: str = Field(min_length=1)
    forward_port: int = Field(ge=1, le=65535)
    advanced_config: str = ""


class ProxyHostCreate(BaseModel):
    """Payload for ``ProxyHostService.create``.

    ``is_deleted`` is not part of the contract and is dropped if supplied.
    ``owner_user_id`` is accepted but always replaced by the acting user.
    """

    model_config = ConfigDict(extra="ignore")

    domain_names: list[str] = Field(min_length=1)
    forward_scheme: Literal["http", "https"] = "http"
    forward_host: str = Field(min_length=1)
    forward_port: int = Field(ge=1, le=65535)
    access_list_id: int | None = None
    certificate_id: int | None = None
    ssl_forced: bool = False
    hsts_enabled: bool = False
    hsts_subdomains: bool = False
    http2_support: bool = False
    block_exploits: bool = False
    caching_enabled: bool = False
    allow_websocket_upgrade: bool = False
    advanced_config: str = ""
    locations: list[Location] = Field(default_factory=list)
    enabled: bool = True
    meta: dict[str, Any] = Field(default_factory=dict)
    owner_user_id: int | None = None

    @field_validator("domain_names")
    @classmethod
    def _check_domain_names(cls, value: list[str]) -> list[str]:
        return _normalize_domain_names(value)


class ProxyHostUpdate(BaseModel):
    """Payload for ``ProxyHostService.update``. Only fields that are set are patched."""

    model_config = ConfigDict(extra="ignore")

    id: int
    domain_names: list[str] | None = None
    forward_scheme: Literal["http", "https"] | None = None
    forward_host: str | None = Field(default=None, min_length=1)
    forward_port: int | None = Field(default=None, ge=1, le=65535)
    access_list_id: int | None = None
    certificate_id: int | None = None
    ssl_forced: bool | None = None
    hsts_enabled: bool | None = None
    hsts_subdomains: bool | None = None
    http2_support: bool | None = None
    block_exploits: bool | None = None
    caching_enabled: bool | None = None
    allow_websocket_upgrade: bool | None = None
    advanced_config: str | None = None
    locations: list[Location] | None = None
    enabled: bool | None = None
    meta: dict[str, Any] | None = None

    @field_validator("domain_names")
    @classmethod
    def _check_domain_names(cls, value: list[str] | None) -> list[str]:
        if value is None:
            raise ValueError("domain_names cannot be null")
        return _normalize_domain_names(value)

    # None means "not submitted". Only the weak references and meta may be
    # cleared with an explicit null.
    @field_validator(
        "forward_scheme",
        "forward_host",
        "forward_port",
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
    )
    @classmethod
    def _reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("value cannot be null")
        return value

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set by the caller, excluding ``id``."""
        return self.model_dump(mode="json", exclude_unset=True, exclude={"id"})


# ── Collaborator results ─────────────────────────────────────────────


class HostnameCheck(BaseModel):
    """Result of a single hostname lookup."""

    model_config = {"frozen": True}

    hostname: str
    is_taken: bool


class AccessResult(BaseModel):
    """Outcome of a successful authorization check."""

    model_config = {"frozen": True}

    permission_visibility: Visibility
    user_id: int


class AuditEntry(BaseModel):
    """One immutable audit record."""

    model_config = {"frozen": True}

    action: AuditAction
    object_type: str
    object_id: int
    meta: dict[str, Any] = Field(default_factory=dict)


# ── Collaborator protocols ───────────────────────────────────────────


class AuthorizationGate(Protocol):
    @property
    def user_id(self) -> int: ...

    async def can(self, permission: str, resource: Any = None) -> AccessResult: ...


class HostnameChecker(Protocol):
    async def is_hostname_taken(
        self,
        hostname: str,
        host_type: HostType | str | None = None,
        exclude_id: int | None = None,
    ) -> HostnameCheck: ...


class ProxyHostStore(Protocol):
    async def find_active_by_id(
        self,
        host_id: int,
        *,
        owner_user_id: int | None = None,
        expand: Collection[Association] = (),
        omit: Iterable[str] = (),
    ) -> dict[str, Any] | None: ...

    async def find_active_filtered(
        self,
        *,
        owner_user_id: int | None = None,
        search: str | None = None,
        expand: Collection[Association] = (),
    ) -> list[dict[str, Any]]: ...

    async def insert_returning(
        self, values: Mapping[str, Any], *, owner_user_id: int
    ) -> dict[str, Any]: ...

    async def patch_returning_by_id(
        self, host_id: int, patch: Mapping[str, Any]
    ) -> dict[str, Any]: ...

    async def mark_deleted(self, host_id: int) -> None: ...

    async def count_active(self, *, owner_user_id: int | None = None) -> int: ...


class ConfigPublisher(Protocol):
    async def configure(self, host: dict[str, Any]) -> dict[str, Any]: ...

    async def delete_config(self, host: Mapping[str, Any]) -> None: ...

    async def reload(self) -> None: ...


class AuditRecorder(Protocol):
    async def add(self, access: AuthorizationGate, entry: AuditEntry) -> int: ...
