"""ProxyHostService: lifecycle orchestration for proxy hosts.

Mutations: AUTHORIZE → VALIDATE → READ → PERSIST → PUBLISH → AUDIT → RESPOND
Reads:     AUTHORIZE → QUERY → SANITIZE → RESPOND

Every stage is awaited in order and the first exception aborts the
operation. Nothing already committed is rolled back: a publish or audit
failure after the write leaves storage and served config to be reconciled
by the operator.

The hostname pre-check and the write are not isolated from concurrent
requests. The domain guard table in the repository is the authoritative
check. The pre-check only gives the friendlier early error.
"""

from __future__ import annotations

import asyncio
from collections.abc import Collection, Iterable, Mapping
from typing import TYPE_CHECKING, Any

import structlog

from proxyctl.domain.errors import InternalValidationError, NotFoundError, ValidationError
from proxyctl.domain.meta import clean_meta, merge_meta
from proxyctl.domain.types import Association, AuditAction, HostType, Visibility, parse_associations
from proxyctl.services.base import BaseService
from proxyctl.services.contracts import (
    AuditEntry,
    ProxyHostCreate,
    ProxyHostUpdate,
)

if TYPE_CHECKING:
    from proxyctl.plugins.manager import PluginManager
    from proxyctl.services.contracts import (
        AuditRecorder,
        AuthorizationGate,
        ConfigPublisher,
        HostnameChecker,
        ProxyHostStore,
    )

log = structlog.get_logger(__name__)

OBJECT_TYPE = "proxy-host"

# Never part of a returned host.
_OMISSIONS = ("is_deleted",)


class ProxyHostService(BaseService):
    """Create, update, read and delete proxy hosts on behalf of an actor."""

    def __init__(
        self,
        *,
        store: ProxyHostStore,
        hostnames: HostnameChecker,
        publisher: ConfigPublisher,
        audit: AuditRecorder,
        internal_meta_keys: Iterable[str] | None = None,
        plugins: PluginManager | None = None,
    ) -> None:
        super().__init__(plugins)
        self._store = store
        self._hostnames = hostnames
        self._publisher = publisher
        self._audit = audit
        self._internal_meta_keys = (
            frozenset(internal_meta_keys) if internal_meta_keys is not None else None
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def create(
        self,
        access: AuthorizationGate,
        data: ProxyHostCreate | Mapping[str, Any],
    ) -> dict[str, Any]:
        """Create a host, publish its config and return it with ``owner`` expanded."""
        payload = ProxyHostCreate.model_validate(data)
        await access.can("proxy_hosts:create", payload.model_dump(mode="json"))

        await self._assert_hostnames_available(payload.domain_names)

        owner_user_id = access.user_id
        values = payload.model_dump(mode="json", exclude={"owner_user_id"})
        row = await self._store.insert_returning(values, owner_user_id=owner_user_id)

        await self._publisher.configure(row)

        host = await self.get(access, row["id"], expand=[Association.OWNER])

        # Caller keys win; keys added while publishing fill the gaps.
        audit_meta = {
            **values,
            "owner_user_id": owner_user_id,
            "meta": merge_meta(host.get("meta"), payload.meta),
        }
        await self._audit.add(
            access,
            AuditEntry(
                action=AuditAction.CREATED,
                object_type=OBJECT_TYPE,
                object_id=host["id"],
                meta=audit_meta,
            ),
        )

        log.info(
            "proxy_host.created",
            host_id=host["id"],
            user_id=owner_user_id,
            domain_names=host["domain_names"],
        )
        self._dispatch_event("post_proxy_host_create", {"host": host, "user_id": owner_user_id})
        return host

    async def update(
        self,
        access: AuthorizationGate,
        data: ProxyHostUpdate | Mapping[str, Any],
    ) -> dict[str, Any]:
        """Patch the fields set in *data*. ``meta`` is merged, not replaced."""
        payload = ProxyHostUpdate.model_validate(data)
        await access.can("proxy_hosts:update", payload.id)

        if "domain_names" in payload.model_fields_set and payload.domain_names is not None:
            await self._assert_hostnames_available(payload.domain_names, exclude_id=payload.id)

        row = await self.get(access, payload.id)
        if row["id"] != payload.id:
            raise InternalValidationError(
                f"Proxy host could not be updated, IDs do not match: {row['id']} != {payload.id}"
            )

        changes = payload.changes()
        saved = await self._store.patch_returning_by_id(row["id"], changes)
        saved["meta"] = self._clean(saved.get("meta"))

        await self._audit.add(
            access,
            AuditEntry(
                action=AuditAction.UPDATED,
                object_type=OBJECT_TYPE,
                object_id=row["id"],
                meta=payload.model_dump(mode="json", exclude_unset=True),
            ),
        )

        result = _omit(saved, _OMISSIONS)
        log.info("proxy_host.updated", host_id=row["id"], fields_changed=sorted(changes))
        self._dispatch_event(
            "post_proxy_host_update",
            {"host": result, "fields_changed": sorted(changes), "user_id": access.user_id},
        )
        return result

    async def get(
        self,
        access: AuthorizationGate,
        host_id: int,
        *,
        expand: Iterable[Association | str] | None = None,
        omit: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        """Fetch one active host visible to the actor.

        Raises NotFoundError when the host is missing, deleted, or owned by
        someone else and the actor's visibility is not ``all``.
        """
        result = await access.can("proxy_hosts:get", host_id)

        row = await self._store.find_active_by_id(
            host_id,
            owner_user_id=_scope(result.permission_visibility, result.user_id),
            expand=parse_associations(expand),
            omit=omit or (),
        )
        if row is None:
            raise NotFoundError(host_id)

        if "meta" in row:
            row["meta"] = self._clean(row["meta"])
        return _omit(row, _OMISSIONS)

    async def delete(
        self,
        access: AuthorizationGate,
        host_id: int,
        *,
        reason: str | None = None,
    ) -> bool:
        """Soft-delete a host and remove its published config.

        Not idempotent: a second call raises NotFoundError.
        """
        await access.can("proxy_hosts:delete", host_id)

        row = await self.get(access, host_id)

        await self._store.mark_deleted(row["id"])

        await self._publisher.delete_config(row)
        await self._publisher.reload()

        audit_meta = dict(row)
        if reason:
            audit_meta["reason"] = reason
        await self._audit.add(
            access,
            AuditEntry(
                action=AuditAction.DELETED,
                object_type=OBJECT_TYPE,
                object_id=row["id"],
                meta=audit_meta,
            ),
        )

        log.info("proxy_host.deleted", host_id=row["id"], user_id=access.user_id)
        self._dispatch_event("post_proxy_host_delete", {"host": row, "user_id": access.user_id})
        return True

    async def get_all(
        self,
        access: AuthorizationGate,
        expand: Iterable[Association | str] | None = None,
        search_query: str | None = None,
    ) -> list[dict[str, Any]]:
        """All active hosts visible to the actor, ordered by domain names."""
        result = await access.can("proxy_hosts:list")

        rows = await self._store.find_active_filtered(
            owner_user_id=_scope(result.permission_visibility, result.user_id),
            search=search_query if isinstance(search_query, str) else None,
            expand=parse_associations(expand),
        )
        for row in rows:
            row["meta"] = self._clean(row.get("meta"))
        return [_omit(row, _OMISSIONS) for row in rows]

    async def get_count(self, user_id: int, visibility: Visibility | str) -> int:
        """Count active hosts for reporting. No authorization is applied."""
        return await self._store.count_active(
            owner_user_id=_scope(visibility, user_id)
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _assert_hostnames_available(
        self,
        domain_names: Collection[str],
        *,
        exclude_id: int | None = None,
    ) -> None:
        """Look up every name concurrently; raise for the first conflict in request order."""
        host_type = HostType.PROXY if exclude_id is not None else None
        checks = await asyncio.gather(
            *(
                self._hostnames.is_hostname_taken(name, host_type, exclude_id)
                for name in domain_names
            )
        )
        for check in checks:
            if check.is_taken:
                raise ValidationError(f"{check.hostname} is already in use", hostname=check.hostname)

    def _clean(self, meta: Mapping[str, Any] | None) -> dict[str, Any]:
        return clean_meta(meta, self._internal_meta_keys)


def _scope(visibility: Visibility | str, user_id: int) -> int | None:
    """Owner filter for a visibility: None means unrestricted."""
    return None if visibility == Visibility.ALL else user_id


def _omit(row: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    drop = frozenset(keys)
    return {k: v for k, v in row.items() if k not in drop}
