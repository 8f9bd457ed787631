"""Tests for the payload models at the service boundary."""

from __future__ import annotations

import pydantic
import pytest

from proxyctl.services.contracts import ProxyHostCreate, ProxyHostUpdate
from tests.conftest import host_payload


class TestProxyHostCreate:
    def test_defaults(self) -> None:
        payload = ProxyHostCreate.model_validate(host_payload("a.example.com"))
        assert payload.forward_scheme == "http"
        assert payload.enabled is True
        assert payload.meta == {}
        assert payload.locations == []

    def test_domain_names_normalized(self) -> None:
        payload = ProxyHostCreate.model_validate(
            host_payload(" a.example.com ", "A.EXAMPLE.COM", "b.example.com", "")
        )
        assert payload.domain_names == ["a.example.com", "b.example.com"]

    @pytest.mark.parametrize("names", [[], ["  "]])
    def test_empty_domain_names_rejected(self, names: list[str]) -> None:
        with pytest.raises(pydantic.ValidationError):
            ProxyHostCreate.model_validate(host_payload(*names))

    def test_port_range(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            ProxyHostCreate.model_validate(host_payload("a.example.com", forward_port=70000))

    def test_is_deleted_dropped(self) -> None:
        payload = ProxyHostCreate.model_validate(host_payload("a.example.com", is_deleted=True))
        assert "is_deleted" not in payload.model_dump()


class TestProxyHostUpdate:
    def test_changes_only_set_fields(self) -> None:
        payload = ProxyHostUpdate.model_validate({"id": 5, "ssl_forced": False, "meta": {"a": 1}})
        assert payload.changes() == {"ssl_forced": False, "meta": {"a": 1}}

    def test_id_required(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            ProxyHostUpdate.model_validate({"forward_port": 80})

    def test_null_domain_names_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            ProxyHostUpdate.model_validate({"id": 5, "domain_names": None})

    def test_null_rejected_for_non_nullable_fields(self) -> None:
        for field in ("forward_host", "ssl_forced", "locations", "enabled"):
            with pytest.raises(pydantic.ValidationError):
                ProxyHostUpdate.model_validate({"id": 5, field: None})

    def test_null_allowed_for_references_and_meta(self) -> None:
        payload = ProxyHostUpdate.model_validate(
            {"id": 5, "certificate_id": None, "access_list_id": None, "meta": None}
        )
        assert payload.changes() == {"certificate_id": None, "access_list_id": None, "meta": None}
