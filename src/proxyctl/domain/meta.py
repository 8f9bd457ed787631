"""Host ``meta`` rules: sanitizing for exposure and merging on update."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

DEFAULT_INTERNAL_KEYS: frozenset[str] = frozenset(
    {"dns_provider_credentials", "letsencrypt_agree", "nginx_config_path"}
)


def clean_meta(
    meta: Mapping[str, Any] | None,
    remove: Iterable[str] | None = None,
) -> dict[str, Any]:
    """Return a copy of *meta* without internal-only keys.

    ``None`` is treated as an empty mapping.

    Examples:
        >>> clean_meta({"nginx_online": True, "letsencrypt_agree": True})
        {'nginx_online': True}
    """
    drop = DEFAULT_INTERNAL_KEYS if remove is None else frozenset(remove)
    return {k: v for k, v in (meta or {}).items() if k not in drop}


def merge_meta(
    current: Mapping[str, Any] | None,
    incoming: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Merge *incoming* over *current*. Keys absent from *incoming* survive.

    Examples:
        >>> merge_meta({"a": 1, "b": 2}, {"b": 3})
        {'a': 1, 'b': 3}
    """
    return {**(current or {}), **(incoming or {})}
