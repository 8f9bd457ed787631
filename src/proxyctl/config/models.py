"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults live here, ``proxyctl.toml`` only holds overrides.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    path: str = "proxyctl.db"


class NginxConfig(BaseModel):
    """[nginx] section.

    An empty command list disables that step (useful when the serving
    process is managed elsewhere).
    """

    model_config = {"frozen": True}

    config_dir: str = "nginx"
    template_dir: str | None = None
    test_command: list[str] = Field(default_factory=lambda: ["nginx", "-t", "-g", "error_log off;"])
    reload_command: list[str] = Field(default_factory=lambda: ["nginx", "-s", "reload"])


class MetaConfig(BaseModel):
    """[meta] section.

    ``internal_keys`` are stripped from host meta before it leaves the service.
    """

    model_config = {"frozen": True}

    internal_keys: list[str] = Field(
        default_factory=lambda: [
            "dns_provider_credentials",
            "letsencrypt_agree",
            "nginx_config_path",
        ]
    )


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True

