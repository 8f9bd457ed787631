"""Nginx configuration publishing for proxy hosts.

Each host is rendered to ``<config_dir>/proxy_host/<id>.conf``. After writing,
the configured test command validates the whole nginx configuration. A
rejected file is renamed to ``<id>.conf.err`` so it can be inspected without
breaking the serving process. The outcome is recorded on the host as
``meta.nginx_online`` / ``meta.nginx_err``.

Subprocess calls run in worker threads. An empty command list disables that
step.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from proxyctl.domain.errors import ConfigPublishError
from proxyctl.infrastructure.templates import build_template_environment

if TYPE_CHECKING:
    from proxyctl.services.contracts import ProxyHostStore

logger = logging.getLogger(__name__)

HOST_TYPE_DIR = "proxy_host"
TEMPLATE_NAME = "proxy_host.conf.j2"


class NginxConfigPublisher:
    """Materializes, removes and reloads nginx config for proxy hosts.

    Parameters:
        config_dir: Root of the generated nginx configuration.
        store: Used to persist the ``nginx_online``/``nginx_err`` meta.
        test_command: Validates the configuration (``nginx -t``).
        reload_command: Signals the serving process (``nginx -s reload``).
        template_dir: Optional directory with template overrides.
    """

    def __init__(
        self,
        config_dir: Path,
        *,
        store: ProxyHostStore,
        test_command: Sequence[str] = (),
        reload_command: Sequence[str] = (),
        template_dir: Path | None = None,
    ) -> None:
        self._config_dir = config_dir
        self._store = store
        self._test_command = list(test_command)
        self._reload_command = list(reload_command)
        self._env = build_template_environment("nginx", template_dir=template_dir)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def config_path(self, host_id: int) -> Path:
        return self._config_dir / HOST_TYPE_DIR / f"{host_id}.conf"

    def render(self, host: Mapping[str, Any]) -> str:
        """Render the server block for *host*."""
        template = self._env.get_template(TEMPLATE_NAME)
        return template.render(
            host=host,
            ssl_dir=self._config_dir / "ssl",
            access_dir=self._config_dir / "access",
        )

    async def configure(self, host: dict[str, Any]) -> dict[str, Any]:
        """Write and validate the config for *host*, then reload.

        Disabled hosts have their config removed instead. Returns the host
        with its meta annotated by the outcome.
        """
        if not host.get("enabled", True):
            await self.delete_config(host)
            await self.reload()
            return host

        path = self.config_path(host["id"])
        await asyncio.to_thread(_write_text, path, self.render(host))

        try:
            await self._run(self._test_command)
        except ConfigPublishError as exc:
            logger.warning("Config for proxy host %s rejected: %s", host["id"], exc.stderr)
            await asyncio.to_thread(_quarantine, path)
            meta: dict[str, Any] = {"nginx_online": False, "nginx_err": exc.stderr}
        else:
            meta = {"nginx_online": True, "nginx_err": None}

        host = await self._store.patch_returning_by_id(host["id"], {"meta": meta})
        await self.reload()
        return host

    async def delete_config(self, host: Mapping[str, Any]) -> None:
        """Remove the config (and any quarantined ``.err`` copy) for *host*."""
        path = self.config_path(host["id"])
        await asyncio.to_thread(path.unlink, missing_ok=True)
        await asyncio.to_thread(path.with_suffix(".conf.err").unlink, missing_ok=True)
        logger.debug("Removed config for proxy host %s", host["id"])

    async def reload(self) -> None:
        """Validate the whole configuration, then signal the serving process."""
        await self._run(self._test_command)
        await self._run(self._reload_command)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run(self, command: list[str]) -> None:
        if not command:
            return
        proc = await asyncio.to_thread(
            subprocess.run, command, capture_output=True, text=True, check=False
        )
        if proc.returncode != 0:
            raise ConfigPublishError(command, proc.returncode, (proc.stderr or "").strip())
        logger.debug("Ran %s", " ".join(command))


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _quarantine(path: Path) -> None:
    """Move a rejected config aside so the next reload ignores it."""
    err_path = path.with_suffix(".conf.err")
    err_path.unlink(missing_ok=True)
    if path.exists():
        path.rename(err_path)
