"""Locate ``proxyctl.toml``.

The file is searched for in the start directory and then each parent, the
way git finds ``.git/``. ``PROXYCTL_CONFIG`` names the file explicitly and
disables the search.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "proxyctl.toml"
CONFIG_ENV_VAR = "PROXYCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file that applies to *start* (default: cwd), or None.

    A ``PROXYCTL_CONFIG`` pointing at a missing file yields None rather than
    falling back to the search.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit)
        return path if path.is_file() else None

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
