"""Plugin system: pluggy hooks fired after proxy host lifecycle events."""

import pluggy

hookimpl = pluggy.HookimplMarker("proxyctl")

__all__ = ["hookimpl"]
