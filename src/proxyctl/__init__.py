"""proxyctl: proxy host lifecycle core for a reverse-proxy configuration manager."""

__version__ = "0.1.0"
