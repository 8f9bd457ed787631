"""Service layer: orchestration of the proxy host lifecycle.

Services may import from domain and infrastructure layers through the
protocols in :mod:`proxyctl.services.contracts`.
"""
