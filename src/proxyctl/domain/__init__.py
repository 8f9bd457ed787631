"""Domain layer: types, errors and meta rules.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure or config.
"""
