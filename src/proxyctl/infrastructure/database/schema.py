"""SQLAlchemy Core table definitions for the proxyctl database.

List and mapping columns (domain names, meta, roles, locations) are stored
as JSON text and decoded by the repositories.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", Text, nullable=False),
    Column("name", Text, nullable=False),
    Column("nickname", Text, default="", server_default=""),
    Column("avatar", Text, default="", server_default=""),
    Column("roles", Text, nullable=False, default="[]", server_default="[]"),  # JSON array
    Column("is_disabled", Integer, default=0, server_default="0"),
    Column("is_deleted", Integer, default=0, server_default="0"),
    # Permission context for non-admin users
    Column("permission_visibility", Text, default="user", server_default="user"),
    Column("permission_proxy_hosts", Text, default="manage", server_default="manage"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

certificates = Table(
    "certificates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("provider", Text, nullable=False),  # letsencrypt | other
    Column("nice_name", Text, default="", server_default=""),
    Column("domain_names", Text, nullable=False, default="[]", server_default="[]"),
    Column("expires_on", Text),
    Column("meta", Text, nullable=False, default="{}", server_default="{}"),
    Column("is_deleted", Integer, default=0, server_default="0"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

access_lists = Table(
    "access_lists",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("name", Text, nullable=False),
    Column("satisfy_any", Integer, default=0, server_default="0"),
    Column("pass_auth", Integer, default=1, server_default="1"),
    Column("meta", Text, nullable=False, default="{}", server_default="{}"),
    Column("is_deleted", Integer, default=0, server_default="0"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

proxy_hosts = Table(
    "proxy_hosts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("is_deleted", Integer, default=0, server_default="0"),
    Column("domain_names", Text, nullable=False),  # JSON array
    Column("forward_scheme", Text, nullable=False, default="http", server_default="http"),
    Column("forward_host", Text, nullable=False),
    Column("forward_port", Integer, nullable=False),
    Column("access_list_id", Integer),  # weak reference, resolved on expansion
    Column("certificate_id", Integer),  # weak reference, resolved on expansion
    Column("ssl_forced", Integer, default=0, server_default="0"),
    Column("hsts_enabled", Integer, default=0, server_default="0"),
    Column("hsts_subdomains", Integer, default=0, server_default="0"),
    Column("http2_support", Integer, default=0, server_default="0"),
    Column("block_exploits", Integer, default=0, server_default="0"),
    Column("caching_enabled", Integer, default=0, server_default="0"),
    Column("allow_websocket_upgrade", Integer, default=0, server_default="0"),
    Column("advanced_config", Text, default="", server_default=""),
    Column("locations", Text, nullable=False, default="[]", server_default="[]"),  # JSON
    Column("enabled", Integer, default=1, server_default="1"),
    Column("meta", Text, nullable=False, default="{}", server_default="{}"),  # JSON object
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

# Storage-level uniqueness guard: one row per domain name claimed by an
# active proxy host. Names are stored lower-cased. Rows are written in the
# same transaction as the host insert/patch and removed on soft delete.
proxy_host_domains = Table(
    "proxy_host_domains",
    metadata,
    Column("domain_name", Text, primary_key=True),
    Column("proxy_host_id", Integer, ForeignKey("proxy_hosts.id"), nullable=False),
)

redirection_hosts = Table(
    "redirection_hosts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("is_deleted", Integer, default=0, server_default="0"),
    Column("domain_names", Text, nullable=False),
    Column("forward_scheme", Text, default="$scheme", server_default="$scheme"),
    Column("forward_domain_name", Text, nullable=False),
    Column("forward_http_code", Integer, default=301, server_default="301"),
    Column("meta", Text, nullable=False, default="{}", server_default="{}"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

dead_hosts = Table(
    "dead_hosts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("is_deleted", Integer, default=0, server_default="0"),
    Column("domain_names", Text, nullable=False),
    Column("meta", Text, nullable=False, default="{}", server_default="{}"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

audit_log = Table(
    "audit_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("object_type", Text, nullable=False),
    Column("object_id", Integer, nullable=False),
    Column("action", Text, nullable=False),
    Column("meta", Text, nullable=False, default="{}", server_default="{}"),  # JSON object
    Column("created_at", Text, nullable=False),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_proxy_hosts_owner", proxy_hosts.c.owner_user_id)
Index("ix_proxy_hosts_is_deleted", proxy_hosts.c.is_deleted)
Index("ix_proxy_host_domains_host", proxy_host_domains.c.proxy_host_id)
Index("ix_redirection_hosts_is_deleted", redirection_hosts.c.is_deleted)
Index("ix_dead_hosts_is_deleted", dead_hosts.c.is_deleted)
Index("ix_audit_log_object", audit_log.c.object_type, audit_log.c.object_id)
