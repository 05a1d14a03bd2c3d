"""Rendering of the per-tenant configuration artifact."""

import secrets
from dataclasses import dataclass, field

import yaml
from sqlalchemy.engine import make_url

from tenantforge.config import Settings
from tenantforge.core.constants import SECRET_BYTES, SECRET_KEY_NAMES


@dataclass(frozen=True)
class DatabaseParams:
    host: str
    port: int
    name: str
    user: str
    password: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseParams":
        url = make_url(str(settings.database_url))
        return cls(
            host=url.host or "localhost",
            port=url.port or 5432,
            name=url.database or "",
            user=url.username or "",
            password=url.password or "",
        )


@dataclass(frozen=True)
class TenantConfigParams:
    """Inputs to ``render_config``."""

    slug: str
    namespace: str
    title: str
    site_url: str
    database: DatabaseParams
    secrets: dict[str, str] = field(default_factory=dict)
    debug: bool = False


def generate_secrets() -> dict[str, str]:
    """Fresh, independently random secret material for one tenant."""
    return {name: secrets.token_urlsafe(SECRET_BYTES) for name in SECRET_KEY_NAMES}


def render_config(params: TenantConfigParams) -> bytes:
    """Serialize a tenant's configuration to YAML bytes."""
    document = {
        "tenant": {
            "slug": params.slug,
            "title": params.title,
            "site_url": params.site_url,
            "debug": params.debug,
        },
        "database": {
            "host": params.database.host,
            "port": params.database.port,
            "name": params.database.name,
            "user": params.database.user,
            "password": params.database.password,
            "schema": params.namespace,
        },
        "secrets": dict(params.secrets),
    }
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False).encode("utf-8")
