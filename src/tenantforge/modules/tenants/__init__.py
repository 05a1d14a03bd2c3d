"""Tenants module - lifecycle of isolated application instances."""

# Module metadata
__module_info__ = {
    "name": "tenants",
    "version": "1.0.0",
    "description": "Tenant provisioning, lifecycle, usage and backups",
    "dependencies": ["plans", "users", "provisioning", "monitoring", "backups"],
}


def __getattr__(name: str) -> object:
    # The routes import most of the application; loading them lazily keeps
    # the models, lifecycle and repos importable from the modules they use
    if name == "router":
        from tenantforge.modules.tenants.routes import router

        return router
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
