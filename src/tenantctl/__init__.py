"""tenantctl - operator CLI for TenantForge."""

from tenantforge import __version__


__all__ = ["__version__"]
