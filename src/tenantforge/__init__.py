"""TenantForge - tenant provisioning and lifecycle orchestration."""

__version__ = "0.1.0"
