"""Provisioning workflow for tenant instances."""

from tenantforge.modules.provisioning.filesystem import TenantFilesystem
from tenantforge.modules.provisioning.namespace import derive_namespace, validate_slug
from tenantforge.modules.provisioning.service import ProvisioningService


__all__ = ["ProvisioningService", "TenantFilesystem", "derive_namespace", "validate_slug"]
