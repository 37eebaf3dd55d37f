"""
Tenant context package: active-organization resolution, the
tenant-scoped read cache, and organization-filtered queries.
"""

from stratikey.core.tenant.cache import TenantCache, get_tenant_cache, tenant_cache
from stratikey.core.tenant.context import (
    Caller,
    InMemorySelectionStore,
    MembershipInfo,
    OrganizationContextResolver,
    RequestContext,
    SqlMembershipSource,
)
from stratikey.core.tenant.tenant_query import TenantQuery

__all__ = [
    "Caller",
    "InMemorySelectionStore",
    "MembershipInfo",
    "OrganizationContextResolver",
    "RequestContext",
    "SqlMembershipSource",
    "TenantCache",
    "TenantQuery",
    "get_tenant_cache",
    "tenant_cache",
]
