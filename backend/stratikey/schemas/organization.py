"""
Organization Schemas Module
===========================

Pydantic models for membership listing and organization switching.
"""

from typing import List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field

from stratikey.core.tenant.context import MembershipInfo
from stratikey.models.role_enum import Role
from stratikey.schemas.common import CamelModel


class MembershipResponse(CamelModel):
    """One organization the caller belongs to, with their role there."""

    organization_id: UUID = Field(..., description="Organization UUID")
    organization_name: str = Field(..., description="Organization name")
    role: Role = Field(..., description="Role held in the organization")

    @classmethod
    def from_info(cls, membership: MembershipInfo) -> "MembershipResponse":
        return cls(
            organization_id=membership.organization_id,
            organization_name=membership.organization_name,
            role=membership.role,
        )


class MembershipListResponse(CamelModel):
    """All memberships of the caller."""

    memberships: List[MembershipResponse]
    active_organization_id: Optional[UUID] = Field(
        default=None,
        description="Organization currently selected, if any",
    )


class ActiveOrganizationResponse(CamelModel):
    """Resolved active membership."""

    membership: MembershipResponse
    cache_epoch: int = Field(..., description="Generation of tenant-scoped caches")


class SwitchOrganizationRequest(CamelModel):
    """Request body for switching the active organization."""

    organization_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Organization to make active",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"organizationId": "3f1c2a1e-8a9b-4a53-9f5e-2b0e4d6f7a10"}
        }
    )


class SwitchOrganizationResponse(CamelModel):
    """Result of a successful switch."""

    membership: MembershipResponse
    invalidate_caches: bool = Field(
        default=True,
        description="All tenant-scoped client caches must be treated as stale",
    )
    cache_epoch: int = Field(..., description="New generation of tenant-scoped caches")
