"""
Approval Schemas Module
=======================

Pydantic models for approvable content and the approval endpoints.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field

from stratikey.core.enums import ApprovalStatus, EntityType, Transition
from stratikey.schemas.common import CamelModel


class ApprovalUpdateRequest(CamelModel):
    """
    Body of PATCH /api/{assets|tasks}/{id}/approval.

    Only APPROVED and CHANGES_REQUESTED are accepted targets; the
    workflow rejects anything else.
    """

    approval_status: ApprovalStatus = Field(..., description="Target approval status")
    review_notes: Optional[str] = Field(
        default=None,
        max_length=5000,
        description="Reviewer feedback; mandatory when requesting changes",
    )
    expected_version: Optional[int] = Field(
        default=None,
        ge=1,
        description="Version the reviewer saw; mismatches fail with 409",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "approvalStatus": "CHANGES_REQUESTED",
                "reviewNotes": "fix headline",
                "expectedVersion": 3,
            }
        }
    )


class ApprovableEntityResponse(CamelModel):
    """Summary of an asset or task and its review state."""

    id: UUID
    entity_type: EntityType
    organization_id: UUID
    title: str
    approval_status: ApprovalStatus
    review_notes: Optional[str] = None
    version: int
    reviewed_by: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    available_transitions: List[Transition] = Field(
        default_factory=list,
        description="Transitions the caller may invoke now",
    )

    model_config = ConfigDict(from_attributes=True)


class ApprovableEntityListResponse(CamelModel):
    """Tenant-scoped list of approvable entities."""

    items: List[ApprovableEntityResponse]
    total: int
