"""
Schemas Package Initialization
==============================

Exports all Pydantic schemas for the application.

Usage:
    from stratikey.schemas import ApprovalUpdateRequest, ErrorResponse
"""

from stratikey.schemas.approval import (
    ApprovableEntityListResponse,
    ApprovableEntityResponse,
    ApprovalUpdateRequest,
)
from stratikey.schemas.common import CamelModel, ErrorBody, ErrorResponse
from stratikey.schemas.organization import (
    ActiveOrganizationResponse,
    MembershipListResponse,
    MembershipResponse,
    SwitchOrganizationRequest,
    SwitchOrganizationResponse,
)
from stratikey.schemas.permission import (
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionSetResponse,
)

__all__ = [
    # Common
    "CamelModel",
    "ErrorBody",
    "ErrorResponse",
    # Organization
    "ActiveOrganizationResponse",
    "MembershipListResponse",
    "MembershipResponse",
    "SwitchOrganizationRequest",
    "SwitchOrganizationResponse",
    # Permission
    "PermissionCheckRequest",
    "PermissionCheckResponse",
    "PermissionSetResponse",
    # Approval
    "ApprovableEntityListResponse",
    "ApprovableEntityResponse",
    "ApprovalUpdateRequest",
]
