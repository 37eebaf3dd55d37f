"""
Organization Routes Module
==========================

Endpoints for listing the caller's organizations and switching the
active one.

Security:
- Every endpoint requires an authenticated caller
- Switching is only possible into an organization the caller belongs to
- A successful switch invalidates every tenant-scoped cache of the caller
"""

from fastapi import APIRouter, Depends, Response

from stratikey.core.dependencies.auth import get_current_caller
from stratikey.core.dependencies.context import get_context_resolver, get_request_context
from stratikey.core.logging import get_logger
from stratikey.core.tenant.context import Caller, OrganizationContextResolver, RequestContext
from stratikey.schemas import (
    ActiveOrganizationResponse,
    ErrorResponse,
    MembershipListResponse,
    MembershipResponse,
    SwitchOrganizationRequest,
    SwitchOrganizationResponse,
)

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/api/organizations",
    tags=["Organizations"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


# =====================================
# Membership Listing
# =====================================

@router.get(
    "",
    response_model=MembershipListResponse,
    summary="List Organizations",
    description="List every organization the caller belongs to with the role held there.",
)
def list_organizations(
    caller: Caller = Depends(get_current_caller),
    resolver: OrganizationContextResolver = Depends(get_context_resolver),
) -> MembershipListResponse:
    memberships = resolver.available_memberships(caller)
    active = resolver.resolve_active(caller, resolver.selection_store.load(caller))

    return MembershipListResponse(
        memberships=[MembershipResponse.from_info(m) for m in memberships],
        active_organization_id=active.organization_id if active else None,
    )


@router.get(
    "/active",
    response_model=ActiveOrganizationResponse,
    summary="Active Organization",
    description="Resolve the organization this request acts in.",
    responses={
        403: {"model": ErrorResponse, "description": "Caller has no organization"},
    },
)
def get_active_organization(
    context: RequestContext = Depends(get_request_context),
) -> ActiveOrganizationResponse:
    return ActiveOrganizationResponse(
        membership=MembershipResponse.from_info(context.membership),
        cache_epoch=context.epoch,
    )


# =====================================
# Switching
# =====================================

@router.post(
    "/switch",
    response_model=SwitchOrganizationResponse,
    summary="Switch Organization",
    description=(
        "Make another organization active. The selection is persisted in a "
        "cookie and all tenant-scoped caches of the caller are invalidated."
    ),
    responses={
        403: {"model": ErrorResponse, "description": "Caller is not a member"},
    },
)
def switch_organization(
    body: SwitchOrganizationRequest,
    response: Response,
    caller: Caller = Depends(get_current_caller),
    resolver: OrganizationContextResolver = Depends(get_context_resolver),
) -> SwitchOrganizationResponse:
    """
    Switch the caller's active organization.

    Raises:
        NotAMemberError: If the caller does not belong to the organization
    """
    switched = resolver.switch_active(caller, body.organization_id)

    # Browser-side HTTP cache holds responses of the previous tenant
    response.headers["Clear-Site-Data"] = '"cache"'

    return SwitchOrganizationResponse(
        membership=MembershipResponse.from_info(switched.membership),
        invalidate_caches=True,
        cache_epoch=switched.epoch,
    )
