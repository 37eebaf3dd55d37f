"""
Permission Routes Module
========================

Capability checks used by clients to decide what to render.

These endpoints never raise for a plain deny; enforcement happens on the
data endpoints themselves.
"""

from fastapi import APIRouter, Depends, Request

from stratikey.core.dependencies.auth import get_current_caller
from stratikey.core.dependencies.context import (
    get_authorization_gate,
    get_request_context,
    requested_organization,
)
from stratikey.core.enums import EntityType
from stratikey.core.permissions import can_approve, permissions_for
from stratikey.core.tenant.context import Caller, RequestContext
from stratikey.schemas import (
    ErrorResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionSetResponse,
)
from stratikey.services.authorization_gate import AuthorizationGate

router = APIRouter(
    prefix="/api/permissions",
    tags=["Permissions"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not a member of the requested organization"},
    },
)


@router.post(
    "/check",
    response_model=PermissionCheckResponse,
    summary="Check Permission",
    description="Answer allow/deny for one (module, action). A caller without any organization is denied.",
)
def check_permission(
    body: PermissionCheckRequest,
    request: Request,
    caller: Caller = Depends(get_current_caller),
    gate: AuthorizationGate = Depends(get_authorization_gate),
) -> PermissionCheckResponse:
    allowed = gate.is_allowed(
        caller,
        body.module,
        body.action,
        requested_organization=requested_organization(request),
    )
    return PermissionCheckResponse(module=body.module, action=body.action, allowed=allowed)


@router.get(
    "/me",
    response_model=PermissionSetResponse,
    summary="My Permissions",
    description="Full permission set of the caller's role in the active organization.",
)
def my_permissions(
    context: RequestContext = Depends(get_request_context),
) -> PermissionSetResponse:
    return PermissionSetResponse(
        role=context.role,
        organization_id=str(context.organization_id),
        permissions=permissions_for(context.role),
        can_approve={t.value: can_approve(context.role, t) for t in EntityType},
    )
