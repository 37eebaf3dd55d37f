"""
Approval Routes Module
======================

Tenant-scoped reads of assets and tasks, and the approval endpoints.

Features:
- Lists cached per caller and organization in the tenant cache
- Approval transitions with optimistic concurrency
- Composite-permission content search

Security:
- Every query is scoped to the request's active organization
- Entities of other organizations are reported as not found
- List responses are marked private and vary on the tenant selectors
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from stratikey.core.dependencies.context import get_authorization_gate
from stratikey.core.dependencies.rbac import require_any_permission, require_permission
from stratikey.core.enums import Action, EntityType, Module
from stratikey.core.logging import get_logger
from stratikey.core.permissions import PermissionCheck, has_permission, module_for
from stratikey.core.tenant.cache import TenantCache, get_tenant_cache
from stratikey.core.tenant.context import RequestContext
from stratikey.core.tenant.tenant_query import TenantQuery
from stratikey.db.session import get_db
from stratikey.models.approvable import APPROVABLE_MODELS
from stratikey.schemas import (
    ApprovableEntityListResponse,
    ApprovableEntityResponse,
    ApprovalUpdateRequest,
    ErrorResponse,
)
from stratikey.services.approval_repository import ApprovalRepository
from stratikey.services.approval_workflow import ApprovalWorkflow
from stratikey.services.authorization_gate import AuthorizationGate

# Initialize logger
logger = get_logger(__name__)

TENANT_VARY = "Cookie, X-Organization-Id"

SEARCH_CHECKS = (
    PermissionCheck(Module.MARKETING, Action.READ),
    PermissionCheck(Module.MARKETING_ADV, Action.READ),
    PermissionCheck(Module.MARKETING_OFFLINE, Action.READ),
)


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/api",
    tags=["Approvals"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


def get_approval_workflow(
    db: Session = Depends(get_db),
    gate: AuthorizationGate = Depends(get_authorization_gate),
    cache: TenantCache = Depends(get_tenant_cache),
) -> ApprovalWorkflow:
    return ApprovalWorkflow(gate, ApprovalRepository(db), cache)


# =====================================
# Helpers
# =====================================

def _with_transitions(
    workflow: ApprovalWorkflow,
    context: RequestContext,
    summary: dict,
) -> ApprovableEntityResponse:
    transitions = workflow.available_transitions(
        context, summary["entityType"], summary["approvalStatus"]
    )
    return ApprovableEntityResponse(**summary, availableTransitions=transitions)


def _list_entities(
    entity_type: EntityType,
    context: RequestContext,
    db: Session,
    cache: TenantCache,
    workflow: ApprovalWorkflow,
    response: Response,
) -> ApprovableEntityListResponse:
    model = APPROVABLE_MODELS[entity_type]

    def load() -> List[dict]:
        return [row.to_summary() for row in TenantQuery(db, model, context).all()]

    summaries = cache.get_or_load(
        str(context.caller.user_id),
        str(context.organization_id),
        f"{entity_type.value}:list",
        context.epoch,
        load,
    )

    response.headers["Cache-Control"] = "private, no-cache"
    response.headers["Vary"] = TENANT_VARY

    items = [_with_transitions(workflow, context, s) for s in summaries]
    return ApprovableEntityListResponse(items=items, total=len(items))


def _get_entity(
    entity_type: EntityType,
    entity_id: UUID,
    context: RequestContext,
    workflow: ApprovalWorkflow,
) -> ApprovableEntityResponse:
    entity = workflow.repository.read(context, entity_type, entity_id)
    return _with_transitions(workflow, context, entity.to_summary())


def _update_approval(
    entity_type: EntityType,
    entity_id: UUID,
    body: ApprovalUpdateRequest,
    context: RequestContext,
    workflow: ApprovalWorkflow,
) -> ApprovableEntityResponse:
    entity = workflow.apply(
        context,
        entity_type,
        entity_id,
        target_status=body.approval_status,
        review_notes=body.review_notes,
        expected_version=body.expected_version,
    )
    return _with_transitions(workflow, context, entity.to_summary())


def _like_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards in `term` matched literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# =====================================
# Assets
# =====================================

@router.get(
    "/assets",
    response_model=ApprovableEntityListResponse,
    summary="List Assets",
)
def list_assets(
    response: Response,
    context: RequestContext = Depends(require_permission(module_for(EntityType.ASSET), Action.READ)),
    db: Session = Depends(get_db),
    cache: TenantCache = Depends(get_tenant_cache),
    workflow: ApprovalWorkflow = Depends(get_approval_workflow),
) -> ApprovableEntityListResponse:
    return _list_entities(EntityType.ASSET, context, db, cache, workflow, response)


@router.get(
    "/assets/{asset_id}",
    response_model=ApprovableEntityResponse,
    summary="Get Asset",
    responses={404: {"model": ErrorResponse, "description": "Asset not found"}},
)
def get_asset(
    asset_id: UUID,
    context: RequestContext = Depends(require_permission(module_for(EntityType.ASSET), Action.READ)),
    workflow: ApprovalWorkflow = Depends(get_approval_workflow),
) -> ApprovableEntityResponse:
    return _get_entity(EntityType.ASSET, asset_id, context, workflow)


@router.patch(
    "/assets/{asset_id}/approval",
    response_model=ApprovableEntityResponse,
    summary="Review Asset",
    description="Approve an asset or request changes on it.",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid transition or missing notes"},
        404: {"model": ErrorResponse, "description": "Asset not found"},
        409: {"model": ErrorResponse, "description": "Concurrent modification"},
    },
)
def update_asset_approval(
    asset_id: UUID,
    body: ApprovalUpdateRequest,
    context: RequestContext = Depends(require_permission(module_for(EntityType.ASSET), Action.UPDATE)),
    workflow: ApprovalWorkflow = Depends(get_approval_workflow),
) -> ApprovableEntityResponse:
    return _update_approval(EntityType.ASSET, asset_id, body, context, workflow)


# =====================================
# Tasks
# =====================================

@router.get(
    "/tasks",
    response_model=ApprovableEntityListResponse,
    summary="List Tasks",
)
def list_tasks(
    response: Response,
    context: RequestContext = Depends(require_permission(module_for(EntityType.TASK), Action.READ)),
    db: Session = Depends(get_db),
    cache: TenantCache = Depends(get_tenant_cache),
    workflow: ApprovalWorkflow = Depends(get_approval_workflow),
) -> ApprovableEntityListResponse:
    return _list_entities(EntityType.TASK, context, db, cache, workflow, response)


@router.get(
    "/tasks/{task_id}",
    response_model=ApprovableEntityResponse,
    summary="Get Task",
    responses={404: {"model": ErrorResponse, "description": "Task not found"}},
)
def get_task(
    task_id: UUID,
    context: RequestContext = Depends(require_permission(module_for(EntityType.TASK), Action.READ)),
    workflow: ApprovalWorkflow = Depends(get_approval_workflow),
) -> ApprovableEntityResponse:
    return _get_entity(EntityType.TASK, task_id, context, workflow)


@router.patch(
    "/tasks/{task_id}/approval",
    response_model=ApprovableEntityResponse,
    summary="Review Task",
    description="Approve a task or request changes on it.",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid transition or missing notes"},
        404: {"model": ErrorResponse, "description": "Task not found"},
        409: {"model": ErrorResponse, "description": "Concurrent modification"},
    },
)
def update_task_approval(
    task_id: UUID,
    body: ApprovalUpdateRequest,
    context: RequestContext = Depends(require_permission(module_for(EntityType.TASK), Action.UPDATE)),
    workflow: ApprovalWorkflow = Depends(get_approval_workflow),
) -> ApprovableEntityResponse:
    return _update_approval(EntityType.TASK, task_id, body, context, workflow)


# =====================================
# Search
# =====================================

@router.get(
    "/content/search",
    response_model=ApprovableEntityListResponse,
    summary="Search Content",
    description="Case-insensitive title search over assets and tasks of the active organization.",
)
def search_content(
    q: str = Query(..., min_length=1, max_length=200),
    context: RequestContext = Depends(require_any_permission(SEARCH_CHECKS)),
    db: Session = Depends(get_db),
    workflow: ApprovalWorkflow = Depends(get_approval_workflow),
) -> ApprovableEntityListResponse:
    items: List[ApprovableEntityResponse] = []
    pattern = _like_pattern(q.strip())

    for entity_type, model in APPROVABLE_MODELS.items():
        if not has_permission(context.role, module_for(entity_type), Action.READ):
            continue
        stmt = (
            TenantQuery(db, model, context)
            .filter_by_tenant()
            .where(model.title.ilike(pattern, escape="\\"))
            .order_by(model.created_at)
        )
        items.extend(_with_transitions(workflow, context, row.to_summary()) for row in db.scalars(stmt))

    return ApprovableEntityListResponse(items=items, total=len(items))
