"""
Approval Workflow Service
=========================

Finite state machine over the approval status of assets and tasks.

States:
    DRAFT (initial), IN_REVIEW, APPROVED, CHANGES_REQUESTED

Transitions:
    approve:         DRAFT | IN_REVIEW | CHANGES_REQUESTED -> APPROVED
    request_changes: DRAFT | IN_REVIEW | APPROVED          -> CHANGES_REQUESTED

APPROVED is terminal for `approve` (approving again is a validation
error) and can only be reopened through `request_changes`. Moving
content into IN_REVIEW belongs to the editing flow, not to this machine.

Order of checks for every transition:
    1. update permission on the entity's module, then review capability
    2. request shape (mandatory notes)
    3. entity lookup inside the active organization
    4. optimistic version check and state legality
    5. compare-and-write of status + notes
"""

import uuid
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from stratikey.core.enums import Action, ApprovalStatus, EntityType, Transition
from stratikey.core.exceptions import (
    ApprovalCapabilityError,
    ConflictError,
    InvalidTransitionError,
    ReviewNotesRequiredError,
    ValidationError,
)
from stratikey.core.logging import LogContext, get_logger
from stratikey.core.permissions import can_approve, module_for
from stratikey.core.tenant.cache import TenantCache
from stratikey.core.tenant.context import RequestContext
from stratikey.models.approvable import ApprovableMixin
from stratikey.services.approval_repository import ApprovalRepository
from stratikey.services.authorization_gate import AuthorizationGate

logger = get_logger(__name__)


TRANSITIONS: Dict[Transition, Tuple[FrozenSet[ApprovalStatus], ApprovalStatus]] = {
    Transition.APPROVE: (
        frozenset({
            ApprovalStatus.DRAFT,
            ApprovalStatus.IN_REVIEW,
            ApprovalStatus.CHANGES_REQUESTED,
        }),
        ApprovalStatus.APPROVED,
    ),
    Transition.REQUEST_CHANGES: (
        frozenset({
            ApprovalStatus.DRAFT,
            ApprovalStatus.IN_REVIEW,
            ApprovalStatus.APPROVED,
        }),
        ApprovalStatus.CHANGES_REQUESTED,
    ),
}

# Target status accepted by the approval endpoints -> transition
TARGET_TRANSITIONS: Dict[ApprovalStatus, Transition] = {
    target: transition for transition, (_, target) in TRANSITIONS.items()
}


def is_transition_allowed(current: ApprovalStatus, transition: Transition) -> bool:
    """Check whether a transition is defined from the current status."""
    sources, _ = TRANSITIONS[Transition(transition)]
    return ApprovalStatus(current) in sources


def transitions_from(current: ApprovalStatus) -> List[Transition]:
    """Transitions defined from a status, in declaration order."""
    return [t for t in TRANSITIONS if is_transition_allowed(current, t)]


def _normalize_notes(review_notes: Optional[str]) -> Optional[str]:
    if review_notes is None:
        return None
    stripped = review_notes.strip()
    return stripped or None


class ApprovalWorkflow:
    """
    Apply approval transitions with authorization and atomic persistence.

    Usage:
        workflow = ApprovalWorkflow(gate, ApprovalRepository(db), tenant_cache)
        task = workflow.request_changes(ctx, EntityType.TASK, task_id, "fix headline")
    """

    def __init__(
        self,
        gate: AuthorizationGate,
        repository: ApprovalRepository,
        cache: Optional[TenantCache] = None,
    ):
        self.gate = gate
        self.repository = repository
        self.cache = cache

    # =====================================
    # Capability
    # =====================================

    def ensure_can_review(self, context: RequestContext, entity_type: EntityType) -> None:
        """
        Require update on the entity's module and the review capability.

        Raises:
            PermissionDeniedError: If update on the module is denied
            ApprovalCapabilityError: If the role may edit but not review
        """
        self.gate.check(context, module_for(entity_type), Action.UPDATE)
        if not can_approve(context.role, entity_type):
            logger.warning(
                "approval_capability_denied",
                user_id=str(context.caller.user_id),
                role=context.role.value,
                entity_type=entity_type.value,
            )
            raise ApprovalCapabilityError(entity_type=entity_type.value)

    def available_transitions(
        self,
        context: RequestContext,
        entity_type: Union[EntityType, str],
        current_status: Union[ApprovalStatus, str],
    ) -> List[Transition]:
        """Transitions this caller could invoke on an entity in `current_status`."""
        if not can_approve(context.role, EntityType(entity_type)):
            return []
        return transitions_from(ApprovalStatus(current_status))

    # =====================================
    # Transitions
    # =====================================

    def approve(
        self,
        context: RequestContext,
        entity_type: Union[EntityType, str],
        entity_id: uuid.UUID,
        review_notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ApprovableMixin:
        return self._transition(
            context, Transition.APPROVE, entity_type, entity_id, review_notes, expected_version
        )

    def request_changes(
        self,
        context: RequestContext,
        entity_type: Union[EntityType, str],
        entity_id: uuid.UUID,
        review_notes: Optional[str],
        expected_version: Optional[int] = None,
    ) -> ApprovableMixin:
        return self._transition(
            context, Transition.REQUEST_CHANGES, entity_type, entity_id, review_notes, expected_version
        )

    def apply(
        self,
        context: RequestContext,
        entity_type: Union[EntityType, str],
        entity_id: uuid.UUID,
        target_status: Union[ApprovalStatus, str],
        review_notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ApprovableMixin:
        """
        Apply the transition that leads to `target_status`.

        Used by the approval endpoints, which accept the desired status
        rather than a transition name.

        Raises:
            ValidationError: If no transition leads to the target status
        """
        try:
            transition = TARGET_TRANSITIONS[ApprovalStatus(target_status)]
        except (KeyError, ValueError):
            raise ValidationError(
                message="approvalStatus must be APPROVED or CHANGES_REQUESTED",
                details={"field": "approvalStatus"},
            )
        return self._transition(
            context, transition, entity_type, entity_id, review_notes, expected_version
        )

    def _transition(
        self,
        context: RequestContext,
        transition: Transition,
        entity_type: Union[EntityType, str],
        entity_id: uuid.UUID,
        review_notes: Optional[str],
        expected_version: Optional[int],
    ) -> ApprovableMixin:
        entity_type = EntityType(entity_type)

        # Log lines below carry the snapshot tenant and caller
        with LogContext(
            request_id=context.request_id,
            organization_id=str(context.organization_id),
            user_id=str(context.caller.user_id),
        ):
            self.ensure_can_review(context, entity_type)

            notes = _normalize_notes(review_notes)
            if transition == Transition.REQUEST_CHANGES and notes is None:
                raise ReviewNotesRequiredError()

            entity = self.repository.read(context, entity_type, entity_id)
            current = ApprovalStatus(entity.approval_status)

            if expected_version is not None and expected_version != entity.version:
                raise ConflictError(
                    details={
                        "entityType": entity_type.value,
                        "entityId": str(entity.id),
                        "currentVersion": entity.version,
                    }
                )

            if not is_transition_allowed(current, transition):
                raise InvalidTransitionError(transition=transition.value, current_status=current.value)

            _, target = TRANSITIONS[transition]
            updated = self.repository.compare_and_write(
                context,
                entity,
                expected_status=current,
                expected_version=entity.version,
                new_status=target,
                review_notes=notes,
            )

            if self.cache is not None:
                self.cache.invalidate_organization(str(context.organization_id))

            logger.info(
                "approval_transition_applied",
                entity_type=entity_type.value,
                entity_id=str(entity_id),
                transition=transition.value,
                from_status=current.value,
                to_status=target.value,
                version=updated.version,
            )
        return updated
