"""
Approval Repository
===================

Read and compare-and-write primitives over approvable entities.

The write is a single UPDATE guarded by (id, organization, status,
version). Zero matched rows means another reviewer got there first;
nothing is committed and ConflictError is raised. Any database failure
rolls the transaction back so status and review notes are never
persisted apart.
"""

import uuid
from datetime import datetime, UTC
from typing import Optional, Union

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stratikey.core.enums import ApprovalStatus, EntityType
from stratikey.core.exceptions import ConflictError, InternalError
from stratikey.core.logging import get_logger, security_logger
from stratikey.core.tenant.context import RequestContext
from stratikey.core.tenant.tenant_query import TenantQuery
from stratikey.models.approvable import APPROVABLE_MODELS, ApprovableMixin

logger = get_logger(__name__)


class ApprovalRepository:
    """Durable store adapter for approval state."""

    def __init__(self, db: Session):
        self.db = db

    def read(
        self,
        context: RequestContext,
        entity_type: Union[EntityType, str],
        entity_id: uuid.UUID,
    ) -> ApprovableMixin:
        """
        Load an entity from the caller's active organization.

        Raises:
            NotFoundError: If absent or owned by another organization
        """
        entity_type = EntityType(entity_type)
        model = APPROVABLE_MODELS[entity_type]
        return TenantQuery(self.db, model, context).get_by_id(
            entity_id, resource=entity_type.value.capitalize()
        )

    def compare_and_write(
        self,
        context: RequestContext,
        entity: ApprovableMixin,
        expected_status: ApprovalStatus,
        expected_version: int,
        new_status: ApprovalStatus,
        review_notes: Optional[str],
    ) -> ApprovableMixin:
        """
        Atomically move an entity from `expected_status` to `new_status`.

        Raises:
            ConflictError: If status or version changed since it was read
            InternalError: If the database write fails
        """
        model = type(entity)
        stmt = (
            update(model)
            .where(
                model.id == entity.id,
                model.organization_id == context.organization_id,
                model.approval_status == expected_status,
                model.version == expected_version,
            )
            .values(
                approval_status=new_status,
                review_notes=review_notes,
                version=model.version + 1,
                reviewed_by=context.caller.user_id,
                reviewed_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )

        try:
            result = self.db.execute(stmt)
            if result.rowcount != 1:
                self.db.rollback()
                security_logger.log_approval_conflict(
                    user_id=str(context.caller.user_id),
                    entity_type=entity.entity_type.value,
                    entity_id=str(entity.id),
                    expected_status=expected_status.value,
                    expected_version=expected_version,
                )
                raise ConflictError(
                    details={
                        "entityType": entity.entity_type.value,
                        "entityId": str(entity.id),
                    }
                )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "approval_write_failed",
                entity_type=entity.entity_type.value,
                entity_id=str(entity.id),
                error=str(e),
            )
            raise InternalError() from e

        self.db.refresh(entity)
        return entity
