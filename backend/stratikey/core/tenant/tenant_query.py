"""
Tenant Query Utilities Module
=============================

Provides utilities for multi-tenant data isolation.

Features:
- Automatic organization filtering for queries
- Lookups that treat other tenants' rows as missing

Security:
- Enforces tenant isolation at the query level using the organization
  of the request's membership snapshot
- There is no role-based bypass: SUPER_ADMIN is a role inside one
  organization, not a cross-tenant grant
- Logs tenant isolation violations without echoing foreign data
"""

import uuid
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from stratikey.core.exceptions import NotFoundError
from stratikey.core.logging import get_logger, security_logger
from stratikey.core.tenant.context import RequestContext

# Initialize logger
logger = get_logger(__name__)

# Generic type for models with organization_id
T = TypeVar("T")


class TenantQuery(Generic[T]):
    """
    Helper class for tenant-isolated database queries.

    Usage:
        tasks = TenantQuery(db, Task, ctx).all()
        task = TenantQuery(db, Task, ctx).get_by_id(task_id)
    """

    def __init__(self, db: Session, model: Type[T], context: RequestContext):
        """
        Initialize tenant query helper.

        Args:
            db: Database session
            model: SQLAlchemy model class with an organization_id column
            context: Request authorization snapshot
        """
        self.db = db
        self.model = model
        self.context = context

    def filter_by_tenant(self) -> Select:
        """Select statement restricted to the active organization."""
        return select(self.model).where(
            self.model.organization_id == self.context.organization_id
        )

    def all(self) -> list:
        stmt = self.filter_by_tenant().order_by(self.model.created_at)
        return list(self.db.scalars(stmt))

    def get_by_id(self, resource_id: uuid.UUID, resource: Optional[str] = None) -> T:
        """
        Get a resource by ID inside the active organization.

        A row owned by another organization is reported exactly like a
        missing one.

        Raises:
            NotFoundError: If the row is absent or belongs to another tenant
        """
        label = resource or self.model.__name__
        row = self.db.get(self.model, resource_id)

        if row is None:
            raise NotFoundError(resource=label)

        if row.organization_id != self.context.organization_id:
            security_logger.log_tenant_isolation_violation(
                user_id=str(self.context.caller.user_id),
                active_organization=str(self.context.organization_id),
                resource=self.model.__tablename__,
            )
            raise NotFoundError(resource=label)

        return row
