"""
Organization Model
==================

Represents a tenant in the multi-tenant architecture.

Each organization:
- Is isolated from other organizations
- Owns every business entity (assets, tasks, campaigns, leads...)
- Is joined by users through memberships

Database Indexes:
- Primary key: id (UUID)
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, Mapped, mapped_column

from stratikey.db.base import Base

if TYPE_CHECKING:
    from stratikey.models.membership import Membership


class Organization(Base):
    """
    Organization Entity (Tenant Root).

    Security Boundary:
        No operation may read or mutate an entity belonging to an
        organization for which the caller holds no membership.

    Attributes:
        id: UUID primary key
        name: Organization name
        plan: Subscription plan label
        created_at: Creation timestamp
        memberships: Users that belong to the organization
    """

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    plan: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    memberships: Mapped[List["Membership"]] = relationship(
        "Membership",
        back_populates="organization",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "plan": self.plan,
        }
