"""
Membership Model
================

Ties a user to an organization with exactly one role. A membership is
the unit of authorization context: every permission decision reads the
role from the membership selected for the current request.

Database Indexes:
- Unique constraint: (user_id, organization_id)
- Index: organization_id
"""

import uuid
from datetime import datetime, UTC
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, Mapped, mapped_column

from stratikey.db.base import Base
from stratikey.models.role_enum import Role

if TYPE_CHECKING:
    from stratikey.models.organization import Organization
    from stratikey.models.user import User


class Membership(Base):
    """
    Membership of a user in an organization.

    Attributes:
        id: UUID primary key
        user_id: Member
        organization_id: Tenant
        role: Role held inside this organization
        created_at: Join timestamp; memberships are listed in this order
    """

    __tablename__ = "memberships"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    role: Mapped[Role] = mapped_column(
        Enum(Role, name="role", native_enum=False, length=50),
        nullable=False,
    )

    # Python-side default keeps sub-second ordering on every backend
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="memberships")
    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="memberships",
        lazy="joined",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_membership_user_org"),
    )

    def __repr__(self) -> str:
        return (
            f"<Membership(user_id={self.user_id}, "
            f"organization_id={self.organization_id}, role={self.role})>"
        )
