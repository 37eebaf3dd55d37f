"""
Approvable Content Models
=========================

Assets and tasks are organization-owned work items subject to review.

Both carry the same approval columns:
- approval_status / review_notes: always written together
- version: incremented on every approval write, used for
  compare-and-swap so concurrent reviewers cannot clobber each other
"""

import uuid
from datetime import datetime, UTC
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from stratikey.core.enums import ApprovalStatus, EntityType
from stratikey.db.base import Base


class ApprovableMixin:
    """Columns shared by every entity the approval workflow can act on."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    approval_status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, name="approval_status", native_enum=False, length=32),
        nullable=False,
        default=ApprovalStatus.DRAFT,
    )

    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )

    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __init__(self, **kwargs):
        if "approval_status" not in kwargs:
            kwargs["approval_status"] = ApprovalStatus.DRAFT
        if "version" not in kwargs:
            kwargs["version"] = 1
        super().__init__(**kwargs)

    def to_summary(self) -> dict:
        """Entity summary returned by approval endpoints."""
        return {
            "id": str(self.id),
            "entityType": self.entity_type.value,
            "organizationId": str(self.organization_id),
            "title": self.title,
            "approvalStatus": ApprovalStatus(self.approval_status).value,
            "reviewNotes": self.review_notes,
            "version": self.version,
            "reviewedBy": str(self.reviewed_by) if self.reviewed_by else None,
            "reviewedAt": self.reviewed_at.isoformat() if self.reviewed_at else None,
        }


class Asset(ApprovableMixin, Base):
    """Creative asset (image, copy, video) awaiting publication."""

    __tablename__ = "assets"

    entity_type = EntityType.ASSET

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    content_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Asset(id={self.id}, status={self.approval_status})>"


class Task(ApprovableMixin, Base):
    """Marketing work item whose deliverable needs sign-off."""

    __tablename__ = "tasks"

    entity_type = EntityType.TASK

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, status={self.approval_status})>"


APPROVABLE_MODELS = {
    EntityType.ASSET: Asset,
    EntityType.TASK: Task,
}
