"""
Permission Schemas Module
=========================

Pydantic models for capability checks.
"""

from typing import Dict, List

from pydantic import Field

from stratikey.core.enums import Action, Module
from stratikey.models.role_enum import Role
from stratikey.schemas.common import CamelModel


class PermissionCheckRequest(CamelModel):
    """Ask whether the caller may perform an action on a module."""

    module: Module
    action: Action = Action.READ


class PermissionCheckResponse(CamelModel):
    """Allow/deny answer."""

    module: Module
    action: Action
    allowed: bool


class PermissionSetResponse(CamelModel):
    """Everything the active role may do, for driving the UI."""

    role: Role
    organization_id: str
    permissions: Dict[str, List[str]] = Field(
        ...,
        description="Module -> allowed actions",
    )
    can_approve: Dict[str, bool] = Field(
        ...,
        description="Entity type -> review capability",
    )
