"""
Model Package Initialization
============================

Ensures models are properly registered when imported by the application.

All SQLAlchemy ORM models are exported from this module.

Usage:
    from stratikey.models import User, Organization, Membership, Role
"""

from .role_enum import Role
from .user import User
from .organization import Organization
from .membership import Membership
from .approvable import APPROVABLE_MODELS, Asset, Task

__all__ = [
    "Role",
    "User",
    "Organization",
    "Membership",
    "Asset",
    "Task",
    "APPROVABLE_MODELS",
]
