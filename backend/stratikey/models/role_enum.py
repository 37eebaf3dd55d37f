"""
Role Enumeration Module
=======================

Defines all valid membership roles in the system.

Security Purpose:
- Prevents arbitrary role injection
- Prevents frontend role manipulation
- Enforces strict backend validation
"""

from enum import Enum


class Role(str, Enum):
    """
    Roles a user can hold inside one organization.

    Exactly one role exists per (user, organization) membership.
    """

    SUPER_ADMIN = "SUPER_ADMIN"
    ORG_ADMIN = "ORG_ADMIN"
    MARKETER = "MARKETER"
    SALES = "SALES"
    VIEWER = "VIEWER"
    VENDOR = "VENDOR"
