"""
Enumeration Module
==================

Defines the closed enumerations used by the authorization core.
"""

from enum import Enum


class Module(str, Enum):
    """Protected resource domains."""

    MARKETING = "marketing"
    MARKETING_ADV = "marketing_adv"
    MARKETING_OFFLINE = "marketing_offline"
    CRM = "crm"
    GOALS = "goals"
    MARKETPLACE = "marketplace"
    SETTINGS = "settings"
    CHAT = "chat"


class Action(str, Enum):
    """Operations that can be performed on a module."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ApprovalStatus(str, Enum):
    """Review lifecycle statuses for approvable content."""

    DRAFT = "DRAFT"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"


class EntityType(str, Enum):
    """Content entities subject to review."""

    ASSET = "asset"
    TASK = "task"


class Transition(str, Enum):
    """Approval workflow transitions."""

    APPROVE = "approve"
    REQUEST_CHANGES = "request_changes"
