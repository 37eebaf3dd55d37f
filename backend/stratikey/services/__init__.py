"""
Services Package
================

Authorization gate and approval workflow built on the core.
"""

from stratikey.services.approval_repository import ApprovalRepository
from stratikey.services.approval_workflow import ApprovalWorkflow
from stratikey.services.authorization_gate import AuthorizationGate

__all__ = [
    "ApprovalRepository",
    "ApprovalWorkflow",
    "AuthorizationGate",
]
