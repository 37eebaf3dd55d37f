"""
Role-Based Access Control (RBAC) Dependencies Module
=====================================================

FastAPI dependencies that enforce the permission matrix on routes.

Features:
- Single (module, action) requirement
- Composite "any of" requirement for endpoints spanning modules
- Security logging for denied access (done by the gate)

Usage:
    @router.patch("/leads/{lead_id}")
    def update_lead(ctx: RequestContext = Depends(require_permission(Module.CRM, Action.UPDATE))):
        ...
"""

from typing import Callable, Sequence

from fastapi import Depends

from stratikey.core.dependencies.context import get_authorization_gate, get_request_context
from stratikey.core.enums import Action, Module
from stratikey.core.permissions import PermissionCheck
from stratikey.core.tenant.context import RequestContext
from stratikey.services.authorization_gate import AuthorizationGate


def require_permission(module: Module, action: Action = Action.READ) -> Callable:
    """
    Create a dependency that requires one permission.

    Args:
        module: Protected module
        action: Required action (defaults to read)

    Returns:
        Dependency returning the request context on success
    """
    def permission_checker(
        context: RequestContext = Depends(get_request_context),
        gate: AuthorizationGate = Depends(get_authorization_gate),
    ) -> RequestContext:
        gate.check(context, module, action)
        return context

    return permission_checker


def require_any_permission(checks: Sequence[PermissionCheck]) -> Callable:
    """
    Create a dependency satisfied by any one of several permissions.

    Usage:
        @router.get("/search")
        def search(ctx = Depends(require_any_permission([
            PermissionCheck(Module.CRM, Action.READ),
            PermissionCheck(Module.MARKETING, Action.READ),
        ]))):
            ...
    """
    checks = tuple(checks)

    def permission_checker(
        context: RequestContext = Depends(get_request_context),
        gate: AuthorizationGate = Depends(get_authorization_gate),
    ) -> RequestContext:
        gate.check_any(context, checks)
        return context

    return permission_checker
