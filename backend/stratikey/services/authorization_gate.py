"""
Authorization Gate Service
==========================

Request-scoped enforcement layer. Combines the permission matrix with
the membership selected by the organization context resolver and
accepts or rejects an operation before it reaches business logic.

Failure kinds:
- AuthenticationError: no resolvable caller identity
- AuthorizationError: no active membership, an explicitly requested
  organization the caller does not belong to, or the matrix denies

The gate never mutates memberships or content.
"""

from enum import Enum
from typing import Iterable, Optional, Union

from stratikey.core.enums import Action, Module
from stratikey.core.exceptions import (
    AuthenticationError,
    NoActiveMembershipError,
    PermissionDeniedError,
)
from stratikey.core.logging import get_logger, security_logger
from stratikey.core.permissions import PermissionCheck, has_any_permission, has_permission
from stratikey.core.tenant.context import (
    Caller,
    MembershipInfo,
    OrganizationContextResolver,
    RequestContext,
)

logger = get_logger(__name__)


class AuthorizationGate:
    """
    Gate every operation on (caller, module, action).

    Usage:
        gate = AuthorizationGate(resolver)
        membership = gate.authorize(caller, Module.CRM, Action.UPDATE)
        leads = repo.list(organization_id=membership.organization_id)
    """

    def __init__(self, resolver: OrganizationContextResolver):
        self.resolver = resolver

    # =====================================
    # Context resolution
    # =====================================

    def resolve(
        self,
        caller: Optional[Caller],
        request_id: Optional[str] = None,
        requested_organization: Optional[str] = None,
    ) -> RequestContext:
        """
        Resolve and freeze the caller's active membership for one request.

        An explicitly requested organization must be one of the caller's
        memberships; otherwise the persisted selection is used, falling
        back to the first membership.

        Raises:
            AuthenticationError: If there is no caller identity
            NotAMemberError: If the requested organization is not the caller's
            NoActiveMembershipError: If the caller has no membership at all
        """
        if caller is None:
            raise AuthenticationError()

        if requested_organization:
            membership = self.resolver.resolve_requested(caller, requested_organization)
        else:
            token = self.resolver.selection_store.load(caller)
            membership = self.resolver.resolve_active(caller, token)
        if membership is None:
            logger.info("no_active_membership", user_id=str(caller.user_id))
            raise NoActiveMembershipError()

        return self.resolver.snapshot(caller, membership, request_id=request_id)

    # =====================================
    # Decisions on a resolved context
    # =====================================

    def check(
        self,
        context: RequestContext,
        module: Union[Module, str],
        action: Union[Action, str],
    ) -> MembershipInfo:
        """
        Enforce one (module, action) pair on an already resolved context.

        Raises:
            PermissionDeniedError: If the role lacks the permission
        """
        role = context.membership.role
        if not has_permission(role, module, action):
            module_value, action_value = _label(module), _label(action)
            security_logger.log_permission_denied(
                user_id=str(context.caller.user_id),
                role=role.value,
                module=module_value,
                action=action_value,
            )
            raise PermissionDeniedError(module=module_value, action=action_value)
        return context.membership

    def check_any(self, context: RequestContext, checks: Iterable[PermissionCheck]) -> MembershipInfo:
        """
        Enforce that at least one (module, action) pair is permitted.

        Raises:
            AuthorizationError: If none of the pairs is permitted
        """
        checks = list(checks)
        role = context.membership.role
        if not has_any_permission(role, checks):
            modules = ",".join(_label(c.module) for c in checks)
            actions = ",".join(_label(c.action) for c in checks)
            security_logger.log_permission_denied(
                user_id=str(context.caller.user_id),
                role=role.value,
                module=modules,
                action=actions,
            )
            raise PermissionDeniedError(module=modules, action=actions)
        return context.membership

    # =====================================
    # One-shot entry points
    # =====================================

    def authorize(
        self,
        caller: Optional[Caller],
        module: Union[Module, str],
        action: Union[Action, str],
    ) -> MembershipInfo:
        """
        Authorize a single operation.

        Returns:
            The membership the decision was made with; its organization id
            scopes all subsequent data access.
        """
        return self.check(self.resolve(caller), module, action)

    def authorize_any(
        self,
        caller: Optional[Caller],
        checks: Iterable[PermissionCheck],
    ) -> MembershipInfo:
        """Authorize an operation reachable through several module/action routes."""
        return self.check_any(self.resolve(caller), checks)

    def is_allowed(
        self,
        caller: Optional[Caller],
        module: Union[Module, str],
        action: Union[Action, str],
        requested_organization: Optional[str] = None,
    ) -> bool:
        """
        Capability check: allow/deny without raising for a plain deny.

        A caller without any membership is denied.

        Raises:
            AuthenticationError: If there is no caller identity
            NotAMemberError: If the requested organization is not the caller's
        """
        try:
            context = self.resolve(caller, requested_organization=requested_organization)
        except NoActiveMembershipError:
            return False
        return has_permission(context.membership.role, module, action)


def _label(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else str(value)
