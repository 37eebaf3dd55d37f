"""
Organization Context Dependencies Module
========================================

FastAPI wiring for the organization context resolver and the
authorization gate.

The active organization comes from one of two places:
- the `X-Organization-Id` header, an explicit target for one request.
  It must name one of the caller's memberships (403 NOT_A_MEMBER
  otherwise) and is never persisted.
- the selection cookie, a remembered preference. A stale or foreign
  value falls back to the first membership, which is then persisted.

The request context is resolved once per request (FastAPI caches
dependency results per request), so every check inside one request sees
the same membership even if the caller switches organization meanwhile.
"""

from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from stratikey.core.config import settings
from stratikey.core.dependencies.auth import get_current_caller
from stratikey.core.logging import organization_id_context
from stratikey.core.tenant.cache import TenantCache, get_tenant_cache
from stratikey.core.tenant.context import (
    Caller,
    OrganizationContextResolver,
    RequestContext,
    SqlMembershipSource,
)
from stratikey.db.session import get_db
from stratikey.middleware.rate_limit import TenantRateLimiter, get_tenant_rate_limiter
from stratikey.services.authorization_gate import AuthorizationGate


class CookieSelectionStore:
    """Selection store backed by a long-lived cookie in the client's jar."""

    def __init__(self, request: Request, response: Response):
        self.request = request
        self.response = response

    def load(self, caller: Caller) -> Optional[str]:
        return self.request.cookies.get(settings.ORG_SELECTION_COOKIE_NAME)

    def save(self, caller: Caller, token: str) -> None:
        self.response.set_cookie(
            key=settings.ORG_SELECTION_COOKIE_NAME,
            value=token,
            max_age=settings.selection_cookie_max_age,
            path="/",
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )


def requested_organization(request: Request) -> Optional[str]:
    """Organization the request names explicitly in its header, if any."""
    value = request.headers.get(settings.ORG_HEADER_NAME, "").strip()
    return value or None


def get_context_resolver(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    cache: TenantCache = Depends(get_tenant_cache),
) -> OrganizationContextResolver:
    """Build the resolver for this request."""
    return OrganizationContextResolver(
        membership_source=SqlMembershipSource(db),
        selection_store=CookieSelectionStore(request, response),
        cache=cache,
    )


def get_authorization_gate(
    resolver: OrganizationContextResolver = Depends(get_context_resolver),
) -> AuthorizationGate:
    return AuthorizationGate(resolver)


def get_request_context(
    request: Request,
    caller: Caller = Depends(get_current_caller),
    gate: AuthorizationGate = Depends(get_authorization_gate),
    rate_limiter: TenantRateLimiter = Depends(get_tenant_rate_limiter),
) -> RequestContext:
    """
    Resolve and snapshot the caller's active membership.

    Raises:
        AuthenticationError: If the caller is not authenticated
        NotAMemberError: If the header names a foreign organization
        NoActiveMembershipError: If the caller has no organization
        RateLimitError: If the organization's budget is exhausted
    """
    context = gate.resolve(
        caller,
        request_id=getattr(request.state, "request_id", None),
        requested_organization=requested_organization(request),
    )

    request.state.organization_id = str(context.organization_id)
    organization_id_context.set(str(context.organization_id))

    rate_limiter.check(request, str(context.organization_id))
    return context
