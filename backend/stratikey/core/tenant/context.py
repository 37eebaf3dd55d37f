"""
Organization Context Module
===========================

Resolves, persists and switches the caller's active organization.

Features:
- Membership listing from an identity source
- Active membership resolution from a persisted selection token
- Safe switching with coarse cache invalidation
- Immutable per-request context snapshot

Security:
- The selection token is a UI convenience, never proof of membership;
  it is re-validated against the caller's memberships on every use
- Roles are always read from the membership, never from the client
"""

import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from stratikey.core.exceptions import NotAMemberError
from stratikey.core.logging import get_logger, security_logger
from stratikey.core.tenant.cache import TenantCache
from stratikey.models.membership import Membership
from stratikey.models.role_enum import Role

logger = get_logger(__name__)


# =====================================
# Value Objects
# =====================================

@dataclass(frozen=True)
class Caller:
    """Authenticated identity the core receives from the auth layer."""

    user_id: uuid.UUID
    email: str


@dataclass(frozen=True)
class MembershipInfo:
    """Read-only snapshot of one membership."""

    id: uuid.UUID
    user_id: uuid.UUID
    organization_id: uuid.UUID
    organization_name: str
    role: Role

    @classmethod
    def from_model(cls, membership: Membership) -> "MembershipInfo":
        return cls(
            id=membership.id,
            user_id=membership.user_id,
            organization_id=membership.organization_id,
            organization_name=membership.organization.name,
            role=Role(membership.role),
        )

    @property
    def token(self) -> str:
        """Selection token naming this membership's organization."""
        return str(self.organization_id)


@dataclass(frozen=True)
class RequestContext:
    """
    Authorization context captured once per request.

    Later switches do not affect a request that already holds a context.
    """

    caller: Caller
    membership: MembershipInfo
    epoch: int
    request_id: Optional[str] = None

    @property
    def organization_id(self) -> uuid.UUID:
        return self.membership.organization_id

    @property
    def role(self) -> Role:
        return self.membership.role


@dataclass(frozen=True)
class SwitchResult:
    """Outcome of a switch: the new membership and the caller's new epoch."""

    membership: MembershipInfo
    epoch: int


# =====================================
# Collaborator Interfaces
# =====================================

class MembershipSource(Protocol):
    """Identity-side source of a user's memberships."""

    def list_memberships(self, user_id: uuid.UUID) -> Sequence[MembershipInfo]:
        ...


class SelectionStore(Protocol):
    """Where the active-organization token is kept between sessions."""

    def load(self, caller: Caller) -> Optional[str]:
        ...

    def save(self, caller: Caller, token: str) -> None:
        ...


class SqlMembershipSource:
    """Membership source backed by the memberships table."""

    def __init__(self, db: Session):
        self.db = db

    def list_memberships(self, user_id: uuid.UUID) -> List[MembershipInfo]:
        stmt = (
            select(Membership)
            .options(joinedload(Membership.organization))
            .where(Membership.user_id == user_id)
            .order_by(Membership.created_at, Membership.id)
        )
        return [MembershipInfo.from_model(m) for m in self.db.scalars(stmt).unique()]


class InMemorySelectionStore:
    """Selection store for non-HTTP callers and tests."""

    def __init__(self):
        self._tokens: Dict[uuid.UUID, str] = {}

    def load(self, caller: Caller) -> Optional[str]:
        return self._tokens.get(caller.user_id)

    def save(self, caller: Caller, token: str) -> None:
        self._tokens[caller.user_id] = token


# =====================================
# Resolver
# =====================================

class OrganizationContextResolver:
    """
    Selects exactly one active membership for a caller.

    Usage:
        resolver = OrganizationContextResolver(source, store, tenant_cache)
        membership = resolver.resolve_active(caller, store.load(caller))
        switched = resolver.switch_active(caller, organization_id)
    """

    def __init__(
        self,
        membership_source: MembershipSource,
        selection_store: SelectionStore,
        cache: TenantCache,
    ):
        self.membership_source = membership_source
        self.selection_store = selection_store
        self.cache = cache

    def available_memberships(self, caller: Caller) -> List[MembershipInfo]:
        """All memberships the caller currently holds, in source order."""
        return list(self.membership_source.list_memberships(caller.user_id))

    def resolve_active(
        self,
        caller: Caller,
        persisted_selection_token: Optional[str],
    ) -> Optional[MembershipInfo]:
        """
        Resolve the caller's active membership.

        If the token names an organization the caller still belongs to,
        that membership is used. Otherwise the first membership is selected
        and persisted as the new token.

        Returns:
            The active membership, or None when the caller has none
        """
        memberships = self.available_memberships(caller)

        if persisted_selection_token:
            match = _find(memberships, persisted_selection_token)
            if match is not None:
                return match
            logger.info(
                "stale_organization_selection",
                user_id=str(caller.user_id),
            )

        if not memberships:
            return None

        default = memberships[0]
        self.selection_store.save(caller, default.token)
        return default

    def resolve_requested(self, caller: Caller, organization_id: str) -> MembershipInfo:
        """
        Resolve an organization the request names explicitly.

        Unlike the persisted selection, an explicit target is never
        replaced by a fallback and never persisted.

        Raises:
            NotAMemberError: If the caller does not belong to the organization
        """
        return self._require_membership(caller, organization_id)

    def switch_active(self, caller: Caller, organization_id: str) -> SwitchResult:
        """
        Make another of the caller's memberships active.

        Persists the new token and invalidates every cached read of the
        caller, whatever organization it came from.

        Returns:
            The new membership and the epoch started by this switch

        Raises:
            NotAMemberError: If the caller does not belong to the organization
        """
        target = self._require_membership(caller, organization_id)

        self.selection_store.save(caller, target.token)
        epoch = self.cache.invalidate_caller(str(caller.user_id))

        logger.info(
            "organization_switched",
            user_id=str(caller.user_id),
            organization_id=target.token,
            epoch=epoch,
        )
        return SwitchResult(membership=target, epoch=epoch)

    def _require_membership(self, caller: Caller, organization_id: str) -> MembershipInfo:
        target = _find(self.available_memberships(caller), str(organization_id))
        if target is None:
            security_logger.log_not_a_member(
                user_id=str(caller.user_id),
                requested_organization=str(organization_id),
            )
            raise NotAMemberError()
        return target

    def snapshot(
        self,
        caller: Caller,
        membership: MembershipInfo,
        request_id: Optional[str] = None,
    ) -> RequestContext:
        """Freeze the membership and cache generation for one request."""
        return RequestContext(
            caller=caller,
            membership=membership,
            epoch=self.cache.epoch_for(str(caller.user_id)),
            request_id=request_id,
        )


def _find(memberships: Sequence[MembershipInfo], token: str) -> Optional[MembershipInfo]:
    token = token.strip().lower()
    for membership in memberships:
        if membership.token == token:
            return membership
    return None
