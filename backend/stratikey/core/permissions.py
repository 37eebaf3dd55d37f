"""
Permission Matrix Module
========================

Role-based permission matrix for every protected module.

The table below is a total function over Role x Module: every role has
an explicit (possibly empty) action set for every module. There is no
inheritance between roles and no runtime special case for administrators;
SUPER_ADMIN and ORG_ADMIN simply carry full rows. A missing entry is an
empty set, so forgetting to extend a row when a module is added denies
access instead of granting it.

Usage:
    has_permission(Role.SALES, Module.CRM, Action.DELETE)  # True
    has_any_permission(role, [PermissionCheck(Module.CRM, Action.READ), ...])
"""

from typing import Dict, FrozenSet, Iterable, List, Mapping, NamedTuple, Union

from stratikey.core.enums import Action, EntityType, Module
from stratikey.models.role_enum import Role


class PermissionCheck(NamedTuple):
    """A single (module, action) pair to evaluate."""

    module: Module
    action: Action


RoleLike = Union[Role, str]
ModuleLike = Union[Module, str]
ActionLike = Union[Action, str]

_ALL: FrozenSet[Action] = frozenset(Action)
_NONE: FrozenSet[Action] = frozenset()
_READ: FrozenSet[Action] = frozenset({Action.READ})


# =====================================
# Role -> Module -> Actions
# =====================================

ROLE_PERMISSIONS: Dict[Role, Dict[Module, FrozenSet[Action]]] = {
    Role.SUPER_ADMIN: {
        Module.MARKETING: _ALL,
        Module.MARKETING_ADV: _ALL,
        Module.MARKETING_OFFLINE: _ALL,
        Module.CRM: _ALL,
        Module.GOALS: _ALL,
        Module.MARKETPLACE: _ALL,
        Module.SETTINGS: _ALL,
        Module.CHAT: _ALL,
    },
    Role.ORG_ADMIN: {
        Module.MARKETING: _ALL,
        Module.MARKETING_ADV: _ALL,
        Module.MARKETING_OFFLINE: _ALL,
        Module.CRM: _ALL,
        Module.GOALS: _ALL,
        Module.MARKETPLACE: _ALL,
        Module.SETTINGS: _ALL,
        Module.CHAT: _ALL,
    },
    Role.MARKETER: {
        Module.MARKETING: _ALL,
        Module.MARKETING_ADV: _ALL,
        Module.MARKETING_OFFLINE: _ALL,
        Module.CRM: _NONE,
        Module.GOALS: _READ,
        Module.MARKETPLACE: frozenset({Action.READ, Action.CREATE}),
        Module.SETTINGS: _READ,
        Module.CHAT: frozenset({Action.READ, Action.CREATE, Action.UPDATE}),
    },
    Role.SALES: {
        Module.MARKETING: _NONE,
        Module.MARKETING_ADV: _NONE,
        Module.MARKETING_OFFLINE: _NONE,
        Module.CRM: _ALL,
        Module.GOALS: _READ,
        Module.MARKETPLACE: frozenset({Action.READ, Action.CREATE}),
        Module.SETTINGS: _READ,
        Module.CHAT: frozenset({Action.READ, Action.CREATE, Action.UPDATE}),
    },
    Role.VIEWER: {
        Module.MARKETING: _READ,
        Module.MARKETING_ADV: _READ,
        Module.MARKETING_OFFLINE: _READ,
        Module.CRM: _READ,
        Module.GOALS: _READ,
        Module.MARKETPLACE: _READ,
        Module.SETTINGS: _READ,
        Module.CHAT: _READ,
    },
    Role.VENDOR: {
        Module.MARKETING: _NONE,
        Module.MARKETING_ADV: _NONE,
        Module.MARKETING_OFFLINE: _NONE,
        Module.CRM: _NONE,
        Module.GOALS: _NONE,
        Module.MARKETPLACE: frozenset({Action.READ, Action.CREATE, Action.UPDATE}),
        Module.SETTINGS: _NONE,
        Module.CHAT: frozenset({Action.READ, Action.CREATE}),
    },
}


# =====================================
# Approval capability
# =====================================

# Module whose update permission an approval transition also requires.
ENTITY_MODULES: Dict[EntityType, Module] = {
    EntityType.ASSET: Module.MARKETING,
    EntityType.TASK: Module.MARKETING,
}

# Reviewing is stronger than editing: only these roles may approve or
# request changes, on top of holding update on the entity's module.
APPROVAL_CAPABILITIES: Dict[EntityType, FrozenSet[Role]] = {
    EntityType.ASSET: frozenset({Role.SUPER_ADMIN, Role.ORG_ADMIN, Role.MARKETER}),
    EntityType.TASK: frozenset({Role.SUPER_ADMIN, Role.ORG_ADMIN}),
}


# =====================================
# Decision functions
# =====================================

def has_permission(role: RoleLike, module: ModuleLike, action: ActionLike) -> bool:
    """
    Check whether a role may perform an action on a module.

    Unknown roles, modules or actions are denied.

    Args:
        role: Membership role
        module: Protected module
        action: Requested action

    Returns:
        True if the matrix grants the action
    """
    return action in ROLE_PERMISSIONS.get(role, {}).get(module, _NONE)


def has_any_permission(role: RoleLike, checks: Iterable[PermissionCheck]) -> bool:
    """True iff at least one (module, action) pair is permitted."""
    return any(has_permission(role, module, action) for module, action in checks)


def has_all_permissions(role: RoleLike, checks: Iterable[PermissionCheck]) -> bool:
    """
    True iff every (module, action) pair is permitted.

    An empty list of checks is vacuously satisfied.
    """
    return all(has_permission(role, module, action) for module, action in checks)


def module_for(entity_type: Union[EntityType, str]) -> Module:
    """Get the module that governs an approvable entity type."""
    return ENTITY_MODULES[EntityType(entity_type)]


def can_approve(role: RoleLike, entity_type: Union[EntityType, str]) -> bool:
    """
    Check the review capability for an entity type.

    Requires both update on the entity's module and membership in the
    entity type's approval capability set.
    """
    try:
        entity = EntityType(entity_type)
    except ValueError:
        return False
    return (
        has_permission(role, ENTITY_MODULES[entity], Action.UPDATE)
        and role in APPROVAL_CAPABILITIES[entity]
    )


def permissions_for(role: RoleLike) -> Dict[str, List[str]]:
    """
    Get the action list of every module for a role.

    Returns:
        Mapping of module value to sorted action values
    """
    row: Mapping[Module, FrozenSet[Action]] = ROLE_PERMISSIONS.get(role, {})
    return {
        module.value: sorted(action.value for action in row.get(module, _NONE))
        for module in Module
    }


def _validate_matrix() -> None:
    """Fail at import time if the matrix is not total over Role x Module."""
    for role in Role:
        row = ROLE_PERMISSIONS.get(role)
        if row is None:
            raise RuntimeError(f"Permission matrix has no row for role {role.value}")
        missing = [module.value for module in Module if module not in row]
        if missing:
            raise RuntimeError(
                f"Permission matrix row {role.value} is missing modules: {', '.join(missing)}"
            )


_validate_matrix()
