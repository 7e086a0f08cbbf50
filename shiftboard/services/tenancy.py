"""
Tenancy rules — context-tenant resolution and visibility filtering.

A tenant is a manager id. Every read path (agenda, team status, live
board, planning, stats, listings) MUST obtain its collaborators and
activities through ``visible_collaborators`` / ``visible_activities``;
reading the raw collections directly bypasses tenant isolation.

Functions:
    - resolve_context_tenant:  manager id whose config/catalog/contacts apply
    - visible_collaborators:   collaborators the principal may see
    - visible_activities:      activities of those collaborators (+ own)
    - team_members:            peer set excluding the principal
    - pick_tenant_record:      tenant's record or a well-defined default
"""

import logging

from shiftboard.core.exceptions import ValidationError
from shiftboard.domain import Role

logger = logging.getLogger(__name__)


def resolve_context_tenant(principal, managers, selected_tenant_id: int | None = None) -> int:
    """Return the manager tenant id the principal's tenant-scoped operations apply to.

    Manager → own id. Collaborator → its manager reference. Admin → the
    explicitly selected tenant, which must name an existing manager.

    Raises:
        ValidationError: Admin without a (valid) tenant selection.
    """
    if principal.role is Role.MANAGER:
        return principal.id
    if principal.role is Role.COLLABORATOR:
        return principal.manager_id
    if principal.role is Role.ADMIN:
        if selected_tenant_id is None:
            raise ValidationError(
                "Tenant selection is required for admin operations",
                details={"tenant_id": "required"},
            )
        if not any(m.id == selected_tenant_id for m in managers):
            raise ValidationError(
                f"Selected tenant {selected_tenant_id} is not a manager",
                details={"tenant_id": "unknown manager"},
            )
        return selected_tenant_id
    raise ValidationError(f"Unknown role {principal.role!r}")


def visible_collaborators(principal, collaborators) -> list:
    if principal is None:
        return []
    if principal.role is Role.ADMIN:
        return list(collaborators)
    if principal.role is Role.MANAGER:
        return [c for c in collaborators if c.manager_id == principal.id]
    return [c for c in collaborators if c.manager_id == principal.manager_id]


def visible_activities(principal, collaborators, activities) -> list:
    if principal is None:
        return []
    if principal.role is Role.ADMIN:
        return list(activities)

    visible_ids = {c.id for c in visible_collaborators(principal, collaborators)}
    if principal.role is Role.COLLABORATOR:
        visible_ids.add(principal.id)
    return [a for a in activities if a.collaborator_id in visible_ids]


def team_members(principal, collaborators) -> list:
    """Peers for the "team status" view: the visible set without the principal."""
    return [
        c for c in visible_collaborators(principal, collaborators)
        if not (principal.role is Role.COLLABORATOR and c.id == principal.id)
    ]


def pick_tenant_record(records, tenant_id: int, default_factory):
    """The record whose ``manager_id`` is ``tenant_id``, else ``default_factory(tenant_id)``."""
    for record in records:
        if record.manager_id == tenant_id:
            return record
    return default_factory(tenant_id)
