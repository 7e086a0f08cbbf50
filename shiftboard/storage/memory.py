"""
In-memory storage backend.

Holds every collection in plain dicts keyed by id. Used for demos
(``SEED_DEMO_DATA``), development and the bulk of the test suite. State
lives for the life of the process.
"""

import copy
import logging
import threading
from dataclasses import replace

from shiftboard.core.exceptions import NotFoundError
from shiftboard.domain import (
    Activity,
    ActivityDefinition,
    Admin,
    BranchConfig,
    Collaborator,
    EmergencyContact,
    Manager,
    Role,
    TenantData,
    default_branch_config,
)
from shiftboard.storage.base import StorageBackend, new_id
from shiftboard.utils.crypto import hash_password, verify_password
from shiftboard.utils.timeslots import avatar_initials

logger = logging.getLogger(__name__)

# New manager ids are allocated above this floor.
MANAGER_ID_FLOOR = 900

_ACTIVITY_FIELDS = ("collaborator_id", "day", "start_time", "end_time", "description",
                    "completed", "completed_at")
_COLLABORATOR_FIELDS = ("name", "employee_number", "role_title", "shift", "manager_id",
                        "avatar_initials")
_MANAGER_FIELDS = ("name", "employee_number")


def _pick(fields: dict, allowed) -> dict:
    return {k: v for k, v in fields.items() if k in allowed}


class MemoryBackend(StorageBackend):
    kind = "memory"

    def __init__(self, bcrypt_rounds: int = 12):
        self.bcrypt_rounds = bcrypt_rounds
        self._lock = threading.RLock()
        self.admins: dict[int, Admin] = {}
        self.managers: dict[int, Manager] = {}
        self.collaborators: dict[int, Collaborator] = {}
        self.activities: dict[str, Activity] = {}
        self.catalog: dict[str, ActivityDefinition] = {}
        self.branch_configs: dict[int, BranchConfig] = {}
        self.shift_configs: dict = {}
        self.contacts: dict[str, EmergencyContact] = {}

    # Entities are copied on the way out so callers never mutate storage.
    @staticmethod
    def _out(entity):
        return copy.deepcopy(entity)

    def _collection(self, role: Role) -> dict:
        return {
            Role.ADMIN: self.admins,
            Role.MANAGER: self.managers,
            Role.COLLABORATOR: self.collaborators,
        }[role]

    def _hash(self, password: str) -> str:
        return hash_password(password, rounds=self.bcrypt_rounds)

    # ── Loading ─────────────────────────────────────────────────────────
    def load(self, *, admins=(), managers=(), collaborators=(), activities=(),
             catalog=(), branch_configs=(), shift_configs=(), contacts=()):
        """Bulk-insert ready-made entities (used by the demo seed and tests)."""
        with self._lock:
            for a in admins:
                self.admins[a.id] = a
            for m in managers:
                self.managers[m.id] = m
            for c in collaborators:
                self.collaborators[c.id] = c
            for a in activities:
                self.activities[a.id] = a
            for d in catalog:
                self.catalog[d.id] = d
            for b in branch_configs:
                self.branch_configs[b.manager_id] = b
            for s in shift_configs:
                self.shift_configs[s.manager_id] = s
            for c in contacts:
                self.contacts[c.id] = c

    # ── Auth ────────────────────────────────────────────────────────────
    def authenticate(self, employee_number, password):
        with self._lock:
            for role in (Role.ADMIN, Role.MANAGER, Role.COLLABORATOR):
                for principal in self._collection(role).values():
                    if principal.employee_number != employee_number:
                        continue
                    if verify_password(password, principal.password_hash):
                        return self._out(principal)
        return None

    def change_credential(self, role, principal_id, new_password):
        with self._lock:
            collection = self._collection(role)
            principal = collection.get(principal_id)
            if principal is None:
                raise NotFoundError(resource=role.value.title(), resource_id=principal_id)
            collection[principal_id] = replace(
                principal, password_hash=self._hash(new_password), is_first_login=False,
            )
            return self._out(collection[principal_id])

    def get_principal(self, role, principal_id):
        with self._lock:
            principal = self._collection(role).get(principal_id)
            return self._out(principal) if principal else None

    def employee_number_taken(self, employee_number, exclude=None):
        with self._lock:
            for role in (Role.ADMIN, Role.MANAGER, Role.COLLABORATOR):
                for principal in self._collection(role).values():
                    if exclude and (role, principal.id) == tuple(exclude):
                        continue
                    if principal.employee_number == employee_number:
                        return True
        return False

    # ── Collections ─────────────────────────────────────────────────────
    def list_admins(self):
        with self._lock:
            return [self._out(a) for a in self.admins.values()]

    def list_managers(self):
        with self._lock:
            return [self._out(m) for m in sorted(self.managers.values(), key=lambda m: m.id)]

    def fetch_tenant_scoped_data(self, tenant_ids):
        def in_scope(manager_id):
            return tenant_ids is None or manager_id in tenant_ids

        with self._lock:
            collaborators = sorted(
                (c for c in self.collaborators.values() if in_scope(c.manager_id)),
                key=lambda c: c.id,
            )
            collaborator_ids = {c.id for c in collaborators}
            data = TenantData(
                activity_definitions=[d for d in self.catalog.values() if in_scope(d.manager_id)],
                branch_configs=[b for b in self.branch_configs.values() if in_scope(b.manager_id)],
                shift_configs=[s for s in self.shift_configs.values() if in_scope(s.manager_id)],
                emergency_contacts=[c for c in self.contacts.values() if in_scope(c.manager_id)],
                collaborators=collaborators,
                activities=[
                    a for a in self.activities.values() if a.collaborator_id in collaborator_ids
                ],
            )
            return self._out(data)

    # ── Activities ──────────────────────────────────────────────────────
    def create_activity(self, fields):
        with self._lock:
            activity = Activity(id=new_id(), **_pick(fields, _ACTIVITY_FIELDS))
            self.activities[activity.id] = activity
            return self._out(activity)

    def update_activity(self, activity_id, fields):
        with self._lock:
            current = self.activities.get(activity_id)
            if current is None:
                raise NotFoundError(resource="Activity", resource_id=activity_id)
            self.activities[activity_id] = replace(current, **_pick(fields, _ACTIVITY_FIELDS))
            return self._out(self.activities[activity_id])

    def delete_activity(self, activity_id):
        with self._lock:
            return self.activities.pop(activity_id, None) is not None

    # ── Collaborators ───────────────────────────────────────────────────
    def create_collaborator(self, fields, password):
        with self._lock:
            next_id = max(self.collaborators, default=0) + 1
            collaborator = Collaborator(
                id=next_id,
                password_hash=self._hash(password),
                is_first_login=True,
                **_pick(fields, _COLLABORATOR_FIELDS),
            )
            self.collaborators[next_id] = collaborator
            return self._out(collaborator)

    def update_collaborator(self, collaborator_id, fields):
        with self._lock:
            current = self.collaborators.get(collaborator_id)
            if current is None:
                raise NotFoundError(resource="Collaborator", resource_id=collaborator_id)
            changes = _pick(fields, _COLLABORATOR_FIELDS)
            if "name" in changes and "avatar_initials" not in changes:
                changes["avatar_initials"] = avatar_initials(changes["name"])
            self.collaborators[collaborator_id] = replace(current, **changes)
            return self._out(self.collaborators[collaborator_id])

    def delete_collaborator(self, collaborator_id):
        with self._lock:
            if self.collaborators.pop(collaborator_id, None) is None:
                return False
            orphaned = [a_id for a_id, a in self.activities.items()
                        if a.collaborator_id == collaborator_id]
            for a_id in orphaned:
                del self.activities[a_id]
            logger.debug("Removed collaborator %s and %d activities", collaborator_id, len(orphaned))
            return True

    # ── Managers ────────────────────────────────────────────────────────
    def create_manager(self, fields, password):
        with self._lock:
            next_id = max([MANAGER_ID_FLOOR, *self.managers]) + 1
            manager = Manager(
                id=next_id,
                password_hash=self._hash(password),
                is_first_login=True,
                **_pick(fields, _MANAGER_FIELDS),
            )
            self.managers[next_id] = manager
            return self._out(manager)

    def update_manager(self, manager_id, fields):
        with self._lock:
            current = self.managers.get(manager_id)
            if current is None:
                raise NotFoundError(resource="Manager", resource_id=manager_id)
            self.managers[manager_id] = replace(current, **_pick(fields, _MANAGER_FIELDS))
            return self._out(self.managers[manager_id])

    def delete_manager(self, manager_id):
        with self._lock:
            if self.managers.pop(manager_id, None) is None:
                return False
            self.branch_configs.pop(manager_id, None)
            self.shift_configs.pop(manager_id, None)
            for store in (self.catalog, self.contacts):
                for key in [k for k, v in store.items() if v.manager_id == manager_id]:
                    del store[key]
            return True

    # ── Tenant configuration ────────────────────────────────────────────
    def upsert_branch_config(self, tenant_id, fields):
        with self._lock:
            current = self.branch_configs.get(tenant_id) or default_branch_config(tenant_id)
            allowed = ("name", "ceco", "region", "territory")
            self.branch_configs[tenant_id] = replace(current, **_pick(fields, allowed))
            return self._out(self.branch_configs[tenant_id])

    def upsert_shift_config(self, tenant_id, config):
        with self._lock:
            self.shift_configs[tenant_id] = replace(copy.deepcopy(config), manager_id=tenant_id)
            return self._out(self.shift_configs[tenant_id])

    def add_catalog_entry(self, tenant_id, name):
        with self._lock:
            if any(d.manager_id == tenant_id and d.name == name for d in self.catalog.values()):
                return None
            entry = ActivityDefinition(id=new_id(), name=name, manager_id=tenant_id)
            self.catalog[entry.id] = entry
            return self._out(entry)

    def remove_catalog_entry(self, tenant_id, name):
        with self._lock:
            for key, entry in list(self.catalog.items()):
                if entry.manager_id == tenant_id and entry.name == name:
                    del self.catalog[key]
                    return True
            return False

    def add_contact(self, tenant_id, name, phone):
        with self._lock:
            contact = EmergencyContact(id=new_id(), manager_id=tenant_id, name=name, phone=phone)
            self.contacts[contact.id] = contact
            return self._out(contact)

    def remove_contact(self, tenant_id, contact_id):
        with self._lock:
            contact = self.contacts.get(contact_id)
            if contact is None or contact.manager_id != tenant_id:
                return False
            del self.contacts[contact_id]
            return True

    def ping(self):
        with self._lock:
            return {
                "status": "ok",
                "backend": self.kind,
                "managers": len(self.managers),
                "collaborators": len(self.collaborators),
            }
