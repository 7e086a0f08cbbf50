"""
Storage backend contract.

The data store talks to persistence and credential checks only through
this interface. Two implementations exist and are chosen once at app
start (``STORAGE_BACKEND`` config):

    memory  — MemoryBackend  (shiftboard/storage/memory.py)
    sql     — SqlBackend     (shiftboard/storage/sql.py, Flask-SQLAlchemy)

Contract rules shared by every implementation:
  * A failed round trip raises ``StorageError``; nothing is half-applied.
  * Principals are identified by (role, id) — each role has its own id space.
  * ``add_catalog_entry`` returns None for a duplicate (tenant, name) pair.
  * ``delete_collaborator`` removes the collaborator's activities too.
  * ``delete_manager`` removes that tenant's branch/shift config, catalog
    and contacts.
  * Passwords are hashed by the backend; entities never carry plain text.
"""

import uuid
from abc import ABC, abstractmethod

from shiftboard.domain import (
    Activity,
    ActivityDefinition,
    BranchConfig,
    Collaborator,
    EmergencyContact,
    Manager,
    Principal,
    Role,
    ShiftConfig,
    TenantData,
)


def new_id() -> str:
    """Short opaque id for activities, catalog entries and contacts."""
    return uuid.uuid4().hex[:12]


class StorageBackend(ABC):
    """Persistence + credential adapter used by ``DataStore`` and ``AuthGate``."""

    kind = "abstract"

    # ── Auth ────────────────────────────────────────────────────────────
    @abstractmethod
    def authenticate(self, employee_number: str, password: str) -> Principal | None:
        """Match credentials against admins, then managers, then collaborators."""

    @abstractmethod
    def change_credential(self, role: Role, principal_id: int, new_password: str) -> Principal:
        """Store a new password and clear the first-login flag in one update."""

    @abstractmethod
    def get_principal(self, role: Role, principal_id: int) -> Principal | None:
        ...

    @abstractmethod
    def employee_number_taken(self, employee_number: str, exclude: tuple | None = None) -> bool:
        """True when any principal other than ``exclude`` (role, id) uses the number."""

    # ── Collections ─────────────────────────────────────────────────────
    @abstractmethod
    def list_admins(self) -> list[Principal]:
        ...

    @abstractmethod
    def list_managers(self) -> list[Manager]:
        ...

    @abstractmethod
    def fetch_tenant_scoped_data(self, tenant_ids: set[int] | None) -> TenantData:
        """Collaborators, activities and config for ``tenant_ids``; None means every tenant."""

    # ── Activities ──────────────────────────────────────────────────────
    @abstractmethod
    def create_activity(self, fields: dict) -> Activity:
        ...

    @abstractmethod
    def update_activity(self, activity_id: str, fields: dict) -> Activity:
        ...

    @abstractmethod
    def delete_activity(self, activity_id: str) -> bool:
        ...

    # ── Collaborators / managers ────────────────────────────────────────
    @abstractmethod
    def create_collaborator(self, fields: dict, password: str) -> Collaborator:
        ...

    @abstractmethod
    def update_collaborator(self, collaborator_id: int, fields: dict) -> Collaborator:
        ...

    @abstractmethod
    def delete_collaborator(self, collaborator_id: int) -> bool:
        ...

    @abstractmethod
    def create_manager(self, fields: dict, password: str) -> Manager:
        ...

    @abstractmethod
    def update_manager(self, manager_id: int, fields: dict) -> Manager:
        ...

    @abstractmethod
    def delete_manager(self, manager_id: int) -> bool:
        ...

    # ── Tenant configuration ────────────────────────────────────────────
    @abstractmethod
    def upsert_branch_config(self, tenant_id: int, fields: dict) -> BranchConfig:
        ...

    @abstractmethod
    def upsert_shift_config(self, tenant_id: int, config: ShiftConfig) -> ShiftConfig:
        ...

    @abstractmethod
    def add_catalog_entry(self, tenant_id: int, name: str) -> ActivityDefinition | None:
        ...

    @abstractmethod
    def remove_catalog_entry(self, tenant_id: int, name: str) -> bool:
        ...

    @abstractmethod
    def add_contact(self, tenant_id: int, name: str, phone: str) -> EmergencyContact:
        ...

    @abstractmethod
    def remove_contact(self, tenant_id: int, contact_id: str) -> bool:
        ...

    @abstractmethod
    def load(self, *, admins=(), managers=(), collaborators=(), activities=(),
             catalog=(), branch_configs=(), shift_configs=(), contacts=()) -> None:
        """Bulk-insert ready-made entities, ids and password hashes kept as given."""

    def ping(self) -> dict:
        """Health information for /health/live."""
        return {"status": "ok", "backend": self.kind}
