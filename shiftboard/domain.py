"""
Shiftboard domain entities.

Plain dataclasses shared by the core services and both storage backends.
Entities live in flat per-type collections and reference each other by id:

    Admin / Manager / Collaborator  — principals (tagged by ``role``)
    Activity                        — one scheduled task for one collaborator
    ActivityDefinition              — catalog entry, scoped to a manager tenant
    BranchConfig / ShiftConfig      — one per manager tenant (upsert)
    EmergencyContact                — many per manager tenant

A "tenant" is a manager id. Admins own no tenant.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum

from shiftboard.utils.timeslots import DEFAULT_LUNCH_WINDOWS, avatar_initials


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    COLLABORATOR = "COLLABORATOR"


SHIFT_TYPES = ("MATUTINO", "VESPERTINO")


# ═══════════════════════════════════════════════════════════════
# Principals
# ═══════════════════════════════════════════════════════════════
@dataclass
class Principal:
    """Fields shared by every role. Dispatch on ``role``, not on the class."""

    id: int
    name: str
    employee_number: str
    password_hash: str | None = None
    is_first_login: bool = True
    role: Role = Role.COLLABORATOR

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role is Role.MANAGER

    @property
    def is_collaborator(self) -> bool:
        return self.role is Role.COLLABORATOR

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "employee_number": self.employee_number,
            "is_first_login": self.is_first_login,
            "role": self.role.value,
        }


@dataclass
class Admin(Principal):
    role: Role = Role.ADMIN


@dataclass
class Manager(Principal):
    role: Role = Role.MANAGER


@dataclass
class Collaborator(Principal):
    role: Role = Role.COLLABORATOR
    role_title: str = ""
    shift: str = "MATUTINO"
    avatar_initials: str = ""
    manager_id: int | None = None

    def __post_init__(self):
        if not self.avatar_initials:
            self.avatar_initials = avatar_initials(self.name)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d.update({
            "role_title": self.role_title,
            "shift": self.shift,
            "avatar_initials": self.avatar_initials,
            "manager_id": self.manager_id,
        })
        return d


PRINCIPAL_CLASSES = {
    Role.ADMIN: Admin,
    Role.MANAGER: Manager,
    Role.COLLABORATOR: Collaborator,
}


# ═══════════════════════════════════════════════════════════════
# Activities & catalog
# ═══════════════════════════════════════════════════════════════
@dataclass
class Activity:
    id: str
    collaborator_id: int
    day: int
    start_time: str
    end_time: str
    description: str
    completed: bool = False
    completed_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "collaborator_id": self.collaborator_id,
            "day": self.day,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "description": self.description,
            "completed": self.completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class ActivityDefinition:
    id: str
    name: str
    manager_id: int

    def to_dict(self) -> dict:
        return asdict(self)


# ═══════════════════════════════════════════════════════════════
# Tenant configuration
# ═══════════════════════════════════════════════════════════════
DEFAULT_BRANCH_FIELDS = {
    "name": "Nueva Sucursal",
    "ceco": "MX-00000",
    "region": "Sin Asignar",
    "territory": "Sin Asignar",
}

DEFAULT_SHIFT_HOURS = {
    "MATUTINO": ("08:00", "15:00"),
    "VESPERTINO": ("12:00", "20:00"),
}

DEFAULT_CATALOG = ["Apertura de Caja", "Cierre de Caja", "Atención a Clientes", "Hora de Comida"]


@dataclass
class BranchConfig:
    manager_id: int
    name: str = DEFAULT_BRANCH_FIELDS["name"]
    ceco: str = DEFAULT_BRANCH_FIELDS["ceco"]
    region: str = DEFAULT_BRANCH_FIELDS["region"]
    territory: str = DEFAULT_BRANCH_FIELDS["territory"]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ShiftSchedule:
    start: str
    end: str
    lunch: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "lunch": list(self.lunch)}


def _default_schedule(shift: str) -> ShiftSchedule:
    start, end = DEFAULT_SHIFT_HOURS[shift]
    return ShiftSchedule(start=start, end=end, lunch=list(DEFAULT_LUNCH_WINDOWS[shift]))


@dataclass
class ShiftConfig:
    manager_id: int
    matutino: ShiftSchedule = field(default_factory=lambda: _default_schedule("MATUTINO"))
    vespertino: ShiftSchedule = field(default_factory=lambda: _default_schedule("VESPERTINO"))

    def schedule_for(self, shift: str) -> ShiftSchedule | None:
        if shift == "MATUTINO":
            return self.matutino
        if shift == "VESPERTINO":
            return self.vespertino
        return None

    def to_dict(self) -> dict:
        return {
            "manager_id": self.manager_id,
            "MATUTINO": self.matutino.to_dict(),
            "VESPERTINO": self.vespertino.to_dict(),
        }


@dataclass
class EmergencyContact:
    id: str
    manager_id: int
    name: str
    phone: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TenantData:
    """Everything ``fetch_tenant_scoped_data`` returns for a set of tenants."""

    activity_definitions: list[ActivityDefinition] = field(default_factory=list)
    branch_configs: list[BranchConfig] = field(default_factory=list)
    shift_configs: list[ShiftConfig] = field(default_factory=list)
    emergency_contacts: list[EmergencyContact] = field(default_factory=list)
    collaborators: list[Collaborator] = field(default_factory=list)
    activities: list[Activity] = field(default_factory=list)


def default_branch_config(tenant_id: int) -> BranchConfig:
    return BranchConfig(manager_id=tenant_id)


def default_shift_config(tenant_id: int) -> ShiftConfig:
    return ShiftConfig(manager_id=tenant_id)


def shift_config_from_dict(tenant_id: int, data: dict, base: ShiftConfig | None = None) -> ShiftConfig:
    """Build a ShiftConfig from ``{"MATUTINO": {...}, "VESPERTINO": {...}}``.

    Missing shifts or keys keep the values from ``base`` (or the defaults).
    """
    base = base or default_shift_config(tenant_id)
    schedules = {}
    for shift in SHIFT_TYPES:
        current = base.schedule_for(shift)
        incoming = data.get(shift) or data.get(shift.lower()) or {}
        schedules[shift.lower()] = replace(
            current,
            start=incoming.get("start", current.start),
            end=incoming.get("end", current.end),
            lunch=list(incoming.get("lunch", current.lunch)),
        )
    return ShiftConfig(manager_id=tenant_id, **schedules)
