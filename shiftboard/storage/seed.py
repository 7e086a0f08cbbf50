"""Demo dataset: one branch, its manager, four collaborators and a Monday agenda.

Loaded when ``SEED_DEMO_DATA`` is on, or on demand with ``flask seed-demo``.

    Admin         admin   / root
    Manager 999   ADMIN01 / admin
    EMP001..004   password 123 (EMP001 and EMP003 must change it on first login)
"""

import logging

from shiftboard.domain import (
    Activity,
    ActivityDefinition,
    Admin,
    BranchConfig,
    Collaborator,
    EmergencyContact,
    Manager,
    default_shift_config,
)
from shiftboard.utils.crypto import hash_password

logger = logging.getLogger(__name__)

DEMO_MANAGER_ID = 999

DEMO_CATALOG = [
    "Apertura de Caja",
    "Cierre de Caja",
    "Arqueo de Caja",
    "Atención Ventanilla",
    "Revisión de Bóveda",
    "Atención a Clientes",
    "Llamadas de Seguimiento",
    "Capacitación",
    "Hora de Comida",
    "Trámite Administrativo",
]

# (id, name, role_title, shift, employee_number, is_first_login)
DEMO_COLLABORATORS = [
    (1, "Ana García", "Ejecutiva de Cuenta", "MATUTINO", "EMP001", True),
    (2, "Carlos Ruiz", "Cajero Principal", "MATUTINO", "EMP002", False),
    (3, "María López", "Atención al Cliente", "VESPERTINO", "EMP003", True),
    (4, "Juan Pérez", "Asesor Financiero", "VESPERTINO", "EMP004", False),
]

# (id, collaborator_id, start, end, description, completed), all on Monday (day 1)
DEMO_ACTIVITIES = [
    ("101", 1, "08:30", "09:00", "Apertura de Caja", True),
    ("102", 1, "09:00", "09:30", "Atención Ventanilla", True),
    ("103", 1, "09:30", "10:00", "Revisión de Bóveda", False),
    ("104", 2, "08:30", "09:00", "Apertura de Caja", True),
    ("105", 3, "12:00", "12:30", "Trámite Administrativo", False),
]

DEMO_CONTACTS = [
    ("1", "Seguridad Corporativa", "55-1234-5678"),
    ("2", "Soporte Sistemas", "800-999-0000"),
    ("3", "Gerente Regional", "55-5555-5555"),
]


def demo_dataset(now, bcrypt_rounds: int = 12) -> dict:
    """Build the demo entities; completed activities are stamped with ``now``."""
    def pw(plain):
        return hash_password(plain, rounds=bcrypt_rounds)

    collaborator_hash = pw("123")
    return {
        "admins": [
            Admin(id=1, name="Super Administrador", employee_number="admin",
                  password_hash=pw("root"), is_first_login=False),
        ],
        "managers": [
            Manager(id=DEMO_MANAGER_ID, name="Roberto Gerente", employee_number="ADMIN01",
                    password_hash=pw("admin"), is_first_login=False),
        ],
        "collaborators": [
            Collaborator(
                id=cid, name=name, role_title=title, shift=shift, employee_number=emp,
                password_hash=collaborator_hash, is_first_login=first, manager_id=DEMO_MANAGER_ID,
            )
            for cid, name, title, shift, emp, first in DEMO_COLLABORATORS
        ],
        "activities": [
            Activity(
                id=aid, collaborator_id=cid, day=1, start_time=start, end_time=end,
                description=desc, completed=done, completed_at=now if done else None,
            )
            for aid, cid, start, end, desc, done in DEMO_ACTIVITIES
        ],
        "catalog": [
            ActivityDefinition(id=f"def-{idx}", name=name, manager_id=DEMO_MANAGER_ID)
            for idx, name in enumerate(DEMO_CATALOG)
        ],
        "branch_configs": [
            BranchConfig(manager_id=DEMO_MANAGER_ID, name="Sucursal Centro Histórico",
                         ceco="MX-12345", region="Metropolitana Norte", territory="Zona 1"),
        ],
        "shift_configs": [default_shift_config(DEMO_MANAGER_ID)],
        "contacts": [
            EmergencyContact(id=cid, manager_id=DEMO_MANAGER_ID, name=name, phone=phone)
            for cid, name, phone in DEMO_CONTACTS
        ],
    }


def seed_backend(backend, now, bcrypt_rounds: int = 12) -> dict:
    """Load the demo dataset into ``backend``. Returns per-collection counts."""
    dataset = demo_dataset(now, bcrypt_rounds=bcrypt_rounds)
    backend.load(**dataset)
    counts = {name: len(items) for name, items in dataset.items()}
    logger.info("Demo data loaded", extra={"backend": backend.kind, **counts})
    return counts
