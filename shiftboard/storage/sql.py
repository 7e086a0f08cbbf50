"""
SQL storage backend (Flask-SQLAlchemy).

Works against any SQLAlchemy URL the app is configured with (SQLite in
development/tests, PostgreSQL in production). Must be used inside an
application context.

Every public method is one unit of work: it commits on success, rolls
back on any SQLAlchemy error and re-raises it as ``StorageError`` so the
caller never sees a half-applied change.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from shiftboard.core.exceptions import NotFoundError, StorageError
from shiftboard.domain import Role, TenantData, default_branch_config
from shiftboard.models import db
from shiftboard.models.accounts import AdminAccount, CollaboratorAccount, ManagerAccount
from shiftboard.models.schedule import (
    ActivityRecord,
    BranchConfigRecord,
    CatalogRecord,
    ContactRecord,
    ShiftConfigRecord,
)
from shiftboard.storage.base import StorageBackend, new_id
from shiftboard.storage.memory import MANAGER_ID_FLOOR
from shiftboard.utils.crypto import hash_password, verify_password
from shiftboard.utils.timeslots import avatar_initials

logger = logging.getLogger(__name__)

_ACCOUNT_MODELS = {
    Role.ADMIN: AdminAccount,
    Role.MANAGER: ManagerAccount,
    Role.COLLABORATOR: CollaboratorAccount,
}

_ACTIVITY_FIELDS = ("collaborator_id", "day", "start_time", "end_time", "description",
                    "completed", "completed_at")
_COLLABORATOR_FIELDS = ("name", "employee_number", "role_title", "shift", "manager_id",
                        "avatar_initials")
_MANAGER_FIELDS = ("name", "employee_number")
_BRANCH_FIELDS = ("name", "ceco", "region", "territory")


def _apply(row, fields: dict, allowed) -> None:
    for key, value in fields.items():
        if key in allowed:
            setattr(row, key, value)


class SqlBackend(StorageBackend):
    kind = "sql"

    def __init__(self, bcrypt_rounds: int = 12):
        self.bcrypt_rounds = bcrypt_rounds

    @contextmanager
    def _unit_of_work(self, action: str):
        try:
            yield db.session
            db.session.commit()
        except NotFoundError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Storage round trip failed: %s", action)
            raise StorageError(f"{action} failed") from exc

    def _hash(self, password: str) -> str:
        return hash_password(password, rounds=self.bcrypt_rounds)

    # ── Loading ─────────────────────────────────────────────────────────
    def load(self, *, admins=(), managers=(), collaborators=(), activities=(),
             catalog=(), branch_configs=(), shift_configs=(), contacts=()):
        with self._unit_of_work("load") as session:
            for a in admins:
                session.merge(AdminAccount(
                    id=a.id, name=a.name, employee_number=a.employee_number,
                    password_hash=a.password_hash, is_first_login=a.is_first_login,
                ))
            for m in managers:
                session.merge(ManagerAccount(
                    id=m.id, name=m.name, employee_number=m.employee_number,
                    password_hash=m.password_hash, is_first_login=m.is_first_login,
                ))
            session.flush()
            for c in collaborators:
                session.merge(CollaboratorAccount(
                    id=c.id, name=c.name, employee_number=c.employee_number,
                    password_hash=c.password_hash, is_first_login=c.is_first_login,
                    role_title=c.role_title, shift=c.shift,
                    avatar_initials=c.avatar_initials, manager_id=c.manager_id,
                ))
            session.flush()
            for a in activities:
                session.merge(ActivityRecord(
                    id=a.id, collaborator_id=a.collaborator_id, day=a.day,
                    start_time=a.start_time, end_time=a.end_time, description=a.description,
                    completed=a.completed, completed_at=a.completed_at,
                ))
            for d in catalog:
                session.merge(CatalogRecord(id=d.id, name=d.name, manager_id=d.manager_id))
            for b in branch_configs:
                session.merge(BranchConfigRecord(
                    manager_id=b.manager_id, name=b.name, ceco=b.ceco,
                    region=b.region, territory=b.territory,
                ))
            for s in shift_configs:
                session.merge(ShiftConfigRecord(
                    manager_id=s.manager_id,
                    matutino=s.matutino.to_dict(),
                    vespertino=s.vespertino.to_dict(),
                ))
            for c in contacts:
                session.merge(ContactRecord(
                    id=c.id, manager_id=c.manager_id, name=c.name, phone=c.phone,
                ))

    # ── Auth ────────────────────────────────────────────────────────────
    def authenticate(self, employee_number, password):
        with self._unit_of_work("authenticate") as session:
            for role in (Role.ADMIN, Role.MANAGER, Role.COLLABORATOR):
                model = _ACCOUNT_MODELS[role]
                rows = session.execute(
                    select(model).where(model.employee_number == employee_number)
                ).scalars().all()
                for row in rows:
                    if verify_password(password, row.password_hash):
                        return row.to_entity()
        return None

    def change_credential(self, role, principal_id, new_password):
        with self._unit_of_work("change_credential") as session:
            row = session.get(_ACCOUNT_MODELS[role], principal_id)
            if row is None:
                raise NotFoundError(resource=role.value.title(), resource_id=principal_id)
            row.password_hash = self._hash(new_password)
            row.is_first_login = False
            session.flush()
            return row.to_entity()

    def get_principal(self, role, principal_id):
        with self._unit_of_work("get_principal") as session:
            row = session.get(_ACCOUNT_MODELS[role], principal_id)
            return row.to_entity() if row else None

    def employee_number_taken(self, employee_number, exclude=None):
        with self._unit_of_work("employee_number_taken") as session:
            for role, model in _ACCOUNT_MODELS.items():
                stmt = select(model.id).where(model.employee_number == employee_number)
                if exclude and exclude[0] == role:
                    stmt = stmt.where(model.id != exclude[1])
                if session.execute(stmt).first() is not None:
                    return True
        return False

    # ── Collections ─────────────────────────────────────────────────────
    def list_admins(self):
        with self._unit_of_work("list_admins") as session:
            rows = session.execute(select(AdminAccount).order_by(AdminAccount.id)).scalars()
            return [r.to_entity() for r in rows]

    def list_managers(self):
        with self._unit_of_work("list_managers") as session:
            rows = session.execute(select(ManagerAccount).order_by(ManagerAccount.id)).scalars()
            return [r.to_entity() for r in rows]

    def fetch_tenant_scoped_data(self, tenant_ids):
        def scoped(model):
            stmt = select(model)
            if tenant_ids is not None:
                stmt = stmt.where(model.manager_id.in_(sorted(tenant_ids)))
            return session.execute(stmt).scalars().all()

        with self._unit_of_work("fetch_tenant_scoped_data") as session:
            collaborators = sorted(scoped(CollaboratorAccount), key=lambda c: c.id)
            collaborator_ids = [c.id for c in collaborators]
            activities = []
            if collaborator_ids:
                activities = session.execute(
                    select(ActivityRecord).where(ActivityRecord.collaborator_id.in_(collaborator_ids))
                ).scalars().all()
            return TenantData(
                activity_definitions=[r.to_entity() for r in scoped(CatalogRecord)],
                branch_configs=[r.to_entity() for r in scoped(BranchConfigRecord)],
                shift_configs=[r.to_entity() for r in scoped(ShiftConfigRecord)],
                emergency_contacts=[r.to_entity() for r in scoped(ContactRecord)],
                collaborators=[r.to_entity() for r in collaborators],
                activities=[r.to_entity() for r in activities],
            )

    # ── Activities ──────────────────────────────────────────────────────
    def create_activity(self, fields):
        with self._unit_of_work("create_activity") as session:
            row = ActivityRecord(id=new_id())
            _apply(row, fields, _ACTIVITY_FIELDS)
            session.add(row)
            session.flush()
            return row.to_entity()

    def update_activity(self, activity_id, fields):
        with self._unit_of_work("update_activity") as session:
            row = session.get(ActivityRecord, activity_id)
            if row is None:
                raise NotFoundError(resource="Activity", resource_id=activity_id)
            _apply(row, fields, _ACTIVITY_FIELDS)
            session.flush()
            return row.to_entity()

    def delete_activity(self, activity_id):
        with self._unit_of_work("delete_activity") as session:
            row = session.get(ActivityRecord, activity_id)
            if row is None:
                return False
            session.delete(row)
            return True

    # ── Collaborators ───────────────────────────────────────────────────
    def create_collaborator(self, fields, password):
        with self._unit_of_work("create_collaborator") as session:
            next_id = (session.execute(select(func.max(CollaboratorAccount.id))).scalar() or 0) + 1
            row = CollaboratorAccount(
                id=next_id, password_hash=self._hash(password), is_first_login=True,
            )
            _apply(row, fields, _COLLABORATOR_FIELDS)
            if not row.avatar_initials:
                row.avatar_initials = avatar_initials(row.name)
            session.add(row)
            session.flush()
            return row.to_entity()

    def update_collaborator(self, collaborator_id, fields):
        with self._unit_of_work("update_collaborator") as session:
            row = session.get(CollaboratorAccount, collaborator_id)
            if row is None:
                raise NotFoundError(resource="Collaborator", resource_id=collaborator_id)
            _apply(row, fields, _COLLABORATOR_FIELDS)
            if "name" in fields and "avatar_initials" not in fields:
                row.avatar_initials = avatar_initials(row.name)
            session.flush()
            return row.to_entity()

    def delete_collaborator(self, collaborator_id):
        with self._unit_of_work("delete_collaborator") as session:
            row = session.get(CollaboratorAccount, collaborator_id)
            if row is None:
                return False
            session.execute(
                ActivityRecord.__table__.delete().where(
                    ActivityRecord.collaborator_id == collaborator_id
                )
            )
            session.delete(row)
            return True

    # ── Managers ────────────────────────────────────────────────────────
    def create_manager(self, fields, password):
        with self._unit_of_work("create_manager") as session:
            current_max = session.execute(select(func.max(ManagerAccount.id))).scalar() or 0
            row = ManagerAccount(
                id=max(current_max, MANAGER_ID_FLOOR) + 1,
                password_hash=self._hash(password),
                is_first_login=True,
            )
            _apply(row, fields, _MANAGER_FIELDS)
            session.add(row)
            session.flush()
            return row.to_entity()

    def update_manager(self, manager_id, fields):
        with self._unit_of_work("update_manager") as session:
            row = session.get(ManagerAccount, manager_id)
            if row is None:
                raise NotFoundError(resource="Manager", resource_id=manager_id)
            _apply(row, fields, _MANAGER_FIELDS)
            session.flush()
            return row.to_entity()

    def delete_manager(self, manager_id):
        with self._unit_of_work("delete_manager") as session:
            row = session.get(ManagerAccount, manager_id)
            if row is None:
                return False
            for model in (BranchConfigRecord, ShiftConfigRecord, CatalogRecord, ContactRecord):
                session.execute(model.__table__.delete().where(model.manager_id == manager_id))
            session.delete(row)
            return True

    # ── Tenant configuration ────────────────────────────────────────────
    def upsert_branch_config(self, tenant_id, fields):
        with self._unit_of_work("upsert_branch_config") as session:
            row = session.get(BranchConfigRecord, tenant_id)
            if row is None:
                defaults = default_branch_config(tenant_id)
                row = BranchConfigRecord(
                    manager_id=tenant_id, name=defaults.name, ceco=defaults.ceco,
                    region=defaults.region, territory=defaults.territory,
                )
                session.add(row)
            _apply(row, fields, _BRANCH_FIELDS)
            session.flush()
            return row.to_entity()

    def upsert_shift_config(self, tenant_id, config):
        with self._unit_of_work("upsert_shift_config") as session:
            row = session.get(ShiftConfigRecord, tenant_id)
            if row is None:
                row = ShiftConfigRecord(manager_id=tenant_id)
                session.add(row)
            row.matutino = config.matutino.to_dict()
            row.vespertino = config.vespertino.to_dict()
            session.flush()
            return row.to_entity()

    def add_catalog_entry(self, tenant_id, name):
        with self._unit_of_work("add_catalog_entry") as session:
            exists = session.execute(
                select(CatalogRecord.id).where(
                    CatalogRecord.manager_id == tenant_id, CatalogRecord.name == name
                )
            ).first()
            if exists is not None:
                return None
            row = CatalogRecord(id=new_id(), manager_id=tenant_id, name=name)
            session.add(row)
            session.flush()
            return row.to_entity()

    def remove_catalog_entry(self, tenant_id, name):
        with self._unit_of_work("remove_catalog_entry") as session:
            result = session.execute(
                CatalogRecord.__table__.delete().where(
                    CatalogRecord.manager_id == tenant_id, CatalogRecord.name == name
                )
            )
            return result.rowcount > 0

    def add_contact(self, tenant_id, name, phone):
        with self._unit_of_work("add_contact") as session:
            row = ContactRecord(id=new_id(), manager_id=tenant_id, name=name, phone=phone)
            session.add(row)
            session.flush()
            return row.to_entity()

    def remove_contact(self, tenant_id, contact_id):
        with self._unit_of_work("remove_contact") as session:
            row = session.get(ContactRecord, contact_id)
            if row is None or row.manager_id != tenant_id:
                return False
            session.delete(row)
            return True

    def ping(self):
        try:
            db.session.execute(select(1))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError("database unreachable") from exc
        return {"status": "ok", "backend": self.kind}
