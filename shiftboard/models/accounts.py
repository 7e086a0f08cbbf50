"""
Account tables — admins, managers and collaborators.

Each role keeps its own table and id space, so a principal is always
addressed as (role, id). ``employee_number`` is the login handle; the
storage layer checks it for uniqueness across all three tables.
"""

from datetime import datetime, timezone

from shiftboard.domain import Admin, Collaborator, Manager
from shiftboard.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class _AccountColumns:
    name = db.Column(db.String(200), nullable=False)
    employee_number = db.Column(db.String(50), nullable=False, index=True)
    password_hash = db.Column(db.String(256))
    is_first_login = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=_utcnow)


# ═══════════════════════════════════════════════════════════════
# 1. ADMINS
# ═══════════════════════════════════════════════════════════════
class AdminAccount(_AccountColumns, db.Model):
    __tablename__ = "admins"

    id = db.Column(db.Integer, primary_key=True)

    def to_entity(self) -> Admin:
        return Admin(
            id=self.id,
            name=self.name,
            employee_number=self.employee_number,
            password_hash=self.password_hash,
            is_first_login=self.is_first_login,
        )


# ═══════════════════════════════════════════════════════════════
# 2. MANAGERS (one manager == one tenant)
# ═══════════════════════════════════════════════════════════════
class ManagerAccount(_AccountColumns, db.Model):
    __tablename__ = "managers"

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)

    collaborators = db.relationship("CollaboratorAccount", back_populates="manager", lazy="dynamic")

    def to_entity(self) -> Manager:
        return Manager(
            id=self.id,
            name=self.name,
            employee_number=self.employee_number,
            password_hash=self.password_hash,
            is_first_login=self.is_first_login,
        )


# ═══════════════════════════════════════════════════════════════
# 3. COLLABORATORS
# ═══════════════════════════════════════════════════════════════
class CollaboratorAccount(_AccountColumns, db.Model):
    __tablename__ = "collaborators"

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    manager_id = db.Column(
        db.Integer, db.ForeignKey("managers.id"), nullable=False, index=True
    )
    role_title = db.Column(db.String(200), default="")
    shift = db.Column(db.String(20), nullable=False, default="MATUTINO")  # MATUTINO, VESPERTINO
    avatar_initials = db.Column(db.String(4), default="")

    manager = db.relationship("ManagerAccount", back_populates="collaborators")
    activities = db.relationship(
        "ActivityRecord", back_populates="collaborator",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_entity(self) -> Collaborator:
        return Collaborator(
            id=self.id,
            name=self.name,
            employee_number=self.employee_number,
            password_hash=self.password_hash,
            is_first_login=self.is_first_login,
            role_title=self.role_title or "",
            shift=self.shift,
            avatar_initials=self.avatar_initials or "",
            manager_id=self.manager_id,
        )
