"""
Schedule tables — activities plus per-tenant catalog and configuration.

Tenant-scoped rows carry ``manager_id``. Branch and shift configuration
are one row per tenant (``manager_id`` is the primary key).
"""

from datetime import datetime, timezone

from shiftboard.domain import (
    Activity,
    ActivityDefinition,
    BranchConfig,
    EmergencyContact,
    ShiftConfig,
    ShiftSchedule,
)
from shiftboard.models import db


# ═══════════════════════════════════════════════════════════════
# ACTIVITIES
# ═══════════════════════════════════════════════════════════════
class ActivityRecord(db.Model):
    __tablename__ = "activities"

    id = db.Column(db.String(36), primary_key=True)
    collaborator_id = db.Column(
        db.Integer, db.ForeignKey("collaborators.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    day = db.Column(db.Integer, nullable=False)  # 0=Sunday..6=Saturday
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)
    description = db.Column(db.String(300), nullable=False)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    collaborator = db.relationship("CollaboratorAccount", back_populates="activities")

    def to_entity(self) -> Activity:
        return Activity(
            id=self.id,
            collaborator_id=self.collaborator_id,
            day=self.day,
            start_time=self.start_time,
            end_time=self.end_time,
            description=self.description,
            completed=bool(self.completed),
            completed_at=self.completed_at,
        )


# ═══════════════════════════════════════════════════════════════
# TENANT CATALOG & CONFIG
# ═══════════════════════════════════════════════════════════════
class CatalogRecord(db.Model):
    __tablename__ = "activity_definitions"
    __table_args__ = (
        db.UniqueConstraint("manager_id", "name", name="uq_activity_definition_tenant_name"),
    )

    id = db.Column(db.String(36), primary_key=True)
    manager_id = db.Column(
        db.Integer, db.ForeignKey("managers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(200), nullable=False)

    def to_entity(self) -> ActivityDefinition:
        return ActivityDefinition(id=self.id, name=self.name, manager_id=self.manager_id)


class BranchConfigRecord(db.Model):
    __tablename__ = "branch_configs"

    manager_id = db.Column(
        db.Integer, db.ForeignKey("managers.id", ondelete="CASCADE"), primary_key=True
    )
    name = db.Column(db.String(200), nullable=False)
    ceco = db.Column(db.String(50), nullable=False)
    region = db.Column(db.String(200), nullable=False)
    territory = db.Column(db.String(200), nullable=False)

    def to_entity(self) -> BranchConfig:
        return BranchConfig(
            manager_id=self.manager_id,
            name=self.name,
            ceco=self.ceco,
            region=self.region,
            territory=self.territory,
        )


class ShiftConfigRecord(db.Model):
    __tablename__ = "shift_configs"

    manager_id = db.Column(
        db.Integer, db.ForeignKey("managers.id", ondelete="CASCADE"), primary_key=True
    )
    # {"start": "08:00", "end": "15:00", "lunch": ["13:00", "13:30"]}
    matutino = db.Column(db.JSON, nullable=False)
    vespertino = db.Column(db.JSON, nullable=False)

    def to_entity(self) -> ShiftConfig:
        return ShiftConfig(
            manager_id=self.manager_id,
            matutino=ShiftSchedule(**self.matutino),
            vespertino=ShiftSchedule(**self.vespertino),
        )


class ContactRecord(db.Model):
    __tablename__ = "emergency_contacts"

    id = db.Column(db.String(36), primary_key=True)
    manager_id = db.Column(
        db.Integer, db.ForeignKey("managers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(50), nullable=False)

    def to_entity(self) -> EmergencyContact:
        return EmergencyContact(
            id=self.id, manager_id=self.manager_id, name=self.name, phone=self.phone
        )
