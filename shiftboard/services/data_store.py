"""
Tenancy-aware data store.

One ``DataStore`` is built per authenticated principal (per request at the
HTTP layer). It loads the principal's slice of the data from the storage
backend, serves every read through the visibility filter, and applies
mutations after the authorization and validation checks pass.

Error contract:
    - AuthorizationError / ValidationError / NotFoundError / ConflictError
      propagate to the caller; nothing is written.
    - StorageError from the backend is logged and swallowed: the operation
      returns None (or False) and the cached state is left as it was.

Local cache entries are replaced only with what the backend returned, so
the cache never runs ahead of storage.
"""

import logging

from shiftboard.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    FirstLoginRequired,
    NotFoundError,
    StorageError,
    ValidationError,
)
from shiftboard.domain import (
    DEFAULT_CATALOG,
    SHIFT_TYPES,
    Role,
    TenantData,
    default_branch_config,
    default_shift_config,
    shift_config_from_dict,
)
from shiftboard.services import tenancy
from shiftboard.utils.timeslots import avatar_initials, is_valid_time, time_to_minutes

logger = logging.getLogger(__name__)

DEFAULT_COLLABORATOR_PASSWORD = "123"

ACTIVITY_FIELDS = ("collaborator_id", "day", "start_time", "end_time", "description")
ACTIVITY_EDITABLE = ACTIVITY_FIELDS + ("completed",)
COLLABORATOR_EDITABLE = ("name", "employee_number", "role_title", "shift", "manager_id")
MANAGER_EDITABLE = ("name", "employee_number")
BRANCH_EDITABLE = ("name", "ceco", "region", "territory")

_FAILED = object()


def _require_text(fields: dict, keys) -> dict:
    missing = {
        k: "required" for k in keys
        if not isinstance(fields.get(k), str) or not fields.get(k).strip()
    }
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(sorted(missing))}", details=missing)
    return {k: fields[k].strip() for k in keys}


def _reject_unknown(updates: dict, allowed) -> None:
    unknown = sorted(set(updates) - set(allowed))
    if unknown:
        raise ValidationError(
            f"Fields cannot be updated: {', '.join(unknown)}",
            details={k: "not editable" for k in unknown},
        )


def _reject_role_change(updates: dict, role: Role) -> dict:
    updates = dict(updates)
    if "role" in updates:
        if updates.pop("role") != role.value:
            raise ValidationError("Role cannot be changed", details={"role": "immutable"})
    return updates


def _validate_day(day) -> int:
    if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
        raise ValidationError("day must be an integer 0 (Sunday) to 6 (Saturday)",
                              details={"day": "0..6"})
    return day


def _validate_window(start_time, end_time) -> None:
    bad = {k: "HH:MM" for k, v in (("start_time", start_time), ("end_time", end_time))
           if not is_valid_time(v)}
    if bad:
        raise ValidationError("Times must use the HH:MM format", details=bad)
    if time_to_minutes(end_time) <= time_to_minutes(start_time):
        raise ValidationError("end_time must be after start_time",
                              details={"end_time": "must be after start_time"})


def _validate_shift_payload(fields: dict) -> None:
    for shift in SHIFT_TYPES:
        for incoming in (fields[k] for k in (shift, shift.lower()) if k in fields):
            _validate_shift_entry(shift, incoming)


def _validate_shift_entry(shift: str, incoming) -> None:
    if not isinstance(incoming, dict):
        raise ValidationError(f"{shift} must be an object with start, end and lunch",
                              details={shift: "object"})
    lunch = incoming.get("lunch", [])
    if not isinstance(lunch, list) or not all(isinstance(slot, str) for slot in lunch):
        raise ValidationError(f"{shift}: lunch must be a list of HH:MM slots",
                              details={shift: {"lunch": "list of HH:MM"}})


class DataStore:
    """Operations available to one authenticated principal.

    Args:
        backend: Any ``StorageBackend``.
        clock: Injected ``Clock``; read whenever "now" is needed.
        principal: The logged-in principal (first-login already cleared).
        selected_tenant_id: Admin-only explicit tenant selection.

    Raises:
        AuthenticationError: No principal.
        FirstLoginRequired: Principal must change the password first.
    """

    def __init__(self, backend, clock, principal, selected_tenant_id: int | None = None):
        if principal is None:
            raise AuthenticationError("Not authenticated")
        if principal.is_first_login:
            raise FirstLoginRequired()
        self.backend = backend
        self.clock = clock
        self.principal = principal
        self.selected_tenant_id = selected_tenant_id
        self._managers = []
        self._admins = []
        self._data = TenantData()
        self.loaded = self.refresh()

    # ── Plumbing ────────────────────────────────────────────────────────
    def _log_extra(self, **extra) -> dict:
        return {"principal_id": self.principal.id, "role": self.principal.role.value, **extra}

    def _call(self, action: str, fn, *args, **kwargs):
        """Run one backend round trip; ``_FAILED`` on StorageError."""
        try:
            return fn(*args, **kwargs)
        except StorageError:
            logger.exception("Storage call failed: %s", action, extra=self._log_extra(action=action))
            return _FAILED

    def _require_role(self, action: str, *roles: Role) -> None:
        if self.principal.role not in roles:
            logger.warning("Denied %s", action, extra=self._log_extra(action=action))
            raise AuthorizationError(action, self.principal.role.value)

    def _require_staff(self, action: str) -> None:
        self._require_role(action, Role.ADMIN, Role.MANAGER)

    def _scope(self) -> set[int] | None:
        if self.principal.is_admin:
            return None
        if self.principal.is_manager:
            return {self.principal.id}
        return {self.principal.manager_id}

    def refresh(self) -> bool:
        """Reload the principal's slice from the backend. False keeps the previous state."""
        try:
            managers = self.backend.list_managers()
            admins = self.backend.list_admins() if self.principal.is_admin else []
            data = self.backend.fetch_tenant_scoped_data(self._scope())
        except StorageError:
            logger.exception("Initial load failed", extra=self._log_extra())
            return False
        self._managers, self._admins, self._data = managers, admins, data
        return True

    def _employee_number_free(self, employee_number: str, exclude=None):
        taken = self._call("employee_number_taken", self.backend.employee_number_taken,
                           employee_number, exclude)
        if taken is _FAILED:
            return _FAILED
        if taken:
            raise ConflictError(resource="Principal", field="employee_number", value=employee_number)
        return True

    # ═══════════════════════════════════════════════════════════════
    # Reads
    # ═══════════════════════════════════════════════════════════════
    def managers(self) -> list:
        if self.principal.is_admin:
            return list(self._managers)
        tenant_id = self.context_tenant_id()
        return [m for m in self._managers if m.id == tenant_id]

    def admins(self) -> list:
        return list(self._admins) if self.principal.is_admin else []

    def visible_collaborators(self) -> list:
        return tenancy.visible_collaborators(self.principal, self._data.collaborators)

    def visible_activities(self) -> list:
        return tenancy.visible_activities(
            self.principal, self._data.collaborators, self._data.activities
        )

    def team_members(self) -> list:
        return tenancy.team_members(self.principal, self._data.collaborators)

    def context_tenant_id(self) -> int:
        return tenancy.resolve_context_tenant(
            self.principal, self._managers, self.selected_tenant_id
        )

    def branch_config(self):
        return tenancy.pick_tenant_record(
            self._data.branch_configs, self.context_tenant_id(), default_branch_config
        )

    def shift_config(self):
        return tenancy.pick_tenant_record(
            self._data.shift_configs, self.context_tenant_id(), default_shift_config
        )

    def shift_config_for(self, tenant_id: int):
        """Shift config of an arbitrary visible tenant (admin board rows)."""
        return tenancy.pick_tenant_record(self._data.shift_configs, tenant_id, default_shift_config)

    def activity_types(self) -> list[str]:
        tenant_id = self.context_tenant_id()
        return [d.name for d in self._data.activity_definitions if d.manager_id == tenant_id]

    def emergency_contacts(self) -> list:
        tenant_id = self.context_tenant_id()
        return [c for c in self._data.emergency_contacts if c.manager_id == tenant_id]

    def find_collaborator(self, collaborator_id: int):
        for c in self.visible_collaborators():
            if c.id == collaborator_id:
                return c
        raise NotFoundError(resource="Collaborator", resource_id=collaborator_id)

    def find_activity(self, activity_id: str):
        for a in self.visible_activities():
            if a.id == activity_id:
                return a
        raise NotFoundError(resource="Activity", resource_id=activity_id)

    def find_manager(self, manager_id: int):
        for m in self._managers:
            if m.id == manager_id:
                return m
        raise NotFoundError(resource="Manager", resource_id=manager_id)

    # ═══════════════════════════════════════════════════════════════
    # Activities
    # ═══════════════════════════════════════════════════════════════
    def add_activity(self, fields: dict):
        """Schedule a new activity for a visible collaborator.

        Returns:
            The stored Activity, or None if the backend call failed.

        Raises:
            AuthorizationError: Collaborators cannot schedule activities.
            ValidationError: Missing fields, bad day/time, end not after start.
            NotFoundError: Collaborator not visible to the caller.
        """
        self._require_staff("add_activity")
        missing = {k: "required" for k in ACTIVITY_FIELDS if fields.get(k) in (None, "")}
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(sorted(missing))}", details=missing
            )
        day = _validate_day(fields["day"])
        _validate_window(fields["start_time"], fields["end_time"])
        description = _require_text(fields, ("description",))["description"]
        collaborator = self.find_collaborator(fields["collaborator_id"])

        payload = {
            "collaborator_id": collaborator.id,
            "day": day,
            "start_time": fields["start_time"],
            "end_time": fields["end_time"],
            "description": description,
            "completed": False,
            "completed_at": None,
        }
        created = self._call("add_activity", self.backend.create_activity, payload)
        if created is _FAILED:
            return None
        self._data.activities.append(created)
        logger.info("Activity scheduled", extra=self._log_extra(
            activity_id=created.id, collaborator_id=collaborator.id))
        return created

    def update_activity(self, activity_id: str, updates: dict):
        """Edit an activity or toggle its completion.

        Collaborators may only toggle ``completed`` on their own activities.
        ``completed_at`` is stamped from the clock on a false→true transition
        and cleared when the activity is un-completed.
        """
        current = self.find_activity(activity_id)
        updates = dict(updates)

        if self.principal.is_collaborator:
            if current.collaborator_id != self.principal.id:
                raise AuthorizationError("update another collaborator's activity",
                                         self.principal.role.value)
            if set(updates) - {"completed"}:
                raise AuthorizationError("edit activity fields", self.principal.role.value)
        else:
            _reject_unknown(updates, ACTIVITY_EDITABLE)

        changes = {}
        if "day" in updates:
            changes["day"] = _validate_day(updates["day"])
        if "start_time" in updates or "end_time" in updates:
            start = updates.get("start_time", current.start_time)
            end = updates.get("end_time", current.end_time)
            _validate_window(start, end)
            changes.update(start_time=start, end_time=end)
        if "description" in updates:
            changes["description"] = _require_text(updates, ("description",))["description"]
        if "collaborator_id" in updates:
            changes["collaborator_id"] = self.find_collaborator(updates["collaborator_id"]).id
        if "completed" in updates:
            completed = updates["completed"]
            if not isinstance(completed, bool):
                raise ValidationError("completed must be true or false",
                                      details={"completed": "boolean"})
            changes["completed"] = completed
            if completed and not current.completed:
                changes["completed_at"] = self.clock.now()
            elif not completed:
                changes["completed_at"] = None

        if not changes:
            return current

        updated = self._call("update_activity", self.backend.update_activity, activity_id, changes)
        if updated is _FAILED:
            return None
        self._data.activities = [updated if a.id == activity_id else a for a in self._data.activities]
        return updated

    def toggle_activity(self, activity_id: str):
        """Flip the completion flag (the collaborator's checkbox)."""
        current = self.find_activity(activity_id)
        return self.update_activity(activity_id, {"completed": not current.completed})

    def delete_activity(self, activity_id: str) -> bool:
        self._require_staff("delete_activity")
        self.find_activity(activity_id)
        deleted = self._call("delete_activity", self.backend.delete_activity, activity_id)
        if deleted is _FAILED or not deleted:
            return False
        self._data.activities = [a for a in self._data.activities if a.id != activity_id]
        return True

    # ═══════════════════════════════════════════════════════════════
    # Collaborators
    # ═══════════════════════════════════════════════════════════════
    def _owning_manager_id(self, requested) -> int:
        if self.principal.is_manager:
            return self.principal.id
        if requested in (None, ""):
            raise ValidationError("manager_id is required", details={"manager_id": "required"})
        try:
            return self.find_manager(requested).id
        except NotFoundError:
            raise ValidationError(
                f"manager_id {requested} is not a manager", details={"manager_id": "unknown manager"}
            ) from None

    @staticmethod
    def _validate_shift(shift) -> str:
        if shift not in SHIFT_TYPES:
            raise ValidationError(f"shift must be one of {', '.join(SHIFT_TYPES)}",
                                  details={"shift": "invalid"})
        return shift

    def add_collaborator(self, fields: dict):
        """Create a collaborator in the caller's tenant (admin: ``manager_id``).

        New collaborators get the default password and must change it on
        first login.
        """
        self._require_staff("add_collaborator")
        fields = _reject_role_change(fields, Role.COLLABORATOR)
        text = _require_text(fields, ("name", "employee_number"))
        shift = self._validate_shift(fields.get("shift", "MATUTINO"))
        manager_id = self._owning_manager_id(fields.get("manager_id"))

        if self._employee_number_free(text["employee_number"]) is _FAILED:
            return None

        payload = {
            "name": text["name"],
            "employee_number": text["employee_number"],
            "role_title": (fields.get("role_title") or "").strip(),
            "shift": shift,
            "manager_id": manager_id,
            "avatar_initials": avatar_initials(text["name"]),
        }
        created = self._call("add_collaborator", self.backend.create_collaborator,
                             payload, DEFAULT_COLLABORATOR_PASSWORD)
        if created is _FAILED:
            return None
        self._data.collaborators.append(created)
        logger.info("Collaborator created", extra=self._log_extra(
            collaborator_id=created.id, tenant_id=manager_id))
        return created

    def update_collaborator(self, collaborator_id: int, updates: dict):
        self._require_staff("update_collaborator")
        current = self.find_collaborator(collaborator_id)
        updates = _reject_role_change(updates, Role.COLLABORATOR)
        updates.pop("id", None)
        _reject_unknown(updates, COLLABORATOR_EDITABLE)

        changes = {}
        if "name" in updates:
            changes["name"] = _require_text(updates, ("name",))["name"]
            changes["avatar_initials"] = avatar_initials(changes["name"])
        if "role_title" in updates:
            changes["role_title"] = (updates["role_title"] or "").strip()
        if "shift" in updates:
            changes["shift"] = self._validate_shift(updates["shift"])
        if "manager_id" in updates and updates["manager_id"] != current.manager_id:
            if not self.principal.is_admin:
                raise AuthorizationError("reassign collaborator", self.principal.role.value)
            changes["manager_id"] = self._owning_manager_id(updates["manager_id"])
        if "employee_number" in updates:
            number = _require_text(updates, ("employee_number",))["employee_number"]
            if number != current.employee_number:
                exclude = (Role.COLLABORATOR, collaborator_id)
                if self._employee_number_free(number, exclude) is _FAILED:
                    return None
            changes["employee_number"] = number

        if not changes:
            return current
        updated = self._call("update_collaborator", self.backend.update_collaborator,
                             collaborator_id, changes)
        if updated is _FAILED:
            return None
        self._data.collaborators = [
            updated if c.id == collaborator_id else c for c in self._data.collaborators
        ]
        return updated

    def delete_collaborator(self, collaborator_id: int) -> bool:
        """Delete a collaborator and every activity assigned to them."""
        self._require_staff("delete_collaborator")
        self.find_collaborator(collaborator_id)
        deleted = self._call("delete_collaborator", self.backend.delete_collaborator, collaborator_id)
        if deleted is _FAILED or not deleted:
            return False
        self._data.collaborators = [c for c in self._data.collaborators if c.id != collaborator_id]
        self._data.activities = [
            a for a in self._data.activities if a.collaborator_id != collaborator_id
        ]
        logger.info("Collaborator deleted", extra=self._log_extra(collaborator_id=collaborator_id))
        return True

    # ═══════════════════════════════════════════════════════════════
    # Managers (admin only)
    # ═══════════════════════════════════════════════════════════════
    def add_manager(self, fields: dict):
        """Create a manager tenant and provision its default configuration.

        The initial password is the employee number; the manager must change
        it on first login. Default branch config, shift config and the
        starter catalog are written right after the account.
        """
        self._require_role("add_manager", Role.ADMIN)
        fields = _reject_role_change(fields, Role.MANAGER)
        text = _require_text(fields, ("name", "employee_number"))
        if self._employee_number_free(text["employee_number"]) is _FAILED:
            return None

        manager = self._call("add_manager", self.backend.create_manager,
                             text, text["employee_number"])
        if manager is _FAILED:
            return None
        self._managers.append(manager)

        branch = self._call("provision_branch", self.backend.upsert_branch_config, manager.id, {})
        if branch is not _FAILED:
            self._data.branch_configs.append(branch)
        shifts = self._call("provision_shifts", self.backend.upsert_shift_config,
                            manager.id, default_shift_config(manager.id))
        if shifts is not _FAILED:
            self._data.shift_configs.append(shifts)
        for name in DEFAULT_CATALOG:
            entry = self._call("provision_catalog", self.backend.add_catalog_entry, manager.id, name)
            if entry not in (_FAILED, None):
                self._data.activity_definitions.append(entry)

        logger.info("Manager created", extra=self._log_extra(tenant_id=manager.id))
        return manager

    def update_manager(self, manager_id: int, updates: dict):
        self._require_role("update_manager", Role.ADMIN)
        current = self.find_manager(manager_id)
        updates = _reject_role_change(updates, Role.MANAGER)
        updates.pop("id", None)
        _reject_unknown(updates, MANAGER_EDITABLE)

        changes = {}
        if "name" in updates:
            changes["name"] = _require_text(updates, ("name",))["name"]
        if "employee_number" in updates:
            number = _require_text(updates, ("employee_number",))["employee_number"]
            if number != current.employee_number:
                if self._employee_number_free(number, (Role.MANAGER, manager_id)) is _FAILED:
                    return None
            changes["employee_number"] = number
        if not changes:
            return current

        updated = self._call("update_manager", self.backend.update_manager, manager_id, changes)
        if updated is _FAILED:
            return None
        self._managers = [updated if m.id == manager_id else m for m in self._managers]
        return updated

    def delete_manager(self, manager_id: int) -> bool:
        """Delete a manager tenant together with its configuration.

        Raises:
            ValidationError: The manager still owns collaborators.
        """
        self._require_role("delete_manager", Role.ADMIN)
        self.find_manager(manager_id)
        owned = [c.id for c in self._data.collaborators if c.manager_id == manager_id]
        if owned:
            raise ValidationError(
                "Reassign or delete this manager's collaborators first",
                details={"collaborators": owned},
            )
        deleted = self._call("delete_manager", self.backend.delete_manager, manager_id)
        if deleted is _FAILED or not deleted:
            return False

        self._managers = [m for m in self._managers if m.id != manager_id]
        data = self._data
        data.branch_configs = [b for b in data.branch_configs if b.manager_id != manager_id]
        data.shift_configs = [s for s in data.shift_configs if s.manager_id != manager_id]
        data.activity_definitions = [
            d for d in data.activity_definitions if d.manager_id != manager_id
        ]
        data.emergency_contacts = [c for c in data.emergency_contacts if c.manager_id != manager_id]
        if self.selected_tenant_id == manager_id:
            self.selected_tenant_id = None
        logger.info("Manager deleted", extra=self._log_extra(tenant_id=manager_id))
        return True

    # ═══════════════════════════════════════════════════════════════
    # Tenant configuration
    # ═══════════════════════════════════════════════════════════════
    def _config_tenant(self, action: str) -> int:
        self._require_staff(action)
        return self.context_tenant_id()

    def add_activity_type(self, name: str):
        """Add a catalog entry. Adding an existing name is a no-op returning that entry."""
        tenant_id = self._config_tenant("add_activity_type")
        name = _require_text({"name": name}, ("name",))["name"]
        for d in self._data.activity_definitions:
            if d.manager_id == tenant_id and d.name == name:
                return d

        entry = self._call("add_activity_type", self.backend.add_catalog_entry, tenant_id, name)
        if entry is _FAILED:
            return None
        if entry is None:
            # Inserted concurrently; pick it up from storage.
            self.refresh()
            return next((d for d in self._data.activity_definitions
                         if d.manager_id == tenant_id and d.name == name), None)
        self._data.activity_definitions.append(entry)
        return entry

    def remove_activity_type(self, name: str) -> bool:
        tenant_id = self._config_tenant("remove_activity_type")
        if name not in self.activity_types():
            raise NotFoundError(resource="ActivityDefinition", resource_id=name, tenant_id=tenant_id)
        removed = self._call("remove_activity_type", self.backend.remove_catalog_entry,
                             tenant_id, name)
        if removed is _FAILED or not removed:
            return False
        self._data.activity_definitions = [
            d for d in self._data.activity_definitions
            if not (d.manager_id == tenant_id and d.name == name)
        ]
        return True

    def update_branch_config(self, fields: dict):
        tenant_id = self._config_tenant("update_branch_config")
        _reject_unknown({k: v for k, v in fields.items() if k != "manager_id"}, BRANCH_EDITABLE)
        changes = _require_text(fields, [k for k in BRANCH_EDITABLE if k in fields])

        saved = self._call("update_branch_config", self.backend.upsert_branch_config,
                           tenant_id, changes)
        if saved is _FAILED:
            return None
        self._data.branch_configs = [
            b for b in self._data.branch_configs if b.manager_id != tenant_id
        ] + [saved]
        return saved

    def update_shift_config(self, fields: dict):
        """Merge shift hours / lunch windows over the tenant's current config."""
        tenant_id = self._config_tenant("update_shift_config")
        _validate_shift_payload(fields)
        merged = shift_config_from_dict(tenant_id, fields, base=self.shift_config())
        for shift in SHIFT_TYPES:
            schedule = merged.schedule_for(shift)
            try:
                _validate_window(schedule.start, schedule.end)
            except ValidationError as exc:
                raise ValidationError(f"{shift}: {exc}", details={shift: exc.details}) from None
            bad_lunch = [slot for slot in schedule.lunch if not is_valid_time(slot)]
            if bad_lunch:
                raise ValidationError(f"{shift}: lunch slots must use HH:MM",
                                      details={shift: {"lunch": bad_lunch}})

        saved = self._call("update_shift_config", self.backend.upsert_shift_config, tenant_id, merged)
        if saved is _FAILED:
            return None
        self._data.shift_configs = [
            s for s in self._data.shift_configs if s.manager_id != tenant_id
        ] + [saved]
        return saved

    def add_emergency_contact(self, name: str, phone: str):
        tenant_id = self._config_tenant("add_emergency_contact")
        text = _require_text({"name": name, "phone": phone}, ("name", "phone"))
        contact = self._call("add_emergency_contact", self.backend.add_contact,
                             tenant_id, text["name"], text["phone"])
        if contact is _FAILED:
            return None
        self._data.emergency_contacts.append(contact)
        return contact

    def remove_emergency_contact(self, contact_id: str) -> bool:
        tenant_id = self._config_tenant("remove_emergency_contact")
        if not any(c.id == contact_id for c in self.emergency_contacts()):
            raise NotFoundError(resource="EmergencyContact", resource_id=contact_id,
                                tenant_id=tenant_id)
        removed = self._call("remove_emergency_contact", self.backend.remove_contact,
                             tenant_id, contact_id)
        if removed is _FAILED or not removed:
            return False
        self._data.emergency_contacts = [
            c for c in self._data.emergency_contacts if c.id != contact_id
        ]
        return True

