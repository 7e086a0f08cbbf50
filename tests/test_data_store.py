"""
DataStore — authorization, validation, tenant isolation and storage failures.

Runs against both storage backends (``backend`` is parametrised in conftest.py).

Demo data (tenant 999):
    1 Ana García    MATUTINO    first login pending   activities 101 ✓ 102 ✓ 103
    2 Carlos Ruiz   MATUTINO                          activity   104 ✓
    3 María López   VESPERTINO  first login pending   activity   105
    4 Juan Pérez    VESPERTINO
"""

from datetime import datetime

import pytest

from shiftboard.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    FirstLoginRequired,
    NotFoundError,
    StorageError,
    ValidationError,
)
from shiftboard.domain import DEFAULT_CATALOG, Role
from shiftboard.services.data_store import DataStore

NOW = datetime(2024, 6, 3, 9, 40)


def _activity_fields(**overrides):
    fields = {
        "collaborator_id": 2, "day": 1, "start_time": "10:00", "end_time": "10:30",
        "description": "Arqueo de Caja",
    }
    fields.update(overrides)
    return fields


class FlakyBackend:
    """Delegates to a real backend; the named methods raise StorageError."""

    def __init__(self, inner, *failing):
        self.inner = inner
        self.failing = set(failing)

    def __getattr__(self, name):
        if name in self.failing:
            def _fail(*args, **kwargs):
                raise StorageError(f"{name} unavailable")
            return _fail
        return getattr(self.inner, name)


# ═════════════════════════════════════════════════════════════════════════════
# Construction
# ═════════════════════════════════════════════════════════════════════════════


class TestConstruction:
    def test_requires_principal(self, backend, clock):
        with pytest.raises(AuthenticationError):
            DataStore(backend, clock, None)

    def test_first_login_blocks_store(self, backend, clock):
        ana = backend.get_principal(Role.COLLABORATOR, 1)
        with pytest.raises(FirstLoginRequired):
            DataStore(backend, clock, ana)

    def test_failed_initial_load(self, backend, clock, manager):
        store = DataStore(FlakyBackend(backend, "fetch_tenant_scoped_data"), clock, manager)
        assert store.loaded is False
        assert store.visible_collaborators() == []


# ═════════════════════════════════════════════════════════════════════════════
# Reads / tenant isolation
# ═════════════════════════════════════════════════════════════════════════════


class TestReads:
    def test_manager_view(self, make_store, manager):
        store = make_store(manager)
        assert [c.id for c in store.visible_collaborators()] == [1, 2, 3, 4]
        assert len(store.visible_activities()) == 5
        assert [m.id for m in store.managers()] == [999]
        assert store.admins() == []

    def test_collaborator_view(self, make_store, collaborator):
        store = make_store(collaborator)
        assert [c.id for c in store.visible_collaborators()] == [1, 2, 3, 4]
        assert [c.id for c in store.team_members()] == [1, 3, 4]
        assert store.context_tenant_id() == 999
        assert store.branch_config().ceco == "MX-12345"
        assert len(store.activity_types()) == 10
        assert len(store.emergency_contacts()) == 3

    def test_admin_sees_every_tenant(self, make_store, admin, second_tenant):
        store = make_store(admin)
        assert len(store.visible_collaborators()) == 5
        assert [m.id for m in store.managers()] == [999, 1000]
        assert [a.id for a in store.admins()] == [1]

    def test_admin_needs_tenant_for_config(self, make_store, admin):
        with pytest.raises(ValidationError):
            make_store(admin).branch_config()
        assert make_store(admin, 999).branch_config().name == "Sucursal Centro Histórico"

    def test_other_tenant_is_invisible(self, make_store, manager, second_tenant):
        other_manager, outsider = second_tenant
        store = make_store(manager)
        assert outsider.id not in [c.id for c in store.visible_collaborators()]
        with pytest.raises(NotFoundError):
            store.find_collaborator(outsider.id)

        other = make_store(other_manager)
        assert [c.id for c in other.visible_collaborators()] == [outsider.id]
        assert other.visible_activities() == []
        with pytest.raises(NotFoundError):
            other.find_activity("103")

    def test_new_tenant_has_default_config(self, make_store, second_tenant):
        other_manager, _ = second_tenant
        store = make_store(other_manager)
        assert store.branch_config().name == "Nueva Sucursal"
        assert sorted(store.activity_types()) == sorted(DEFAULT_CATALOG)
        assert store.emergency_contacts() == []
        assert store.shift_config().vespertino.lunch == ["16:00", "16:30"]


# ═════════════════════════════════════════════════════════════════════════════
# Activities
# ═════════════════════════════════════════════════════════════════════════════


class TestActivities:
    def test_manager_adds_activity(self, make_store, manager):
        store = make_store(manager)
        created = store.add_activity(_activity_fields())
        assert created.completed is False
        assert created in store.visible_activities()
        # Persisted: a fresh store sees it
        assert make_store(manager).find_activity(created.id).description == "Arqueo de Caja"

    def test_collaborator_cannot_add(self, make_store, collaborator):
        with pytest.raises(AuthorizationError):
            make_store(collaborator).add_activity(_activity_fields())

    @pytest.mark.parametrize("overrides", [
        {"end_time": "10:00"},
        {"end_time": "09:30"},
        {"start_time": "9:00"},
        {"day": 7},
        {"day": "1"},
        {"description": "   "},
        {"collaborator_id": None},
    ])
    def test_invalid_activity_rejected(self, make_store, manager, overrides):
        store = make_store(manager)
        with pytest.raises(ValidationError):
            store.add_activity(_activity_fields(**overrides))
        assert len(store.visible_activities()) == 5

    def test_cannot_schedule_for_other_tenant(self, make_store, manager, second_tenant):
        _, outsider = second_tenant
        with pytest.raises(NotFoundError):
            make_store(manager).add_activity(_activity_fields(collaborator_id=outsider.id))

    def test_completion_stamps_clock(self, make_store, manager):
        store = make_store(manager)
        done = store.toggle_activity("103")
        assert done.completed is True
        assert done.completed_at == NOW

        undone = store.toggle_activity("103")
        assert undone.completed is False
        assert undone.completed_at is None

    @pytest.mark.parametrize("value", ["false", "true", 1, 0, None])
    def test_completed_must_be_boolean(self, make_store, manager, value):
        store = make_store(manager)
        with pytest.raises(ValidationError):
            store.update_activity("103", {"completed": value})
        activity = store.find_activity("103")
        assert activity.completed is False
        assert activity.completed_at is None

    def test_collaborator_toggles_own_activity(self, make_store, collaborator):
        store = make_store(collaborator)
        updated = store.toggle_activity("104")
        assert updated.completed is False
        assert updated.completed_at is None

    def test_collaborator_cannot_toggle_teammate(self, make_store, collaborator):
        with pytest.raises(AuthorizationError):
            make_store(collaborator).toggle_activity("103")

    def test_collaborator_cannot_edit_fields(self, make_store, collaborator):
        with pytest.raises(AuthorizationError):
            make_store(collaborator).update_activity("104", {"description": "Otra"})

    def test_edit_validates_merged_window(self, make_store, manager):
        store = make_store(manager)
        with pytest.raises(ValidationError):
            store.update_activity("103", {"start_time": "10:00"})
        moved = store.update_activity("103", {"start_time": "10:00", "end_time": "11:00"})
        assert (moved.start_time, moved.end_time) == ("10:00", "11:00")

    def test_edit_rejects_unknown_fields(self, make_store, manager):
        with pytest.raises(ValidationError):
            make_store(manager).update_activity("103", {"priority": "high"})

    def test_delete(self, make_store, manager, collaborator):
        with pytest.raises(AuthorizationError):
            make_store(collaborator).delete_activity("104")
        store = make_store(manager)
        assert store.delete_activity("104") is True
        with pytest.raises(NotFoundError):
            store.find_activity("104")
        with pytest.raises(NotFoundError):
            store.delete_activity("104")


# ═════════════════════════════════════════════════════════════════════════════
# Collaborators
# ═════════════════════════════════════════════════════════════════════════════


class TestCollaborators:
    def test_manager_adds_into_own_tenant(self, make_store, manager, backend):
        store = make_store(manager)
        created = store.add_collaborator({
            "name": "Lucía Torres", "employee_number": "EMP005",
            "role_title": "Cajera", "shift": "VESPERTINO", "manager_id": 1000,
        })
        assert created.manager_id == 999
        assert created.is_first_login is True
        assert created.avatar_initials == "LT"
        assert backend.authenticate("EMP005", "123").id == created.id

    def test_admin_must_name_existing_manager(self, make_store, admin):
        store = make_store(admin)
        fields = {"name": "Lucía Torres", "employee_number": "EMP005", "shift": "MATUTINO"}
        with pytest.raises(ValidationError):
            store.add_collaborator(fields)
        with pytest.raises(ValidationError):
            store.add_collaborator({**fields, "manager_id": 4242})
        assert store.add_collaborator({**fields, "manager_id": 999}).manager_id == 999

    @pytest.mark.parametrize("number", ["EMP002", "ADMIN01", "admin"])
    def test_duplicate_employee_number(self, make_store, manager, number):
        with pytest.raises(ConflictError):
            make_store(manager).add_collaborator({"name": "Otro", "employee_number": number})

    def test_invalid_shift(self, make_store, manager):
        with pytest.raises(ValidationError):
            make_store(manager).add_collaborator(
                {"name": "Otro", "employee_number": "EMP010", "shift": "NOCTURNO"})

    def test_collaborator_cannot_manage_people(self, make_store, collaborator):
        store = make_store(collaborator)
        with pytest.raises(AuthorizationError):
            store.add_collaborator({"name": "Otro", "employee_number": "EMP010"})
        with pytest.raises(AuthorizationError):
            store.delete_collaborator(4)

    def test_update_rename_and_role_lock(self, make_store, manager):
        store = make_store(manager)
        updated = store.update_collaborator(2, {"name": "Carlos Ruiz Díaz", "role_title": "Gerente"})
        assert updated.name == "Carlos Ruiz Díaz"
        assert updated.avatar_initials == "CR"
        with pytest.raises(ValidationError):
            store.update_collaborator(2, {"role": "MANAGER"})

    def test_only_admin_reassigns(self, make_store, manager, admin, second_tenant):
        other_manager, _ = second_tenant
        with pytest.raises(AuthorizationError):
            make_store(manager).update_collaborator(4, {"manager_id": other_manager.id})
        moved = make_store(admin).update_collaborator(4, {"manager_id": other_manager.id})
        assert moved.manager_id == other_manager.id
        assert 4 not in [c.id for c in make_store(manager).visible_collaborators()]

    def test_delete_cascades_activities(self, make_store, manager):
        store = make_store(manager)
        assert store.delete_collaborator(1) is True
        assert [a.id for a in store.visible_activities() if a.collaborator_id == 1] == []
        assert sorted(a.id for a in make_store(manager).visible_activities()) == ["104", "105"]


# ═════════════════════════════════════════════════════════════════════════════
# Managers
# ═════════════════════════════════════════════════════════════════════════════


class TestManagers:
    def test_add_manager_provisions_tenant(self, make_store, admin, backend):
        store = make_store(admin)
        created = store.add_manager({"name": "Laura Gerente", "employee_number": "MGR002"})
        assert created.id == 1000
        assert created.is_first_login is True
        assert backend.authenticate("MGR002", "MGR002").id == 1000

        scoped = make_store(admin, created.id)
        assert scoped.branch_config().ceco == "MX-00000"
        assert sorted(scoped.activity_types()) == sorted(DEFAULT_CATALOG)
        assert scoped.shift_config().matutino.start == "08:00"

    def test_only_admin_manages_managers(self, make_store, manager):
        with pytest.raises(AuthorizationError):
            make_store(manager).add_manager({"name": "X", "employee_number": "MGR003"})
        with pytest.raises(AuthorizationError):
            make_store(manager).delete_manager(999)

    def test_delete_blocked_while_owning_collaborators(self, make_store, admin, second_tenant):
        other_manager, outsider = second_tenant
        store = make_store(admin)
        with pytest.raises(ValidationError) as exc:
            store.delete_manager(other_manager.id)
        assert exc.value.details == {"collaborators": [outsider.id]}

        assert store.delete_collaborator(outsider.id) is True
        assert store.delete_manager(other_manager.id) is True
        assert [m.id for m in store.managers()] == [999]

    def test_update_manager(self, make_store, admin):
        store = make_store(admin)
        assert store.update_manager(999, {"name": "Roberto G."}).name == "Roberto G."
        with pytest.raises(ConflictError):
            store.update_manager(999, {"employee_number": "EMP001"})
        with pytest.raises(NotFoundError):
            store.update_manager(4242, {"name": "Nadie"})


# ═════════════════════════════════════════════════════════════════════════════
# Tenant configuration
# ═════════════════════════════════════════════════════════════════════════════


class TestTenantConfig:
    def test_activity_types(self, make_store, manager):
        store = make_store(manager)
        added = store.add_activity_type("Auditoría")
        assert added.name == "Auditoría"
        again = store.add_activity_type("Auditoría")
        assert again.id == added.id
        assert store.activity_types().count("Auditoría") == 1

        assert store.remove_activity_type("Auditoría") is True
        with pytest.raises(NotFoundError):
            store.remove_activity_type("Auditoría")

    def test_admin_without_tenant_cannot_configure(self, make_store, admin):
        with pytest.raises(ValidationError):
            make_store(admin).add_activity_type("Auditoría")
        assert make_store(admin, 999).add_activity_type("Auditoría").manager_id == 999

    def test_collaborator_cannot_configure(self, make_store, collaborator):
        with pytest.raises(AuthorizationError):
            make_store(collaborator).add_emergency_contact("Bomberos", "911")

    def test_branch_config(self, make_store, manager):
        store = make_store(manager)
        saved = store.update_branch_config({"territory": "Zona 2"})
        assert saved.territory == "Zona 2"
        assert saved.name == "Sucursal Centro Histórico"
        with pytest.raises(ValidationError):
            store.update_branch_config({"name": ""})
        with pytest.raises(ValidationError):
            store.update_branch_config({"color": "rojo"})

    def test_branch_config_upsert_keeps_one_record(self, make_store, manager):
        store = make_store(manager)
        store.update_branch_config({"name": "Sucursal Norte", "territory": "Zona 2"})
        store.update_branch_config({"name": "Sucursal Sur", "territory": "Zona 3"})

        stored = store.backend.fetch_tenant_scoped_data({999}).branch_configs
        assert len(stored) == 1
        assert (stored[0].name, stored[0].territory) == ("Sucursal Sur", "Zona 3")
        assert store.branch_config().name == "Sucursal Sur"

    def test_shift_config_merge(self, make_store, manager):
        store = make_store(manager)
        saved = store.update_shift_config({"MATUTINO": {"lunch": ["12:30", "13:00"]}})
        assert saved.matutino.lunch == ["12:30", "13:00"]
        assert saved.matutino.start == "08:00"
        assert saved.vespertino.lunch == ["16:00", "16:30"]

    @pytest.mark.parametrize("payload", [
        {"MATUTINO": {"start": "15:00", "end": "08:00"}},
        {"VESPERTINO": {"end": "8pm"}},
        {"MATUTINO": {"lunch": ["1pm"]}},
    ])
    def test_shift_config_validation(self, make_store, manager, payload):
        with pytest.raises(ValidationError):
            make_store(manager).update_shift_config(payload)

    @pytest.mark.parametrize("payload", [
        {"MATUTINO": "08:00-15:00"},
        {"vespertino": ["15:00", "22:00"]},
        {"MATUTINO": {"lunch": 1300}},
        {"MATUTINO": {"lunch": "13:00"}},
        {"VESPERTINO": {"lunch": [1600, 1630]}},
    ])
    def test_shift_config_shape(self, make_store, manager, payload):
        store = make_store(manager)
        with pytest.raises(ValidationError):
            store.update_shift_config(payload)
        assert store.shift_config().matutino.lunch == ["13:00", "13:30"]
        assert store.shift_config().vespertino.lunch == ["16:00", "16:30"]

    def test_contacts(self, make_store, manager, second_tenant):
        store = make_store(manager)
        contact = store.add_emergency_contact("Bomberos", "911")
        assert contact.manager_id == 999
        assert len(store.emergency_contacts()) == 4
        assert store.remove_emergency_contact(contact.id) is True

        other_manager, _ = second_tenant
        with pytest.raises(NotFoundError):
            make_store(other_manager).remove_emergency_contact("1")


# ═════════════════════════════════════════════════════════════════════════════
# Storage failures leave state untouched
# ═════════════════════════════════════════════════════════════════════════════


class TestStorageFailures:
    def test_failed_add_activity(self, backend, clock, manager, make_store):
        store = DataStore(FlakyBackend(backend, "create_activity"), clock, manager)
        assert store.add_activity(_activity_fields()) is None
        assert len(store.visible_activities()) == 5
        assert len(make_store(manager).visible_activities()) == 5

    def test_failed_toggle(self, backend, clock, manager):
        store = DataStore(FlakyBackend(backend, "update_activity"), clock, manager)
        assert store.toggle_activity("103") is None
        assert store.find_activity("103").completed is False

    def test_failed_uniqueness_check(self, backend, clock, manager):
        store = DataStore(FlakyBackend(backend, "employee_number_taken"), clock, manager)
        assert store.add_collaborator({"name": "Otro", "employee_number": "EMP010"}) is None
        assert len(store.visible_collaborators()) == 4

    def test_failed_delete(self, backend, clock, manager):
        store = DataStore(FlakyBackend(backend, "delete_collaborator"), clock, manager)
        assert store.delete_collaborator(1) is False
        assert len(store.visible_collaborators()) == 4
        assert len(store.visible_activities()) == 5
