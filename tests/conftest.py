"""
Shared pytest fixtures for the Shiftboard test suite.

Provides:
    - app / sql_app: Flask applications (session-scoped) on each storage backend
    - reset_app_state: fresh seeded backend + simulated clock per test (autouse)
    - client: Flask test client (function-scoped)
    - backend: parametrised over MemoryBackend and SqlBackend, demo data loaded
    - clock: SimulatedClock fixed on Monday 2024-06-03 09:40
    - admin / manager / collaborator principals and a make_store factory
    - login, headers_for and per-role bearer headers for the HTTP tests
"""

from datetime import datetime

import pytest

from shiftboard import create_app
from shiftboard.clock import SimulatedClock
from shiftboard.domain import Role
from shiftboard.models import db as _db
from shiftboard.services.data_store import DataStore
from shiftboard.services.jwt_service import RevocationList
from shiftboard.storage import MemoryBackend, SqlBackend
from shiftboard.storage.seed import DEMO_MANAGER_ID, seed_backend

# Monday, inside Ana's 09:30-10:00 activity and the morning shift.
FIXED_NOW = datetime(2024, 6, 3, 9, 40)
TEST_ROUNDS = 4

ADMIN_LOGIN = ("admin", "root")
MANAGER_LOGIN = ("ADMIN01", "admin")
COLLABORATOR_LOGIN = ("EMP002", "123")          # Carlos, password already changed
FIRST_LOGIN_COLLABORATOR = ("EMP001", "123")    # Ana, must change password


def _seeded_memory_backend():
    backend = MemoryBackend(bcrypt_rounds=TEST_ROUNDS)
    seed_backend(backend, FIXED_NOW, TEST_ROUNDS)
    return backend


# ── App fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application (memory backend) once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def sql_app():
    """Flask application on the SQL backend (in-memory SQLite)."""
    return create_app("testing", {"STORAGE_BACKEND": "sql"})


@pytest.fixture(autouse=True)
def reset_app_state(app):
    """Per-test: fresh demo data, a fixed simulated clock, no revoked tokens."""
    app.extensions["shiftboard.backend"] = _seeded_memory_backend()
    app.extensions["shiftboard.clock"] = SimulatedClock(FIXED_NOW)
    app.extensions["shiftboard.revocations"] = RevocationList()
    yield


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def app_clock(app):
    return app.extensions["shiftboard.clock"]


@pytest.fixture()
def sql_context(sql_app):
    """App context on the SQL app with freshly created, seeded tables."""
    with sql_app.app_context():
        _db.drop_all()
        _db.create_all()
        backend = SqlBackend(bcrypt_rounds=TEST_ROUNDS)
        seed_backend(backend, FIXED_NOW, TEST_ROUNDS)
        sql_app.extensions["shiftboard.backend"] = backend
        sql_app.extensions["shiftboard.clock"] = SimulatedClock(FIXED_NOW)
        sql_app.extensions["shiftboard.revocations"] = RevocationList()
        yield backend
        _db.session.rollback()


# ── Backend / store fixtures ─────────────────────────────────────────────


@pytest.fixture(params=["memory", "sql"])
def backend(request):
    """Seeded backend; every contract test runs once per implementation."""
    if request.param == "memory":
        return _seeded_memory_backend()
    return request.getfixturevalue("sql_context")


@pytest.fixture()
def clock():
    return SimulatedClock(FIXED_NOW)


@pytest.fixture()
def admin(backend):
    return backend.get_principal(Role.ADMIN, 1)


@pytest.fixture()
def manager(backend):
    return backend.get_principal(Role.MANAGER, DEMO_MANAGER_ID)


@pytest.fixture()
def collaborator(backend):
    """Carlos (id 2), first login already done."""
    return backend.get_principal(Role.COLLABORATOR, 2)


@pytest.fixture()
def make_store(backend, clock):
    """Build a DataStore for a principal against the seeded backend."""
    def _make(principal, selected_tenant_id=None):
        return DataStore(backend, clock, principal, selected_tenant_id)
    return _make


@pytest.fixture()
def second_tenant(make_store, admin):
    """A second manager (first login cleared) with one collaborator."""
    store = make_store(admin)
    other = store.add_manager({"name": "Laura Gerente", "employee_number": "MGR002"})
    store.backend.change_credential(Role.MANAGER, other.id, "laura1")
    outsider = store.add_collaborator({
        "name": "Pedro Ajeno", "employee_number": "EMP900",
        "role_title": "Cajero", "shift": "MATUTINO", "manager_id": other.id,
    })
    return store.backend.get_principal(Role.MANAGER, other.id), outsider


# ── HTTP helpers ─────────────────────────────────────────────────────────


def bearer(token_payload):
    return {"Authorization": f"Bearer {token_payload['access_token']}"}


@pytest.fixture()
def login(client):
    """POST /auth/login and return the token payload (asserts 200)."""
    def _login(employee_number, password):
        res = client.post(
            "/api/v1/auth/login",
            json={"employee_number": employee_number, "password": password},
        )
        assert res.status_code == 200, res.get_json()
        return res.get_json()
    return _login


@pytest.fixture()
def headers_for(login):
    """Bearer headers for an employee number / password pair."""
    def _headers(employee_number, password):
        return bearer(login(employee_number, password))
    return _headers


@pytest.fixture()
def admin_headers(headers_for):
    return headers_for(*ADMIN_LOGIN)


@pytest.fixture()
def manager_headers(headers_for):
    return headers_for(*MANAGER_LOGIN)


@pytest.fixture()
def collaborator_headers(headers_for):
    return headers_for(*COLLABORATOR_LOGIN)


@pytest.fixture()
def first_login_token(login):
    """Token payload for Ana (EMP001), who still has to change the password."""
    return login(*FIRST_LOGIN_COLLABORATOR)
