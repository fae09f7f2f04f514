"""
Pytest fixtures for thriftshop backend tests.

Provides the application, a clean database per test, accounts for each
login path, and stand-ins for the outbound collaborators (storage, mail,
identity provider, courier rates) registered on app.extensions.
"""

import io

import pytest
from thriftshop import create_app
from thriftshop.extensions import db
from thriftshop.models import ROLE_ADMIN, ROLE_USER
from thriftshop.services.auth_service import create_user
from thriftshop.services.identity_service import FederatedIdentity
from thriftshop.services.storage_service import LocalStorage
from thriftshop.validation import AuthenticationError, StorageError, UpstreamError

PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
        'BCRYPT_ROUNDS': 4,
        'GOOGLE_CLIENT_ID': 'test-client-id.apps.googleusercontent.com',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# ACCOUNTS
# =============================================================================


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user("admin", "admin@thriftshop.test", PASSWORD, role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def customer_user(db_session):
    return create_user(
        "budi", "budi@thriftshop.test", PASSWORD, role=ROLE_USER,
        full_name="Budi Santoso", phone_number="08123456789", address="Jl. Merdeka 1",
    )


@pytest.fixture(scope='function')
def federated_user(db_session):
    """Account created through Google sign-in: no local password."""
    user = create_user("sari", "sari@gmail.test", password=None)
    user.google_sub = "google-sub-sari"
    db_session.commit()
    return user


def get_auth_token(client, username: str, password: str = PASSWORD, path: str = '/api/auth/login') -> str:
    """Helper to get auth token for a user."""
    response = client.post(path, json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def customer_headers(client, customer_user):
    return auth_headers(get_auth_token(client, customer_user.username, path='/api/auth/customer-login'))


@pytest.fixture(scope='function')
def federated_headers(client, federated_user, identity):
    identity.identity = FederatedIdentity(subject="google-sub-sari", email="sari@gmail.test", name="Sari")
    response = client.post('/api/auth/google', json={'id_token': 'valid-token'})
    return auth_headers(response.json['token'])


# =============================================================================
# COLLABORATORS
# =============================================================================


@pytest.fixture(scope='function')
def storage(app, tmp_path, monkeypatch):
    """Fresh local uploads folder per test."""
    local = LocalStorage(str(tmp_path / "uploads"), url_prefix="/uploads")
    monkeypatch.setitem(app.extensions, "storage", local)
    return local


class FlakyStorage(LocalStorage):
    """Local storage whose Nth save (1-based) raises StorageError."""

    def __init__(self, root, fail_on_save: int):
        super().__init__(root)
        self.fail_on_save = fail_on_save
        self.saves = 0

    def save(self, data, filename, content_type=None):
        self.saves += 1
        if self.saves == self.fail_on_save:
            raise StorageError("disk full")
        return super().save(data, filename, content_type)


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send_password_reset(self, recipient_email, token, reset_url, expires_minutes):
        if self.fail:
            raise UpstreamError("We could not send the email right now. Please try again.")
        self.sent.append({
            "to": recipient_email,
            "token": token,
            "reset_url": reset_url,
            "expires_minutes": expires_minutes,
        })
        return "msg-1"


@pytest.fixture(scope='function')
def mailer(app, monkeypatch):
    fake = FakeMailer()
    monkeypatch.setitem(app.extensions, "mailer", fake)
    return fake


class FakeIdentityVerifier:
    def __init__(self):
        self.identity = None

    def verify(self, id_token):
        if self.identity is None:
            raise AuthenticationError("Invalid identity token")
        return self.identity


@pytest.fixture(scope='function')
def identity(app, monkeypatch):
    fake = FakeIdentityVerifier()
    monkeypatch.setitem(app.extensions, "identity", fake)
    return fake


class FakeShippingClient:
    def __init__(self, costs=None, error=None):
        self.costs = costs or []
        self.error = error
        self.calls = []

    def calculate_cost(self, origin, destination, weight, courier=None):
        self.calls.append((origin, destination, weight, courier))
        if self.error:
            raise self.error
        return self.costs


@pytest.fixture(scope='function')
def shipping(app, monkeypatch):
    fake = FakeShippingClient(costs=[
        {"service": "REG", "description": "Layanan Reguler", "cost": [{"value": 18000, "etd": "2-3", "note": ""}]},
    ])
    monkeypatch.setitem(app.extensions, "shipping", fake)
    return fake


def image_part(name: str = "jaket.png", content_type: str = "image/png", data: bytes = b"\x89PNG fake image"):
    """Multipart file tuple for the werkzeug test client."""
    return (io.BytesIO(data), name, content_type)
