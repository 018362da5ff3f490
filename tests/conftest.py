from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from clientdesk.core.config import settings
from clientdesk.core.database import build_engine, init_db
from clientdesk.core.security import create_access_token
from clientdesk.main import create_app
from clientdesk.schemas import ClientCreate
from clientdesk.services.auth_service import AuthAdminService
from clientdesk.services.client_service import ClientLifecycleService
from clientdesk.services.password_cache import PasswordCache
from clientdesk.services.storage_service import FileStorage
from clientdesk.services.user_service import seed_admin


TEST_ADMIN_EMAIL = "admin@clientdesk.io"
TEST_ADMIN_PASSWORD = "SecurePass123!"


class FakeClock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 3, 2, 9, 30)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'clientdesk-test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def password_cache(clock):
    return PasswordCache(timedelta(days=30), clock)


@pytest.fixture
def storage(tmp_path):
    return FileStorage(str(tmp_path / "uploads"))


@pytest.fixture
def clients(db, password_cache, storage):
    return ClientLifecycleService(db, password_cache=password_cache, storage=storage)


@pytest.fixture
def make_client(clients):
    def _make(company_name="Acme Corp", company_email="billing@acme.io", **extra):
        return clients.create(ClientCreate(company_name=company_name, company_email=company_email, **extra))
    return _make


@pytest.fixture
def app(engine, session_factory, password_cache, storage):
    config = settings.model_copy(update={"RATE_LIMIT_ENABLED": False, "UPLOAD_DIR": str(storage.base_dir)})
    app = create_app(config=config, bind=engine, session_factory=session_factory, password_cache=password_cache)
    app.state.storage = storage
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin(db):
    seed_admin(db, TEST_ADMIN_EMAIL, TEST_ADMIN_PASSWORD, "Test Admin")
    account = AuthAdminService(db).get_by_email(TEST_ADMIN_EMAIL)
    return SimpleNamespace(id=account.id, email=TEST_ADMIN_EMAIL, password=TEST_ADMIN_PASSWORD)


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin.id)


@pytest.fixture
def headers_for():
    return auth_headers
