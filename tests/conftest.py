import pytest
from fastapi.testclient import TestClient

from fleetops.auth.security import get_password_hash
from fleetops.config import Settings
from fleetops.main import create_app
from fleetops.models.models import User


MANAGER_ID = "mgr-1"
DRIVER_ID = "drv-1"


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        database_url="sqlite://",
        enable_metrics=False,
        enable_email=False,
        management_emails=None,
        email_api_key=None,
        email_host=None,
        upload_dir=str(tmp_path / "uploads"),
        cdn_base_url=None,
        rate_limit="1000/minute",
        jwt_secret="test-secret",
        trust_identity_header=True,
        breakdown_reports_manager_only=False,
        seed_demo_data=False,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app, client):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def users(db):
    db.add_all(
        [
            User(
                id=MANAGER_ID, role="manager", name="Manager One", handle="", email="m@example.com",
                username="manager1", password=get_password_hash("secret-pass"),
            ),
            User(
                id=DRIVER_ID, role="driver", name="Driver One", handle="", email="d@example.com",
                username="driver1", password=get_password_hash("driver-pass"),
            ),
        ]
    )
    db.commit()


@pytest.fixture
def manager_headers(users):
    return {"x-storm-userid": MANAGER_ID}


@pytest.fixture
def driver_headers(users):
    return {"x-storm-userid": DRIVER_ID, "x-storm-username": "Driver One"}
