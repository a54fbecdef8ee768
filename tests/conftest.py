import base64
import io
import os

# keep the module-level engine off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import Settings, get_settings
from database import Base, get_db
from errors import AnalysisError
from main import app, get_session_factory, get_vision_model

SAMPLE_RESPONSE = """CONFIDENCE_LEVEL: 82%
RISK_LEVEL: HIGH
ANALYSIS: Irregular white patch on the lateral border of the tongue."""


class FakeVisionModel:
    def __init__(self, response=SAMPLE_RESPONSE, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def analyze(self, prompt, image):
        self.calls.append((prompt, image))
        if self.error is not None:
            raise self.error
        return self.response


def make_image_b64(fmt="JPEG") -> str:
    buf = io.BytesIO()
    Image.new("RGB", (16, 16), color=(200, 40, 40)).save(buf, format=fmt)
    return base64.b64encode(buf.getvalue()).decode("ascii")


@pytest.fixture
def image_b64():
    return make_image_b64()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
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
def settings(tmp_path):
    return Settings(
        environment="development",
        dev_auth_bypass=True,
        jwt_secret="test-secret",
        anthropic_api_key="test-key",
        reports_dir=str(tmp_path / "reports"),
    )


@pytest.fixture
def fake_model():
    return FakeVisionModel()


@pytest.fixture
def client(session_factory, settings, fake_model):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_vision_model] = lambda: fake_model
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def dev_headers():
    return {"Authorization": "Bearer dev-token"}


def register_and_login(client, email, password="s3cret-pass", name=None):
    resp = client.post("/api/auth/register", json={"email": email, "password": password, "name": name})
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/auth/login", data={"username": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def alice_headers(client):
    return register_and_login(client, "alice@example.com", name="Dr Alice")


@pytest.fixture
def bob_headers(client):
    return register_and_login(client, "bob@example.com", name="Dr Bob")


@pytest.fixture
def upstream_error():
    return AnalysisError(details="Error code: 529 - overloaded")
