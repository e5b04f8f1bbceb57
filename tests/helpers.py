import unittest
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from config import Settings, get_settings
from database import Base, get_db
from dependencies import get_storage
from main import app
from services.storage import InMemoryStorageClient, LazyStorage

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def settings_for_tests() -> Settings:
    return Settings(
        database_url="sqlite://",
        use_in_memory_storage=True,
        geocoding_enabled=False,
        push_notifications_enabled=False,
        max_upload_size_mb=1,
        max_photos_per_upload=3,
    )


def future_date(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).date().isoformat()


def past_date(days: int = 2) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).date().isoformat()


def plan_payload(**overrides) -> dict:
    payload = {
        "title": "Sunset hike",
        "description": "Easy walk up the hill to watch the sunset",
        "category": "Outdoors",
        "date": future_date(),
        "time": "18:30",
        "location": "Parque del Retiro, Madrid",
        "companionType": "Grupo pequeño",
        "isPublic": True,
        "images": ["https://storage.example.com/goplan-uploads/plans/1/cover.jpg"],
        "tags": ["hiking"],
    }
    payload.update(overrides)
    return payload


class ApiTestCase(unittest.TestCase):
    """Fresh schema, in-memory storage and a TestClient for every test."""

    def setUp(self):
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        self.storage_client = InMemoryStorageClient()
        self.storage = LazyStorage(lambda: self.storage_client)
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_storage] = lambda: self.storage
        app.dependency_overrides[get_settings] = settings_for_tests
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def db(self):
        session = TestingSessionLocal()
        self.addCleanup(session.close)
        return session

    def register(self, email: str = "ana@example.com", name: str = "Ana", password: str = "secret123") -> dict:
        resp = self.client.post("/auth/register", json={"email": email, "password": password, "name": name})
        self.assertEqual(resp.status_code, 201, resp.text)
        data = resp.json()
        return {"token": data["token"], "user": data["user"], "headers": auth_headers(data["token"])}

    def create_plan(self, account: dict, **overrides) -> dict:
        resp = self.client.post("/plans", json=plan_payload(**overrides), headers=account["headers"])
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["plan"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
