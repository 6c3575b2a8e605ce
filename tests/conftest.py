from __future__ import annotations

from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient
from sqlmodel import create_engine
from sqlalchemy.pool import StaticPool

from simplifly.core.config import Settings
from simplifly.db.session import init_db
from simplifly.main import create_app

API = "/api/v1"


def _build_sqlite_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        SECRET_KEY="test-secret",
        FRONTEND_URL="http://frontend.test",
        LOG_JSON=False,
    )


@pytest.fixture
def engine():
    engine = _build_sqlite_engine()
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def client(settings: Settings, engine) -> TestClient:
    app = create_app(settings)
    app.state.engine = engine
    return TestClient(app)


def register(client: TestClient, email: str, name: Optional[str] = None, password: str = "secret123") -> Dict:
    response = client.post(
        f"{API}/auth/register",
        json={"email": email, "password": password, "name": name or email.split("@")[0]},
    )
    assert response.status_code == 201, response.text
    return response.json()


def login(client: TestClient, email: str, password: str = "secret123") -> Dict[str, str]:
    response = client.post(f"{API}/auth/login", data={"username": email, "password": password})
    assert response.status_code == 200, response.text
    # Bearer header only; the cookie jar is cleared so users don't bleed into each other
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def signup(client: TestClient, email: str, name: Optional[str] = None):
    user = register(client, email, name)
    return user, login(client, email)


def create_workspace(client: TestClient, headers: Dict[str, str], name: str = "Acme") -> Dict:
    response = client.post(f"{API}/workspaces", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def add_member(client: TestClient, headers: Dict[str, str], workspace_id: int, user_id: str) -> None:
    response = client.post(
        f"{API}/workspaces/{workspace_id}/members",
        json={"user_id": user_id},
        headers=headers,
    )
    assert response.status_code == 200, response.text


def create_ticket(client: TestClient, headers: Dict[str, str], workspace_id: int, assignee_id: str, **fields) -> Dict:
    payload = {"title": "Landing page", "workspace_id": workspace_id, "assignee_id": assignee_id}
    payload.update(fields)
    response = client.post(f"{API}/tickets", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def complete_ticket(client: TestClient, headers: Dict[str, str], ticket_id: int, hours: float) -> Dict:
    response = client.put(
        f"{API}/tickets/{ticket_id}",
        json={"hours_worked": hours, "status": "completed"},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()
