import sqlite3
from contextlib import closing
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from src.server.app import create_app
from src.server.dependencies import (
    current_time,
    get_session_store,
    get_task_repository,
    get_user_repository,
)


def create_test_client(tmp_path, monkeypatch) -> TestClient:
    db_path = tmp_path / "api_tasks.db"
    monkeypatch.setenv("OOLLERT_DB_PATH", str(db_path))
    get_task_repository.cache_clear()
    get_user_repository.cache_clear()
    get_session_store.cache_clear()
    app = create_app()
    return TestClient(app)


def signup_and_login(client: TestClient, username: str = "alice", password: str = "password1"):
    client.post(
        "/signup",
        data={"username": username, "email": f"{username}@example.com", "password": password},
    )
    return client.post("/login", data={"username": username, "password": password})


def create_task(client: TestClient, **fields) -> dict:
    payload = {"title": "Prepare slides"}
    payload.update(fields)
    client.post("/tasks", data=payload)
    tasks = client.get("/api/tasks").json()
    return next(t for t in tasks if t["title"] == payload["title"])


@pytest.fixture
def client(tmp_path, monkeypatch):
    return create_test_client(tmp_path, monkeypatch)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_pages_require_login(client):
    for path in ("/tasks", "/tasks/smart", "/tasks/analytics", "/tasks/focus", "/focus"):
        resp = client.get(path, follow_redirects=False)
        assert resp.status_code == 303
        assert resp.headers["location"] == "/login"

    resp = client.get("/tasks")
    assert resp.status_code == 200
    assert "Please login first" in resp.text


def test_api_requires_login(client):
    resp = client.get("/api/tasks")
    assert resp.status_code == 401
    assert resp.json()["ok"] is False

    resp = client.post("/tasks/1/move", json={"status": "done"})
    assert resp.status_code == 401


def test_root_redirects(client):
    assert client.get("/", follow_redirects=False).headers["location"] == "/login"
    signup_and_login(client)
    assert client.get("/", follow_redirects=False).headers["location"] == "/tasks/smart"
    assert client.get("/home", follow_redirects=False).headers["location"] == "/tasks/smart"


def test_signup_login_logout_flow(client):
    resp = client.post(
        "/signup",
        data={"username": "alice", "email": "alice@example.com", "password": "password1"},
    )
    assert resp.status_code == 200
    assert "Account created successfully" in resp.text

    resp = client.post("/login", data={"username": "alice", "password": "password1"})
    assert resp.status_code == 200
    assert resp.url.path == "/tasks/smart"
    assert "Logged in successfully" in resp.text

    resp = client.post("/logout", follow_redirects=False)
    assert resp.status_code == 303
    assert client.get("/tasks", follow_redirects=False).status_code == 303


def test_login_errors(client):
    resp = client.post("/login", data={"username": "ghost", "password": "x"})
    assert resp.url.path == "/signup"
    assert "User not found. Please sign up first." in resp.text

    signup_and_login(client)
    client.post("/logout")
    resp = client.post("/login", data={"username": "alice", "password": "wrong"})
    assert resp.url.path == "/login"
    assert "Invalid credentials" in resp.text


def test_duplicate_signup(client):
    data = {"username": "alice", "email": "alice@example.com", "password": "password1"}
    client.post("/signup", data=data)
    resp = client.post("/signup", data=data)
    assert resp.url.path == "/signup"
    assert "Username or email already taken" in resp.text


def test_task_crud_flow(client):
    signup_and_login(client)
    assert client.get("/api/tasks").json() == []

    due = (date.today() + timedelta(days=3)).isoformat()
    task = create_task(
        client, description="For Friday", due_date=due, priority="high", labels="work, talks"
    )
    assert task["status"] == "todo"
    assert task["priority"] == "high"
    assert task["labels"] == ["work", "talks"]
    assert task["due_date"].startswith(due)
    assert task["completed_at"] is None
    task_id = task["id"]

    resp = client.put(f"/tasks/{task_id}", json={"status": "done", "due_date": None})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["task"]["status"] == "done"
    assert body["task"]["due_date"] is None
    assert body["task"]["completed_at"] is not None
    completed_at = body["task"]["completed_at"]

    resp = client.put(f"/tasks/{task_id}", json={"title": "Prepare final slides"})
    assert resp.json()["task"]["completed_at"] == completed_at

    resp = client.post(f"/tasks/{task_id}/move", json={"status": "todo"})
    assert resp.json() == {"ok": True}
    assert client.get("/api/tasks").json()[0]["completed_at"] is None

    resp = client.post(f"/tasks/{task_id}/priority", json={"priority": "urgent"})
    assert resp.json()["task"]["priority"] == "urgent"

    resp = client.delete(f"/tasks/{task_id}")
    assert resp.json() == {"ok": True, "message": "Task deleted successfully"}
    assert client.get("/api/tasks").json() == []

    resp = client.delete(f"/tasks/{task_id}")
    assert resp.status_code == 404
    assert resp.json() == {"ok": False, "message": "Task not found"}


def test_invalid_values_are_rejected(client):
    signup_and_login(client)
    task_id = create_task(client)["id"]

    resp = client.post(f"/tasks/{task_id}/move", json={"status": "archived"})
    assert resp.status_code == 400
    assert resp.json()["ok"] is False
    assert resp.json()["field"] == "status"

    resp = client.post(f"/tasks/{task_id}/priority", json={"priority": "critical"})
    assert resp.status_code == 400

    resp = client.put(f"/tasks/{task_id}", json={"due_date": "someday"})
    assert resp.status_code == 400

    assert client.get("/api/tasks").json()[0]["status"] == "todo"


def test_create_without_title_flashes_error(client):
    signup_and_login(client)
    resp = client.post("/tasks", data={"title": "   "})
    assert resp.status_code == 200
    assert "Title is required" in resp.text
    assert client.get("/api/tasks").json() == []


def test_other_users_tasks_are_invisible(client):
    signup_and_login(client, "alice")
    task_id = create_task(client, title="Alice's task")["id"]
    client.post("/logout")

    signup_and_login(client, "bob")
    assert client.get("/api/tasks").json() == []
    assert client.put(f"/tasks/{task_id}", json={"title": "mine now"}).status_code == 404
    assert client.post(f"/tasks/{task_id}/move", json={"status": "done"}).status_code == 404
    assert client.delete(f"/tasks/{task_id}").status_code == 404


def test_pages_render(client):
    signup_and_login(client)
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    create_task(client, title="Late report", due_date=yesterday, labels="work")
    create_task(client, title="Someday idea", labels="ideas")

    resp = client.get("/tasks/smart")
    assert resp.status_code == 200
    assert "Late report" in resp.text
    assert "Someday idea" in resp.text

    resp = client.get("/tasks", params={"label": "ideas"})
    assert resp.status_code == 200
    assert "Someday idea" in resp.text
    assert "Late report" not in resp.text

    resp = client.get("/tasks/analytics")
    assert resp.status_code == 200
    assert "Completion rate" in resp.text

    assert client.get("/tasks/focus").status_code == 200
    assert client.get("/focus").status_code == 200


def count_sessions(tmp_path) -> int:
    with closing(sqlite3.connect(tmp_path / "api_tasks.db")) as conn:
        return conn.execute("SELECT COUNT(*) FROM sessions").fetchone()[0]


def test_anonymous_visits_leave_no_sessions(client, tmp_path):
    for _ in range(5):
        client.cookies.clear()
        assert "Please login first" in client.get("/tasks").text
    assert count_sessions(tmp_path) == 0


def test_expired_sessions_are_purged_on_request(tmp_path, monkeypatch):
    client = create_test_client(tmp_path, monkeypatch)
    month_ago = current_time() - timedelta(days=30)
    get_session_store().create({"user": {"id": 1, "username": "ghost"}}, month_ago)
    assert count_sessions(tmp_path) == 1

    client.get("/health")

    assert count_sessions(tmp_path) == 0


def test_expired_sessions_are_purged_on_startup(tmp_path, monkeypatch):
    create_test_client(tmp_path, monkeypatch)
    get_session_store().create({}, current_time() - timedelta(days=30))

    with TestClient(create_app()):
        assert count_sessions(tmp_path) == 0


def test_create_redirects_back_only_within_site(client):
    signup_and_login(client)

    resp = client.post(
        "/tasks",
        data={"title": "From elsewhere"},
        headers={"referer": "https://evil.example/phish"},
        follow_redirects=False,
    )
    assert resp.headers["location"] == "/tasks"

    resp = client.post(
        "/tasks",
        data={"title": "From smart view"},
        headers={"referer": "http://testserver/tasks/smart?label=work"},
        follow_redirects=False,
    )
    assert resp.headers["location"] == "/tasks/smart?label=work"
