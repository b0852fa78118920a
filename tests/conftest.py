import pytest
from fastapi.testclient import TestClient

from peerreview.config import Settings
from peerreview.main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret",
        password_rounds=1000,
        upload_dir=tmp_path / "uploads",
        max_upload_bytes=1024 * 1024,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def register(client, email, name, role=None, password="secret-pw"):
    body = {"email": email, "password": password, "name": name}
    if role:
        body["role"] = role
    res = client.post("/api/auth/register", json=body)
    assert res.status_code == 200, res.text
    data = res.json()
    data["headers"] = {"Authorization": f"Bearer {data['token']}"}
    return data


@pytest.fixture
def teacher(client):
    return register(client, "teacher@example.com", "Prof. Sarah Johnson", "TEACHER")


@pytest.fixture
def student(client):
    return register(client, "alex@example.com", "Alex Chen", "STUDENT")


@pytest.fixture
def other_student(client):
    return register(client, "emma@example.com", "Emma Rodriguez", "STUDENT")


@pytest.fixture
def project(client, teacher):
    res = client.post(
        "/api/projects",
        json={
            "title": "Mobile Health Tracker",
            "description": "Track activity, nutrition and sleep.",
            "dueDate": "2025-12-01",
            "tags": "Mobile Dev,Health",
        },
        headers=teacher["headers"],
    )
    assert res.status_code == 200, res.text
    return res.json()


@pytest.fixture
def submission(client, student, project):
    res = client.post(
        "/api/submissions",
        data={"projectId": str(project["id"]), "content": "React Native app with step counting"},
        headers=student["headers"],
    )
    assert res.status_code == 200, res.text
    return res.json()
