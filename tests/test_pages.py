def test_sign_in_page(client):
    res = client.get("/")
    assert res.status_code == 200
    assert "text/html" in res.headers["content-type"]
    assert 'id="auth-form"' in res.text


def test_teacher_dashboard(client):
    res = client.get("/dashboard/teacher")
    assert res.status_code == 200
    assert "New Project" in res.text
    assert 'data-tab="analytics"' in res.text


def test_student_dashboard(client):
    res = client.get("/dashboard/student")
    assert res.status_code == 200
    assert 'data-tab="notifications"' in res.text
    assert "New Project" not in res.text


def test_unknown_dashboard(client):
    res = client.get("/dashboard/admin")
    assert res.status_code == 404
    assert res.json() == {"error": "Dashboard not found"}


def test_static_client_is_served(client):
    res = client.get("/static/app.js")
    assert res.status_code == 200
