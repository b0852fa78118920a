from peerreview.models import Project


def test_teacher_creates_project(project, teacher):
    assert project["title"] == "Mobile Health Tracker"
    assert project["description"] == "Track activity, nutrition and sleep."
    assert project["tags"] == "Mobile Dev,Health"
    assert project["dueDate"].startswith("2025-12-01")
    assert project["teacherId"] == teacher["user"]["id"]


def test_student_cannot_create_project(client, db, student):
    res = client.post(
        "/api/projects",
        json={"title": "Sneaky", "description": "", "dueDate": "2025-12-01"},
        headers=student["headers"],
    )
    assert res.status_code == 403
    assert res.json() == {"error": "Teacher access required"}
    assert db.query(Project).count() == 0


def test_project_requires_title_and_valid_due_date(client, db, teacher):
    missing_title = client.post("/api/projects", json={"dueDate": "2025-12-01"}, headers=teacher["headers"])
    bad_date = client.post("/api/projects", json={"title": "X", "dueDate": "next week"}, headers=teacher["headers"])
    assert missing_title.status_code == 400
    assert bad_date.status_code == 400
    assert db.query(Project).count() == 0


def test_due_date_accepts_full_timestamp(client, teacher):
    res = client.post(
        "/api/projects",
        json={"title": "Timestamped", "dueDate": "2025-12-01T17:30:00Z"},
        headers=teacher["headers"],
    )
    assert res.status_code == 200
    assert res.json()["dueDate"] == "2025-12-01T17:30:00"
    assert res.json()["tags"] == ""


def test_project_appears_in_list(client, project, teacher):
    res = client.get("/api/projects", headers=teacher["headers"])
    assert res.status_code == 200
    items = res.json()
    assert len(items) == 1
    item = items[0]
    assert item["id"] == project["id"]
    assert item["dueDate"].startswith("2025-12-01")
    assert item["teacher"] == {"name": "Prof. Sarah Johnson"}
    assert item["_count"] == {"submissions": 0}
    assert "isSubmitted" not in item


def test_projects_listed_newest_first(client, project, teacher):
    client.post("/api/projects", json={"title": "Later", "dueDate": "2026-01-10"}, headers=teacher["headers"])
    titles = [p["title"] for p in client.get("/api/projects", headers=teacher["headers"]).json()]
    assert titles == ["Later", "Mobile Health Tracker"]

    page = client.get("/api/projects?skip=1&limit=5", headers=teacher["headers"]).json()
    assert [p["title"] for p in page] == ["Mobile Health Tracker"]


def test_is_submitted_tracks_the_viewing_student(client, project, student, other_student):
    before = client.get("/api/projects", headers=student["headers"]).json()
    assert before[0]["isSubmitted"] is False

    client.post(
        "/api/submissions",
        data={"projectId": str(project["id"]), "content": "done"},
        headers=student["headers"],
    )

    after = client.get("/api/projects", headers=student["headers"]).json()
    assert after[0]["isSubmitted"] is True
    assert after[0]["_count"] == {"submissions": 1}

    others = client.get("/api/projects", headers=other_student["headers"]).json()
    assert others[0]["isSubmitted"] is False


def test_project_detail(client, project, submission, other_student, teacher):
    client.post(
        "/api/reviews",
        json={"submissionId": submission["id"], "content": "Nice", "score": 4},
        headers=other_student["headers"],
    )
    client.post(
        "/api/comments",
        json={"submissionId": submission["id"], "content": "How did you test it?"},
        headers=teacher["headers"],
    )

    res = client.get(f"/api/projects/{project['id']}", headers=other_student["headers"])
    assert res.status_code == 200
    detail = res.json()
    assert detail["title"] == "Mobile Health Tracker"
    assert detail["dueDate"].startswith("2025-12-01")
    assert detail["teacher"] == {"name": "Prof. Sarah Johnson"}

    [sub] = detail["submissions"]
    assert sub["id"] == submission["id"]
    assert sub["student"]["name"] == "Alex Chen"
    assert sub["_count"] == {"comments": 1}
    [review] = sub["reviews"]
    assert review["score"] == 4
    assert review["reviewer"] == {"name": "Emma Rodriguez", "role": "STUDENT"}


def test_missing_project_is_404(client, student):
    res = client.get("/api/projects/31337", headers=student["headers"])
    assert res.status_code == 404
    assert res.json() == {"error": "Project not found"}
