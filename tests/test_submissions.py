import pytest

from peerreview import crud
from peerreview.models import Submission

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def submit(client, who, project_id, content="My work", files=None):
    return client.post(
        "/api/submissions",
        data={"projectId": str(project_id), "content": content},
        files=files,
        headers=who["headers"],
    )


def test_submission_without_attachments(submission, student, project):
    assert submission["content"] == "React Native app with step counting"
    assert submission["imageUrl"] == ""
    assert submission["fileUrl"] == ""
    assert submission["points"] is None
    assert submission["studentId"] == student["user"]["id"]
    assert submission["projectId"] == project["id"]
    assert submission["student"] == {"name": "Alex Chen"}
    assert submission["project"] == {"title": "Mobile Health Tracker"}


def test_uploaded_image_is_served(client, student, project, settings):
    res = submit(client, student, project["id"], files={"image": ("screenshot.png", PNG_BYTES, "image/png")})
    assert res.status_code == 200, res.text
    image_url = res.json()["imageUrl"]
    assert image_url.startswith("/uploads/")
    assert image_url.endswith(".png")

    served = client.get(image_url)
    assert served.status_code == 200
    assert served.content == PNG_BYTES
    assert len(list(settings.upload_dir.iterdir())) == 1


def test_image_and_document_together(client, student, project):
    res = submit(
        client, student, project["id"],
        files={
            "image": ("photo.jpg", b"\xff\xd8\xff" + b"\x00" * 16, "image/jpeg"),
            "file": ("report.pdf", b"%PDF-1.4 test", "application/pdf"),
        },
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["imageUrl"].endswith(".jpg")
    assert body["fileUrl"].endswith(".pdf")
    assert body["imageUrl"] != body["fileUrl"]


@pytest.mark.parametrize("filename,mimetype", [
    ("virus.exe", "application/octet-stream"),
    ("notes.txt", "text/plain"),
    ("disguised.png", "application/x-msdownload"),
    ("disguised.exe", "image/png"),
])
def test_disallowed_attachment_is_rejected(client, db, student, project, settings, filename, mimetype):
    res = submit(client, student, project["id"], files={"file": (filename, b"MZ\x90\x00", mimetype)})
    assert res.status_code == 400
    assert res.json() == {"error": "Only images (JPEG, PNG) and documents (PDF, ZIP) are allowed!"}
    assert db.query(Submission).count() == 0
    assert list(settings.upload_dir.iterdir()) == []


def test_one_bad_part_stores_nothing(client, db, student, project, settings):
    res = submit(
        client, student, project["id"],
        files={
            "image": ("ok.png", PNG_BYTES, "image/png"),
            "file": ("bad.exe", b"MZ", "application/octet-stream"),
        },
    )
    assert res.status_code == 400
    assert db.query(Submission).count() == 0
    assert list(settings.upload_dir.iterdir()) == []


def test_two_parts_for_one_field_are_rejected(client, db, student, project, settings):
    res = submit(
        client, student, project["id"],
        files=[
            ("image", ("a.png", PNG_BYTES, "image/png")),
            ("image", ("b.png", PNG_BYTES, "image/png")),
        ],
    )
    assert res.status_code == 400
    assert res.json() == {"error": "Only one file allowed for field: image"}
    assert db.query(Submission).count() == 0
    assert list(settings.upload_dir.iterdir()) == []


def test_file_under_unexpected_field_is_rejected(client, db, student, project, settings):
    res = submit(client, student, project["id"], files={"avatar": ("me.png", PNG_BYTES, "image/png")})
    assert res.status_code == 400
    assert res.json() == {"error": "Unexpected file field: avatar"}
    assert db.query(Submission).count() == 0
    assert list(settings.upload_dir.iterdir()) == []


def test_oversized_attachment_is_rejected(client, db, student, project, settings):
    too_big = b"\x00" * (settings.max_upload_bytes + 1)
    res = submit(client, student, project["id"], files={"file": ("big.zip", too_big, "application/zip")})
    assert res.status_code == 400
    assert "too large" in res.json()["error"]
    assert db.query(Submission).count() == 0
    assert list(settings.upload_dir.iterdir()) == []


def test_second_submission_to_same_project_is_rejected(client, db, submission, student, project):
    res = submit(client, student, project["id"], content="Another try")
    assert res.status_code == 400
    assert res.json() == {"error": "You have already submitted work for this project"}
    assert db.query(Submission).count() == 1


def test_unique_constraint_answers_as_duplicate(client, db, monkeypatch, submission, student, project, settings):
    # skip the up-front check so the insert itself hits the constraint
    monkeypatch.setattr(crud, "check_can_submit", lambda db, student_id, project_id: None)
    res = submit(client, student, project["id"], files={"image": ("late.png", PNG_BYTES, "image/png")})
    assert res.status_code == 400
    assert res.json() == {"error": "You have already submitted work for this project"}
    assert db.query(Submission).count() == 1
    assert list(settings.upload_dir.iterdir()) == []


def test_submit_to_missing_project(client, student):
    res = submit(client, student, 9999)
    assert res.status_code == 404
    assert res.json() == {"error": "Project not found"}


def test_submit_requires_project_id(client, student):
    res = client.post("/api/submissions", data={"content": "x"}, headers=student["headers"])
    assert res.status_code == 400


def test_list_all_submissions(client, submission, other_student, project, teacher):
    submit(client, other_student, project["id"], content="Second")
    res = client.get("/api/submissions/all", headers=teacher["headers"])
    assert res.status_code == 200
    items = res.json()
    assert [s["content"] for s in items] == ["Second", "React Native app with step counting"]
    first = items[1]
    assert first["student"]["name"] == "Alex Chen"
    assert first["student"]["email"] == "alex@example.com"
    assert first["project"]["title"] == "Mobile Health Tracker"
    assert first["reviews"] == []
    assert first["_count"] == {"comments": 0}


def test_list_all_submissions_paginates(client, submission, other_student, project, teacher):
    submit(client, other_student, project["id"], content="Second")
    res = client.get("/api/submissions/all?skip=1&limit=1", headers=teacher["headers"])
    assert [s["content"] for s in res.json()] == ["React Native app with step counting"]


def test_my_submissions_only_lists_own(client, submission, student, other_student, project):
    submit(client, other_student, project["id"], content="Emma's work")
    mine = client.get("/api/submissions/my", headers=student["headers"]).json()
    assert [s["id"] for s in mine] == [submission["id"]]
    assert mine[0]["project"]["title"] == "Mobile Health Tracker"


class TestGrading:
    @pytest.mark.parametrize("points", [0, 85, 100])
    def test_teacher_grades(self, client, teacher, submission, points):
        res = client.put(f"/api/submissions/{submission['id']}/grade", json={"points": points},
                         headers=teacher["headers"])
        assert res.status_code == 200
        assert res.json()["points"] == points

    @pytest.mark.parametrize("points", [-1, 101])
    def test_out_of_range_points(self, client, db, teacher, submission, points):
        res = client.put(f"/api/submissions/{submission['id']}/grade", json={"points": points},
                         headers=teacher["headers"])
        assert res.status_code == 400
        assert res.json() == {"error": "Points must be between 0 and 100"}
        assert db.query(Submission).filter(Submission.points.isnot(None)).count() == 0

    @pytest.mark.parametrize("points", [True, 85.0, "ninety"])
    def test_non_integer_points(self, client, db, teacher, submission, points):
        res = client.put(f"/api/submissions/{submission['id']}/grade", json={"points": points},
                         headers=teacher["headers"])
        assert res.status_code == 400
        assert db.query(Submission).filter(Submission.points.isnot(None)).count() == 0

    def test_student_cannot_grade(self, client, db, student, submission):
        res = client.put(f"/api/submissions/{submission['id']}/grade", json={"points": 100},
                         headers=student["headers"])
        assert res.status_code == 403
        assert res.json() == {"error": "Teacher access required"}
        assert db.query(Submission).filter(Submission.points.isnot(None)).count() == 0

    def test_grade_missing_submission(self, client, teacher):
        res = client.put("/api/submissions/424242/grade", json={"points": 50}, headers=teacher["headers"])
        assert res.status_code == 404
