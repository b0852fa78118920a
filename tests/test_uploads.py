import io

import pytest
from starlette.datastructures import FormData, Headers, UploadFile

from peerreview import uploads
from peerreview.errors import UploadError


def make_upload(filename, content_type, data=b"data"):
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


@pytest.mark.parametrize("filename,content_type,extension", [
    ("a.png", "image/png", ".png"),
    ("B.JPG", "image/jpeg", ".jpg"),
    ("c.jpeg", "image/jpeg", ".jpeg"),
    ("d.pdf", "application/pdf", ".pdf"),
    ("e.zip", "application/zip", ".zip"),
])
def test_allowed_types(filename, content_type, extension):
    assert uploads.check_allowed(make_upload(filename, content_type)) == extension


@pytest.mark.parametrize("filename,content_type", [
    ("a.gif", "image/gif"),
    ("a.png", "text/html"),
    ("a.html", "image/png"),
    ("noextension", "image/png"),
])
def test_rejected_types(filename, content_type):
    with pytest.raises(UploadError):
        uploads.check_allowed(make_upload(filename, content_type))


def test_empty_part_counts_as_absent():
    assert not uploads.is_present(None)
    assert not uploads.is_present(make_upload("", "application/octet-stream"))
    assert uploads.is_present(make_upload("x.png", "image/png"))


def test_unique_names_do_not_collide():
    names = {uploads.unique_name(".png") for _ in range(200)}
    assert len(names) == 200
    assert all(n.endswith(".png") for n in names)


def test_save_attachments(tmp_path):
    urls = uploads.save_attachments(
        {"image": make_upload("x.png", "image/png", b"img"), "file": None},
        tmp_path, max_bytes=1024,
    )
    assert urls["file"] == ""
    stored = uploads.path_for_url(urls["image"], tmp_path)
    assert stored.read_bytes() == b"img"


def test_save_attachments_cleans_up_on_size_failure(tmp_path):
    fields = {
        "image": make_upload("x.png", "image/png", b"small"),
        "file": make_upload("y.zip", "application/zip", b"z" * 2048),
    }
    with pytest.raises(UploadError):
        uploads.save_attachments(fields, tmp_path, max_bytes=1024)
    assert list(tmp_path.iterdir()) == []


def test_path_for_url(tmp_path):
    assert uploads.path_for_url("", tmp_path) is None
    assert uploads.path_for_url("https://elsewhere/x.png", tmp_path) is None
    assert uploads.path_for_url("/uploads/1-2.png", tmp_path) == tmp_path / "1-2.png"


def test_collect_attachments_picks_known_fields():
    image = make_upload("x.png", "image/png")
    form = FormData([("projectId", "3"), ("image", image), ("file", make_upload("", "application/octet-stream"))])
    assert uploads.collect_attachments(form) == {"image": image, "file": None}


@pytest.mark.parametrize("parts,message", [
    ([("image", "a.png"), ("image", "b.png")], "Only one file allowed for field: image"),
    ([("file", "a.pdf"), ("avatar", "b.png")], "Unexpected file field: avatar"),
])
def test_collect_attachments_rejects(parts, message):
    form = FormData([(name, make_upload(filename, "image/png")) for name, filename in parts])
    with pytest.raises(UploadError) as info:
        uploads.collect_attachments(form)
    assert info.value.message == message
