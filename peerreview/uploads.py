# peerreview/uploads.py
"""
Submission attachments: one "image" and one "file" part per request.

Both parts are checked against the same allow-list (extension and MIME
type), capped in size, and written under a collision-resistant name. The
database row only ever stores the public ``/uploads/<name>`` URL.
"""

import logging
import os
import random
import re
import time
from pathlib import Path
from typing import Dict, List, Optional

from starlette.datastructures import UploadFile

from .errors import UploadError

logger = logging.getLogger(__name__)

ALLOWED_TYPES = re.compile(r"jpeg|jpg|png|pdf|zip")
UPLOAD_URL_PREFIX = "/uploads"
CHUNK_SIZE = 1024 * 1024
ATTACHMENT_FIELDS = ("image", "file")


def is_present(upload: Optional[UploadFile]) -> bool:
    # browsers send an empty part with filename="" for an untouched <input type=file>
    return upload is not None and bool(upload.filename)


def check_allowed(upload: UploadFile) -> str:
    """Return the lower-cased extension, or raise UploadError."""
    extension = Path(upload.filename).suffix.lower()
    mimetype = (upload.content_type or "").lower()
    if not (ALLOWED_TYPES.search(extension) and ALLOWED_TYPES.search(mimetype)):
        logger.info(f"Rejected upload {upload.filename!r} ({mimetype or 'no mimetype'})")
        raise UploadError()
    return extension


def collect_attachments(form, fields=ATTACHMENT_FIELDS) -> Dict[str, Optional[UploadFile]]:
    """
    Pick the attachment parts out of a parsed multipart form.

    Each field in ``fields`` may carry at most one file; a file under any
    other name is rejected instead of being ignored.
    """
    found: Dict[str, Optional[UploadFile]] = {name: None for name in fields}
    for name, value in form.multi_items():
        if not isinstance(value, UploadFile) or not is_present(value):
            continue
        if name not in found:
            logger.info(f"Rejected upload under unexpected field {name!r}")
            raise UploadError(f"Unexpected file field: {name}")
        if found[name] is not None:
            logger.info(f"Rejected second file for field {name!r}")
            raise UploadError(f"Only one file allowed for field: {name}")
        found[name] = value
    return found


def unique_name(extension: str) -> str:
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9 - 1)}{extension}"


def _write(upload: UploadFile, target: Path, max_bytes: int):
    written = 0
    with open(target, "wb") as f:
        while True:
            chunk = upload.file.read(CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                raise UploadError(f"File too large (limit {max_bytes // (1024 * 1024)}MB)")
            f.write(chunk)


def remove_files(paths: List[Path]):
    for path in paths:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


def save_attachments(fields: Dict[str, Optional[UploadFile]], upload_dir: Path, max_bytes: int) -> Dict[str, str]:
    """
    Store every present upload in ``fields`` and return ``{field: url}``.

    Absent fields map to "". Nothing is kept on disk if any part fails.
    """
    present = {name: upload for name, upload in fields.items() if is_present(upload)}
    extensions = {name: check_allowed(upload) for name, upload in present.items()}

    upload_dir.mkdir(parents=True, exist_ok=True)
    urls = {name: "" for name in fields}
    written: List[Path] = []
    try:
        for name, upload in present.items():
            filename = unique_name(extensions[name])
            target = upload_dir / filename
            written.append(target)
            _write(upload, target, max_bytes)
            urls[name] = f"{UPLOAD_URL_PREFIX}/{filename}"
    except Exception:
        remove_files(written)
        raise

    if written:
        logger.info(f"Stored {len(written)} attachment(s): {', '.join(p.name for p in written)}")
    return urls


def path_for_url(url: str, upload_dir: Path) -> Optional[Path]:
    if not url or not url.startswith(UPLOAD_URL_PREFIX + "/"):
        return None
    return upload_dir / url[len(UPLOAD_URL_PREFIX) + 1:]
