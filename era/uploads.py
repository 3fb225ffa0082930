from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from era.errors import FilesystemError, UploadRejectedError

log = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class StoredUpload:
    path: Path
    filename: str
    content_type: str
    size: int

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


def ensure_upload_dir(directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _safe_name(filename: Optional[str]) -> str:
    base = Path(filename or "upload").name
    cleaned = _UNSAFE_NAME_RE.sub("_", base).strip("._")
    return cleaned[:100] or "upload"


def unique_upload_path(directory: Path, filename: Optional[str]) -> Path:
    """``<ms-timestamp>-<random>-<sanitized name>`` inside ``directory``."""
    return directory / f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{_safe_name(filename)}"


async def save_upload(upload: Any, directory: Path, max_bytes: int, image_only: bool = False) -> StoredUpload:
    """Stream an UploadFile to a uniquely named file; the caller must remove it.

    Raises UploadRejectedError for a non-image file when ``image_only`` is set,
    or when the file grows past ``max_bytes``. A partially written file is
    removed before raising.
    """
    content_type = (getattr(upload, "content_type", None) or "application/octet-stream").lower()
    if image_only and not content_type.startswith("image/"):
        raise UploadRejectedError("Only image files are allowed!")

    ensure_upload_dir(directory)
    path = unique_upload_path(directory, getattr(upload, "filename", None))
    size = 0
    try:
        with path.open("wb") as f:
            while True:
                chunk = await upload.read(_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise UploadRejectedError(f"File too large (limit {max_bytes} bytes)")
                f.write(chunk)
    except BaseException:
        remove_quietly(path)
        raise

    log.info("upload stored path=%s bytes=%d type=%s", path, size, content_type)
    return StoredUpload(
        path=path,
        filename=getattr(upload, "filename", None) or path.name,
        content_type=content_type,
        size=size,
    )


def remove_upload(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as e:
        raise FilesystemError(f"Could not delete upload {path}: {e}") from e


def remove_quietly(path: Optional[Path]) -> bool:
    """Delete ``path``; log and swallow failures so they never mask another error."""
    if path is None:
        return True
    try:
        remove_upload(path)
        return True
    except FilesystemError as e:
        log.warning("upload cleanup failed: %s", e)
        return False
