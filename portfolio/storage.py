"""
Local object storage for uploaded images.

Files live under <storage_path>/<bucket>/<path> and are served back by the
API at /v1/storage/<bucket>/<path>.
"""

from __future__ import annotations

import logging
import mimetypes
import re
import uuid
from pathlib import Path, PurePosixPath

from portfolio.exceptions import FileValidationError, NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)

_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9-]{0,62}$")


def size_label(max_bytes: int) -> str:
    """10485760 -> '10MB'."""
    mb = max_bytes / (1024 * 1024)
    return f"{mb:g}MB"


def validate_image(name: str, content_type: str | None, size: int, *, max_bytes: int) -> None:
    """Raise FileValidationError unless the file is an image within the size cap."""
    if not (content_type or "").startswith("image/"):
        raise FileValidationError(name, "is not an image")
    if size > max_bytes:
        raise FileValidationError(name, f"is larger than {size_label(max_bytes)}")


def object_path(name: str, *, prefix: str = "projects") -> str:
    """Random object key that keeps the original extension: projects/<hex>.<ext>."""
    ext = PurePosixPath(name or "").suffix.lstrip(".").lower()
    ext = re.sub(r"[^a-z0-9]", "", ext)[:8] or "bin"
    return f"{prefix}/{uuid.uuid4().hex}.{ext}"


class LocalObjectStorage:
    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        if not _BUCKET_RE.match(bucket or ""):
            raise ValidationError("Invalid bucket name", field="bucket")
        rel = PurePosixPath(path or "")
        if not rel.parts or rel.is_absolute() or ".." in rel.parts:
            raise ValidationError("Invalid object path", field="path")
        base = (self.root / bucket).resolve()
        target = (base / Path(*rel.parts)).resolve()
        if base not in target.parents:
            raise ValidationError("Invalid object path", field="path")
        return target

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        target = self._resolve(bucket, path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(path=f"{bucket}/{path}") from e
        logger.info("Stored object", extra={"bucket": bucket, "object_path": path, "bytes": len(data)})
        return path

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/v1/storage/{bucket}/{path}"

    def locate(self, bucket: str, path: str) -> tuple[Path, str]:
        """Return (file path, media type) for a stored object."""
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise NotFoundError("Object not found", resource_type="object", resource_id=f"{bucket}/{path}")
        media_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
        return target, media_type
