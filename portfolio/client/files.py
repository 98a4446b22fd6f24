"""
Client-side image selection for the wizard's details step.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from typing import Iterable

from portfolio.exceptions import FileValidationError
from portfolio.storage import validate_image

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


@dataclass
class LocalFile:
    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_bytes(cls, name: str, data: bytes, content_type: str | None = None) -> "LocalFile":
        guessed = content_type or mimetypes.guess_type(name)[0] or "application/octet-stream"
        return cls(name=name, content_type=guessed, data=data)


def validate_files(
    files: Iterable[LocalFile],
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> tuple[list[LocalFile], list[str]]:
    """Split a selection into accepted files and per-file rejection messages."""
    accepted: list[LocalFile] = []
    rejected: list[str] = []
    for f in files:
        try:
            validate_image(f.name, f.content_type, f.size, max_bytes=max_bytes)
        except FileValidationError as exc:
            rejected.append(exc.message)
            continue
        accepted.append(f)
    return accepted, rejected
