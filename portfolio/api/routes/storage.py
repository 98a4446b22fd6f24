"""
Object storage routes: admin uploads, public reads.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import FileResponse

from portfolio.api.dependencies import bearer_token, get_state
from portfolio.api.models import UploadOut
from portfolio.storage import object_path, validate_image

router = APIRouter(prefix="/v1/storage", tags=["storage"])


@router.post(
    "/{bucket}",
    response_model=UploadOut,
    responses={
        400: {"description": "Not an image or too large"},
        401: {"description": "Unauthorized"},
        403: {"description": "Admin access required"},
    },
)
def upload_object(
    bucket: str,
    request: Request,
    file: UploadFile = File(...),
    path: Optional[str] = Form(default=None),
) -> dict:
    state = get_state(request)
    state.auth.require_admin(bearer_token(request))

    max_bytes = state.settings.max_upload_bytes
    # Read one byte past the cap so oversize files are detected without buffering them whole.
    data = file.file.read(max_bytes + 1)
    name = file.filename or "upload"
    validate_image(name, file.content_type, len(data), max_bytes=max_bytes)

    key = path or object_path(name)
    state.storage.upload(bucket, key, data)
    return {"bucket": bucket, "path": key, "public_url": state.storage.public_url(bucket, key)}


@router.get("/{bucket}/{object_key:path}")
def read_object(bucket: str, object_key: str, request: Request) -> FileResponse:
    target, media_type = get_state(request).storage.locate(bucket, object_key)
    return FileResponse(target, media_type=media_type, headers={"Cache-Control": "public, max-age=3600"})
