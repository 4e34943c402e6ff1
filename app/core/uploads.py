"""Validation and storage of multipart uploads (photos and spreadsheet imports)."""

import base64
import os
import secrets
import time
from typing import Optional

from fastapi import UploadFile, status

from app.core.config import settings
from app.core.exceptions import ServiceError

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
_ALLOWED_IMPORT_MIME = {XLSX_MIME, "application/octet-stream", ""}

# Stored photos are served statically, so the extension comes from here, never the client filename
IMAGE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/pjpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def _image_content_type(file: UploadFile) -> str:
    return (file.content_type or "").split(";")[0].strip().lower()


async def read_image_upload(file: UploadFile) -> bytes:
    """PNG/JPEG/GIF/WebP only, capped at MAX_PHOTO_SIZE_BYTES."""
    if _image_content_type(file) not in IMAGE_EXTENSIONS:
        raise ServiceError("Only PNG, JPEG, GIF or WebP images are allowed", status.HTTP_400_BAD_REQUEST)
    content = await file.read()
    if len(content) > settings.max_photo_size_bytes:
        raise ServiceError("Image exceeds the maximum upload size", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
    if not content:
        raise ServiceError("Uploaded image is empty", status.HTTP_400_BAD_REQUEST)
    return content


async def read_import_upload(file: Optional[UploadFile]) -> bytes:
    """.xlsx only, capped at MAX_IMPORT_SIZE_BYTES."""
    if file is None:
        raise ServiceError("Import file is required", status.HTTP_400_BAD_REQUEST)
    name = (file.filename or "").lower()
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if not name.endswith(".xlsx") or content_type not in _ALLOWED_IMPORT_MIME:
        raise ServiceError("Only Excel .xlsx files are allowed", status.HTTP_400_BAD_REQUEST)
    content = await file.read()
    if len(content) > settings.max_import_size_bytes:
        raise ServiceError("Import file exceeds the maximum upload size", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
    if not content:
        raise ServiceError("Import file is required", status.HTTP_400_BAD_REQUEST)
    return content


def to_data_url(content: bytes, content_type: Optional[str]) -> str:
    mime = (content_type or "image/jpeg").split(";")[0].strip().lower()
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


def save_student_photo(content: bytes, content_type: Optional[str]) -> str:
    """Write under UPLOAD_DIR/students and return the public path served from /uploads."""
    ext = IMAGE_EXTENSIONS.get((content_type or "").split(";")[0].strip().lower())
    if ext is None:
        raise ServiceError("Only PNG, JPEG, GIF or WebP images are allowed", status.HTTP_400_BAD_REQUEST)
    name = f"student-{int(time.time() * 1000)}-{secrets.token_hex(4)}{ext}"
    directory = os.path.join(settings.upload_dir, "students")
    os.makedirs(directory, exist_ok=True)
    with open(os.path.join(directory, name), "wb") as fh:
        fh.write(content)
    return f"/uploads/students/{name}"
