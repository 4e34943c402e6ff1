"""Read a request body that may arrive as JSON or as multipart/urlencoded form data.

Only keys actually present in the request are returned, so callers can apply
partial patches (an empty string is "present", an absent key is not).
"""

from typing import Any, Dict, Optional, Tuple

from fastapi import Request, UploadFile, status
from starlette.datastructures import UploadFile as StarletteUploadFile

from app.core.exceptions import ServiceError


async def read_body(request: Request, file_field: Optional[str] = None) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            raise ServiceError("Malformed JSON body", status.HTTP_400_BAD_REQUEST)
        if not isinstance(data, dict):
            raise ServiceError("JSON body must be an object", status.HTTP_400_BAD_REQUEST)
        return data, None

    if content_type.startswith("multipart/form-data") or content_type.startswith(
        "application/x-www-form-urlencoded"
    ):
        form = await request.form()
        data: Dict[str, Any] = {}
        upload: Optional[UploadFile] = None
        for key, value in form.multi_items():
            if isinstance(value, StarletteUploadFile):
                if file_field and key == file_field and value.filename:
                    upload = value
                continue
            data[key] = value
        return data, upload

    return {}, None
