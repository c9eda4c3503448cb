"""Image upload checks shared by the profile and prompt endpoints."""

from __future__ import annotations

from fastapi import UploadFile

from promptmart.core.exceptions import ValidationError
from promptmart.services.object_store import ObjectStore

PROFILE_PIC_MAX_BYTES = 5 * 1024 * 1024
PROMPT_IMAGE_MAX_BYTES = 10 * 1024 * 1024
PROMPT_IMAGE_MAX_FILES = 10


async def store_image(store: ObjectStore, upload: UploadFile, folder: str, max_bytes: int) -> dict:
    """Validate one uploaded image and hand it to the object store."""
    if not (upload.content_type or "").startswith("image/"):
        raise ValidationError("Only image files are allowed!")
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationError(f"Image exceeds the {max_bytes // (1024 * 1024)} MB limit")
    if not data:
        raise ValidationError("Uploaded file is empty")
    return await store.upload(data, upload.filename or "image", folder)
