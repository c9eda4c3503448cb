"""
Profile endpoints for the logged-in user.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from promptmart.api.v1.deps import get_current_user, get_db, get_object_store
from promptmart.api.v1.uploads import PROFILE_PIC_MAX_BYTES, store_image
from promptmart.models.user import User
from promptmart.schemas.user import ProfileUpdate, UserRead
from promptmart.services.credential_store import SqlCredentialStore
from promptmart.services.object_store import ObjectStore, delete_quietly

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("/profile", response_model=UserRead)
async def get_profile(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.put("/profile", response_model=UserRead)
async def update_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> User:
    """Update name, email and/or phone. Email stays globally unique."""
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return current_user
    user = await SqlCredentialStore(db).update_fields(current_user.id, **changes)
    logger.info("Profile updated for user %s: %s", user.id, sorted(changes))
    return user


@router.put("/profile-picture", response_model=UserRead)
async def update_profile_picture(
    profile_pic: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: User = Depends(get_current_user),
) -> User:
    """Replace the profile picture; the old file is removed best-effort."""
    stored = await store_image(store, profile_pic, "users", PROFILE_PIC_MAX_BYTES)
    old_key = current_user.profile_pic_key

    user = await SqlCredentialStore(db).update_fields(
        current_user.id,
        profile_pic_key=stored["storage_key"],
        profile_pic_url=stored["url"],
    )
    if old_key:
        await delete_quietly(store, [old_key])
    return user
