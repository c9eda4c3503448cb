"""
Prompt CRUD, search and rating endpoints.

- GET operations are public and only list ``active`` prompts.
- POST creates a prompt owned by the caller.
- PUT / DELETE require the owner or an admin.
- Rating requires any logged-in user.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promptmart.api.v1.deps import (ensure_owner_or_admin, get_current_user,
                                    get_db, get_object_store,
                                    get_rating_service)
from promptmart.api.v1.uploads import (PROMPT_IMAGE_MAX_BYTES,
                                       PROMPT_IMAGE_MAX_FILES, store_image)
from promptmart.core.exceptions import NotFoundError, ValidationError
from promptmart.models.prompt import Prompt
from promptmart.models.user import User
from promptmart.schemas.prompt import (DeleteResponse, Pagination, PromptCreate,
                                       PromptPage, PromptRead, PromptUpdate,
                                       RateRequest, RatingRead, RatingResponse,
                                       check_offer_price)
from promptmart.services.object_store import ObjectStore, delete_quietly
from promptmart.services.ratings import RatingService

router = APIRouter(prefix="/prompts", tags=["prompts"])
logger = logging.getLogger(__name__)


# ── Helpers ─────────────────────────────────────────────────────────
def _parse(model: type[pydantic.BaseModel], data: dict) -> pydantic.BaseModel:
    """Validate multipart form fields with the JSON schema rules."""
    try:
        return model(**data)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        message = str(first["msg"]).removeprefix("Value error, ")
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(f"{field}: {message}" if field else message) from exc


async def _get_prompt_or_404(db: AsyncSession, prompt_id: int) -> Prompt:
    prompt = await db.get(Prompt, prompt_id)
    if prompt is None:
        raise NotFoundError("Prompt not found")
    return prompt


async def _store_images(store: ObjectStore, images: list[UploadFile] | None) -> list[dict]:
    uploads = [img for img in images or [] if img.filename]
    if len(uploads) > PROMPT_IMAGE_MAX_FILES:
        raise ValidationError(f"At most {PROMPT_IMAGE_MAX_FILES} images are allowed")
    stored: list[dict] = []
    try:
        for upload in uploads:
            stored.append(await store_image(store, upload, "prompts", PROMPT_IMAGE_MAX_BYTES))
    except Exception:
        # Don't leave half a batch behind
        await delete_quietly(store, [s["storage_key"] for s in stored])
        raise
    return stored


async def _commit_or_discard(db: AsyncSession, store: ObjectStore, stored: list[dict]) -> None:
    """Commit, removing the images uploaded for this request if the row is not saved."""
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        await delete_quietly(store, [s["storage_key"] for s in stored])
        raise


# ── Read ────────────────────────────────────────────────────────────
@router.get("", response_model=PromptPage)
async def list_prompts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=200),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
) -> PromptPage:
    """Active prompts, newest first, with search and price filters."""
    filters = [Prompt.status == "active"]
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        filters.append(or_(Prompt.name.ilike(pattern), Prompt.description.ilike(pattern)))
    if min_price is not None:
        filters.append(Prompt.regular_price >= min_price)
    if max_price is not None:
        filters.append(Prompt.regular_price <= max_price)

    total = (await db.execute(select(func.count(Prompt.id)).where(*filters))).scalar_one()
    result = await db.execute(
        select(Prompt)
        .where(*filters)
        .order_by(Prompt.created_at.desc(), Prompt.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    prompts = list(result.scalars().all())

    return PromptPage(
        count=len(prompts),
        total=total,
        pagination=Pagination(page=page, pages=math.ceil(total / limit)),
        data=[PromptRead.model_validate(p) for p in prompts],
    )


@router.get("/{prompt_id}", response_model=PromptRead)
async def get_prompt(prompt_id: int, db: AsyncSession = Depends(get_db)) -> Prompt:
    return await _get_prompt_or_404(db, prompt_id)


# ── Write ───────────────────────────────────────────────────────────
@router.post("", response_model=PromptRead, status_code=status.HTTP_201_CREATED)
async def create_prompt(
    name: str = Form(...),
    description: str = Form(...),
    regular_price: float = Form(...),
    offer_price: Optional[float] = Form(None),
    prompt_status: str = Form("active", alias="status"),
    images: Optional[list[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: User = Depends(get_current_user),
) -> Prompt:
    body = _parse(
        PromptCreate,
        {
            "name": name,
            "description": description,
            "status": prompt_status,
            "regular_price": regular_price,
            "offer_price": offer_price,
        },
    )
    stored = await _store_images(store, images)

    prompt = Prompt(**body.model_dump(), images=stored, owner_id=current_user.id)
    db.add(prompt)
    await _commit_or_discard(db, store, stored)
    await db.refresh(prompt)
    logger.info("Prompt %s created by user %s", prompt.id, current_user.id)
    return prompt


@router.put("/{prompt_id}", response_model=PromptRead)
async def update_prompt(
    prompt_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    regular_price: Optional[float] = Form(None),
    offer_price: Optional[float] = Form(None),
    prompt_status: Optional[str] = Form(None, alias="status"),
    images: Optional[list[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: User = Depends(get_current_user),
) -> Prompt:
    """Partial update; uploaded images are appended to the existing ones."""
    prompt = await _get_prompt_or_404(db, prompt_id)
    ensure_owner_or_admin(prompt.owner_id, current_user, "update")

    body = _parse(
        PromptUpdate,
        {
            "name": name,
            "description": description,
            "status": prompt_status,
            "regular_price": regular_price,
            "offer_price": offer_price,
        },
    )
    changes = body.model_dump(exclude_none=True)

    # The offer must still fit under the regular price after merging
    try:
        check_offer_price(
            changes.get("regular_price", prompt.regular_price),
            changes.get("offer_price", prompt.offer_price),
        )
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    new_images = await _store_images(store, images)
    for field, value in changes.items():
        setattr(prompt, field, value)
    if new_images:
        prompt.images = [*prompt.images, *new_images]

    await _commit_or_discard(db, store, new_images)
    await db.refresh(prompt)
    logger.info("Prompt %s updated by user %s: %s", prompt.id, current_user.id, sorted(changes))
    return prompt


@router.delete("/{prompt_id}", response_model=DeleteResponse)
async def delete_prompt(
    prompt_id: int,
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: User = Depends(get_current_user),
) -> DeleteResponse:
    """Delete a prompt and, best-effort, its stored images."""
    prompt = await _get_prompt_or_404(db, prompt_id)
    ensure_owner_or_admin(prompt.owner_id, current_user, "delete")

    await delete_quietly(store, [img["storage_key"] for img in prompt.images or []])
    await db.delete(prompt)
    await db.commit()
    logger.info("Prompt %s deleted by user %s", prompt_id, current_user.id)
    return DeleteResponse(success=True, message="Prompt deleted successfully")


# ── Rating ──────────────────────────────────────────────────────────
@router.post("/{prompt_id}/rate", response_model=RatingResponse)
async def rate_prompt(
    prompt_id: int,
    body: RateRequest,
    ratings: RatingService = Depends(get_rating_service),
    _user: User = Depends(get_current_user),
) -> RatingResponse:
    summary = await ratings.submit(prompt_id, body.rating)
    return RatingResponse(data=RatingRead.model_validate(summary))
