from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from umkm.models.listing import Listing, ListingStatus
from umkm.services import images
from umkm.services.image_refs import get_all_images, serialize_images
from umkm.services.images import ImageCommit, ImageForm, ImageRejection, ProgressCallback
from umkm.services.slugs import (
    InvalidSlugError,
    SlugError,
    SlugExhaustedError,
    base_slug,
    normalize,
    resolve_unique_slug,
)
from umkm.services.storage import ObjectStore

log = logging.getLogger(__name__)

DESCRIPTION_MAX_LENGTH = 200
NAME_MAX_LENGTH = 255

PHONE_RE = re.compile(r"^(\+62|62|0)8[1-9][0-9]{6,9}$")


@dataclass(frozen=True)
class ListingFields:
    name: str
    category: str
    description: str
    full_description: str | None = None
    phone: str | None = None
    address: str | None = None
    status: ListingStatus = ListingStatus.ACTIVE
    # explicit slug typed by the admin; derived from name when None
    slug: str | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_fields(fields: ListingFields) -> list[dict]:
    errors: list[dict] = []

    if not (fields.name or "").strip():
        errors.append({"field": "name", "message": "Name is required"})
    elif len(fields.name.strip()) > NAME_MAX_LENGTH:
        errors.append({"field": "name", "message": f"Name must be at most {NAME_MAX_LENGTH} characters"})

    if not (fields.category or "").strip():
        errors.append({"field": "category", "message": "Category is required"})

    description = (fields.description or "").strip()
    if not description:
        errors.append({"field": "description", "message": "Short description is required"})
    elif len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(
            {"field": "description", "message": f"Short description must be at most {DESCRIPTION_MAX_LENGTH} characters"}
        )

    phone = _clean(fields.phone)
    if phone and not PHONE_RE.match(re.sub(r"\s", "", phone)):
        errors.append({"field": "phone", "message": "Invalid phone number format"})

    slug_source = _clean(fields.slug) or (fields.name or "").strip()
    if slug_source:
        try:
            base_slug(slug_source)
        except InvalidSlugError as e:
            errors.append({"field": "slug", "message": str(e)})

    return errors


def raise_if_invalid(fields: ListingFields, form: ImageForm, rejections: list[ImageRejection]) -> None:
    """
    All validation happens here, before anything touches the object store or
    the record store. Raises HTTPException(422) listing every problem.
    """
    errors = validate_fields(fields)
    for r in rejections:
        errors.append({"field": "images", "filename": r.filename, "message": r.reason})
    if form.main is None:
        errors.append({"field": "main_image", "message": "Main image is required"})
    if errors:
        raise HTTPException(status_code=422, detail={"errors": errors})


def slug_http_error(e: SlugError) -> HTTPException:
    if isinstance(e, InvalidSlugError):
        return HTTPException(status_code=422, detail={"errors": [{"field": "slug", "message": str(e)}]})
    if isinstance(e, SlugExhaustedError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=503, detail="Slug uniqueness could not be verified, please retry")


async def _discard_uploads(store: ObjectStore, committed: ImageCommit) -> None:
    if committed.uploaded:
        await images.delete_images(store, committed.uploaded)


async def _persist(db: AsyncSession, store: ObjectStore, listing: Listing, committed: ImageCommit) -> None:
    # rollback expires the instance; read what the errors need first
    slug = listing.slug
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        await _discard_uploads(store, committed)
        log.warning("listing write rejected by unique constraint: %s", slug)
        raise HTTPException(status_code=409, detail=f"Slug already used by another listing: {slug}") from e
    except SQLAlchemyError as e:
        await db.rollback()
        await _discard_uploads(store, committed)
        log.exception("listing write failed for slug %s", slug)
        raise HTTPException(status_code=502, detail=f"Database error: {e}") from e


async def get_listing_by_slug(db: AsyncSession, slug: str, *, active_only: bool = False) -> Listing:
    stmt = select(Listing).where(Listing.slug == slug)
    if active_only:
        stmt = stmt.where(Listing.status == int(ListingStatus.ACTIVE))
    listing = (await db.execute(stmt)).scalar_one_or_none()
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Listing not found: {slug}")
    return listing


async def get_listing_by_id(db: AsyncSession, listing_id: int) -> Listing:
    listing = await db.get(Listing, listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Listing not found: {listing_id}")
    return listing


async def create_listing(
    *,
    db: AsyncSession,
    store: ObjectStore,
    fields: ListingFields,
    form: ImageForm,
    rejections: list[ImageRejection] | None = None,
    on_progress: ProgressCallback | None = None,
) -> tuple[Listing, ImageCommit]:
    """
    Create flow: validate, upload images, resolve a unique slug, insert once.
    Newly uploaded objects are removed again if the insert does not happen.
    """
    raise_if_invalid(fields, form, rejections or [])

    name = fields.name.strip()
    committed = await images.commit(store, form, placeholder_label=name, on_progress=on_progress)

    try:
        slug = await resolve_unique_slug(db, _clean(fields.slug) or name)
    except SlugError as e:
        await _discard_uploads(store, committed)
        raise slug_http_error(e) from e

    if on_progress:
        on_progress(90)

    now = datetime.now(timezone.utc)
    listing = Listing(
        slug=slug,
        name=name,
        category=fields.category.strip(),
        description=fields.description.strip(),
        full_description=_clean(fields.full_description),
        phone=_clean(fields.phone),
        address=_clean(fields.address),
        main_image=committed.main_image,
        images_text=serialize_images(committed.additional_images),
        status=int(fields.status),
        created_at=now,
        updated_at=now,
    )
    db.add(listing)
    await _persist(db, store, listing, committed)

    log.info("listing created id=%s slug=%s", listing.id, listing.slug)
    if on_progress:
        on_progress(100)
    return listing, committed


async def update_listing(
    *,
    db: AsyncSession,
    store: ObjectStore,
    listing: Listing,
    fields: ListingFields,
    form: ImageForm,
    rejections: list[ImageRejection] | None = None,
    on_progress: ProgressCallback | None = None,
) -> tuple[Listing, ImageCommit]:
    """
    Edit flow. The slug is recomputed when the admin typed a different one or
    when the name changed; the listing's own id never counts as a collision.
    """
    raise_if_invalid(fields, form, rejections or [])

    name = fields.name.strip()
    committed = await images.commit(store, form, placeholder_label=name, on_progress=on_progress)

    requested = _clean(fields.slug)
    slug = listing.slug
    try:
        if requested and normalize(requested) != listing.slug:
            slug = await resolve_unique_slug(db, requested, exclude_id=listing.id)
        elif name != listing.name:
            slug = await resolve_unique_slug(db, name, exclude_id=listing.id)
    except SlugError as e:
        await _discard_uploads(store, committed)
        raise slug_http_error(e) from e

    if on_progress:
        on_progress(90)

    listing.slug = slug
    listing.name = name
    listing.category = fields.category.strip()
    listing.description = fields.description.strip()
    listing.full_description = _clean(fields.full_description)
    listing.phone = _clean(fields.phone)
    listing.address = _clean(fields.address)
    listing.main_image = committed.main_image
    listing.images_text = serialize_images(committed.additional_images)
    listing.status = int(fields.status)
    listing.updated_at = datetime.now(timezone.utc)

    await _persist(db, store, listing, committed)

    log.info("listing updated id=%s slug=%s", listing.id, listing.slug)
    if on_progress:
        on_progress(100)
    return listing, committed


async def set_status(*, db: AsyncSession, listing: Listing, status: ListingStatus) -> Listing:
    listing_id = listing.id
    listing.status = int(status)
    listing.updated_at = datetime.now(timezone.utc)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception("status update failed for listing %s", listing_id)
        raise HTTPException(status_code=502, detail=f"Database error: {e}") from e
    return listing


async def delete_listing(*, db: AsyncSession, store: ObjectStore, listing: Listing) -> list[str]:
    """
    Delete the record, then best-effort remove its images.
    Returns the image URLs that were actually removed.
    """
    urls = get_all_images(listing)
    listing_id = listing.id

    await db.delete(listing)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception("delete failed for listing %s", listing_id)
        raise HTTPException(status_code=502, detail=f"Failed to delete listing: {e}") from e

    removed = await images.purge_listing_images(store, urls)
    log.info("listing deleted id=%s images_removed=%d/%d", listing_id, len(removed), len(urls))
    return removed
