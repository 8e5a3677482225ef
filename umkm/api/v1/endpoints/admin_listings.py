from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from umkm.core.db import get_db
from umkm.models.listing import ListingStatus
from umkm.schemas.common import StatusResponse
from umkm.schemas.directory import ListingPage, StatisticsOut
from umkm.schemas.listing import ListingOut, ListingWriteOut, SlugPreviewOut, StatusUpdate, parse_status
from umkm.services import listings as listing_service
from umkm.services.auth import Admin, get_admin
from umkm.services.directory import DirectoryFilter, compute_statistics, fetch_all, list_listings
from umkm.services.image_refs import parse_images
from umkm.services.images import ImageCommit, ImageForm, PendingImage, apply_changes
from umkm.services.listings import ListingFields
from umkm.services.slugs import SlugError, base_slug, is_valid_slug, normalize, resolve_unique_slug
from umkm.services.storage import ObjectStore, get_object_store

router = APIRouter()


async def _read_upload(upload: UploadFile | None) -> PendingImage | None:
    # browsers send an empty part when no file was picked
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return PendingImage(filename=upload.filename, content_type=upload.content_type or "", data=data)


async def _read_uploads(uploads: list[UploadFile] | None) -> list[PendingImage]:
    out: list[PendingImage] = []
    for upload in uploads or []:
        image = await _read_upload(upload)
        if image is not None:
            out.append(image)
    return out


def _status_or_422(value: str) -> ListingStatus:
    try:
        return parse_status(value)
    except ValueError:
        raise HTTPException(
            status_code=422,
            detail={"errors": [{"field": "status", "message": "Status must be one of: Aktif, Nonaktif, Pending"}]},
        )


def _write_out(listing, committed: ImageCommit, progress: list[int]) -> ListingWriteOut:
    return ListingWriteOut(
        listing=ListingOut.from_model(listing),
        failed_images=committed.failed,
        used_placeholder=committed.used_placeholder,
        progress=progress,
    )


@router.get("/admin/umkm", response_model=ListingPage)
async def admin_list_listings(
    search: str | None = Query(default=None, max_length=100),
    category: str | None = Query(default=None, max_length=100),
    status: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    admin: Admin = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
) -> ListingPage:
    flt = DirectoryFilter(
        search=search,
        category=category,
        status=_status_or_422(status) if status else None,
        page=page,
        limit=limit,
    )
    result = await list_listings(db, flt)
    return ListingPage(
        items=[ListingOut.from_model(r) for r in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/admin/statistics", response_model=StatisticsOut)
async def admin_statistics(admin: Admin = Depends(get_admin), db: AsyncSession = Depends(get_db)) -> StatisticsOut:
    rows = await fetch_all(db)
    return StatisticsOut(**compute_statistics(rows))


@router.get("/admin/slug-preview", response_model=SlugPreviewOut)
async def admin_slug_preview(
    name: str = Query(min_length=1, max_length=255),
    exclude_id: int | None = Query(default=None),
    admin: Admin = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
) -> SlugPreviewOut:
    normalized = normalize(name)
    try:
        base_slug(name)
    except SlugError:
        return SlugPreviewOut(name=name, normalized=normalized, slug="", is_valid=False)

    try:
        slug = await resolve_unique_slug(db, name, exclude_id=exclude_id)
    except SlugError as e:
        raise listing_service.slug_http_error(e) from e
    return SlugPreviewOut(name=name, normalized=normalized, slug=slug, is_valid=is_valid_slug(slug))


@router.post("/admin/umkm", response_model=ListingWriteOut, status_code=201)
async def admin_create_listing(
    name: str = Form(default=""),
    category: str = Form(default=""),
    description: str = Form(default=""),
    full_description: str | None = Form(default=None),
    phone: str | None = Form(default=None),
    address: str | None = Form(default=None),
    status: str = Form(default="1"),
    slug: str | None = Form(default=None),
    main_image: UploadFile | None = File(default=None),
    additional_images: list[UploadFile] | None = File(default=None),
    admin: Admin = Depends(get_admin),
    store: ObjectStore = Depends(get_object_store),
    db: AsyncSession = Depends(get_db),
) -> ListingWriteOut:
    fields = ListingFields(
        name=name,
        category=category,
        description=description,
        full_description=full_description,
        phone=phone,
        address=address,
        status=_status_or_422(status),
        slug=slug,
    )
    form, rejections = apply_changes(
        ImageForm(),
        main_file=await _read_upload(main_image),
        additional_files=await _read_uploads(additional_images),
    )

    progress: list[int] = []
    listing, committed = await listing_service.create_listing(
        db=db,
        store=store,
        fields=fields,
        form=form,
        rejections=rejections,
        on_progress=progress.append,
    )
    return _write_out(listing, committed, progress)


@router.get("/admin/umkm/{slug}", response_model=ListingOut)
async def admin_get_listing(
    slug: str,
    admin: Admin = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    listing = await listing_service.get_listing_by_slug(db, slug)
    return ListingOut.from_model(listing)


@router.put("/admin/umkm/{current_slug}", response_model=ListingWriteOut)
async def admin_update_listing(
    current_slug: str,
    name: str = Form(default=""),
    category: str = Form(default=""),
    description: str = Form(default=""),
    full_description: str | None = Form(default=None),
    phone: str | None = Form(default=None),
    address: str | None = Form(default=None),
    status: str | None = Form(default=None),
    slug: str | None = Form(default=None),
    main_image: UploadFile | None = File(default=None),
    additional_images: list[UploadFile] | None = File(default=None),
    remove_images: list[str] | None = Form(default=None),
    admin: Admin = Depends(get_admin),
    store: ObjectStore = Depends(get_object_store),
    db: AsyncSession = Depends(get_db),
) -> ListingWriteOut:
    listing = await listing_service.get_listing_by_slug(db, current_slug)

    fields = ListingFields(
        name=name,
        category=category,
        description=description,
        full_description=full_description,
        phone=phone,
        address=address,
        status=_status_or_422(status) if status else ListingStatus(listing.status),
        slug=slug,
    )
    form, rejections = apply_changes(
        ImageForm.from_listing(listing.main_image, parse_images(listing.images_text)),
        main_file=await _read_upload(main_image),
        additional_files=await _read_uploads(additional_images),
        remove_urls=remove_images or [],
    )

    progress: list[int] = []
    listing, committed = await listing_service.update_listing(
        db=db,
        store=store,
        listing=listing,
        fields=fields,
        form=form,
        rejections=rejections,
        on_progress=progress.append,
    )
    return _write_out(listing, committed, progress)


@router.patch("/admin/umkm/{listing_id}/status", response_model=ListingOut)
async def admin_set_status(
    listing_id: int,
    payload: StatusUpdate,
    admin: Admin = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    listing = await listing_service.get_listing_by_id(db, listing_id)
    listing = await listing_service.set_status(db=db, listing=listing, status=ListingStatus(payload.status))
    return ListingOut.from_model(listing)


@router.delete("/admin/umkm/{slug}", response_model=StatusResponse)
async def admin_delete_listing(
    slug: str,
    admin: Admin = Depends(get_admin),
    store: ObjectStore = Depends(get_object_store),
    db: AsyncSession = Depends(get_db),
) -> StatusResponse:
    listing = await listing_service.get_listing_by_slug(db, slug)
    await listing_service.delete_listing(db=db, store=store, listing=listing)
    return StatusResponse(status="deleted")
