from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from umkm.core.db import get_db
from umkm.models.listing import ListingStatus
from umkm.schemas.directory import CategoriesOut, ListingPage
from umkm.schemas.listing import ListingOut
from umkm.services.directory import CATEGORY_SUGGESTIONS, DirectoryFilter, list_categories, list_listings
from umkm.services.listings import get_listing_by_slug

router = APIRouter()


@router.get("/umkm", response_model=ListingPage)
async def browse_listings(
    search: str | None = Query(default=None, max_length=100),
    category: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> ListingPage:
    # public visitors only ever see active listings
    result = await list_listings(
        db,
        DirectoryFilter(search=search, category=category, status=ListingStatus.ACTIVE, page=page, limit=limit),
    )
    return ListingPage(
        items=[ListingOut.from_model(r) for r in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/umkm/{slug}", response_model=ListingOut)
async def listing_detail(slug: str, db: AsyncSession = Depends(get_db)) -> ListingOut:
    listing = await get_listing_by_slug(db, slug, active_only=True)
    return ListingOut.from_model(listing)


@router.get("/categories", response_model=CategoriesOut)
async def categories(db: AsyncSession = Depends(get_db)) -> CategoriesOut:
    used = await list_categories(db, status=ListingStatus.ACTIVE)
    return CategoriesOut(categories=used, suggestions=CATEGORY_SUGGESTIONS)
