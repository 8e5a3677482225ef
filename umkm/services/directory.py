from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from umkm.models.listing import Listing, ListingStatus

CATEGORY_SUGGESTIONS = [
    "Kuliner",
    "Kerajinan",
    "Jasa",
    "Pertanian",
    "Fashion",
    "Kesehatan",
    "Pendidikan",
    "Teknologi",
]

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class DirectoryFilter:
    search: str | None = None
    category: str | None = None
    status: ListingStatus | None = None
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.limit


@dataclass(frozen=True)
class Page:
    items: Sequence[Listing]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_filters(stmt: Select, flt: DirectoryFilter) -> Select:
    search = (flt.search or "").strip()
    if search:
        pattern = f"%{_escape_like(search)}%"
        stmt = stmt.where(
            or_(
                Listing.name.ilike(pattern, escape="\\"),
                Listing.description.ilike(pattern, escape="\\"),
                Listing.category.ilike(pattern, escape="\\"),
            )
        )
    if flt.category:
        stmt = stmt.where(Listing.category == flt.category)
    if flt.status is not None:
        stmt = stmt.where(Listing.status == int(flt.status))
    return stmt


async def list_listings(db: AsyncSession, flt: DirectoryFilter) -> Page:
    limit = min(max(flt.limit, 1), MAX_PAGE_SIZE)
    flt = DirectoryFilter(
        search=flt.search,
        category=flt.category,
        status=flt.status,
        page=max(flt.page, 1),
        limit=limit,
    )

    count_stmt = apply_filters(select(func.count()).select_from(Listing), flt)
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        apply_filters(select(Listing), flt)
        .order_by(Listing.created_at.desc(), Listing.id.desc())
        .offset(flt.offset)
        .limit(flt.limit)
    )
    rows = (await db.execute(stmt)).scalars().all()
    return Page(items=rows, total=total, page=flt.page, limit=flt.limit)


async def list_categories(db: AsyncSession, *, status: ListingStatus | None = None) -> list[str]:
    stmt = select(Listing.category).distinct()
    if status is not None:
        stmt = stmt.where(Listing.status == int(status))
    rows = (await db.execute(stmt)).scalars().all()
    return sorted({c for c in rows if c})


async def fetch_all(db: AsyncSession) -> Sequence[Listing]:
    stmt = select(Listing).order_by(Listing.created_at.desc(), Listing.id.desc())
    return (await db.execute(stmt)).scalars().all()


def compute_statistics(listings: Iterable[Listing]) -> dict:
    """Dashboard counts, computed by scanning the fetched rows."""
    by_status: Counter[int] = Counter()
    by_category: Counter[str] = Counter()
    total = 0
    for listing in listings:
        total += 1
        by_status[listing.status] += 1
        if listing.category:
            by_category[listing.category] += 1

    return {
        "total": total,
        "active": by_status[int(ListingStatus.ACTIVE)],
        "inactive": by_status[int(ListingStatus.INACTIVE)],
        "pending": by_status[int(ListingStatus.PENDING)],
        "by_category": dict(sorted(by_category.items())),
    }
