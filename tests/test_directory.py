from datetime import datetime, timedelta, timezone

import pytest

from umkm.models.listing import Listing, ListingStatus
from umkm.services.directory import DirectoryFilter, compute_statistics, list_categories, list_listings


def make_listing(i: int, *, name: str, category: str, status: ListingStatus = ListingStatus.ACTIVE, description: str = "Produk desa") -> Listing:
    created = datetime(2025, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=i)
    return Listing(
        slug=f"listing-{i}",
        name=name,
        category=category,
        description=description,
        main_image=f"http://test/static/storage/umkm-images/main/{i}.jpg",
        status=int(status),
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def seeded_rows():
    return [
        make_listing(1, name="Warung Sate Pak Budi", category="Kuliner"),
        make_listing(2, name="Batik Tulis Bu Ani", category="Kerajinan"),
        make_listing(3, name="Bengkel Motor Jaya", category="Jasa", status=ListingStatus.INACTIVE),
        make_listing(4, name="Keripik Singkong", category="Kuliner", description="Camilan pedas renyah"),
        make_listing(5, name="Sayur Organik", category="Pertanian", status=ListingStatus.PENDING),
    ]


@pytest.mark.asyncio
async def test_list_orders_newest_first_and_paginates(db_session, seeded_rows):
    db_session.add_all(seeded_rows)
    await db_session.commit()

    page1 = await list_listings(db_session, DirectoryFilter(page=1, limit=2))
    page3 = await list_listings(db_session, DirectoryFilter(page=3, limit=2))

    assert page1.total == 5
    assert page1.total_pages == 3
    assert [r.slug for r in page1.items] == ["listing-5", "listing-4"]
    assert [r.slug for r in page3.items] == ["listing-1"]


@pytest.mark.asyncio
async def test_search_matches_name_description_and_category(db_session, seeded_rows):
    db_session.add_all(seeded_rows)
    await db_session.commit()

    by_name = await list_listings(db_session, DirectoryFilter(search="sate"))
    by_description = await list_listings(db_session, DirectoryFilter(search="PEDAS"))
    by_category = await list_listings(db_session, DirectoryFilter(search="kerajinan"))

    assert [r.slug for r in by_name.items] == ["listing-1"]
    assert [r.slug for r in by_description.items] == ["listing-4"]
    assert [r.slug for r in by_category.items] == ["listing-2"]


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(db_session, seeded_rows):
    db_session.add_all(seeded_rows)
    await db_session.commit()

    result = await list_listings(db_session, DirectoryFilter(search="%"))
    assert result.total == 0


@pytest.mark.asyncio
async def test_category_and_status_filters(db_session, seeded_rows):
    db_session.add_all(seeded_rows)
    await db_session.commit()

    kuliner = await list_listings(db_session, DirectoryFilter(category="Kuliner"))
    inactive = await list_listings(db_session, DirectoryFilter(status=ListingStatus.INACTIVE))
    active_kuliner = await list_listings(
        db_session, DirectoryFilter(category="Kuliner", status=ListingStatus.ACTIVE, search="keripik")
    )

    assert kuliner.total == 2
    assert [r.slug for r in inactive.items] == ["listing-3"]
    assert [r.slug for r in active_kuliner.items] == ["listing-4"]


@pytest.mark.asyncio
async def test_list_categories(db_session, seeded_rows):
    db_session.add_all(seeded_rows)
    await db_session.commit()

    assert await list_categories(db_session) == ["Jasa", "Kerajinan", "Kuliner", "Pertanian"]
    assert await list_categories(db_session, status=ListingStatus.ACTIVE) == ["Kerajinan", "Kuliner"]


def test_compute_statistics(seeded_rows):
    stats = compute_statistics(seeded_rows)
    assert stats == {
        "total": 5,
        "active": 3,
        "inactive": 1,
        "pending": 1,
        "by_category": {"Jasa": 1, "Kerajinan": 1, "Kuliner": 2, "Pertanian": 1},
    }


def test_compute_statistics_empty():
    assert compute_statistics([])["total"] == 0
