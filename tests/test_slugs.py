import re

import pytest

from umkm.services.slugs import (
    InvalidSlugError,
    SlugExhaustedError,
    SlugUnverifiableError,
    is_valid_slug,
    normalize,
    resolve_unique,
    resolve_unique_slug,
)
from umkm.models.listing import Listing


SAMPLE_NAMES = [
    "Warung Sate Pak Budi",
    "  --Warung__Sate!!  Pak   Budi-- ",
    "Kopi Café Ñandú",
    "Keripik Singkong Bu Siti (Pedas)",
    "Batik & Tenun — Desa Marga Kaya",
    "A--B  --  C",
    "🍜 Mie Ayam 2000",
    "",
    "----",
    "ÀÉÎÕÜ çñ",
    "tab\tand\nnewline",
    "Warung\u00a0Sate\u00a0Pak Budi",
    "Toko\u3000Jepang",
    "\ufb01ne \ufb03ce Supplies",
    "!!!???...",
    "\u200bzero\u200bwidth",
    "\u0130stanbul Kebab",
    "\u2003\u2003",
]


def lookup_from(taken: dict[str, int]):
    probes: list[str] = []

    async def _lookup(slug: str):
        probes.append(slug)
        return taken.get(slug)

    _lookup.probes = probes
    return _lookup


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Warung Sate Pak Budi", "warung-sate-pak-budi"),
        ("  --Warung__Sate!!  Pak   Budi-- ", "warungsate-pak-budi"),
        ("Kopi Café Ñandú", "kopi-cafe-nandu"),
        ("Batik & Tenun", "batik-tenun"),
        ("tab\tand\nnewline", "tab-and-newline"),
        ("Warung\u00a0Sate", "warung-sate"),
        ("Toko\u3000Jepang", "toko-jepang"),
        ("\u0130stanbul Kebab", "istanbul-kebab"),
        ("!!!???...", ""),
    ],
)
def test_normalize_examples(name, expected):
    assert normalize(name) == expected


@pytest.mark.parametrize("name", SAMPLE_NAMES)
def test_normalize_is_idempotent_and_clean(name):
    once = normalize(name)
    assert normalize(once) == once
    assert re.fullmatch(r"[a-z0-9-]*", once)
    assert not once.startswith("-")
    assert not once.endswith("-")
    assert "--" not in once


def test_is_valid_slug_bounds():
    assert is_valid_slug("abc")
    assert is_valid_slug("warung-sate-1")
    assert not is_valid_slug("ab")
    assert not is_valid_slug("-abc")
    assert not is_valid_slug("abc--def")
    assert not is_valid_slug("Abc")
    assert not is_valid_slug("a" * 256)


@pytest.mark.asyncio
async def test_resolve_unique_free_base():
    lookup = lookup_from({})
    assert await resolve_unique("Warung Sate Pak Budi", lookup) == "warung-sate-pak-budi"
    assert lookup.probes == ["warung-sate-pak-budi"]


@pytest.mark.asyncio
async def test_resolve_unique_appends_counter():
    assert await resolve_unique("Warung Sate", lookup_from({"warung-sate": 7})) == "warung-sate-1"

    lookup = lookup_from({"warung-sate": 7, "warung-sate-1": 8})
    assert await resolve_unique("Warung Sate", lookup) == "warung-sate-2"
    assert lookup.probes == ["warung-sate", "warung-sate-1", "warung-sate-2"]


@pytest.mark.asyncio
async def test_resolve_unique_ignores_own_record():
    lookup = lookup_from({"warung-sate": 7})
    assert await resolve_unique("Warung Sate", lookup, exclude_id=7) == "warung-sate"


@pytest.mark.asyncio
async def test_resolve_unique_other_record_still_collides_when_editing():
    lookup = lookup_from({"warung-sate": 7})
    assert await resolve_unique("Warung Sate", lookup, exclude_id=99) == "warung-sate-1"


@pytest.mark.asyncio
async def test_resolve_unique_lookup_failure_is_not_a_guess():
    async def broken(slug: str):
        raise ConnectionError("store unavailable")

    with pytest.raises(SlugUnverifiableError):
        await resolve_unique("Warung Sate", broken)


@pytest.mark.asyncio
async def test_resolve_unique_failure_mid_loop():
    calls = []

    async def flaky(slug: str):
        calls.append(slug)
        if len(calls) > 1:
            raise TimeoutError("slow store")
        return 1

    with pytest.raises(SlugUnverifiableError):
        await resolve_unique("Warung Sate", flaky)
    assert calls == ["warung-sate", "warung-sate-1"]


@pytest.mark.asyncio
async def test_resolve_unique_is_bounded():
    taken = {"warung-sate": 1, "warung-sate-1": 2, "warung-sate-2": 3, "warung-sate-3": 4}
    lookup = lookup_from(taken)
    with pytest.raises(SlugExhaustedError):
        await resolve_unique("Warung Sate", lookup, max_attempts=3)
    assert len(lookup.probes) == 4


@pytest.mark.asyncio
async def test_resolve_unique_rejects_names_without_slug_material():
    with pytest.raises(InvalidSlugError):
        await resolve_unique("!!", lookup_from({}))


@pytest.mark.asyncio
async def test_resolve_unique_keeps_long_names_within_limit():
    name = "warung " * 80
    slug = await resolve_unique(name, lookup_from({}))
    assert is_valid_slug(slug)
    assert len(slug) <= 240


@pytest.mark.asyncio
async def test_resolve_unique_slug_against_table(db_session):
    db_session.add(
        Listing(
            slug="warung-sate",
            name="Warung Sate",
            category="Kuliner",
            description="Sate ayam",
            main_image="http://test/static/storage/umkm-images/main/a.jpg",
            status=1,
        )
    )
    await db_session.commit()

    assert await resolve_unique_slug(db_session, "Warung Sate") == "warung-sate-1"
    assert await resolve_unique_slug(db_session, "Warung Sate Baru") == "warung-sate-baru"
