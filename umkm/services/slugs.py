from __future__ import annotations

import logging
import re
import unicodedata
from typing import Awaitable, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from umkm.core.config import settings
from umkm.models.listing import Listing

log = logging.getLogger(__name__)

SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 255

# Leaves room for a "-<n>" suffix without crossing SLUG_MAX_LENGTH.
BASE_MAX_LENGTH = 240

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_COMBINING_RE = re.compile(r"[\u0300-\u036f]")
_DISALLOWED_RE = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-+")

# Returns the id of the listing holding the slug, or None when it is free.
SlugLookup = Callable[[str], Awaitable[int | None]]


class SlugError(Exception):
    pass


class InvalidSlugError(SlugError):
    pass


class SlugUnverifiableError(SlugError):
    """The existence check failed, so uniqueness could not be verified."""


class SlugExhaustedError(SlugError):
    pass


def normalize(name: str) -> str:
    text = unicodedata.normalize("NFD", name.lower())
    text = _COMBINING_RE.sub("", text)
    text = _DISALLOWED_RE.sub("", text)
    text = _WHITESPACE_RE.sub("-", text)
    text = _HYPHENS_RE.sub("-", text)
    return text.strip("-")


def is_valid_slug(slug: str) -> bool:
    return bool(_SLUG_RE.match(slug)) and SLUG_MIN_LENGTH <= len(slug) <= SLUG_MAX_LENGTH


def base_slug(name: str) -> str:
    base = normalize(name)[:BASE_MAX_LENGTH].rstrip("-")
    if len(base) < SLUG_MIN_LENGTH:
        raise InvalidSlugError(f"Name {name!r} does not produce a slug of at least {SLUG_MIN_LENGTH} characters")
    return base


async def resolve_unique(
    name: str,
    lookup: SlugLookup,
    *,
    exclude_id: int | None = None,
    max_attempts: int | None = None,
) -> str:
    """
    Return the normalized slug for ``name`` that no other listing holds.

    Probes ``base``, ``base-1``, ``base-2``, ... one lookup at a time. A listing
    whose id equals ``exclude_id`` does not count as a collision, so a listing
    keeps its own slug when edited.

    Raises SlugUnverifiableError when a lookup fails and SlugExhaustedError when
    ``max_attempts`` suffixes are all taken.
    """
    base = base_slug(name)
    limit = settings.slug_max_attempts if max_attempts is None else max_attempts

    candidate = base
    for counter in range(0, limit + 1):
        if counter:
            candidate = f"{base}-{counter}"

        try:
            holder_id = await lookup(candidate)
        except Exception as e:
            log.warning("slug lookup failed for %s", candidate, exc_info=True)
            raise SlugUnverifiableError(f"Could not verify slug {candidate!r}") from e

        if holder_id is None or (exclude_id is not None and holder_id == exclude_id):
            return candidate

    raise SlugExhaustedError(f"No free slug for {base!r} after {limit} attempts")


def listing_slug_lookup(db: AsyncSession) -> SlugLookup:
    async def _lookup(slug: str) -> int | None:
        stmt = select(Listing.id).where(Listing.slug == slug).limit(1)
        return (await db.execute(stmt)).scalar_one_or_none()

    return _lookup


async def resolve_unique_slug(db: AsyncSession, name: str, *, exclude_id: int | None = None) -> str:
    return await resolve_unique(name, listing_slug_lookup(db), exclude_id=exclude_id)
