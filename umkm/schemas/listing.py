from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from umkm.models.listing import Listing, ListingStatus
from umkm.services.image_refs import get_all_images, parse_images


def parse_status(value: str | int) -> ListingStatus:
    """Accept 0/1/2, "Aktif"/"Nonaktif"/"Pending" or "active"/"inactive"/"pending"."""
    if isinstance(value, int):
        return ListingStatus(value)
    text = str(value).strip()
    if text.isdigit():
        return ListingStatus(int(text))
    return ListingStatus.from_label(text)


class ListingOut(BaseModel):
    id: int
    slug: str
    name: str
    category: str
    description: str
    full_description: str | None
    phone: str | None
    address: str | None
    main_image: str
    additional_images: list[str]
    all_images: list[str]
    status: int
    status_label: str
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_model(cls, listing: Listing) -> "ListingOut":
        status = ListingStatus(listing.status)
        return cls(
            id=listing.id,
            slug=listing.slug,
            name=listing.name,
            category=listing.category,
            description=listing.description,
            full_description=listing.full_description,
            phone=listing.phone,
            address=listing.address,
            main_image=listing.main_image,
            additional_images=parse_images(listing.images_text),
            all_images=get_all_images(listing),
            status=int(status),
            status_label=status.label,
            created_at=listing.created_at,
            updated_at=listing.updated_at,
        )


class ListingWriteOut(BaseModel):
    listing: ListingOut
    failed_images: list[str] = Field(default_factory=list)
    used_placeholder: bool = False
    progress: list[int] = Field(default_factory=list)


class StatusUpdate(BaseModel):
    status: int | str

    @field_validator("status")
    @classmethod
    def _known_status(cls, v: int | str) -> int:
        try:
            return int(parse_status(v))
        except ValueError as e:
            raise ValueError("status must be one of: Aktif, Nonaktif, Pending") from e


class SlugPreviewOut(BaseModel):
    name: str
    normalized: str
    slug: str
    is_valid: bool
