import enum

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from umkm.models.base import Base, TimestampMixin


class ListingStatus(enum.IntEnum):
    INACTIVE = 0
    ACTIVE = 1
    PENDING = 2

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @classmethod
    def from_label(cls, value: str) -> "ListingStatus":
        for status, label in _STATUS_LABELS.items():
            if label.lower() == value.strip().lower() or status.name.lower() == value.strip().lower():
                return status
        raise ValueError(f"Unknown status: {value}")


_STATUS_LABELS = {
    ListingStatus.INACTIVE: "Nonaktif",
    ListingStatus.ACTIVE: "Aktif",
    ListingStatus.PENDING: "Pending",
}


class Listing(TimestampMixin, Base):
    __tablename__ = "umkm"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # short teaser, max 200 chars
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    full_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    main_image: Mapped[str] = mapped_column(Text, nullable=False)
    # JSON array of additional image URLs kept in a text column (see services.image_refs)
    images_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    # 0 = Nonaktif, 1 = Aktif, 2 = Pending
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=int(ListingStatus.ACTIVE))
