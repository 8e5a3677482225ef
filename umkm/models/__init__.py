from umkm.models.base import Base  # noqa: F401

from umkm.models.listing import Listing, ListingStatus  # noqa: F401
from umkm.models.admin import AdminUser, AdminSession  # noqa: F401
