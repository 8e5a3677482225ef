from pydantic import BaseModel, Field

from umkm.schemas.listing import ListingOut


class ListingPage(BaseModel):
    items: list[ListingOut]
    total: int
    page: int
    limit: int
    total_pages: int


class CategoriesOut(BaseModel):
    categories: list[str]
    suggestions: list[str]


class StatisticsOut(BaseModel):
    total: int
    active: int
    inactive: int
    pending: int
    by_category: dict[str, int] = Field(default_factory=dict)
