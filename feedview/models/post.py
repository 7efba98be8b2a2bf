"""Post records and the query/pagination shapes of GET /api/posts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SortField(str, Enum):
    CREATED_AT = "created_at"
    UPVOTES = "upvotes"
    NUM_COMMENTS = "num_comments"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> SortOrder:
        return SortOrder.ASC if self is SortOrder.DESC else SortOrder.DESC


class Post(BaseModel):
    """A read-only snapshot of one aggregated post. Only the backend mutates posts."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    reddit_id: str = Field(min_length=1)
    title: str
    content: str | None = None
    subreddit: str
    author: str
    url: str
    upvotes: int = Field(default=0, ge=0)
    num_comments: int = Field(default=0, ge=0)
    created_at: datetime


class QueryParams(BaseModel):
    """
    Parameters of one feed query.

    Use the with_* helpers to move between states: they keep the
    page-reset rule in one place.
    """

    model_config = ConfigDict(frozen=True)

    search: str = ""
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    page: int = Field(default=1, ge=1)

    def with_search(self, search: str) -> QueryParams:
        return self.model_copy(update={"search": search, "page": 1})

    def with_sort_by(self, sort_by: SortField) -> QueryParams:
        return self.model_copy(update={"sort_by": sort_by, "page": 1})

    def with_sort_order(self, sort_order: SortOrder) -> QueryParams:
        return self.model_copy(update={"sort_order": sort_order, "page": 1})

    def with_page(self, page: int) -> QueryParams:
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        return self.model_copy(update={"page": page})

    def to_query(self, limit: int) -> dict[str, str]:
        """Query string for GET /api/posts, keys in wire order."""
        return {
            "search": self.search,
            "sortBy": self.sort_by.value,
            "sortOrder": self.sort_order.value,
            "page": str(self.page),
            "limit": str(limit),
        }


class Pagination(BaseModel):
    """Pagination metadata computed by the backend. Read-only on the client."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total: int = 0
    total_pages: int = Field(default=0, alias="totalPages")
    has_prev: bool = Field(default=False, alias="hasPrev")
    has_next: bool = Field(default=False, alias="hasNext")


class FeedPage(BaseModel):
    """One successful GET /api/posts response."""

    model_config = ConfigDict(populate_by_name=True)

    posts: list[Post] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
    last_updated: str | None = Field(default=None, alias="lastUpdated")
