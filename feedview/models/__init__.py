"""
Pydantic models for feedview.

All data shapes defined here. No imports from services or the CLI.
"""

from feedview.models.post import (
    FeedPage,
    Pagination,
    Post,
    QueryParams,
    SortField,
    SortOrder,
)
from feedview.models.stats import FeedStats

__all__ = [
    # Feed models
    "Post",
    "FeedPage",
    "Pagination",
    # Query models
    "QueryParams",
    "SortField",
    "SortOrder",
    # Live channel models
    "FeedStats",
]
