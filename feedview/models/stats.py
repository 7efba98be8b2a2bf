"""Aggregate counters pushed over the live channel."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class FeedStats(BaseModel):
    """Snapshot from the `stats` push event. Each snapshot replaces the last one."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    total_posts: int = Field(default=0, ge=0, alias="totalPosts")
    posts_last_24h: int = Field(default=0, ge=0, alias="postsLast24h")
    posts_last_week: int = Field(default=0, ge=0, alias="postsLastWeek")
