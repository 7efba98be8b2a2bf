"""
Display helpers shared by front-ends.

Pure functions over models; no state and no I/O.
"""

from __future__ import annotations

from datetime import UTC, datetime

from feedview.models import FeedStats, Post, SortField

EXCERPT_LENGTH = 200

SORT_LABELS: dict[SortField, str] = {
    SortField.CREATED_AT: "Newest",
    SortField.UPVOTES: "Most Upvoted",
    SortField.NUM_COMMENTS: "Most Comments",
}


def excerpt(post: Post, length: int = EXCERPT_LENGTH) -> str:
    """First `length` characters of the post body, with an ellipsis when cut."""
    if not post.content:
        return ""
    if len(post.content) > length:
        return post.content[:length] + "..."
    return post.content


def time_ago(created_at: datetime, now: datetime | None = None) -> str:
    """
    Relative age: "12m ago", "5h ago", "3d ago", or the date for anything a week or older.

    Naive datetimes are treated as UTC.
    """
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    seconds = max(0, int((now - created_at).total_seconds()))
    minutes = seconds // 60
    hours = seconds // 3600
    days = seconds // 86400

    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return created_at.date().isoformat()


def stats_line(stats: FeedStats) -> str:
    return (
        f"Total: {stats.total_posts} posts | "
        f"Last 24h: {stats.posts_last_24h} new | "
        f"Last 7d: {stats.posts_last_week} new"
    )


def connection_label(connected: bool) -> str:
    return "Live" if connected else "Disconnected"


def updated_label(last_updated: str | None) -> str:
    """'Updated: HH:MM:SS' in local time, or '' when unknown or unparseable."""
    if not last_updated:
        return ""
    try:
        stamp = datetime.fromisoformat(last_updated.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if stamp.tzinfo is not None:
        stamp = stamp.astimezone()
    return f"Updated: {stamp.strftime('%H:%M:%S')}"


def page_label(page: int, total_pages: int) -> str:
    return f"Page {page} of {total_pages}"
