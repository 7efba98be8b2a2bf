"""
View-state coordinator: owns the query parameters and keeps the displayed
page in sync with the backend and the live channel.

Transitions:
  search text   debounced, then search=<text>, page=1, fetch
  sort field    sort_by=<field>, page=1, fetch
  sort order    sort_order=<order>, page=1, fetch
  page          clamped to [1, total_pages], fetch
  favorites     client-side filter over the loaded page, no fetch
  data_changed  same parameters, fetch

Only the most recently issued fetch may update the state: every fetch
carries a sequence number and the previous in-flight request is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from feedview.config import settings
from feedview.errors import FeedError
from feedview.models import FeedStats, Pagination, Post, QueryParams, SortField, SortOrder
from feedview.services.debounce import Debouncer
from feedview.services.feed_client import FeedClient
from feedview.services.live_channel import ChannelEvent, ChannelEventKind, LiveChannel, Subscription
from feedview.services.preference_store import Favorites, PreferenceStore

logger = logging.getLogger(__name__)

EMPTY_TITLE = "No posts found"
EMPTY_MESSAGE = "Try adjusting your search or check back later"
EMPTY_FAVORITES_MESSAGE = "You haven't favorited any posts yet"


@dataclass
class ViewState:
    """Everything the view renders. Owned by one coordinator for the life of the view."""

    params: QueryParams = field(default_factory=QueryParams)
    search_input: str = ""
    posts: list[Post] = field(default_factory=list)
    pagination: Pagination = field(default_factory=Pagination)
    loading: bool = True
    error: str | None = None
    last_updated: str | None = None
    connected: bool = False
    stats: FeedStats | None = None
    favorites_only: bool = False
    dark_mode: bool = False


StateListener = Callable[[ViewState], None]


class ViewStateCoordinator:
    """Drives FeedClient fetches from parameter changes and live channel events."""

    def __init__(
        self,
        client: FeedClient,
        preferences: PreferenceStore,
        channel: LiveChannel | None = None,
        search_delay: float | None = None,
    ):
        self.client = client
        self.preferences = preferences
        self.channel = channel
        self.state = ViewState()
        self.favorites = Favorites(preferences)

        if search_delay is None:
            search_delay = settings.SEARCH_DEBOUNCE_SECONDS
        self._search = Debouncer(search_delay, self._on_search_settled)

        self._seq = 0
        self._inflight: asyncio.Task | None = None
        self._subscription: Subscription | None = None
        self._listeners: list[StateListener] = []
        self._disposed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Mount the view.

        Loads favorites and the theme flag once, connects the live channel
        in the background, and waits for the initial fetch to settle.
        """
        self.favorites = Favorites.load(self.preferences)
        self.state.dark_mode = self.preferences.load_dark_mode()

        if self.channel is not None:
            self._subscription = self.channel.subscribe(self._on_channel_event)
            self.channel.start()

        task = self.reload()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def dispose(self) -> None:
        """Unmount the view. Nothing mutates the state after this returns."""
        if self._disposed:
            return
        self._disposed = True
        self._search.dispose()

        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
            await asyncio.gather(self._inflight, return_exceptions=True)
        self._inflight = None

        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self.channel is not None:
            await self.channel.dispose()

        self._listeners.clear()

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call `listener` after every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def reload(self) -> asyncio.Task | None:
        """
        Issue a fetch for the current parameters.

        Supersedes any fetch still in flight. Returns the new task, or None
        once the view is disposed.
        """
        if self._disposed:
            return None

        self._seq += 1
        seq = self._seq
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()

        self.state.loading = True
        self.state.error = None
        self._notify()

        self._inflight = asyncio.create_task(self._run_fetch(seq, self.state.params))
        return self._inflight

    def retry(self) -> asyncio.Task | None:
        """Re-issue the identical request after a failure."""
        return self.reload()

    async def _run_fetch(self, seq: int, params: QueryParams) -> None:
        try:
            page = await self.client.fetch(params)
        except FeedError as e:
            if self._is_stale(seq):
                return
            logger.warning("coordinator: fetch failed for page=%d: %s", params.page, e)
            self.state.error = str(e)
            self.state.loading = False
            self._notify()
            return

        if self._is_stale(seq):
            logger.debug("coordinator: discarding stale response #%d", seq)
            return

        state = self.state
        state.posts = list(page.posts)
        state.pagination = page.pagination
        state.last_updated = page.last_updated or state.last_updated
        state.error = None
        state.loading = False
        self._notify()

    def _is_stale(self, seq: int) -> bool:
        return self._disposed or seq != self._seq

    async def refresh(self) -> bool:
        """
        Ask the backend to refresh its sources, then re-fetch.

        A failed refresh is logged and otherwise ignored.

        Returns:
            True if the backend accepted the refresh
        """
        if self._disposed:
            return False
        try:
            await self.client.trigger_server_refresh()
        except FeedError as e:
            logger.warning("coordinator: refresh failed: %s", e)
            return False
        self.reload()
        return True

    # ------------------------------------------------------------------
    # Query parameters
    # ------------------------------------------------------------------

    def set_search_text(self, text: str) -> None:
        """Record typed search text. The query changes once typing pauses."""
        if self._disposed:
            return
        self.state.search_input = text
        self._search.push(text)
        self._notify()

    def flush_search(self) -> None:
        """Apply pending search text without waiting for the debounce delay."""
        self._search.flush()

    def _on_search_settled(self, text: str) -> None:
        if self._disposed or text == self.state.params.search:
            return
        self.state.params = self.state.params.with_search(text)
        self.reload()

    def set_sort_by(self, sort_by: SortField | str) -> None:
        sort_by = SortField(sort_by)
        if self._disposed or sort_by == self.state.params.sort_by:
            return
        self.state.params = self.state.params.with_sort_by(sort_by)
        self.reload()

    def set_sort_order(self, sort_order: SortOrder | str) -> None:
        sort_order = SortOrder(sort_order)
        if self._disposed or sort_order == self.state.params.sort_order:
            return
        self.state.params = self.state.params.with_sort_order(sort_order)
        self.reload()

    def toggle_sort_order(self) -> None:
        self.set_sort_order(self.state.params.sort_order.flipped())

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    @property
    def can_go_previous(self) -> bool:
        return self.state.params.page > 1 and self.state.pagination.has_prev

    @property
    def can_go_next(self) -> bool:
        return self.state.params.page < self.state.pagination.total_pages and self.state.pagination.has_next

    @property
    def show_pagination(self) -> bool:
        return self.state.pagination.total_pages > 1 and not self.state.favorites_only

    def go_to_page(self, page: int) -> None:
        """Jump to `page`, clamped to the known page range."""
        if self._disposed:
            return
        last = max(1, self.state.pagination.total_pages)
        page = max(1, min(page, last))
        if page == self.state.params.page:
            return
        self.state.params = self.state.params.with_page(page)
        self.reload()

    def next_page(self) -> None:
        if self.can_go_next:
            self.go_to_page(self.state.params.page + 1)

    def previous_page(self) -> None:
        if self.can_go_previous:
            self.go_to_page(self.state.params.page - 1)

    # ------------------------------------------------------------------
    # Local preferences
    # ------------------------------------------------------------------

    def is_favorite(self, post_id: str) -> bool:
        return post_id in self.favorites

    @property
    def favorite_count(self) -> int:
        return len(self.favorites)

    def toggle_favorite(self, post_id: str) -> bool:
        """Flip and persist membership of `post_id`. Returns the new membership."""
        if self._disposed:
            return post_id in self.favorites
        member = self.favorites.toggle(post_id)
        self._notify()
        return member

    def toggle_favorites_only(self) -> None:
        if self._disposed:
            return
        self.state.favorites_only = not self.state.favorites_only
        self._notify()

    def toggle_dark_mode(self) -> bool:
        if self._disposed:
            return self.state.dark_mode
        self.state.dark_mode = not self.state.dark_mode
        self.preferences.save_dark_mode(self.state.dark_mode)
        self._notify()
        return self.state.dark_mode

    # ------------------------------------------------------------------
    # Derived view
    # ------------------------------------------------------------------

    @property
    def displayed_posts(self) -> list[Post]:
        if not self.state.favorites_only:
            return self.state.posts
        return [p for p in self.state.posts if p.reddit_id in self.favorites]

    @property
    def status(self) -> str:
        """One of loading, error, empty, ready."""
        if self.state.loading:
            return "loading"
        if self.state.error is not None:
            return "error"
        if not self.displayed_posts:
            return "empty"
        return "ready"

    @property
    def empty_title(self) -> str:
        return EMPTY_TITLE

    @property
    def empty_message(self) -> str:
        return EMPTY_FAVORITES_MESSAGE if self.state.favorites_only else EMPTY_MESSAGE

    # ------------------------------------------------------------------
    # Live channel
    # ------------------------------------------------------------------

    def _on_channel_event(self, event: ChannelEvent) -> None:
        if self._disposed:
            return

        if event.kind is ChannelEventKind.CONNECTED:
            self.state.connected = True
            self._notify()
        elif event.kind is ChannelEventKind.DISCONNECTED:
            self.state.connected = False
            self._notify()
        elif event.kind is ChannelEventKind.DATA_CHANGED:
            self.state.last_updated = datetime.now(UTC).isoformat()
            self.reload()
        elif event.kind is ChannelEventKind.STATS:
            self.state.stats = event.stats
            self._notify()
