"""
Live update channel: Socket.IO push connection to the feed backend.

Server events:
  posts-updated  opaque payload; only means "the collection changed"
  stats          {totalPosts, postsLast24h, postsLastWeek}

Subscribers receive ChannelEvent objects. Connectivity is informational
only: a disconnect is logged, never raised, and reconnection is silent.

Usage:
    channel = LiveChannel(api_url)
    sub = channel.subscribe(on_event)
    channel.start()
    ...
    sub.cancel()
    await channel.dispose()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import socketio
from pydantic import ValidationError
from socketio.exceptions import ConnectionError as SocketConnectionError

from feedview.config import settings
from feedview.models import FeedStats

logger = logging.getLogger(__name__)


class ChannelEventKind(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    DATA_CHANGED = "data_changed"
    STATS = "stats"


@dataclass(frozen=True)
class ChannelEvent:
    kind: ChannelEventKind
    stats: FeedStats | None = None


@dataclass(frozen=True)
class ReconnectPolicy:
    """Bounded retries at a fixed interval."""

    attempts: int = 10
    delay: float = 1.0

    @classmethod
    def from_settings(cls) -> ReconnectPolicy:
        return cls(attempts=settings.RECONNECT_ATTEMPTS, delay=settings.RECONNECT_DELAY_SECONDS)


def default_client_factory(policy: ReconnectPolicy) -> socketio.AsyncClient:
    return socketio.AsyncClient(
        reconnection=True,
        reconnection_attempts=policy.attempts,
        reconnection_delay=policy.delay,
        reconnection_delay_max=policy.delay,
        randomization_factor=0,
    )


Listener = Callable[[ChannelEvent], None]


class Subscription:
    """Handle returned by LiveChannel.subscribe(). cancel() is idempotent."""

    def __init__(self, channel: LiveChannel, listener: Listener):
        self._channel = channel
        self._listener = listener
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._channel._remove(self._listener)


class LiveChannel:
    """Persistent push connection with automatic reconnection and explicit disposal."""

    def __init__(
        self,
        url: str,
        policy: ReconnectPolicy | None = None,
        client_factory: Callable[[ReconnectPolicy], Any] = default_client_factory,
    ):
        self.url = url
        self.policy = policy or ReconnectPolicy.from_settings()
        self.connected = False
        self._listeners: list[Listener] = []
        self._disposed = False
        self._connect_task: asyncio.Task | None = None

        self._client = client_factory(self.policy)
        self._client.on("connect", self._on_connect)
        self._client.on("disconnect", self._on_disconnect)
        self._client.on("posts-updated", self._on_posts_updated)
        self._client.on("stats", self._on_stats)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: Listener) -> Subscription:
        """Deliver every future event to `listener` until the subscription is cancelled."""
        if self._disposed:
            raise RuntimeError("LiveChannel is disposed")
        self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def start(self) -> asyncio.Task:
        """Connect in the background. Returns the connect task."""
        if self._disposed:
            raise RuntimeError("LiveChannel is disposed")
        if self._connect_task is None:
            self._connect_task = asyncio.create_task(self._connect())
        return self._connect_task

    async def _connect(self) -> None:
        # Initial attempts run here so that cancelling this task stops them.
        # Once connected, the client's own reconnection takes over.
        attempts = max(1, self.policy.attempts)
        for attempt in range(1, attempts + 1):
            try:
                await self._client.connect(self.url)
                return
            except SocketConnectionError as e:
                logger.info("live_channel: connect attempt %d/%d to %s failed: %s", attempt, attempts, self.url, e)
            if attempt < attempts:
                await asyncio.sleep(self.policy.delay)
        logger.warning("live_channel: could not connect to %s after %d attempts", self.url, attempts)

    async def dispose(self) -> None:
        """Tear down the connection. No event is delivered afterwards."""
        if self._disposed:
            return
        self._disposed = True
        self._listeners.clear()

        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass

        try:
            # Disconnects, or aborts a reconnection loop in progress
            await self._client.shutdown()
        except Exception as e:
            logger.warning("live_channel: error while disconnecting: %s", e)
        self.connected = False

    def _emit(self, event: ChannelEvent) -> None:
        if self._disposed:
            return
        for listener in list(self._listeners):
            listener(event)

    # --- socket.io handlers ---

    async def _on_connect(self) -> None:
        if self._disposed:
            return
        self.connected = True
        logger.info("live_channel: connected to %s", self.url)
        self._emit(ChannelEvent(ChannelEventKind.CONNECTED))

    async def _on_disconnect(self, *args: Any) -> None:
        if self._disposed:
            return
        self.connected = False
        logger.info("live_channel: disconnected from %s", self.url)
        self._emit(ChannelEvent(ChannelEventKind.DISCONNECTED))

    async def _on_posts_updated(self, data: Any = None) -> None:
        logger.debug("live_channel: posts-updated %r", data)
        self._emit(ChannelEvent(ChannelEventKind.DATA_CHANGED))

    async def _on_stats(self, data: Any = None) -> None:
        try:
            stats = FeedStats.model_validate(data)
        except ValidationError as e:
            logger.warning("live_channel: dropping malformed stats payload: %s", e)
            return
        self._emit(ChannelEvent(ChannelEventKind.STATS, stats=stats))
