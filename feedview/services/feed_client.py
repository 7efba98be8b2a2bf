"""HTTP client for the feed backend (GET /api/posts, POST /api/refresh)."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from feedview.config import settings
from feedview.errors import NetworkError, RemoteError
from feedview.models import FeedPage, QueryParams, SortField, SortOrder

logger = logging.getLogger(__name__)


class FeedClient:
    """
    Async HTTP client for the feed backend.

    Maps responses into FeedPage records or raises a FeedError subclass.
    Never touches view state; applying results is the caller's job.
    """

    def __init__(
        self,
        base_url: str,
        page_size: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size or settings.PAGE_SIZE
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def fetch(self, params: QueryParams) -> FeedPage:
        """Fetch the page described by `params`."""
        return await self.fetch_page(params.search, params.sort_by, params.sort_order, params.page)

    async def fetch_page(
        self,
        search: str,
        sort_by: SortField | str,
        sort_order: SortOrder | str,
        page: int,
        page_size: int | None = None,
    ) -> FeedPage:
        """
        Fetch one page of posts.

        Args:
            search: Free-text filter, may be empty
            sort_by: created_at, upvotes or num_comments
            sort_order: asc or desc
            page: 1-based page number
            page_size: Items per page (defaults to the client's page size)

        Returns:
            FeedPage with posts, pagination and the server's lastUpdated

        Raises:
            ValueError: If page, sort_by or sort_order are out of range
            NetworkError: On transport failure, non-2xx status or a non-JSON body
            RemoteError: If the backend reports success=false or sends malformed records
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        params = QueryParams(
            search=search,
            sort_by=SortField(sort_by),
            sort_order=SortOrder(sort_order),
            page=page,
        )
        limit = page_size or self.page_size

        data = await self._get_json("/api/posts", params.to_query(limit))

        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("error") if isinstance(data, dict) else None
            raise RemoteError(message or "Unknown error")

        try:
            return FeedPage.model_validate(data)
        except ValidationError as e:
            raise RemoteError(f"Malformed feed response: {e.error_count()} invalid field(s)") from e

    async def trigger_server_refresh(self) -> None:
        """
        Ask the backend to re-scrape its sources.

        Raises:
            NetworkError: On transport failure or a non-2xx status
        """
        url = f"{self.base_url}/api/refresh"
        try:
            res = await self._client.post(url)
        except httpx.HTTPError as e:
            raise NetworkError(f"Refresh request failed: {e}") from e
        if not res.is_success:
            raise NetworkError(f"Refresh rejected with HTTP {res.status_code}", status_code=res.status_code)
        logger.info("feed_client: refresh accepted (HTTP %d)", res.status_code)

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            res = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.warning("feed_client: GET %s failed: %s", path, e)
            raise NetworkError() from e

        if not res.is_success:
            logger.warning("feed_client: GET %s returned HTTP %d", path, res.status_code)
            raise NetworkError(status_code=res.status_code)

        try:
            return res.json()
        except ValueError as e:
            raise NetworkError("Failed to fetch posts: response was not JSON") from e

    async def aclose(self) -> None:
        """Close client."""
        await self._client.aclose()

    async def __aenter__(self) -> FeedClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
