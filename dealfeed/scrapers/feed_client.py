"""WordPress REST API client for the deal feed.

Pages through `/wp-json/wp/v2/posts` newest first and decodes each record
into a Post. A fetch cycle either returns every page it asked for or
raises; partial results are never returned.
"""

from typing import Any, Dict, List, Optional, Tuple

import httpx
import structlog
from pydantic import ValidationError

from dealfeed.config import settings
from dealfeed.core.exceptions import (
    DecodeError,
    InvalidResponseError,
    InvalidURLError,
    TransportError,
)
from dealfeed.models.post import Post
from dealfeed.schemas.post import WPPostPayload
from dealfeed.scrapers.utils.retry import feed_retrying
from dealfeed.scrapers.utils.user_agents import feed_headers


logger = structlog.get_logger(__name__)


class FeedClient:
    """Paginated post fetcher for a WordPress content source.

    Stops at the first under-full page, at the last page announced by
    `X-WP-TotalPages`, or once `max_posts` posts were collected.
    """

    FIELDS = "id,date,link,title,content,_embedded"
    TOTAL_PAGES_HEADER = "X-WP-TotalPages"

    def __init__(
        self,
        base_url: str,
        page_size: int = 100,
        max_posts: int = 7500,
        timeout: float = 20.0,
        retry_attempts: int = 3,
        after: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize feed client.

        Args:
            base_url: Posts endpoint, e.g. https://example.com/wp-json/wp/v2/posts
            page_size: Posts requested per page (`per_page`)
            max_posts: Hard cap on posts returned by one fetch cycle
            timeout: Per-request timeout in seconds
            retry_attempts: Attempts per page for transport-level failures
            after: Optional ISO-8601 lower bound on publish date
            http_client: Optional shared client, owned by the caller
        """
        self.base_url = base_url
        self.page_size = page_size
        self.max_posts = max_posts
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.after = after or None
        self.http_client = http_client
        self.logger = logger.bind(service="feed_client")

    def build_params(self, page: int, search: Optional[str] = None) -> Dict[str, Any]:
        """Query parameters for one page request."""
        params: Dict[str, Any] = {
            "per_page": self.page_size,
            "_embed": 1,
            "_fields": self.FIELDS,
            "orderby": "date",
            "order": "desc",
            "page": page,
        }
        if self.after:
            params["after"] = self.after
        query = (search or "").strip()
        if query:
            params["search"] = query
        return params

    def build_url(self, page: int, search: Optional[str] = None) -> httpx.URL:
        """Full request URL for one page.

        Raises:
            InvalidURLError: If the base URL is malformed
        """
        try:
            url = httpx.URL(self.base_url)
        except (httpx.InvalidURL, TypeError, ValueError):
            raise InvalidURLError(self.base_url)
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidURLError(self.base_url)
        return url.copy_merge_params(self.build_params(page, search))

    async def fetch_all(
        self,
        search: Optional[str] = None,
        sort_by_date: bool = False,
    ) -> List[Post]:
        """Fetch every matching post, newest first.

        Args:
            search: Optional server-side search term
            sort_by_date: Re-sort by publish date (newest first) instead of
                trusting the server's order

        Returns:
            Posts in server order (or date order), duplicates removed,
            truncated to max_posts

        Raises:
            TransportError: Network failure or timeout
            InvalidResponseError: Non-2xx status or unparseable body
            DecodeError: A post record is malformed
            InvalidURLError: The base URL is malformed
        """
        self.logger.info("feed_fetch_started", search=search, base_url=self.base_url)

        if self.http_client is not None:
            posts = await self._fetch_pages(self.http_client, search)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                posts = await self._fetch_pages(client, search)

        if sort_by_date:
            posts.sort(key=lambda p: p.published_at, reverse=True)

        self.logger.info("feed_fetch_complete", total_posts=len(posts))
        return posts

    async def _fetch_pages(
        self, client: httpx.AsyncClient, search: Optional[str]
    ) -> List[Post]:
        posts: List[Post] = []
        seen_ids = set()
        page = 1

        while len(posts) < self.max_posts:
            records, total_pages = await self._fetch_page(client, page, search)

            for record in records:
                post = self._decode_post(record)
                if post.id in seen_ids:
                    # Pagination shifted under us when a new post was published
                    self.logger.debug("duplicate_post_skipped", post_id=post.id, page=page)
                    continue
                seen_ids.add(post.id)
                posts.append(post)

            self.logger.debug(
                "feed_page_fetched",
                page=page,
                count=len(records),
                total=len(posts),
            )

            if len(records) < self.page_size:
                break
            if total_pages is not None and page >= total_pages:
                break
            page += 1

        return posts[: self.max_posts]

    async def _fetch_page(
        self, client: httpx.AsyncClient, page: int, search: Optional[str]
    ) -> Tuple[List[Any], Optional[int]]:
        """Fetch and parse one page.

        Returns:
            Raw post records and the announced total page count, if any
        """
        url = self.build_url(page, search)

        try:
            async for attempt in feed_retrying(self.retry_attempts):
                with attempt:
                    response = await client.get(
                        url, headers=feed_headers(), timeout=self.timeout
                    )
        except httpx.TimeoutException as e:
            self.logger.error("feed_page_timeout", page=page, error=str(e))
            raise TransportError(str(url), "request timed out")
        except httpx.HTTPError as e:
            self.logger.error("feed_page_transport_failed", page=page, error=str(e))
            raise TransportError(str(url), str(e) or type(e).__name__)

        if not response.is_success:
            self.logger.error(
                "feed_page_bad_status",
                page=page,
                status_code=response.status_code,
            )
            raise InvalidResponseError(
                str(url),
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            self.logger.error("feed_page_invalid_json", page=page, error=str(e))
            raise InvalidResponseError(str(url), "body is not valid JSON")

        if not isinstance(data, list):
            raise InvalidResponseError(
                str(url), f"expected a JSON array, got {type(data).__name__}"
            )

        return data, self._total_pages(response)

    def _total_pages(self, response: httpx.Response) -> Optional[int]:
        value = response.headers.get(self.TOTAL_PAGES_HEADER)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    def _decode_post(self, record: Any) -> Post:
        """Validate one API record and build a Post.

        Raises:
            DecodeError: If the record is not a valid post
        """
        post_id = record.get("id") if isinstance(record, dict) else None
        try:
            payload = WPPostPayload.model_validate(record)
        except ValidationError as e:
            self.logger.error("post_decode_failed", post_id=post_id, errors=e.error_count())
            raise DecodeError(_summarize(e), post_id=post_id)
        return Post.from_payload(payload)


def _summarize(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "record"
    return f"{location}: {first.get('msg', 'invalid value')}"


def get_feed_client(http_client: Optional[httpx.AsyncClient] = None) -> FeedClient:
    """Create a feed client configured from settings."""
    return FeedClient(
        base_url=settings.FEED_BASE_URL,
        page_size=settings.FEED_PAGE_SIZE,
        max_posts=settings.FEED_MAX_POSTS,
        timeout=settings.FEED_REQUEST_TIMEOUT,
        retry_attempts=settings.FEED_RETRY_ATTEMPTS,
        after=settings.FEED_AFTER or None,
        http_client=http_client,
    )
