"""Representative-image lookup for posts without structured media.

Fetches the post page and reads, in order of preference, the Open Graph
and Twitter card meta tags, `<link rel="image_src">`, and finally the
first `srcset` attribute in the document. Results are cached per page URL
in ImageCacheService.
"""

import asyncio
import re
from typing import Optional, Pattern, Tuple

import httpx
import structlog

from dealfeed.config import settings
from dealfeed.core.exceptions import NotFoundError
from dealfeed.models.post import Post
from dealfeed.scrapers.utils.normalizer import absolutize_url
from dealfeed.scrapers.utils.srcset import best_from_srcset
from dealfeed.scrapers.utils.user_agents import MOBILE_USER_AGENT, page_headers
from dealfeed.services.cache_service import ImageCacheService

logger = structlog.get_logger(__name__)


def _meta(attr: str, value: str) -> Pattern[str]:
    return re.compile(
        rf"""<meta\s+{attr}=["']{re.escape(value)}["']\s+content=["']([^"']+)["']""",
        re.IGNORECASE,
    )


# Ordered meta-tag cascade: secure OG image, OG image, Twitter variants,
# then link rel="image_src". First non-empty, absolutizable capture wins.
META_IMAGE_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("og:image:secure_url", _meta("property", "og:image:secure_url")),
    ("og:image", _meta("property", "og:image")),
    ("twitter:image:src", _meta("name", "twitter:image:src")),
    ("twitter:image", _meta("name", "twitter:image")),
    (
        "link:image_src",
        re.compile(
            r"""<link\s+rel=["']image_src["']\s+href=["']([^"']+)["']""",
            re.IGNORECASE,
        ),
    ),
)

SRCSET_PATTERN = re.compile(r"""\bsrcset\s*=\s*["']([^"']+)["']""", re.IGNORECASE | re.DOTALL)


def extract_meta_image(html: str, base_url: str) -> Optional[str]:
    """First image named by the meta-tag cascade.

    Args:
        html: Page markup
        base_url: Page URL used to absolutize relative values

    Returns:
        Absolute image URL, or None
    """
    for name, pattern in META_IMAGE_PATTERNS:
        match = pattern.search(html)
        if not match:
            continue
        url = absolutize_url(match.group(1), base_url)
        if url:
            logger.debug("meta_image_matched", source=name, image_url=url)
            return url
    return None


def extract_srcset_image(html: str, base_url: str) -> Optional[str]:
    """Best candidate of the first `srcset` attribute in the document."""
    match = SRCSET_PATTERN.search(html)
    if not match:
        return None
    return best_from_srcset(match.group(1), base_url)


def extract_image_url(html: str, base_url: str) -> Optional[str]:
    """Run the full cascade: meta tags, then the first `srcset`."""
    return extract_meta_image(html, base_url) or extract_srcset_image(html, base_url)


class ImageURLResolver:
    """Resolves and caches a representative image for a post page.

    All cache access is serialized through one asyncio lock; the page
    fetch happens outside it, so different pages resolve concurrently.
    Concurrent calls for the same page may each fetch it, and the last one
    to finish populates the cache. Cache writes run in a worker thread
    while the lock is held, so the disk flush never stalls other fetches.

    Failures (timeouts, transport errors, error statuses, undecodable
    bodies, pages without an image) resolve to None and cache nothing, so a
    later call retries the network.
    """

    def __init__(
        self,
        cache: ImageCacheService,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
        user_agent: str = MOBILE_USER_AGENT,
    ):
        """Initialize resolver.

        Args:
            cache: Loaded image cache
            http_client: Optional shared client, owned by the caller
            timeout: Page fetch timeout in seconds
            user_agent: User-Agent sent with page requests
        """
        self.cache = cache
        self.http_client = http_client
        self.timeout = timeout
        self.user_agent = user_agent
        self._lock = asyncio.Lock()
        self.logger = logger.bind(service="image_resolver")

    async def resolve(self, page_url: str) -> Optional[str]:
        """Find an image for a post page.

        Args:
            page_url: Absolute post permalink

        Returns:
            Absolute image URL, or None if none could be found
        """
        async with self._lock:
            cached = self.cache.get(page_url)
        if cached is not None:
            return cached

        html = await self._fetch_html(page_url)
        if html is None:
            return None

        try:
            image_url = self._find_image(html, page_url)
        except NotFoundError as e:
            self.logger.info("image_not_found", page_url=page_url, reason=e.message)
            return None

        async with self._lock:
            # The file rewrite fsyncs; keep it off the event loop
            await asyncio.to_thread(self.cache.set, page_url, image_url)

        self.logger.info("image_resolved", page_url=page_url, image_url=image_url)
        return image_url

    def _find_image(self, html: str, page_url: str) -> str:
        image_url = extract_image_url(html, page_url)
        if image_url is None:
            raise NotFoundError("Image", page_url)
        return image_url

    async def _fetch_html(self, page_url: str) -> Optional[str]:
        """GET the page and decode it as UTF-8 text.

        Returns:
            Page markup, or None on any failure
        """
        try:
            if self.http_client is not None:
                response = await self._get(self.http_client, page_url)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._get(client, page_url)
        except httpx.TimeoutException:
            self.logger.warning("image_page_timeout", page_url=page_url, timeout=self.timeout)
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.warning("image_page_fetch_failed", page_url=page_url, error=str(e))
            return None

        if not response.is_success:
            self.logger.warning(
                "image_page_bad_status",
                page_url=page_url,
                status_code=response.status_code,
            )
            return None

        try:
            return response.content.decode("utf-8")
        except UnicodeDecodeError:
            self.logger.warning("image_page_decode_failed", page_url=page_url)
            return None

    async def _get(self, client: httpx.AsyncClient, page_url: str) -> httpx.Response:
        return await client.get(
            page_url,
            headers=page_headers(self.user_agent),
            timeout=self.timeout,
            follow_redirects=True,
        )


async def resolve_post_image(post: Post, resolver: ImageURLResolver) -> Optional[str]:
    """Image to display for a post.

    Structured media and the body's first image need no network round
    trip; only posts without either go through the resolver.
    """
    primary = post.primary_image_url
    if primary:
        return primary
    return await resolver.resolve(post.permalink)


def get_image_resolver(
    cache: ImageCacheService,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ImageURLResolver:
    """Create a resolver configured from settings."""
    return ImageURLResolver(
        cache=cache,
        http_client=http_client,
        timeout=settings.IMAGE_RESOLVER_TIMEOUT,
    )
