"""Post entity representing one deal item from the content source."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from bs4 import BeautifulSoup

from dealfeed.schemas.post import WPPostPayload
from dealfeed.scrapers.utils import normalizer
from dealfeed.scrapers.utils.srcset import best_from_srcset


@dataclass(frozen=True)
class Post:
    """One content item, exactly as the source described it.

    The raw markup is never modified. Display values (store, price,
    cleaned title, timestamp, fallback image) are computed from it on
    access.
    """

    id: int
    published_at: str
    permalink: str  # Absolute URL, also the image cache key
    title_html: str
    body_html: str
    structured_media_url: Optional[str] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.permalink:
            raise ValueError("permalink is required")
        if not self.permalink.startswith(("http://", "https://")):
            raise ValueError("permalink must be an absolute http(s) URL")

    @classmethod
    def from_payload(cls, payload: WPPostPayload) -> "Post":
        """Build a Post from a validated API record."""
        return cls(
            id=payload.id,
            published_at=payload.date,
            permalink=payload.link,
            title_html=payload.title.rendered,
            body_html=payload.content.rendered,
            structured_media_url=payload.structured_media_url,
        )

    @property
    def title_text(self) -> str:
        return normalizer.strip_html(self.title_html)

    @property
    def store_name(self) -> Optional[str]:
        return normalizer.store_name(self.title_html)

    @property
    def price(self) -> Optional[str]:
        return normalizer.price(self.title_html, self.body_html)

    @property
    def clean_title(self) -> str:
        return normalizer.clean_title(self.title_html, self.store_name)

    def display_timestamp(self, tz_name: str, now: Optional[datetime] = None) -> str:
        return normalizer.display_timestamp(self.published_at, tz_name, now=now)

    @property
    def content_image_url(self) -> Optional[str]:
        """First image in the body markup.

        The image's `srcset` best candidate is preferred over `src`, then
        lazy-loading `data-src`. Relative values resolve against the
        permalink.
        """
        if not self.body_html or "<img" not in self.body_html.lower():
            return None

        soup = BeautifulSoup(self.body_html, "lxml")
        img = soup.find("img")
        if img is None:
            return None

        srcset = img.get("srcset")
        if srcset:
            url = best_from_srcset(srcset, self.permalink)
            if url:
                return url

        for attr in ("src", "data-src"):
            url = normalizer.absolutize_url(img.get(attr), self.permalink)
            if url:
                return url
        return None

    @property
    def primary_image_url(self) -> Optional[str]:
        """Image known without a network round trip.

        Structured media is preferred; the body's first image is the
        fallback. None means the page has to go through ImageURLResolver.
        """
        return self.structured_media_url or self.content_image_url
