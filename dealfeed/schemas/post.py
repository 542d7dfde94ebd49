"""Pydantic schemas for WordPress REST API post records.

Only the fields requested through `_fields=id,date,link,title,content,_embedded`
are modelled. Validation failures surface as DecodeError in the feed client.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dealfeed.scrapers.utils.normalizer import absolutize_url


class RenderedField(BaseModel):
    """WordPress `{"rendered": "<html>"}` wrapper."""

    model_config = ConfigDict(extra="ignore")

    rendered: str


class WPPostPayload(BaseModel):
    """A single post as returned by `/wp-json/wp/v2/posts`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int = Field(..., description="Source-assigned post ID", examples=[48213])
    date: str = Field(
        ...,
        min_length=1,
        description="Publish time, usually without an offset",
        examples=["2025-09-10T15:41:00"],
    )
    link: str = Field(
        ...,
        description="Absolute permalink of the post",
        examples=["https://dealingindeals.com/macys-big-sale/"],
    )
    title: RenderedField
    content: RenderedField
    embedded: Optional[Any] = Field(
        None,
        alias="_embedded",
        description="Present when the request used `_embed=1`",
    )
    featured_media_url: Optional[Any] = Field(
        None,
        alias="featuredMediaURL",
        description="Top-level media URL some sites add via a REST field",
    )

    @field_validator("link")
    @classmethod
    def validate_link(cls, v: str) -> str:
        """The permalink must be an absolute http(s) URL."""
        v = v.strip()
        if not v.startswith(("http://", "https://")) or absolutize_url(v, v) is None:
            raise ValueError(f"link must be an absolute http(s) URL, got '{v}'")
        return v

    @property
    def structured_media_url(self) -> Optional[str]:
        """Featured image URL, if the embedded media decodes.

        `_embedded["wp:featuredmedia"][0].source_url` wins over the
        top-level `featuredMediaURL`. A malformed value is treated as absent.
        """
        media_url = _as_absolute(self.featured_media_url)

        embedded = self.embedded
        if isinstance(embedded, dict):
            media = embedded.get("wp:featuredmedia")
            if isinstance(media, list) and media and isinstance(media[0], dict):
                source_url = _as_absolute(media[0].get("source_url"))
                if source_url:
                    media_url = source_url

        return media_url


def _as_absolute(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value.startswith(("http://", "https://")):
        return None
    return absolutize_url(value, value)
