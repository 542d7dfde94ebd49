"""Pydantic schemas for content API records."""

from dealfeed.schemas.post import RenderedField, WPPostPayload

__all__ = [
    "RenderedField",
    "WPPostPayload",
]
