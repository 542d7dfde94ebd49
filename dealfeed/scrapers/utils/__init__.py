"""Scraper utilities for text normalization, srcset parsing and HTTP retries."""

from .normalizer import (
    STORE_PATTERNS,
    absolutize_url,
    clean_title,
    display_timestamp,
    extract_price,
    parse_timestamp,
    price,
    store_name,
    strip_html,
)
from .srcset import SrcsetCandidate, best_from_srcset, parse_srcset, select_candidate
from .user_agents import MOBILE_USER_AGENT, feed_headers, page_headers
from .retry import feed_retrying


__all__ = [
    # Text extraction
    "strip_html",
    "extract_price",
    "price",
    "store_name",
    "clean_title",
    "display_timestamp",
    "parse_timestamp",
    "STORE_PATTERNS",
    # URLs
    "absolutize_url",
    "SrcsetCandidate",
    "parse_srcset",
    "select_candidate",
    "best_from_srcset",
    # User agents
    "MOBILE_USER_AGENT",
    "page_headers",
    "feed_headers",
    # Retry
    "feed_retrying",
]
