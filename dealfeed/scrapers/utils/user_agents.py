"""User-Agent strings sent with outgoing requests."""

from typing import Dict


# Post pages are fetched as a phone would; several deal sites only emit
# og:image tags for their mobile templates.
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Mobile"
)

FEED_USER_AGENT = "dealfeed/1.0 (+https://dealingindeals.com)"


def page_headers(user_agent: str = MOBILE_USER_AGENT) -> Dict[str, str]:
    """Headers for fetching a post page during image resolution."""
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }


def feed_headers() -> Dict[str, str]:
    """Headers for content API requests."""
    return {
        "User-Agent": FEED_USER_AGENT,
        "Accept": "application/json",
    }
