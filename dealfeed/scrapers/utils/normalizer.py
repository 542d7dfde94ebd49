"""Text normalization utilities for deal post markup.

Everything here is a pure function of its inputs: HTML stripping, price
extraction, store-name inference, title cleanup, timestamp formatting and
URL absolutization. None of these functions raise on malformed input; a
failed heuristic returns None (or the input unchanged).
"""

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Pattern, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

logger = structlog.get_logger(__name__)


_TAG_RE = re.compile(r"<[^>]+>")

# Entities WordPress emits in rendered titles; anything else is left as-is
HTML_ENTITIES: Tuple[Tuple[str, str], ...] = (
    ("&amp;", "&"),
    ("&#8217;", "'"),
    ("&#8220;", '"'),
    ("&#8221;", '"'),
    ("&#8230;", "…"),
)

# $12,345.67 or $30
_PRICE_RE = re.compile(r"\$\s*\d{1,3}(?:,\d{3})*(?:\.\d{2})?")

_STORE_CHARS = r"[A-Za-z0-9&'’.\- ]"

# Ordered store-name heuristics, first match wins
STORE_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    # "Macys #Ad: ..."
    ("ad_marker", re.compile(rf"^({_STORE_CHARS}+)\s+#\s*Ad\b:?", re.IGNORECASE)),
    # "[Amazon] ..."
    ("bracket", re.compile(rf"^\s*\[\s*({_STORE_CHARS}+)\s*\]", re.IGNORECASE)),
    # "Walmart – ...", "Kohl's - ...", "Target: ...", "Best Buy | ..."
    ("separator", re.compile(rf"^\s*({_STORE_CHARS}+)\s*[-–:|]\s*", re.IGNORECASE)),
)

_AD_MARKER_RE = re.compile(r"^\s*#\s*ad\b\s*:?[\s–-]*", re.IGNORECASE)
_LEADING_SEPARATOR_RE = re.compile(r"^\s*[-–:|]\s*")

# WordPress `date` has no offset
_NAIVE_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


def strip_html(html: str) -> str:
    """Remove tags and decode the common WordPress entities.

    Args:
        html: Raw markup

    Returns:
        Plain text. Unknown entities pass through unchanged.
    """
    if not html:
        return ""
    text = _TAG_RE.sub("", html)
    for entity, replacement in HTML_ENTITIES:
        text = text.replace(entity, replacement)
    return text


def extract_price(text: str) -> Optional[str]:
    """Extract the first dollar amount from text.

    Examples:
        "Now $12,345.67 shipped" -> "$12,345.67"
        "only $ 30 today" -> "$30"

    Args:
        text: Plain text

    Returns:
        The leftmost match with whitespace removed, or None
    """
    if not text:
        return None
    match = _PRICE_RE.search(text)
    if not match:
        return None
    return re.sub(r"\s+", "", match.group(0))


def price(title_html: str, body_html: str) -> Optional[str]:
    """Price shown for a post; the title takes precedence over the body."""
    return extract_price(strip_html(title_html)) or extract_price(strip_html(body_html))


def _first_capture(pattern: Pattern[str], text: str) -> Optional[str]:
    match = pattern.search(text)
    if not match:
        return None
    for group in match.groups():
        if group and group.strip():
            return group.strip()
    return None


def store_name(title_html: str) -> Optional[str]:
    """Infer a store name from the start of a post title.

    The separator heuristic also matches titles that merely contain a dash
    or colon after a few plain words ("Fresh deals - today only" yields
    "Fresh deals"). It is kept last in the cascade so the explicit forms
    always win.

    Args:
        title_html: Raw title markup

    Returns:
        Trimmed store name, or None if no heuristic matches
    """
    raw = strip_html(title_html)
    for _name, pattern in STORE_PATTERNS:
        store = _first_capture(pattern, raw)
        if store:
            return store
    return None


def clean_title(title_html: str, store: Optional[str] = None) -> str:
    """Title text without the "#Ad" marker and the leading store prefix.

    Args:
        title_html: Raw title markup
        store: Store name previously inferred from the same title

    Returns:
        Cleaned, trimmed title text
    """
    text = _AD_MARKER_RE.sub("", strip_html(title_html), count=1)

    if store:
        escaped = re.escape(store)
        # "[Store] ", "Store - ", "Store: ", "Store | " or "Store #Ad: "
        prefix = re.compile(
            rf"^\s*(?:\[\s*{escaped}\s*\]\s*|{escaped}\s*(?:#\s*ad\b\s*:?[\s–-]*|[-–:|]\s*))",
            re.IGNORECASE,
        )
        text = prefix.sub("", text, count=1)
        # "[Store] #Ad: ..." leaves the marker behind
        text = _AD_MARKER_RE.sub("", text, count=1)

    text = _LEADING_SEPARATOR_RE.sub("", text, count=1)
    return text.strip()


def get_timezone(name: str) -> tzinfo:
    """Look up a zone by IANA name, falling back to UTC."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.warning("unknown_timezone", timezone=name)
        return timezone.utc


def parse_timestamp(raw: str, tz: tzinfo) -> Optional[datetime]:
    """Parse a post timestamp into an aware datetime.

    Full ISO-8601 with an offset is tried first; a bare
    `YYYY-MM-DDTHH:mm:ss` is then read as wall time in `tz`.
    """
    if not raw:
        return None
    value = raw.strip()

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is not None and parsed.tzinfo is not None:
        return parsed

    try:
        return datetime.strptime(value, _NAIVE_TIMESTAMP_FORMAT).replace(tzinfo=tz)
    except ValueError:
        return None


def _clock_time(dt: datetime) -> str:
    # "3:41 PM" regardless of LC_TIME
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{dt.hour % 12 or 12}:{dt.minute:02d} {meridiem}"


def display_timestamp(
    raw: str,
    tz_name: str = "America/New_York",
    now: Optional[datetime] = None,
) -> str:
    """Friendly timestamp in the given zone.

    "Today 3:41 PM", "Yesterday 9:12 AM" or "9/8 7:05 PM". Days are
    compared as calendar days in `tz_name`, not in UTC.

    Args:
        raw: Source timestamp string
        tz_name: IANA zone name
        now: Reference time (defaults to the current time)

    Returns:
        Formatted string, or `raw` unchanged when it cannot be parsed
    """
    tz = get_timezone(tz_name)
    parsed = parse_timestamp(raw, tz)
    if parsed is None:
        return raw

    local = parsed.astimezone(tz)
    today = (now or datetime.now(timezone.utc)).astimezone(tz).date()

    if local.date() == today:
        return f"Today {_clock_time(local)}"
    if local.date() == today - timedelta(days=1):
        return f"Yesterday {_clock_time(local)}"
    return f"{local.month}/{local.day} {_clock_time(local)}"


def absolutize_url(raw: Optional[str], base_url: str) -> Optional[str]:
    """Turn an attribute value into an absolute http(s) URL.

    Args:
        raw: URL as found in markup (absolute, protocol-relative,
            root-relative or relative)
        base_url: URL of the page the value was found on

    Returns:
        Absolute URL, or None if it cannot be built
    """
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None

    if value.startswith(("http://", "https://")):
        candidate = value
    elif value.startswith("//"):
        candidate = "https:" + value
    elif value.startswith("/"):
        try:
            base = urlsplit(base_url)
            own = urlsplit(value)
        except ValueError:
            return None
        # Base query and fragment are dropped
        candidate = urlunsplit((base.scheme, base.netloc, own.path, own.query, own.fragment))
    else:
        try:
            candidate = urljoin(base_url, value)
        except ValueError:
            return None

    return candidate if _is_absolute_http(candidate) else None


def _is_absolute_http(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return False
    return not any(ch.isspace() for ch in url)
