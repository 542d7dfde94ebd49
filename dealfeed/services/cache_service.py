"""Two-tier cache for resolved post images.

Maps a post page URL to the image URL found for it. Entries live in an
in-memory index and in a JSON file under the cache directory; both expire
after a fixed TTL and are pruned lazily, on load and on access.

File format:
    {"<page url>": {"image": "<image url>", "ts": "<ISO-8601 or epoch seconds>"}}
"""

import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import structlog

from dealfeed.config import settings

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    """A resolved image and when it was resolved."""

    image_url: str
    resolved_at: datetime

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.resolved_at < ttl

    def to_json(self) -> Dict[str, str]:
        return {"image": self.image_url, "ts": self.resolved_at.isoformat()}

    @classmethod
    def from_json(cls, data: Any) -> Optional["CacheEntry"]:
        """Decode a persisted entry, or None if it is malformed."""
        if not isinstance(data, dict):
            return None
        image = data.get("image")
        resolved_at = _parse_ts(data.get("ts"))
        if not isinstance(image, str) or not image or resolved_at is None:
            return None
        return cls(image_url=image, resolved_at=resolved_at)


def _parse_ts(value: Union[str, int, float, None]) -> Optional[datetime]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


class ImageCacheService:
    """Memory + disk cache of page URL -> image URL with TTL eviction.

    Not safe for concurrent mutation on its own; ImageURLResolver
    serializes access to it.
    """

    def __init__(
        self,
        cache_dir: Union[str, Path],
        filename: str = "image_url_cache.json",
        ttl: timedelta = timedelta(days=7),
        clock: Clock = utc_now,
    ):
        """Initialize cache service.

        Args:
            cache_dir: Directory holding the cache file (created on first write)
            filename: Cache file name
            ttl: Maximum entry age
            clock: Returns the current aware datetime
        """
        self.path = Path(cache_dir) / filename
        self.ttl = ttl
        self.clock = clock
        self._memory: Dict[str, str] = {}
        self._disk: Dict[str, CacheEntry] = {}
        self.logger = logger.bind(service="image_cache", path=str(self.path))

    def load(self) -> int:
        """Read the cache file, dropping expired and malformed entries.

        A missing or unreadable file leaves the cache empty.

        Returns:
            Number of entries kept
        """
        self._memory.clear()
        self._disk.clear()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            self.logger.debug("image_cache_file_missing")
            return 0
        except (OSError, ValueError) as e:
            self.logger.warning("image_cache_load_failed", error=str(e))
            return 0

        if not isinstance(raw, dict):
            self.logger.warning("image_cache_invalid_format", type=type(raw).__name__)
            return 0

        now = self.clock()
        dropped = 0
        for page_url, data in raw.items():
            entry = CacheEntry.from_json(data)
            if entry is None or not entry.is_fresh(now, self.ttl):
                dropped += 1
                continue
            self._disk[page_url] = entry
            self._memory[page_url] = entry.image_url

        self.logger.info("image_cache_loaded", entries=len(self._disk), dropped=dropped)
        return len(self._disk)

    def get(self, page_url: str) -> Optional[str]:
        """Get a fresh image URL for a page.

        Memory is consulted first, then the disk index; a disk hit is
        promoted to memory. An expired entry is evicted from both tiers.

        Args:
            page_url: Post permalink

        Returns:
            Cached image URL, or None if not found or expired
        """
        entry = self._disk.get(page_url)
        if entry is not None and not entry.is_fresh(self.clock(), self.ttl):
            self.logger.debug("image_cache_expired", page_url=page_url)
            self.delete(page_url)
            return None

        cached = self._memory.get(page_url)
        if cached is not None and entry is not None:
            self.logger.debug("image_cache_hit", page_url=page_url, tier="memory")
            return cached

        if entry is not None:
            self._memory[page_url] = entry.image_url
            self.logger.debug("image_cache_hit", page_url=page_url, tier="disk")
            return entry.image_url

        # A memory entry without a disk entry would break the tiers' invariant
        self._memory.pop(page_url, None)
        self.logger.debug("image_cache_miss", page_url=page_url)
        return None

    def set(self, page_url: str, image_url: str) -> bool:
        """Write through to memory and disk.

        Returns:
            True if the file was persisted, False on write error (the
            in-memory entry is kept either way)
        """
        entry = CacheEntry(image_url=image_url, resolved_at=self.clock())
        self._memory[page_url] = image_url
        self._disk[page_url] = entry
        self.logger.debug("image_cache_set", page_url=page_url, image_url=image_url)
        return self._persist()

    def delete(self, page_url: str) -> bool:
        """Remove a page from both tiers.

        Returns:
            True if an entry was removed
        """
        self._memory.pop(page_url, None)
        removed = self._disk.pop(page_url, None) is not None
        if removed:
            self._persist()
        return removed

    def clear(self) -> None:
        """Drop every entry and rewrite the file empty."""
        self._memory.clear()
        self._disk.clear()
        self._persist()
        self.logger.info("image_cache_cleared")

    def __len__(self) -> int:
        return len(self._disk)

    def __contains__(self, page_url: str) -> bool:
        return page_url in self._disk

    def _persist(self) -> bool:
        """Atomically replace the cache file with the current disk index."""
        payload = {page_url: entry.to_json() for page_url, entry in self._disk.items()}
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
            return True
        except OSError as e:
            self.logger.error("image_cache_persist_failed", error=str(e), exc_info=True)
            return False
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass


def get_image_cache_service(clock: Clock = utc_now) -> ImageCacheService:
    """Create and load an image cache configured from settings.

    Returns:
        Loaded ImageCacheService instance
    """
    cache = ImageCacheService(
        cache_dir=settings.get_cache_dir(),
        filename=settings.IMAGE_CACHE_FILENAME,
        ttl=settings.get_cache_ttl(),
        clock=clock,
    )
    cache.load()
    return cache
