"""Load state and filter criteria held by the feed aggregator."""

import enum
from dataclasses import dataclass
from typing import Optional


class LoadStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadState:
    """Where the aggregator is in its fetch cycle.

    `message` is set only for FAILED and carries the error description the
    UI shows next to its retry affordance.
    """

    status: LoadStatus
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "LoadState":
        return cls(LoadStatus.IDLE)

    @classmethod
    def loading(cls) -> "LoadState":
        return cls(LoadStatus.LOADING)

    @classmethod
    def loaded(cls) -> "LoadState":
        return cls(LoadStatus.LOADED)

    @classmethod
    def failed(cls, message: str) -> "LoadState":
        return cls(LoadStatus.FAILED, message)

    @property
    def is_idle(self) -> bool:
        return self.status is LoadStatus.IDLE

    @property
    def is_loading(self) -> bool:
        return self.status is LoadStatus.LOADING

    @property
    def is_loaded(self) -> bool:
        return self.status is LoadStatus.LOADED

    @property
    def is_failed(self) -> bool:
        return self.status is LoadStatus.FAILED


@dataclass(frozen=True)
class FilterCriteria:
    """Client-side filters applied to the loaded posts."""

    query: str = ""
    selected_store: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return bool(self.query) or self.selected_store is not None
