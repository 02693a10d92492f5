from __future__ import annotations

import threading
from typing import Callable, Dict, Mapping, Optional

from locations.models import ResultWindow
from telemetry.logging_utils import get_logger

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 12

FetchWindow = Callable[[int], ResultWindow]


def _parse_int(value: Optional[str], default: int, *, minimum: int) -> int:
    try:
        parsed = int(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= minimum else default


class SearchResultPager:
    """
    Grows the requested result window by a fixed increment on "load more".

    There is no upper bound here; ``has_more`` on the last window returned by
    the query layer is the only signal that another load is useful. A load
    requested while one is still in flight is coalesced into it.
    """

    def __init__(self, initial_limit: int = DEFAULT_PAGE_SIZE, *, increment: Optional[int] = None, offset: int = 0) -> None:
        if initial_limit <= 0:
            raise ValueError("initial_limit must be positive")
        self.increment = increment if increment and increment > 0 else initial_limit
        self.limit = initial_limit
        self.offset = offset
        self.window: Optional[ResultWindow] = None
        self._pending = False
        self._lock = threading.Lock()

    @classmethod
    def from_params(cls, params: Mapping[str, str], default_limit: int = DEFAULT_PAGE_SIZE) -> "SearchResultPager":
        """Current window from ``limit``/``offset`` query params; growth stays at ``default_limit`` per load."""
        return cls(
            _parse_int(params.get("limit"), default_limit, minimum=1),
            increment=default_limit,
            offset=_parse_int(params.get("offset"), 0, minimum=0),
        )

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def next_limit(self) -> int:
        return self.limit + self.increment

    @property
    def skeleton_count(self) -> int:
        return self.increment if self._pending else 0

    @property
    def has_more(self) -> bool:
        return bool(self.window and self.window.has_more)

    def load(self, fetch: FetchWindow) -> ResultWindow:
        """Fetch the current window without growing it."""
        self.window = fetch(self.limit)
        return self.window

    def load_more(self, fetch: FetchWindow) -> int:
        with self._lock:
            if self._pending:
                logger.info("pager_load_more_coalesced", extra={"limit": self.limit})
                return self.limit
            self.limit += self.increment
            self._pending = True
        try:
            self.window = fetch(self.limit)
        finally:
            self._pending = False
        logger.info(
            "pager_load_more_complete",
            extra={"limit": self.limit, "total": self.window.total, "has_more": self.window.has_more},
        )
        return self.limit

    def to_query(self, params: Mapping[str, str], *, limit: Optional[int] = None) -> Dict[str, str]:
        """``params`` with ``limit`` set to the given value, or the current one."""
        updated = dict(params.items())
        updated["limit"] = str(self.limit if limit is None else limit)
        return updated
