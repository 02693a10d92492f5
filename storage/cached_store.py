from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from locations.catalog import LocationCatalog
from locations.models import ResultWindow
from storage.cache import CACHE_TTLS, TTLCache, make_cache_key
from telemetry.logging_utils import get_logger

logger = get_logger(__name__)


class CachedCatalogService:
    """Read-through caching for the store's catalog and listing queries."""

    def __init__(self, store: Any, cache: TTLCache) -> None:
        self.store = store
        self.cache = cache

    def _cached(self, key: str, ttl: float, loader: Callable[[], Any]) -> Any:
        hit = self.cache.get(key)
        if hit is not None:
            logger.debug("cache_hit", extra={"cache_key": key})
            return hit
        value = loader()
        self.cache.set(key, value, ttl=ttl)
        return value

    def list_cities(self) -> List[Dict[str, Any]]:
        return self._cached("cities", CACHE_TTLS["cities"], self.store.list_cities)

    def list_apartments(self, city_id: Optional[str] = None) -> List[Dict[str, Any]]:
        key = make_cache_key("apartments", {"city_id": city_id or ""})
        return self._cached(key, CACHE_TTLS["apartments"], lambda: self.store.list_apartments(city_id))

    def load_catalog(self) -> LocationCatalog:
        return self._cached(
            "catalog",
            CACHE_TTLS["cities"],
            lambda: LocationCatalog(self.list_cities(), self.list_apartments()),
        )

    def search_locations(self, query: str, *, location_type: str = "all", limit: int = 10) -> List[Dict[str, Any]]:
        key = make_cache_key("search", {"q": query, "type": location_type, "limit": limit})
        return self._cached(
            key,
            CACHE_TTLS["search_results"],
            lambda: self.store.search_locations(query, location_type=location_type, limit=limit),
        )

    def list_properties(self, filters: Dict[str, Any], *, limit: int, offset: int = 0) -> ResultWindow:
        key = make_cache_key("properties", {**filters, "limit": limit, "offset": offset})
        return self._cached(
            key,
            CACHE_TTLS["properties"],
            lambda: self.store.list_properties(filters, limit=limit, offset=offset),
        )

    def invalidate_locations(self) -> None:
        for prefix in ("cities", "apartments", "catalog", "search"):
            self.cache.delete_prefix(prefix)
