from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import httpx
from postgrest import APIError

from supabase import Client, create_client

from locations.catalog import LocationCatalog
from locations.models import ResultWindow
from telemetry.logging_utils import get_logger
from telemetry.retry import retry_with_backoff

logger = get_logger(__name__)

TRANSIENT_ERRORS = (httpx.RemoteProtocolError, httpx.WriteError, httpx.ConnectError, APIError)


class SupabaseStore:
    def __init__(self, url: str, key: str, *, client: Optional[Client] = None) -> None:
        self.client: Client = client or create_client(url, key)
        self._max_retries = 3
        self._retry_backoff_seconds = 0.25

    def _table(self, name: str):
        return self.client.table(name)

    def _with_retry(self, fn: Callable[[], Any]) -> Any:
        return retry_with_backoff(
            fn,
            retries=self._max_retries,
            base_delay=self._retry_backoff_seconds,
            retry_exceptions=TRANSIENT_ERRORS,
        )

    # Reference data -------------------------------------------------------
    def list_cities(self) -> List[Dict[str, Any]]:
        resp = self._with_retry(lambda: self._table("cities").select("*").order("name", desc=False).execute())
        return resp.data or []

    def list_apartments(self, city_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if city_id:
            resp = self._with_retry(lambda: self.client.rpc("get_apartments_by_city", {"city_uuid": city_id}).execute())
            return resp.data or []
        resp = self._with_retry(
            lambda: self._table("apartments")
            .select("id, name, name_ko, city_id, district, district_ko")
            .order("name", desc=False)
            .execute()
        )
        return resp.data or []

    def load_catalog(self) -> LocationCatalog:
        cities = self.list_cities()
        apartments = self.list_apartments()
        logger.info("catalog_loaded", extra={"cities": len(cities), "apartments": len(apartments)})
        return LocationCatalog(cities, apartments)

    def search_locations(self, query: str, *, location_type: str = "all", limit: int = 10) -> List[Dict[str, Any]]:
        resp = self._with_retry(
            lambda: self.client.rpc(
                "search_vietnamese_locations",
                {"search_query": query, "search_type": location_type, "limit_count": limit},
            ).execute()
        )
        return resp.data or []

    # Property listings ----------------------------------------------------
    def list_properties(
        self, filters: Optional[Dict[str, Any]] = None, *, limit: int = 10, offset: int = 0
    ) -> ResultWindow:
        filters = filters or {}
        query = self._table("property_listings").select("*", count="exact")
        if filters.get("search_text"):
            query = query.ilike("title", f"%{filters['search_text']}%")
        if filters.get("min_price"):
            query = query.gte("price", filters["min_price"])
        if filters.get("max_price"):
            query = query.lte("price", filters["max_price"])
        if filters.get("property_type"):
            query = query.eq("property_type", filters["property_type"])
        if filters.get("min_bedrooms"):
            query = query.gte("bedrooms", filters["min_bedrooms"])
        if filters.get("min_bathrooms"):
            query = query.gte("bathrooms", filters["min_bathrooms"])
        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)
        resp = self._with_retry(lambda: query.execute())
        items = resp.data or []
        total = resp.count if resp.count is not None else offset + len(items)
        return ResultWindow.build(items, total, limit=limit, offset=offset)

    def get_property(self, property_id: str) -> Optional[Dict[str, Any]]:
        resp = self._with_retry(
            lambda: self._table("property_listings").select("*").eq("id", property_id).maybe_single().execute()
        )
        return resp.data if resp else None

    # User location preferences --------------------------------------------
    def _check_apartment_city(self, city_id: str, apartment_id: Optional[str]) -> None:
        if not apartment_id:
            return
        resp = self._with_retry(
            lambda: self._table("apartments").select("id, city_id").eq("id", apartment_id).maybe_single().execute()
        )
        row = resp.data if resp else None
        if not row:
            raise LookupError(f"Unknown apartment: {apartment_id}")
        if row["city_id"] != city_id:
            raise ValueError("Apartment does not belong to the selected city.")

    def list_user_locations(self, user_id: str) -> List[Dict[str, Any]]:
        resp = self._with_retry(
            lambda: self.client.rpc("get_user_preferred_locations", {"user_uuid": user_id}).execute()
        )
        return resp.data or []

    def add_user_location(
        self,
        user_id: str,
        city_id: str,
        apartment_id: Optional[str] = None,
        *,
        make_primary: bool = False,
    ) -> str:
        self._check_apartment_city(city_id, apartment_id)
        resp = self._with_retry(
            lambda: self.client.rpc(
                "add_user_location_preference",
                {
                    "user_uuid": user_id,
                    "city_uuid": city_id,
                    "apartment_uuid": apartment_id or None,
                    "make_primary": make_primary,
                },
            ).execute()
        )
        if not resp.data:
            raise RuntimeError("Failed to add location preference")
        return resp.data

    def set_primary_location(self, user_id: str, city_id: str, apartment_id: Optional[str] = None) -> str:
        self._check_apartment_city(city_id, apartment_id)
        resp = self._with_retry(
            lambda: self.client.rpc(
                "set_user_primary_location",
                {"user_uuid": user_id, "city_uuid": city_id, "apartment_uuid": apartment_id or None},
            ).execute()
        )
        if not resp.data:
            raise RuntimeError("Failed to set primary location")
        return resp.data

    def remove_user_location(self, user_id: str, location_id: str) -> None:
        resp = self._with_retry(
            lambda: self._table("user_locations").delete().eq("id", location_id).eq("user_id", user_id).execute()
        )
        if not resp.data:
            raise LookupError("Location not found.")

    # Community posts ------------------------------------------------------
    def get_post_owner(self, post_id: str) -> Optional[str]:
        resp = self._with_retry(
            lambda: self._table("community_posts").select("id, user_id").eq("id", post_id).maybe_single().execute()
        )
        row = resp.data if resp else None
        return row["user_id"] if row else None

    # Post images ----------------------------------------------------------
    def list_post_images(self, post_id: str) -> List[Dict[str, Any]]:
        resp = self._with_retry(
            lambda: self._table("post_images")
            .select("*")
            .eq("post_id", post_id)
            .order("display_order", desc=False)
            .execute()
        )
        return resp.data or []

    def reorder_post_images(self, orders: List[Dict[str, Any]]) -> None:
        for order in orders:
            self._with_retry(
                lambda order=order: self._table("post_images")
                .update({"display_order": order["display_order"]})
                .eq("id", order["id"])
                .execute()
            )

    # Auth -----------------------------------------------------------------
    def get_user_for_token(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            resp = self.client.auth.get_user(token)
        except Exception as exc:  # invalid or expired token
            logger.info("auth_token_rejected", extra={"error": type(exc).__name__})
            return None
        user = getattr(resp, "user", None)
        if user is None:
            return None
        return {"id": user.id, "email": user.email}

    # Health ---------------------------------------------------------------
    def ping(self) -> bool:
        try:
            self._table("cities").select("id").limit(1).execute()
        except (APIError, httpx.HTTPError):
            logger.warning("supabase_ping_failed")
            return False
        return True
