from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from locations.catalog import LocationCatalog, format_location
from locations.models import ResultWindow


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryStore:
    """Demo-mode store used when Supabase is unavailable."""

    def __init__(
        self,
        *,
        cities: Iterable[Dict[str, Any]] = (),
        apartments: Iterable[Dict[str, Any]] = (),
        properties: Iterable[Dict[str, Any]] = (),
        posts: Iterable[Dict[str, Any]] = (),
        post_images: Iterable[Dict[str, Any]] = (),
        users: Iterable[Dict[str, Any]] = (),
    ) -> None:
        self.cities: List[Dict[str, Any]] = [dict(c) for c in cities]
        self.apartments: List[Dict[str, Any]] = [dict(a) for a in apartments]
        self.properties: List[Dict[str, Any]] = [dict(p) for p in properties]
        self.user_locations: Dict[str, Dict[str, Any]] = {}
        self.posts: Dict[str, Dict[str, Any]] = {p["id"]: dict(p) for p in posts}
        self.post_images: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, Dict[str, Any]] = {}
        for image in post_images:
            self.save_post_images(image["post_id"], [image])
        # Demo users sign in with a fixed bearer token.
        for user in users:
            self.tokens[user["token"]] = {"id": user["id"], "email": user.get("email")}

    @classmethod
    def from_fixture(cls, path: Union[str, Path]) -> "InMemoryStore":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls(
            cities=data.get("cities", []),
            apartments=data.get("apartments", []),
            properties=data.get("properties", []),
            posts=data.get("community_posts", []),
            post_images=data.get("post_images", []),
            users=data.get("users", []),
        )

    # Reference data -------------------------------------------------------
    def list_cities(self) -> List[Dict[str, Any]]:
        return sorted(self.cities, key=lambda c: c.get("name") or "")

    def list_apartments(self, city_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = [a for a in self.apartments if city_id is None or a.get("city_id") == city_id]
        return sorted(rows, key=lambda a: a.get("name") or "")

    def load_catalog(self) -> LocationCatalog:
        return LocationCatalog(self.list_cities(), self.list_apartments())

    def search_locations(self, query: str, *, location_type: str = "all", limit: int = 10) -> List[Dict[str, Any]]:
        results = self.load_catalog().search(query, limit=len(self.cities) + len(self.apartments))
        if location_type != "all":
            results = [r for r in results if r["type"] == location_type]
        return results[:limit]

    # Property listings ----------------------------------------------------
    def list_properties(
        self, filters: Optional[Dict[str, Any]] = None, *, limit: int = 10, offset: int = 0
    ) -> ResultWindow:
        filters = filters or {}
        rows = list(self.properties)
        search_text = (filters.get("search_text") or "").strip().lower()
        if search_text:
            rows = [p for p in rows if search_text in (p.get("title") or "").lower()]
        if filters.get("min_price"):
            rows = [p for p in rows if (p.get("price") or 0) >= filters["min_price"]]
        if filters.get("max_price"):
            rows = [p for p in rows if (p.get("price") or 0) <= filters["max_price"]]
        if filters.get("property_type"):
            rows = [p for p in rows if p.get("property_type") == filters["property_type"]]
        if filters.get("min_bedrooms"):
            rows = [p for p in rows if (p.get("bedrooms") or 0) >= filters["min_bedrooms"]]
        if filters.get("min_bathrooms"):
            rows = [p for p in rows if (p.get("bathrooms") or 0) >= filters["min_bathrooms"]]
        rows.sort(key=lambda p: p.get("created_at") or "", reverse=True)
        return ResultWindow.build(rows[offset : offset + limit], len(rows), limit=limit, offset=offset)

    def get_property(self, property_id: str) -> Optional[Dict[str, Any]]:
        for row in self.properties:
            if row.get("id") == property_id:
                return row
        return None

    # User location preferences --------------------------------------------
    def _validate_location(self, city_id: str, apartment_id: Optional[str]) -> None:
        catalog = self.load_catalog()
        if catalog.find_city(city_id) is None:
            raise LookupError(f"Unknown city: {city_id}")
        if apartment_id:
            apartment = catalog.find_apartment(apartment_id)
            if apartment is None:
                raise LookupError(f"Unknown apartment: {apartment_id}")
            if apartment.city_id != city_id:
                raise ValueError("Apartment does not belong to the selected city.")

    def _rows_for(self, user_id: str) -> List[Dict[str, Any]]:
        rows = [r for r in self.user_locations.values() if r["user_id"] == user_id]
        rows.sort(key=lambda r: r["created_at"])
        return rows

    def list_user_locations(self, user_id: str) -> List[Dict[str, Any]]:
        catalog = self.load_catalog()
        results = []
        for row in self._rows_for(user_id):
            city = catalog.find_city(row["city_id"])
            apartment = catalog.find_apartment(row["apartment_id"]) if row.get("apartment_id") else None
            results.append(
                {
                    **row,
                    "city_name": city.name if city else None,
                    "city_name_ko": city.name_ko if city else None,
                    "apartment_name": apartment.name if apartment else None,
                    "apartment_name_ko": apartment.name_ko if apartment else None,
                    "full_address": format_location(city, apartment, use_korean=False) if city else "",
                    "full_address_ko": format_location(city, apartment) if city else "",
                }
            )
        results.sort(key=lambda r: not r["is_primary"])
        return results

    def add_user_location(
        self,
        user_id: str,
        city_id: str,
        apartment_id: Optional[str] = None,
        *,
        make_primary: bool = False,
    ) -> str:
        self._validate_location(city_id, apartment_id)
        existing = self._rows_for(user_id)
        location_id = str(uuid.uuid4())
        self.user_locations[location_id] = {
            "id": location_id,
            "user_id": user_id,
            "city_id": city_id,
            "apartment_id": apartment_id or None,
            "is_primary": False,
            "created_at": _now_iso(),
        }
        if make_primary or not existing:
            self._mark_primary(user_id, location_id)
        return location_id

    def set_primary_location(self, user_id: str, city_id: str, apartment_id: Optional[str] = None) -> str:
        self._validate_location(city_id, apartment_id)
        for row in self._rows_for(user_id):
            if row["city_id"] == city_id and row.get("apartment_id") == (apartment_id or None):
                self._mark_primary(user_id, row["id"])
                return row["id"]
        return self.add_user_location(user_id, city_id, apartment_id, make_primary=True)

    def _mark_primary(self, user_id: str, location_id: str) -> None:
        for row in self._rows_for(user_id):
            row["is_primary"] = row["id"] == location_id

    def remove_user_location(self, user_id: str, location_id: str) -> None:
        row = self.user_locations.get(location_id)
        if not row or row["user_id"] != user_id:
            raise LookupError("Location not found.")
        del self.user_locations[location_id]
        remaining = self._rows_for(user_id)
        if row["is_primary"] and remaining:
            self._mark_primary(user_id, remaining[0]["id"])

    # Community posts ------------------------------------------------------
    def get_post_owner(self, post_id: str) -> Optional[str]:
        post = self.posts.get(post_id)
        return post["user_id"] if post else None

    # Post images ----------------------------------------------------------
    def save_post_images(self, post_id: str, images: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        saved = []
        for index, image in enumerate(images):
            image_id = image.get("id") or str(uuid.uuid4())
            row = {
                "id": image_id,
                "post_id": post_id,
                "storage_path": image.get("storage_path", ""),
                "display_order": image.get("display_order", index),
                "alt_text": image.get("alt_text"),
                "metadata": image.get("metadata") or {},
                "created_at": _now_iso(),
            }
            self.post_images[image_id] = row
            saved.append(row)
        return saved

    def list_post_images(self, post_id: str) -> List[Dict[str, Any]]:
        rows = [r for r in self.post_images.values() if r["post_id"] == post_id]
        return sorted(rows, key=lambda r: r["display_order"])

    def reorder_post_images(self, orders: List[Dict[str, Any]]) -> None:
        unknown = [o["id"] for o in orders if o["id"] not in self.post_images]
        if unknown:
            raise LookupError(f"Unknown images: {', '.join(unknown)}")
        for order in orders:
            self.post_images[order["id"]]["display_order"] = order["display_order"]

    # Auth -----------------------------------------------------------------
    def issue_token(self, user_id: str, email: Optional[str] = None) -> str:
        """Mint a bearer token for a demo user; seeded users get theirs from the fixture."""
        token = str(uuid.uuid4())
        self.tokens[token] = {"id": user_id, "email": email}
        return token

    def get_user_for_token(self, token: str) -> Optional[Dict[str, Any]]:
        return self.tokens.get(token)

    # Health ---------------------------------------------------------------
    def ping(self) -> bool:
        return True
