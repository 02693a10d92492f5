"""Read-only snapshot of the city/apartment reference data."""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from locations.models import Apartment, City, display_name

CityRow = Union[City, Dict[str, Any]]
ApartmentRow = Union[Apartment, Dict[str, Any]]


def _as_city(row: CityRow) -> City:
    return row if isinstance(row, City) else City.model_validate(row)


def _as_apartment(row: ApartmentRow) -> Apartment:
    return row if isinstance(row, Apartment) else Apartment.model_validate(row)


class LocationCatalog:
    """Cities and apartments as supplied by the data layer. Never mutated."""

    def __init__(self, cities: Iterable[CityRow] = (), apartments: Iterable[ApartmentRow] = ()) -> None:
        self.cities: Tuple[City, ...] = tuple(_as_city(c) for c in cities)
        self.apartments: Tuple[Apartment, ...] = tuple(_as_apartment(a) for a in apartments)
        self._cities_by_id = {c.id: c for c in self.cities}
        self._apartments_by_id = {a.id: a for a in self.apartments}

    def __len__(self) -> int:
        return len(self.apartments)

    def find_city(self, city_id: str) -> Optional[City]:
        return self._cities_by_id.get(city_id)

    def find_apartment(self, apartment_id: str) -> Optional[Apartment]:
        return self._apartments_by_id.get(apartment_id)

    def apartments_in(self, city_id: str) -> List[Apartment]:
        return [a for a in self.apartments if a.city_id == city_id]

    def apartment_counts(self) -> Dict[str, int]:
        return dict(Counter(a.city_id for a in self.apartments))

    def search(self, query: str, limit: int = 5) -> List[Dict[str, Any]]:
        """
        Autocomplete over city and apartment names (default and Korean).

        Prefix matches rank ahead of substring matches; cities ahead of
        apartments on ties.
        """
        needle = (query or "").strip().lower()
        if len(needle) < 2:
            return []

        scored: List[Tuple[int, int, str, Dict[str, Any]]] = []
        for kind_rank, kind, rows in ((0, "city", self.cities), (1, "apartment", self.apartments)):
            for row in rows:
                names = [n.lower() for n in (row.name, row.name_ko) if n]
                if any(n.startswith(needle) for n in names):
                    rank = 0
                elif any(needle in n for n in names):
                    rank = 1
                else:
                    continue
                scored.append((rank, kind_rank, row.name, self._search_result(kind, row)))
        scored.sort(key=lambda item: item[:3])
        return [item[3] for item in scored[:limit]]

    def _search_result(self, kind: str, row: Any) -> Dict[str, Any]:
        result = {"id": row.id, "type": kind, "name": row.name, "name_ko": row.name_ko}
        if kind == "apartment":
            city = self.find_city(row.city_id)
            result["city_name"] = city.name if city else None
            result["city_name_ko"] = city.name_ko if city else None
            result["full_address"] = format_location(city, row, use_korean=False) if city else row.name
        else:
            result["full_address"] = row.name
        return result


def format_location(city: City, apartment: Optional[Apartment] = None, *, use_korean: bool = True) -> str:
    """Join city, district and apartment into one display string."""
    if use_korean and city.name_ko:
        parts = [city.name_ko]
        if apartment is not None:
            if apartment.district_ko:
                parts.append(apartment.district_ko)
            parts.append(display_name(apartment))
        return ", ".join(parts)
    parts = [city.name]
    if apartment is not None:
        if apartment.district:
            parts.append(apartment.district)
        parts.append(apartment.name)
    return ", ".join(parts)
