from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

ALL = "all"


class City(BaseModel):
    id: str
    name: str
    name_ko: Optional[str] = None

    model_config = {"extra": "allow", "frozen": True}


class Apartment(BaseModel):
    id: str
    name: str
    name_ko: Optional[str] = None
    city_id: str
    district: Optional[str] = None
    district_ko: Optional[str] = None

    model_config = {"extra": "allow", "frozen": True}


class CityOption(BaseModel):
    id: str
    name: str
    name_ko: Optional[str] = None
    apartment_count: int = 0


class SelectionState(BaseModel):
    selected_city_id: str = ""
    selected_apartment_id: str = ""


class FilterChip(BaseModel):
    id: str
    label: str
    value: str
    type: str


class ResultWindow(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0
    has_more: bool = False

    @classmethod
    def build(cls, items: List[Dict[str, Any]], total: int, *, limit: int, offset: int) -> "ResultWindow":
        return cls(items=items, total=total, limit=limit, offset=offset, has_more=offset + len(items) < total)


def display_name(entity: Any) -> str:
    """Korean name when present, default name otherwise."""
    if isinstance(entity, dict):
        return entity.get("name_ko") or entity.get("name") or ""
    return getattr(entity, "name_ko", None) or getattr(entity, "name", "") or ""
