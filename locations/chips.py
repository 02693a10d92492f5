from __future__ import annotations

from typing import Dict, List, Mapping

from locations.models import FilterChip

CATEGORY_LABELS = {
    "QNA": "Q&A",
    "RECOMMEND": "추천",
    "SECONDHAND": "중고거래",
    "FREE": "나눔",
}

SORT_LABELS = {
    "popular": "인기순",
    "comments": "댓글순",
    "likes": "좋아요순",
}

DEFAULT_SORT = "recent"
TRACKED_KEYS = ("category", "location", "sort")
CLEAR_ALL_LABEL = "전체 해제"


def derive_chips(params: Mapping[str, str]) -> List[FilterChip]:
    """Active, non-default query parameters as removable chips."""
    chips: List[FilterChip] = []

    category = params.get("category")
    if category:
        chips.append(
            FilterChip(id="category", label=CATEGORY_LABELS.get(category, category), value=category, type="category")
        )

    location = params.get("location")
    if location:
        chips.append(FilterChip(id="location", label=location, value=location, type="location"))

    sort = params.get("sort")
    if sort and sort != DEFAULT_SORT:
        chips.append(FilterChip(id="sort", label=SORT_LABELS.get(sort, sort), value=sort, type="sort"))

    return chips


def remove_chip(params: Mapping[str, str], chip_id: str) -> Dict[str, str]:
    return {k: v for k, v in params.items() if k != chip_id}


def clear_all(params: Mapping[str, str]) -> Dict[str, str]:
    return {k: v for k, v in params.items() if k not in TRACKED_KEYS}


def show_clear_all(chips: List[FilterChip]) -> bool:
    # A single chip already has its own remove control.
    return len(chips) > 1


def chip_remove_label(chip: FilterChip) -> str:
    return f"{chip.label} 필터 제거"
