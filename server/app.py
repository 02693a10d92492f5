from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from community.images import OptimisticList, PostImage, ReorderError, reorder_images
from locations.chips import CLEAR_ALL_LABEL, chip_remove_label, clear_all, derive_chips, remove_chip, show_clear_all
from locations.pager import SearchResultPager
from locations.selector import (
    APARTMENT_LABEL,
    CITY_LABEL,
    EMPTY_CITY_MESSAGE,
    TwoStepSelector,
)
from server.config import build_store, load_settings
from storage.cache import TTLCache
from storage.cached_store import CachedCatalogService
from telemetry.logging_utils import configure_logging, get_logger

settings = load_settings()
configure_logging(settings.log_level)
logger = get_logger(__name__)

store = build_store(settings)
service = CachedCatalogService(
    store,
    TTLCache(max_size=settings.cache_max_size, default_ttl=settings.cache_ttl_seconds),
)


class LocationPayload(BaseModel):
    city_id: str
    apartment_id: Optional[str] = None
    make_primary: bool = False


class ReorderPayload(BaseModel):
    order: List[str]


app = FastAPI(title="vinahome")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_current_user(request: Request) -> Dict[str, Any]:
    auth_header = request.headers.get("Authorization") or ""
    if not auth_header.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    token = auth_header.split(None, 1)[1].strip()
    user = store.get_user_for_token(token)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


@app.get("/api/health")
def health():
    return {"ok": store.ping(), "backend": "supabase" if settings.use_supabase else "memory"}


# Reference data -------------------------------------------------------------
@app.get("/api/cities")
def list_cities():
    return {"cities": service.list_cities()}


@app.get("/api/apartments")
def list_apartments(city_id: Optional[str] = None):
    return {"apartments": service.list_apartments(city_id)}


@app.get("/api/locations/search")
def search_locations(
    q: str = "",
    location_type: str = Query("all", alias="type", pattern="^(all|city|apartment)$"),
    limit: int = Query(10, ge=1, le=50),
):
    return {"results": service.search_locations(q, location_type=location_type, limit=limit)}


@app.get("/api/locations/selector")
def location_selector(
    apartment_id: str = "",
    city_id: Optional[str] = None,
    include_all: bool = False,
):
    emitted: List[str] = []
    selector = TwoStepSelector(
        service.load_catalog(),
        initial_apartment_id=apartment_id,
        include_all=include_all,
        on_apartment_select=emitted.append,
    )
    if city_id is not None:
        selector.select_city(city_id)
    return {
        "state": selector.state.model_dump(),
        "emitted": emitted,
        "labels": {"city": CITY_LABEL, "apartment": APARTMENT_LABEL},
        "apartment_selector_enabled": selector.is_apartment_selector_enabled,
        "city_options": [
            {**option.model_dump(), "display_name": selector.city_display_name(option)}
            for option in selector.city_options_with_counts
        ],
        "apartments": [
            {**apartment.model_dump(), "display_name": selector.apartment_display_name(apartment)}
            for apartment in selector.filtered_apartments
        ],
        "empty_state": EMPTY_CITY_MESSAGE if selector.is_empty_result else None,
    }


# Community filter chips -----------------------------------------------------
def _query_dict(request: Request, *, exclude: tuple = ()) -> Dict[str, str]:
    return {k: v for k, v in request.query_params.items() if k not in exclude}


@app.get("/api/community/filters")
def community_filters(request: Request):
    chips = derive_chips(request.query_params)
    return {
        "chips": [{**chip.model_dump(), "remove_label": chip_remove_label(chip)} for chip in chips],
        "show_clear_all": show_clear_all(chips),
        "clear_all_label": CLEAR_ALL_LABEL,
    }


@app.get("/api/community/filters/remove")
def remove_community_filter(request: Request, chip: str):
    params = remove_chip(_query_dict(request, exclude=("chip",)), chip)
    return {"query": urlencode(params), "chips": [c.model_dump() for c in derive_chips(params)]}


@app.get("/api/community/filters/clear")
def clear_community_filters(request: Request):
    params = clear_all(_query_dict(request))
    return {"query": urlencode(params), "chips": []}


# Property listings ----------------------------------------------------------
def _number(params: Mapping[str, str], key: str) -> Optional[float]:
    raw = params.get(key)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid number for {key}.")


def _property_filters(params: Mapping[str, str]) -> Dict[str, Any]:
    return {
        "search_text": (params.get("search") or "").strip() or None,
        "min_price": _number(params, "minPrice"),
        "max_price": _number(params, "maxPrice"),
        "property_type": params.get("propertyType") or None,
        "min_bedrooms": _number(params, "minBedrooms"),
        "min_bathrooms": _number(params, "minBathrooms"),
    }


@app.get("/api/properties")
def list_properties(request: Request):
    params = request.query_params
    filters = _property_filters(params)
    pager = SearchResultPager.from_params(params, default_limit=settings.page_size)
    window = pager.load(lambda limit: service.list_properties(filters, limit=limit, offset=pager.offset))
    next_query = None
    if window.has_more:
        next_query = urlencode(pager.to_query(params, limit=pager.next_limit))
    return {
        "properties": window.items,
        "total": window.total,
        "limit": window.limit,
        "offset": window.offset,
        "has_more": window.has_more,
        "next_query": next_query,
        "skeleton_count": pager.increment,
    }


@app.get("/api/properties/{property_id}")
def get_property(property_id: str):
    row = store.get_property(property_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found.")
    return {"property": row}


# User location preferences --------------------------------------------------
@app.get("/api/users/me/locations")
def list_my_locations(user: Dict[str, Any] = Depends(get_current_user)):
    return {"locations": store.list_user_locations(user["id"])}


@app.post("/api/users/me/locations", status_code=status.HTTP_201_CREATED)
def add_my_location(payload: LocationPayload, user: Dict[str, Any] = Depends(get_current_user)):
    try:
        location_id = store.add_user_location(
            user["id"], payload.city_id, payload.apartment_id, make_primary=payload.make_primary
        )
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.info("user_location_added", extra={"user_id": user["id"], "city_id": payload.city_id})
    return {"id": location_id}


@app.post("/api/users/me/locations/primary")
def set_my_primary_location(payload: LocationPayload, user: Dict[str, Any] = Depends(get_current_user)):
    try:
        location_id = store.set_primary_location(user["id"], payload.city_id, payload.apartment_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return {"id": location_id}


@app.delete("/api/users/me/locations/{location_id}")
def remove_my_location(location_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    try:
        store.remove_user_location(user["id"], location_id)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found.")
    return {"ok": True}


# Post images ----------------------------------------------------------------
@app.post("/api/community/posts/{post_id}/images/reorder")
def reorder_post_images(post_id: str, payload: ReorderPayload, user: Dict[str, Any] = Depends(get_current_user)):
    owner_id = store.get_post_owner(post_id)
    if owner_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found.")
    if owner_id != user["id"]:
        logger.warning("post_images_reorder_forbidden", extra={"post_id": post_id, "user_id": user["id"]})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author can reorder images.")
    rows = store.list_post_images(post_id)
    if not rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post has no images.")
    images = OptimisticList([PostImage.model_validate(row) for row in rows])
    try:
        reordered = reorder_images(images, payload.order, store.reorder_post_images)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except ReorderError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return {"images": [img.model_dump() for img in reordered]}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.app:app", host="0.0.0.0", port=8000, reload=False)
