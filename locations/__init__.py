"""
Location selection and search-filter state.

Pure in-memory logic over reference data supplied by the storage layer, so
the same classes back the HTTP API and the CLI picker.
"""

from locations.catalog import LocationCatalog, format_location
from locations.chips import clear_all, derive_chips, remove_chip, show_clear_all
from locations.models import ALL, Apartment, City, CityOption, FilterChip, ResultWindow, SelectionState
from locations.pager import SearchResultPager
from locations.selector import ApartmentNotInCityError, SelectorDisabledError, TwoStepSelector

__all__ = [
    "ALL",
    "Apartment",
    "ApartmentNotInCityError",
    "City",
    "CityOption",
    "FilterChip",
    "LocationCatalog",
    "ResultWindow",
    "SearchResultPager",
    "SelectionState",
    "SelectorDisabledError",
    "TwoStepSelector",
    "clear_all",
    "derive_chips",
    "format_location",
    "remove_chip",
    "show_clear_all",
]
