"""
Two-step city -> apartment selection.

The selector owns the current city and apartment choice, keeps the
apartment inside the chosen city, and derives the lists a picker renders.
Every transition is synchronous; the owner is notified through
``on_apartment_select`` whenever the effective apartment choice is emitted.
"""

from __future__ import annotations

from typing import Any, List, Optional, Protocol

from locations.catalog import LocationCatalog
from locations.models import ALL, Apartment, CityOption, SelectionState, display_name
from telemetry.logging_utils import get_logger

logger = get_logger(__name__)

CITY_LABEL = "도시 선택"
APARTMENT_LABEL = "아파트 선택"
ALL_CITIES_NAME = "전체 도시"
EMPTY_CITY_MESSAGE = "이 도시에는 아파트가 없습니다."


class ApartmentSelectCallback(Protocol):
    def __call__(self, apartment_id: str) -> None: ...


class SelectorDisabledError(RuntimeError):
    """Raised when an apartment is chosen before any city."""


class ApartmentNotInCityError(ValueError):
    """Raised when the chosen apartment is not in the current apartment list."""


def _noop(apartment_id: str) -> None:
    return None


class TwoStepSelector:
    def __init__(
        self,
        catalog: LocationCatalog,
        *,
        initial_apartment_id: str = "",
        include_all: bool = False,
        on_apartment_select: Optional[ApartmentSelectCallback] = None,
    ) -> None:
        self.catalog = catalog
        self.include_all = include_all
        self._on_apartment_select: ApartmentSelectCallback = on_apartment_select or _noop
        self.selected_apartment_id = initial_apartment_id or ""
        self.selected_city_id = self._initial_city(self.selected_apartment_id)

    def _initial_city(self, apartment_id: str) -> str:
        if not apartment_id or apartment_id == ALL:
            return ""
        apartment = self.catalog.find_apartment(apartment_id)
        if apartment is None:
            logger.warning("selector_initial_apartment_unknown", extra={"apartment_id": apartment_id})
            return ""
        return apartment.city_id

    @property
    def state(self) -> SelectionState:
        return SelectionState(
            selected_city_id=self.selected_city_id,
            selected_apartment_id=self.selected_apartment_id,
        )

    @property
    def is_apartment_selector_enabled(self) -> bool:
        return self.selected_city_id != ""

    # Transitions ---------------------------------------------------------
    def select_city(self, city_id: str) -> None:
        previous = self.selected_city_id
        self.selected_city_id = city_id
        if city_id == previous:
            return
        if city_id == ALL and self.include_all:
            # Unfiltered list, so the current apartment stays valid.
            self._on_apartment_select(self.selected_apartment_id)
            return
        self.selected_apartment_id = ""
        self._on_apartment_select("")

    def select_apartment(self, apartment_id: str) -> None:
        if not self.is_apartment_selector_enabled:
            raise SelectorDisabledError("Select a city before choosing an apartment.")
        if apartment_id != ALL and all(a.id != apartment_id for a in self.filtered_apartments):
            raise ApartmentNotInCityError(f"Apartment {apartment_id} is not in city {self.selected_city_id}.")
        self.selected_apartment_id = apartment_id
        self._on_apartment_select(apartment_id)

    # Derived reads -------------------------------------------------------
    @property
    def filtered_apartments(self) -> List[Apartment]:
        if not self.selected_city_id or self.selected_city_id == ALL:
            return list(self.catalog.apartments)
        return self.catalog.apartments_in(self.selected_city_id)

    @property
    def is_empty_result(self) -> bool:
        return self.selected_city_id not in ("", ALL) and not self.filtered_apartments

    @property
    def city_options_with_counts(self) -> List[CityOption]:
        counts = self.catalog.apartment_counts()
        options = [
            CityOption(id=c.id, name=c.name, name_ko=c.name_ko, apartment_count=counts.get(c.id, 0))
            for c in self.catalog.cities
        ]
        if self.include_all:
            options.insert(
                0,
                CityOption(
                    id=ALL,
                    name=ALL_CITIES_NAME,
                    name_ko=ALL_CITIES_NAME,
                    apartment_count=len(self.catalog.apartments),
                ),
            )
        return options

    @staticmethod
    def city_display_name(option: CityOption) -> str:
        return f"{display_name(option)} ({option.apartment_count}개)"

    @staticmethod
    def apartment_display_name(apartment: Any) -> str:
        return display_name(apartment)
