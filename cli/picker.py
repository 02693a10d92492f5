"""
Interactive two-step location picker.

Choose a city first, then an apartment inside it:

    python main.py --include-all
    python main.py --apartment a1
"""

from __future__ import annotations

import argparse
from typing import Callable, List, Optional

from locations.catalog import LocationCatalog, format_location
from locations.models import ALL, Apartment, CityOption, display_name
from locations.selector import APARTMENT_LABEL, CITY_LABEL, EMPTY_CITY_MESSAGE, TwoStepSelector
from server.config import build_store, load_settings
from telemetry.logging_utils import configure_logging

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]


def _choose(options: List[str], prompt: str, input_fn: InputFn, output: OutputFn) -> Optional[int]:
    """Return the zero-based index the user picked, or None to go back."""
    for index, label in enumerate(options, start=1):
        output(f"  {index}) {label}")
    while True:
        raw = input_fn(f"{prompt} (번호, 0 = 뒤로): ").strip()
        if raw == "0":
            return None
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return int(raw) - 1
        output("잘못된 선택입니다. 목록의 번호를 입력하세요.")


def _full_label(catalog: LocationCatalog, apartment: Apartment) -> str:
    city = catalog.find_city(apartment.city_id)
    return format_location(city, apartment) if city else display_name(apartment)


def _describe(catalog: LocationCatalog, selector: TwoStepSelector) -> str:
    apartment = catalog.find_apartment(selector.selected_apartment_id)
    return _full_label(catalog, apartment) if apartment else ""


def run_picker_cli(
    catalog: LocationCatalog,
    *,
    initial_apartment_id: str = "",
    include_all: bool = False,
    input_fn: InputFn = input,
    output: OutputFn = print,
) -> str:
    """
    Walk the user through city then apartment selection.

    Returns the chosen apartment id, or "" if the user backs out of the
    city list.
    """
    selector = TwoStepSelector(catalog, initial_apartment_id=initial_apartment_id, include_all=include_all)
    if selector.selected_apartment_id and selector.selected_city_id:
        output(f"현재 선택: {_describe(catalog, selector)}")

    while True:
        output(CITY_LABEL)
        city_options: List[CityOption] = selector.city_options_with_counts
        city_index = _choose([selector.city_display_name(c) for c in city_options], CITY_LABEL, input_fn, output)
        if city_index is None:
            return selector.selected_apartment_id
        selector.select_city(city_options[city_index].id)

        if not selector.is_apartment_selector_enabled:
            continue
        apartments = selector.filtered_apartments
        if not apartments:
            output(EMPTY_CITY_MESSAGE)
            continue

        output(APARTMENT_LABEL)
        if selector.selected_city_id == ALL:
            # Apartments from every city; show where each one is.
            labels = [_full_label(catalog, a) for a in apartments]
        else:
            labels = [selector.apartment_display_name(a) for a in apartments]
        apartment_index = _choose(labels, APARTMENT_LABEL, input_fn, output)
        if apartment_index is None:
            continue
        selector.select_apartment(apartments[apartment_index].id)
        output(f"선택 완료: {_describe(catalog, selector)}")
        return selector.selected_apartment_id


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="vinahome location picker")
    parser.add_argument("--apartment", "-a", metavar="ID", default="", help="Preselected apartment id.")
    parser.add_argument(
        "--include-all",
        action="store_true",
        help="Offer an '전체 도시' entry listing apartments from every city.",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    settings = load_settings()
    configure_logging(settings.log_level)
    catalog = build_store(settings).load_catalog()
    run_picker_cli(catalog, initial_apartment_id=args.apartment, include_all=args.include_all)


if __name__ == "__main__":
    main()
