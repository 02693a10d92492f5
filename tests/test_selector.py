import pytest

from locations.catalog import LocationCatalog
from locations.models import ALL, display_name
from locations.selector import ApartmentNotInCityError, SelectorDisabledError, TwoStepSelector


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, apartment_id: str) -> None:
        self.calls.append(apartment_id)


@pytest.fixture()
def recorder():
    return Recorder()


def test_city_filter_contains_only_that_city(catalog, recorder):
    selector = TwoStepSelector(catalog, on_apartment_select=recorder)
    for city in catalog.cities:
        selector.select_city(city.id)
        ids = {a.id for a in selector.filtered_apartments}
        expected = {a.id for a in catalog.apartments if a.city_id == city.id}
        assert ids == expected
        assert all(a.city_id == city.id for a in selector.filtered_apartments)


def test_switching_city_clears_apartment_once(catalog, recorder):
    selector = TwoStepSelector(catalog, on_apartment_select=recorder)
    selector.select_city("hcm")
    selector.select_apartment("a1")
    recorder.calls.clear()

    selector.select_city("hanoi")

    assert selector.selected_apartment_id == ""
    assert recorder.calls == [""]


def test_apartment_selector_disabled_without_city(catalog, recorder):
    selector = TwoStepSelector(catalog, on_apartment_select=recorder)
    assert selector.selected_city_id == ""
    assert selector.is_apartment_selector_enabled is False
    with pytest.raises(SelectorDisabledError):
        selector.select_apartment("a1")
    assert recorder.calls == []
    assert selector.selected_apartment_id == ""


def test_selecting_same_city_twice_has_no_side_effect(catalog, recorder):
    selector = TwoStepSelector(catalog, on_apartment_select=recorder)
    selector.select_city("hcm")
    selector.select_apartment("a2")
    recorder.calls.clear()

    selector.select_city("hcm")

    assert selector.selected_apartment_id == "a2"
    assert recorder.calls == []


def test_display_name_prefers_korean(catalog):
    for entity in list(catalog.cities) + list(catalog.apartments):
        name = display_name(entity)
        if entity.name_ko:
            assert entity.name_ko in name
        else:
            assert name == entity.name


def test_city_display_name_includes_count(catalog):
    selector = TwoStepSelector(catalog)
    hcm = next(o for o in selector.city_options_with_counts if o.id == "hcm")
    assert selector.city_display_name(hcm) == "호치민 (3개)"
    danang = next(o for o in selector.city_options_with_counts if o.id == "danang")
    assert selector.city_display_name(danang) == "Da Nang (0개)"


def test_initial_apartment_derives_city():
    catalog = LocationCatalog(
        [{"id": "hcm", "name": "Ho Chi Minh City"}],
        [{"id": "a1", "name": "Landmark 81", "city_id": "hcm"}],
    )
    selector = TwoStepSelector(catalog, initial_apartment_id="a1")
    assert selector.selected_city_id == "hcm"
    assert selector.selected_apartment_id == "a1"


def test_unknown_city_filters_to_empty_list():
    catalog = LocationCatalog(
        [{"id": "hcm", "name": "Ho Chi Minh City"}],
        [{"id": "a1", "name": "Landmark 81", "city_id": "hcm"}],
    )
    selector = TwoStepSelector(catalog)
    selector.select_city("hcm")
    selector.select_city("hanoi")
    assert selector.filtered_apartments == []
    assert selector.selected_apartment_id == ""
    assert selector.is_empty_result is True


@pytest.mark.parametrize("initial", ["", ALL, "missing"])
def test_initial_city_empty_when_apartment_unresolvable(catalog, initial):
    selector = TwoStepSelector(catalog, initial_apartment_id=initial)
    assert selector.selected_city_id == ""
    assert selector.selected_apartment_id == initial
    assert len(selector.filtered_apartments) == len(catalog.apartments)


def test_all_city_keeps_apartment_when_enabled(catalog, recorder):
    selector = TwoStepSelector(catalog, include_all=True, on_apartment_select=recorder)
    selector.select_city("hcm")
    selector.select_apartment("a3")
    recorder.calls.clear()

    selector.select_city(ALL)

    assert selector.selected_apartment_id == "a3"
    assert recorder.calls == ["a3"]
    assert len(selector.filtered_apartments) == len(catalog.apartments)


def test_all_city_clears_apartment_when_disabled(catalog, recorder):
    selector = TwoStepSelector(catalog, include_all=False, on_apartment_select=recorder)
    selector.select_city("hcm")
    selector.select_apartment("a3")
    recorder.calls.clear()

    selector.select_city(ALL)

    assert selector.selected_apartment_id == ""
    assert recorder.calls == [""]


def test_city_options_prepend_all_entry(catalog):
    selector = TwoStepSelector(catalog, include_all=True)
    options = selector.city_options_with_counts
    assert options[0].id == ALL
    assert options[0].apartment_count == len(catalog.apartments)
    assert selector.city_display_name(options[0]) == "전체 도시 (5개)"
    assert [o.id for o in options[1:]] == [c.id for c in catalog.cities]


def test_city_options_without_all_entry(catalog):
    counts = {o.id: o.apartment_count for o in TwoStepSelector(catalog).city_options_with_counts}
    assert counts == {"hcm": 3, "hanoi": 2, "danang": 0}


def test_select_apartment_emits_value(catalog, recorder):
    selector = TwoStepSelector(catalog, on_apartment_select=recorder)
    selector.select_city("hanoi")
    selector.select_apartment("b2")
    assert selector.state.selected_apartment_id == "b2"
    assert recorder.calls[-1] == "b2"


def test_callback_errors_propagate(catalog):
    def explode(apartment_id):
        raise RuntimeError("boom")

    selector = TwoStepSelector(catalog, on_apartment_select=explode)
    with pytest.raises(RuntimeError, match="boom"):
        selector.select_city("hcm")


def test_catalog_is_not_mutated(catalog):
    before = (catalog.cities, catalog.apartments)
    selector = TwoStepSelector(catalog, include_all=True)
    selector.select_city("hcm")
    selector.filtered_apartments.clear()
    selector.city_options_with_counts.clear()
    assert (catalog.cities, catalog.apartments) == before
    assert len(selector.filtered_apartments) == 3


def test_apartment_from_another_city_is_rejected(catalog, recorder):
    selector = TwoStepSelector(catalog, on_apartment_select=recorder)
    selector.select_city("hcm")
    selector.select_apartment("a1")
    recorder.calls.clear()

    with pytest.raises(ApartmentNotInCityError):
        selector.select_apartment("b1")
    with pytest.raises(ApartmentNotInCityError):
        selector.select_apartment("missing")

    assert selector.selected_apartment_id == "a1"
    assert recorder.calls == []


def test_all_apartment_value_is_accepted(catalog, recorder):
    selector = TwoStepSelector(catalog, on_apartment_select=recorder)
    selector.select_city("hanoi")
    selector.select_apartment(ALL)
    assert selector.selected_apartment_id == ALL
    assert recorder.calls[-1] == ALL


def test_any_apartment_allowed_under_all_cities(catalog):
    selector = TwoStepSelector(catalog, include_all=True)
    selector.select_city(ALL)
    selector.select_apartment("b2")
    assert selector.selected_apartment_id == "b2"
