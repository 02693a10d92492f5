import json
from pathlib import Path

import pytest

from locations.catalog import LocationCatalog
from storage.memory_store import InMemoryStore

FIXTURES = Path(__file__).resolve().parent / "fixtures"


def _load_fixture(name: str):
    with open(FIXTURES / name, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture()
def location_data():
    return _load_fixture("locations.json")


@pytest.fixture()
def catalog(location_data):
    return LocationCatalog(location_data["cities"], location_data["apartments"])


@pytest.fixture()
def memory_store():
    return InMemoryStore.from_fixture(FIXTURES / "locations.json")
