from types import SimpleNamespace

import pytest
from postgrest import APIError

from community.images import OptimisticList, PostImage, ReorderError, reorder_images
from storage.supabase_store import SupabaseStore


class FakeQuery:
    """Records builder calls and replays queued responses on ``execute``."""

    def __init__(self, client, name):
        self.client = client
        self.name = name

    def __getattr__(self, method):
        def call(*args, **kwargs):
            self.client.calls.append((self.name, method, args, kwargs))
            return self

        return call

    def execute(self):
        outcome = self.client.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClient:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.auth = SimpleNamespace(get_user=self._get_user)

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        self.calls.append(("rpc", name, (params,), {}))
        return FakeQuery(self, name)

    def _get_user(self, token):
        if token != "good":
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id="user-1", email="kim@example.com"))


def _resp(data, count=None):
    return SimpleNamespace(data=data, count=count)


@pytest.fixture()
def make_store():
    def build(*responses):
        client = FakeClient(*responses)
        store = SupabaseStore("http://localhost", "key", client=client)
        store._retry_backoff_seconds = 0
        return store, client

    return build


def test_list_properties_builds_range_query(make_store):
    store, client = make_store(_resp([{"id": "p1"}, {"id": "p2"}], count=5))
    window = store.list_properties({"search_text": "villa", "min_price": 1000}, limit=2, offset=2)

    assert window.total == 5
    assert window.has_more is True
    methods = [(call[1], call[2]) for call in client.calls]
    assert ("ilike", ("title", "%villa%")) in methods
    assert ("gte", ("price", 1000)) in methods
    assert ("range", (2, 3)) in methods


def test_transient_errors_are_retried(make_store):
    store, client = make_store(APIError({"message": "timeout", "code": "57014"}), _resp([{"id": "hcm"}]))
    assert store.list_cities() == [{"id": "hcm"}]
    assert client.responses == []


def test_apartments_by_city_use_rpc(make_store):
    store, client = make_store(_resp([{"id": "a1"}]))
    assert store.list_apartments("hcm") == [{"id": "a1"}]
    assert client.calls[0] == ("rpc", "get_apartments_by_city", ({"city_uuid": "hcm"},), {})


def test_add_location_checks_apartment_city(make_store):
    store, _ = make_store(_resp({"id": "a1", "city_id": "hcm"}))
    with pytest.raises(ValueError):
        store.add_user_location("user-1", "hanoi", "a1")


def test_remove_missing_location(make_store):
    store, _ = make_store(_resp([]))
    with pytest.raises(LookupError):
        store.remove_user_location("user-1", "loc-1")


def test_token_lookup(make_store):
    store, _ = make_store()
    assert store.get_user_for_token("good") == {"id": "user-1", "email": "kim@example.com"}
    assert store.get_user_for_token("bad") is None


def test_partial_reorder_failure_writes_previous_order_back(make_store):
    failure = APIError({"message": "connection reset", "code": "08006"})
    store, client = make_store(_resp([{"id": "i2"}]), failure, failure, failure, _resp([{}]), _resp([{}]))
    images = OptimisticList([PostImage(id="i1", display_order=0), PostImage(id="i2", display_order=1)])

    with pytest.raises(ReorderError) as excinfo:
        reorder_images(images, ["i2", "i1"], store.reorder_post_images)

    assert excinfo.value.restored is True
    updates = [(call[2][0], eq_id) for call, eq_id in _updates_with_ids(client.calls)]
    assert updates == [
        ({"display_order": 0}, "i2"),
        ({"display_order": 1}, "i1"),
        ({"display_order": 1}, "i1"),
        ({"display_order": 1}, "i1"),
        ({"display_order": 0}, "i1"),
        ({"display_order": 1}, "i2"),
    ]
    assert client.responses == []


def _updates_with_ids(calls):
    pairs = []
    for index, call in enumerate(calls):
        if call[1] == "update":
            eq = calls[index + 1]
            pairs.append((call, eq[2][1]))
    return pairs


def test_post_owner_lookup(make_store):
    store, client = make_store(_resp({"id": "post-1", "user_id": "user-1"}), _resp(None))
    assert store.get_post_owner("post-1") == "user-1"
    assert store.get_post_owner("missing") is None
    assert ("community_posts", "eq", ("id", "post-1"), {}) in client.calls
