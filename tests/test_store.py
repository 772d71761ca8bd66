import random

import pytest

from lsmkv.store import MemoryStore


def _prefix(prefix):
    def predicate(key):
        head = key[: len(prefix)]
        if head < prefix:
            return 1
        if head > prefix:
            return -1
        return 0

    return predicate


@pytest.fixture
def store():
    return MemoryStore(rng=random.Random(11))


def test_put_and_get(store):
    store.put("alpha", "1")
    assert store.get("alpha") == "1"
    assert store.get("beta") is None


def test_overwrite_returns_newest(store):
    store.put("k", "old")
    store.put("k", "new")
    assert store.get("k") == "new"


def test_remove_hides_key(store):
    store.put("k", "v")
    store.remove("k")
    assert store.get("k") is None
    store.put("k", "again")
    assert store.get("k") == "again"


def test_batches(store):
    store.put_batch([("a", "1"), ("b", "2"), ("c", "3")])
    assert [store.get(k) for k in "abc"] == ["1", "2", "3"]
    store.remove_batch(["a", "c"])
    assert [store.get(k) for k in "abc"] == [None, "2", None]


def test_batch_repeated_key_keeps_last(store):
    store.put_batch([("k", "first"), ("k", "second")])
    assert store.get("k") == "second"


def test_prefix_range(store):
    for key, value in [("user_b", "2"), ("item_x", "9"), ("user_a", "1"), ("zoo", "z")]:
        store.put(key, value)
    assert store.iters_monotony_predicate(_prefix("user_")) == [
        ("user_a", "1"),
        ("user_b", "2"),
    ]


def test_range_skips_removed_and_old_versions(store):
    store.put("p_1", "a")
    store.put("p_2", "b")
    store.put("p_1", "c")
    store.remove("p_2")
    assert store.iters_monotony_predicate(_prefix("p_")) == [("p_1", "c")]


def test_range_without_match(store):
    store.put("a", "1")
    assert store.iters_monotony_predicate(_prefix("q")) is None
    store.remove("a")
    assert store.iters_monotony_predicate(_prefix("a")) is None


def test_random_ranges_match_model():
    rng = random.Random(3)
    store = MemoryStore(rng=random.Random(5))
    model = {}
    for _ in range(400):
        key = f"{rng.choice('abc')}{rng.randrange(50):02d}"
        if rng.random() < 0.25:
            store.remove(key)
            model.pop(key, None)
        else:
            value = str(rng.randrange(1000))
            store.put(key, value)
            model[key] = value
    prefixes = ("a", "b", "c")
    ranges = {p: store.iters_monotony_predicate(_prefix(p)) for p in prefixes}
    expected = {
        p: sorted((k, v) for k, v in model.items() if k.startswith(p)) or None
        for p in prefixes
    }
    assert ranges == expected
    assert len(model) > 0
    assert {key: store.get(key) for key in model} == model


def test_flush_preserves_contents(store):
    store.put("a", "1")
    store.put("b", "2")
    store.put("a", "3")
    store.remove("b")
    store.put("c", "4")
    before = store.iters_monotony_predicate(lambda key: 0)
    store.flush()
    assert store.iters_monotony_predicate(lambda key: 0) == before
    assert store.get("a") == "3"
    assert store.get("b") is None


def test_clear(store):
    store.put("a", "1")
    store.clear()
    assert store.get("a") is None
    assert store.iters_monotony_predicate(lambda key: 0) is None