import random

import pytest

from lsmkv.skiplist import SkipList, SkipListIterator

SEEDS = [0, 1, 7, 42, 1234]


def make_list(seed):
    return SkipList(rng=random.Random(seed))


def prefix_predicate(prefix):
    def predicate(key):
        head = key[: len(prefix)]
        if head == prefix:
            return 0
        return 1 if head < prefix else -1

    return predicate


def collect(begin, end):
    keys = []
    it = begin
    while it != end:
        keys.append(it.key())
        it.advance()
    return keys


def test_put_and_get_latest_version():
    sl = make_list(0)
    sl.put("k", "v1", 0)
    it = sl.get("k", 0)
    assert it.key() == "k"
    assert it.value() == "v1"
    assert it.tranc_id() == 0


def test_get_missing_returns_end():
    sl = make_list(0)
    sl.put("a", "1", 1)
    assert sl.get("b", 0) == sl.end()
    assert sl.get("b", 0).is_end()


def test_transaction_visibility():
    sl = make_list(3)
    sl.put("k", "old", 1)
    sl.put("k", "new", 5)
    assert sl.get("k", 0).value() == "new"
    assert sl.get("k", 3).value() == "old"
    assert sl.get("k", 5).value() == "new"
    assert sl.get("k", 10).value() == "new"


def test_version_newer_than_all_visible_is_hidden():
    sl = make_list(3)
    sl.put("k", "v", 10)
    assert sl.get("k", 5).is_end()


def test_same_key_and_transaction_replaces_value():
    sl = make_list(0)
    sl.put("key", "aa", 2)
    sl.put("key", "bbbb", 2)
    assert sl.flush() == [("key", "bbbb", 2)]


def test_size_accounting():
    sl = make_list(0)
    sl.put("a", "bc", 1)
    assert sl.size() == 11
    sl.put("a", "b", 1)
    assert sl.size() == 10
    sl.remove("a")
    assert sl.size() == 0


@pytest.mark.parametrize("seed", SEEDS)
def test_flush_is_sorted_with_newest_version_first(seed):
    sl = make_list(seed)
    rng = random.Random(seed)
    entries = [(f"key{rng.randrange(50):03d}", f"v{i}", i + 1) for i in range(200)]
    for key, value, tid in entries:
        sl.put(key, value, tid)
    flushed = sl.flush()
    assert sorted(flushed, key=lambda e: (e[0], -e[2])) == flushed
    assert sorted(flushed) == sorted(entries)


@pytest.mark.parametrize("seed", SEEDS)
def test_iteration_matches_flush(seed):
    sl = make_list(seed)
    for i in range(50):
        sl.put(f"k{i:02d}", str(i), 0)
    pairs = list(sl.begin())
    assert pairs == [(k, v) for k, v, _ in sl.flush()]
    assert collect(sl.begin(), sl.end()) == [f"k{i:02d}" for i in range(50)]


@pytest.mark.parametrize("seed", SEEDS)
def test_remove_unlinks_entry(seed):
    sl = make_list(seed)
    keys = [f"k{i:02d}" for i in range(40)]
    for key in keys:
        sl.put(key, "v", 0)
    for key in keys[::2]:
        sl.remove(key)
    assert [k for k, _, _ in sl.flush()] == keys[1::2]
    for key in keys[::2]:
        assert sl.get(key, 0).is_end()
    for key in keys[1::2]:
        assert sl.get(key, 0).key() == key


def test_remove_missing_is_noop():
    sl = make_list(0)
    sl.put("a", "1", 0)
    sl.remove("zzz")
    assert sl.flush() == [("a", "1", 0)]


def test_clear_empties_list():
    sl = make_list(0)
    for i in range(10):
        sl.put(str(i), "x", 0)
    sl.clear()
    assert sl.flush() == []
    assert sl.size() == 0
    assert sl.begin() == sl.end()
    sl.put("again", "y", 1)
    assert sl.get("again", 0).value() == "y"


def test_prefix_bounds():
    sl = make_list(9)
    for key in ["aa", "ab1", "ab2", "ab3", "ac", "b"]:
        sl.put(key, "v", 0)
    assert collect(sl.begin_prefix("ab"), sl.end_prefix("ab")) == ["ab1", "ab2", "ab3"]
    assert sl.end_prefix("b") == sl.end()
    assert sl.begin_prefix("zz").is_end()


@pytest.mark.parametrize("seed", SEEDS)
def test_monotony_predicate_range(seed):
    sl = make_list(seed)
    rng = random.Random(seed)
    keys = {f"{rng.choice('abcde')}{rng.randrange(100):02d}" for _ in range(150)}
    for key in keys:
        sl.put(key, "v", 0)
    result = sl.iters_monotony_predicate(prefix_predicate("c"))
    expected = sorted(k for k in keys if k.startswith("c"))
    assert expected
    assert result is not None
    begin, end = result
    assert collect(begin, end) == expected


def test_monotony_predicate_range_at_end_of_list():
    sl = make_list(5)
    for key in ["a1", "a2", "b1", "b2"]:
        sl.put(key, "v", 0)
    begin, end = sl.iters_monotony_predicate(prefix_predicate("b"))
    assert end == sl.end()
    assert collect(begin, end) == ["b1", "b2"]


def test_monotony_predicate_no_match():
    sl = make_list(5)
    for key in ["a1", "a2", "c1"]:
        sl.put(key, "v", 0)
    assert sl.iters_monotony_predicate(prefix_predicate("b")) is None
    assert make_list(0).iters_monotony_predicate(prefix_predicate("a")) is None


def test_end_iterator_dereference_raises():
    with pytest.raises(ValueError):
        SkipListIterator().key()
    assert not SkipListIterator().is_valid()


def test_advance_past_end_stays_at_end():
    sl = make_list(0)
    sl.put("only", "v", 0)
    it = sl.begin()
    assert it.is_valid()
    it.advance().advance()
    assert it.is_end()


def test_format_lists_bottom_level():
    sl = make_list(0)
    for key in ["b", "a", "c"]:
        sl.put(key, "v", 0)
    text = sl.format()
    assert "Level 0: a -> b -> c" in text.splitlines()