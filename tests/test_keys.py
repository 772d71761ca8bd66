import pytest

from lsmkv import keys


def test_expire_key():
    assert keys.expire_key("k") == "REDIS_EXPIRE_k"


def test_hash_field_key():
    assert keys.hash_field_key("h", "f") == "REDIS_FIELD_h_f"


def test_split_and_join():
    assert keys.split("a#b#c", "#") == ["a", "b", "c"]
    assert keys.split("", "#") == []
    assert keys.split("a#", "#") == ["a"]
    assert keys.split("#a", "#") == ["", "a"]
    assert keys.join(["x", "y"], "#") == "x#y"


@pytest.mark.parametrize("text", ["one", "a#b", "a##b", "#lead"])
def test_split_join_round_trip(text):
    assert keys.join(keys.split(text, "#"), "#") == text


def test_hash_value_round_trip():
    fields = ["name", "age", "city"]
    value = keys.hash_value_from_fields(fields)
    assert keys.is_value_hash(value)
    assert value.startswith(keys.HASH_VALUE_PREFIX)
    assert keys.fields_from_hash_value(value) == fields


def test_hash_value_empty():
    assert keys.fields_from_hash_value(None) == []
    assert keys.fields_from_hash_value("") == []
    assert keys.fields_from_hash_value(keys.hash_value_from_fields([])) == []


def test_is_value_hash_plain():
    assert not keys.is_value_hash("plain value")


def test_zset_score_key_padding():
    key = keys.zset_score_key("z", "7")
    assert key.startswith(keys.zset_score_prefix("z"))
    assert key.startswith(keys.zset_prefix("z"))
    score = keys.zset_score_from_key(key)
    assert len(score) == keys.SORTED_SET_SCORE_LEN
    assert int(score) == 7


def test_zset_score_keys_sort_numerically():
    scores = ["10", "2", "33", "1"]
    ordered = sorted(keys.zset_score_key("z", s) for s in scores)
    assert [int(keys.zset_score_from_key(k)) for k in ordered] == sorted(int(s) for s in scores)


def test_zset_elem_key():
    key = keys.zset_elem_key("z", "m")
    assert key.startswith(keys.zset_elem_prefix("z"))
    assert key.endswith("m")
    assert keys.zset_score_from_key(key) == ""


def test_set_member_key():
    key = keys.set_member_key("s", "m")
    assert key == keys.set_prefix("s") + "m"
    assert key.startswith(keys.SET_PREFIX)


def test_is_expired():
    assert not keys.is_expired(None, now=200)
    assert keys.is_expired("100", now=200)
    assert not keys.is_expired("300", now=200)
    assert not keys.is_expired("200", now=200)


def test_expire_time_round_trip():
    stamp = keys.expire_time("10", now=100)
    assert not keys.is_expired(stamp, now=109)
    assert not keys.is_expired(stamp, now=110)
    assert keys.is_expired(stamp, now=111)


def test_expire_time_uses_clock():
    assert not keys.is_expired(keys.expire_time("1000"))
    assert keys.is_expired(keys.expire_time("-1000"))


def test_is_expired_rejects_garbage():
    with pytest.raises(ValueError):
        keys.is_expired("soon", now=1)


def test_prefix_predicate():
    predicate = keys.prefix_predicate("ab")
    assert predicate("abc") == 0
    assert predicate("ab") == 0
    assert predicate("aa") > 0
    assert predicate("a") > 0
    assert predicate("b") < 0
    assert predicate("ac") < 0


def test_prefix_predicate_is_monotone():
    predicate = keys.prefix_predicate("m_")
    words = sorted(["a", "m", "m_", "m_x", "m_z", "ma", "n", "z"])
    results = [predicate(w) for w in words]
    assert results == sorted(results, reverse=True)
    assert [w for w in words if predicate(w) == 0] == ["m_", "m_x", "m_z"]