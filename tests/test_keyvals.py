import pytest

from cloudquery.keyvals import to_map


def test_to_map_carries_values_through():
    err = ValueError("error")
    actual = to_map(["key", "value", "error", err])
    assert actual == {"key": "value", "error": err}
    assert actual["error"] is err


def test_to_map_empty():
    assert to_map([]) == {}


def test_to_map_odd_length_pads_with_none():
    assert to_map(["a", 1, "b"]) == {"a": 1, "b": None}


@pytest.mark.parametrize(
    "key, expected",
    [(1, "1"), (None, "<nil>"), (2.5, "2.5")],
)
def test_to_map_non_string_keys(key, expected):
    assert to_map([key, "v"]) == {expected: "v"}


def test_to_map_last_duplicate_wins():
    assert to_map(["k", 1, "k", 2]) == {"k": 2}


def test_to_map_accepts_tuple_and_generator():
    assert to_map(("x", 1)) == {"x": 1}
    assert to_map(item for item in ["y", 2]) == {"y": 2}