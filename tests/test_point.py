import pytest

from ogsync.cbor_helpers import NIL
from ogsync.chainsync import (
    ORIGIN,
    Point,
    PointString,
    PointStruct,
    new_tx_id,
    points_string,
    sort_points,
)
from ogsync.errors import DecodeError


def test_struct_json():
    p = PointStruct(id="abc", slot=123, height=7)
    assert p.to_json() == {"height": 7, "id": "abc", "slot": 123}
    assert Point.from_json(p.to_json()) == p

    rollback = PointStruct(id="abc", slot=123)
    assert "height" not in rollback.to_json()


def test_loads_sniffs_the_variant():
    assert Point.loads('"origin"') == ORIGIN
    assert Point.loads(b'  {"id":"ab","slot":5}') == PointStruct(id="ab", slot=5)
    with pytest.raises(DecodeError):
        Point.loads("")
    with pytest.raises(DecodeError):
        Point.loads("{nope")
    with pytest.raises(DecodeError):
        Point.loads(b"\xff\xfe")


def test_cbor():
    for p in (ORIGIN, PointStruct(id="ff00", slot=2 ** 40, height=99)):
        assert Point.from_cbor(p.to_cbor()) == p

    assert Point.from_cbor(NIL) is None
    assert Point.from_cbor(b"") is None


def test_sort_points():
    points = [
        PointString("a"),
        PointStruct(id="1", slot=10),
        PointString("origin"),
        PointStruct(id="3", slot=30),
        PointStruct(id="2", slot=20),
    ]
    ordered = sort_points(points)
    assert [str(p) for p in ordered[3:]] == ["origin", "a"]
    assert [p.slot for p in ordered[:3]] == [30, 20, 10]
    assert points_string(ordered[:1]) == "slot=30 id=3"


def test_tx_id():
    tx = new_tx_id("abcd", 3)
    assert tx == "abcd#3"
    assert tx.tx_hash() == "abcd"
    assert tx.output_index() == 3

    bad = type(tx)("abcd")
    assert bad.tx_hash() == ""
    assert bad.output_index() == -1
