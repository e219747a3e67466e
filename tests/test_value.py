import pytest

from ogsync.errors import DecodeError, InsufficientFundsError
from ogsync.shared import (
    ADA_ASSET_ID,
    AssetID,
    Coin,
    Value,
    add,
    create_ada_value,
    enough,
    equal,
    greater_than_or_equal,
    less_than_or_equal,
    require_enough,
    subtract,
    value_from_coins,
)

POLICY = "99b071ce8580d6a3a11b4902145adb8bfd0d2a03935af8cf66403e15"
BERRY = AssetID.from_separate(POLICY, "524245525259")


def test_add_is_commutative():
    a = value_from_coins(Coin(ADA_ASSET_ID, 10), Coin(BERRY, 3))
    b = create_ada_value(5)
    assert equal(add(a, b), add(b, a))
    assert add(a, b).ada_lovelace() == 15
    assert add(a, b).asset_amount(BERRY) == 3


def test_subtract_undoes_add():
    a = value_from_coins(Coin(ADA_ASSET_ID, 10), Coin(BERRY, 3))
    b = value_from_coins(Coin(BERRY, 2))
    assert equal(subtract(add(a, b), b), a)


def test_add_does_not_mutate_operands():
    a = create_ada_value(1)
    add(a, create_ada_value(2))
    assert a.ada_lovelace() == 1


def test_equal_treats_missing_as_zero():
    a = Value({"ada": {"lovelace": 5}, POLICY: {"524245525259": 0}})
    assert equal(a, create_ada_value(5))
    assert equal(create_ada_value(5), a)
    assert not equal(a, create_ada_value(6))


def test_comparisons_only_check_one_side():
    small = create_ada_value(5)
    big = value_from_coins(Coin(ADA_ASSET_ID, 10), Coin(BERRY, 1))

    assert less_than_or_equal(small, big)
    # BERRY is only held by big, so neither call consults it
    assert greater_than_or_equal(big, small)
    assert not less_than_or_equal(big, small)
    assert less_than_or_equal(Value(), small)


def test_enough():
    have = value_from_coins(Coin(ADA_ASSET_ID, 10), Coin(BERRY, 1))
    assert enough(have, create_ada_value(10))
    assert not enough(have, value_from_coins(Coin(BERRY, 2)))
    assert not enough(Value(), create_ada_value(1))
    assert enough(Value(), Value())


def test_require_enough_names_the_asset():
    have = create_ada_value(10)
    with pytest.raises(InsufficientFundsError) as exc:
        require_enough(have, value_from_coins(Coin(BERRY, 2)))
    assert exc.value.asset_id == BERRY
    assert exc.value.have == 0
    assert exc.value.want == 2


def test_add_asset_accumulates():
    v = Value().add_asset(Coin(BERRY, 2), Coin(BERRY, 3), Coin(ADA_ASSET_ID, 7))
    assert v.asset_amount(BERRY) == 5
    assert v.is_ada_present()
    assert v.assets_except_ada_count() == 1
    assert v.assets_except_ada() == {POLICY: {"524245525259": 5}}
    assert sorted(c.amount for c in v.coins()) == [5, 7]


def test_from_json_rejects_non_integer_amounts():
    with pytest.raises(DecodeError):
        Value.from_json({"ada": {"lovelace": "1"}})
    with pytest.raises(DecodeError):
        Value.from_json({"coins": 10})


def test_big_amounts_are_exact():
    amount = 2 ** 80 + 1
    v = Value.from_json({"ada": {"lovelace": amount}})
    assert v.ada_lovelace() == amount
    assert v.to_json() == {"ada": {"lovelace": amount}}
