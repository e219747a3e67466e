from __future__ import annotations

from typing import Any, Dict, Iterator, Tuple

from ..errors import DecodeError, InsufficientFundsError
from .assets import ADA_ASSET, ADA_ASSET_ID, ADA_POLICY, AssetID, Coin, create_ada_coin


class Value(Dict[str, Dict[str, int]]):
    """Multi-asset amount: policy id -> asset name -> quantity.

    A missing entry and a zero entry mean the same thing to every comparison.
    Only add_asset mutates; add/subtract build new values.
    """

    @classmethod
    def from_json(cls, obj: Any) -> "Value":
        if obj is None:
            return cls()
        if not isinstance(obj, dict):
            raise DecodeError(f"value: expected object, got {type(obj).__name__}")
        out = cls()
        for policy_id, assets in obj.items():
            if not isinstance(assets, dict):
                raise DecodeError(f"value: policy {policy_id!r} is not an object")
            nested: Dict[str, int] = {}
            for asset_name, amount in assets.items():
                if isinstance(amount, bool) or not isinstance(amount, int):
                    raise DecodeError(f"value: {policy_id}.{asset_name} is not an integer")
                nested[asset_name] = amount
            out[policy_id] = nested
        return out

    def to_json(self) -> Dict[str, Dict[str, int]]:
        return {policy_id: dict(assets) for policy_id, assets in self.items()}

    def add_asset(self, *coins: Coin) -> "Value":
        for coin in coins:
            nested = self.setdefault(coin.asset_id.policy_id(), {})
            name = coin.asset_id.asset_name()
            nested[name] = nested.get(name, 0) + int(coin.amount)
        return self

    def asset_amount(self, asset_id: AssetID) -> int:
        return self.get(asset_id.policy_id(), {}).get(asset_id.asset_name(), 0)

    def ada_lovelace(self) -> int:
        return self.asset_amount(ADA_ASSET_ID)

    def assets_except_ada(self) -> "Value":
        return Value({p: dict(a) for p, a in self.items() if p != ADA_POLICY})

    def assets_except_ada_count(self) -> int:
        return sum(len(a) for p, a in self.items() if p != ADA_POLICY)

    def is_ada_present(self) -> bool:
        return self.get(ADA_POLICY, {}).get(ADA_ASSET, 0) > 0

    def coins(self) -> Iterator[Coin]:
        for policy_id, assets in self.items():
            for asset_name, amount in assets.items():
                yield Coin(AssetID.from_separate(policy_id, asset_name), amount)


def _entries(v: Value) -> Iterator[Tuple[str, str, int]]:
    for policy_id, assets in v.items():
        for asset_name, amount in assets.items():
            yield policy_id, asset_name, amount


def _amount(v: Value, policy_id: str, asset_name: str) -> int:
    return v.get(policy_id, {}).get(asset_name, 0)


def _combine(a: Value, b: Value, sign: int) -> Value:
    result = Value({p: dict(assets) for p, assets in a.items()})
    for policy_id, asset_name, amount in _entries(b):
        nested = result.setdefault(policy_id, {})
        nested[asset_name] = nested.get(asset_name, 0) + sign * amount
    return result


def add(a: Value, b: Value) -> Value:
    return _combine(a, b, 1)


def subtract(a: Value, b: Value) -> Value:
    return _combine(a, b, -1)


def equal(a: Value, b: Value) -> bool:
    for policy_id in set(a) | set(b):
        names = set(a.get(policy_id, {})) | set(b.get(policy_id, {}))
        for asset_name in names:
            if _amount(a, policy_id, asset_name) != _amount(b, policy_id, asset_name):
                return False
    return True


def less_than_or_equal(a: Value, b: Value) -> bool:
    # only a's keys are checked: assets held solely by b don't matter
    return all(amount <= _amount(b, p, n) for p, n, amount in _entries(a))


def greater_than_or_equal(a: Value, b: Value) -> bool:
    # only b's keys are checked: assets held solely by a don't matter
    return all(_amount(a, p, n) >= amount for p, n, amount in _entries(b))


def require_enough(have: Value, want: Value) -> None:
    for policy_id, asset_name, amount in _entries(want):
        held = _amount(have, policy_id, asset_name)
        if held < amount:
            raise InsufficientFundsError(AssetID.from_separate(policy_id, asset_name), held, amount)


def enough(have: Value, want: Value) -> bool:
    return all(_amount(have, p, n) >= amount for p, n, amount in _entries(want))


def value_from_coins(*coins: Coin) -> Value:
    return Value().add_asset(*coins)


def create_ada_value(amount: int) -> Value:
    return value_from_coins(create_ada_coin(amount))
