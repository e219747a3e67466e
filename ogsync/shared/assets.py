from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Pattern, Tuple, Union

ADA_POLICY = "ada"
ADA_ASSET = "lovelace"

_SEP = "."


class AssetID(str):
    """``policyId[.assetName]``; the separator is absent when the name is empty."""

    @classmethod
    def from_separate(cls, policy_id: str, asset_name: str = "") -> "AssetID":
        if not asset_name:
            return cls(policy_id)
        return cls(f"{policy_id}{_SEP}{asset_name}")

    def policy_id(self) -> str:
        return self.split(_SEP, 1)[0]

    def asset_name(self) -> str:
        parts = self.split(_SEP, 1)
        return parts[1] if len(parts) == 2 else ""

    def asset_name_utf8(self) -> Tuple[str, bool]:
        try:
            return bytes.fromhex(self.asset_name()).decode("utf-8"), True
        except (ValueError, UnicodeDecodeError):
            return "", False

    def is_zero(self) -> bool:
        return self == ""

    def has_policy_id(self, policy_id: str) -> bool:
        return self.policy_id() == policy_id

    def has_asset_id(self, pattern: Union[str, Pattern[str]]) -> bool:
        return re.compile(pattern).search(self) is not None

    def match_asset_name(self, pattern: Union[str, Pattern[str]]) -> Tuple[List[str], bool]:
        m = re.compile(pattern).search(self.asset_name())
        if m is None:
            return [], False
        return [m.group(0)] + [g or "" for g in m.groups()], True


ADA_ASSET_ID = AssetID.from_separate(ADA_POLICY, ADA_ASSET)


@dataclass(frozen=True)
class Coin:
    asset_id: AssetID
    amount: int


def create_ada_coin(amount: int) -> Coin:
    return Coin(asset_id=ADA_ASSET_ID, amount=int(amount))
