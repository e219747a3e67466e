import re

from ogsync.shared import ADA_ASSET_ID, AssetID

POLICY = "99b071ce8580d6a3a11b4902145adb8bfd0d2a03935af8cf66403e15"


def test_from_separate():
    assert AssetID.from_separate(POLICY, "") == POLICY
    assert AssetID.from_separate(POLICY, "abcd") == f"{POLICY}.abcd"
    assert ADA_ASSET_ID == "ada.lovelace"


def test_split():
    asset = AssetID(f"{POLICY}.524245525259")
    assert asset.policy_id() == POLICY
    assert asset.asset_name() == "524245525259"

    bare = AssetID(POLICY)
    assert bare.policy_id() == POLICY
    assert bare.asset_name() == ""


def test_is_zero_and_policy():
    assert AssetID("").is_zero()
    assert not AssetID(POLICY).is_zero()
    assert AssetID(f"{POLICY}.00").has_policy_id(POLICY)
    assert not AssetID(f"{POLICY}.00").has_policy_id("ada")


def test_asset_name_utf8():
    assert AssetID(f"{POLICY}.524245525259").asset_name_utf8() == ("RBERRY", True)
    assert AssetID(f"{POLICY}.ff").asset_name_utf8() == ("", False)
    assert AssetID(f"{POLICY}.zz").asset_name_utf8() == ("", False)


def test_patterns():
    asset = AssetID(f"{POLICY}.4c505f31")
    assert asset.has_asset_id(POLICY)
    assert asset.has_asset_id(re.compile(r"\.4c50"))

    groups, ok = asset.match_asset_name(r"^4c50(5f)(\d+)$")
    assert ok
    assert groups == ["4c505f31", "5f", "31"]

    groups, ok = asset.match_asset_name("^ff")
    assert not ok
    assert groups == []
