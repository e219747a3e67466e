from .assets import ADA_ASSET, ADA_ASSET_ID, ADA_POLICY, AssetID, Coin, create_ada_coin
from .utxo import Utxo
from .value import (
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
