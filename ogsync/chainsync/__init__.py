from .compat import (
    CompatibleAuxiliaryData,
    CompatibleResponse,
    CompatibleResultFindIntersection,
    CompatibleResultNextBlock,
    CompatibleTx,
    CompatibleTxOut,
    CompatibleValue,
    compatible_result,
    encode_result,
    get_metadata_datum_map,
    get_metadata_datums,
)
from .metadata import AuxiliaryData, Metadatum, MetadatumTag, reconstruct_datums
from .point import ORIGIN, Point, PointString, PointStruct, TxID, new_tx_id, points_string, sort_points
from .types import Block, Response, ResultFindIntersection, ResultNextBlock, Tx, TxIn, TxOut
