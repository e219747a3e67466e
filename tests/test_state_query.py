import pytest
from bech32 import bech32_encode, convertbits

from fakes import StubSession
from ogsync.chainsync import PointStruct, TxIn
from ogsync.chainsync.v5 import PointStructV5
from ogsync.client import Client, http_endpoint
from ogsync.errors import DecodeError, QueryError
from ogsync.state_query import (
    EraHistory,
    EraSummary,
    make_payload,
    make_payload_v5,
    reward_address_key_hash,
    slot_to_elapsed_milliseconds,
)

KEY_HASH = bytes(range(28))


def _client(*bodies):
    session = StubSession(*bodies)
    return Client(endpoint="ws://ogmios:1337", session=session), session


def _ok(result):
    return {"jsonrpc": "2.0", "result": result}


def _stake_address():
    return bech32_encode("stake", convertbits(bytes([0xE1]) + KEY_HASH, 8, 5))


def _era(start_slot, end_slot, slot_ms):
    return {
        "start": {"time": {"seconds": 0}, "slot": start_slot, "epoch": 0},
        "end": {"time": {"seconds": 0}, "slot": end_slot, "epoch": 0},
        "parameters": {"epochLength": 432000, "slotLength": {"milliseconds": slot_ms}, "safeZone": 129600},
    }


def test_payloads():
    assert make_payload("queryNetwork/startTime") == {"jsonrpc": "2.0", "method": "queryNetwork/startTime"}
    assert make_payload("submitTransaction", {"a": 1}, {}) == {
        "jsonrpc": "2.0",
        "method": "submitTransaction",
        "params": {"a": 1},
        "id": {},
    }
    assert make_payload_v5("Query", {"query": "ledgerTip"}) == {
        "type": "jsonwsp/request",
        "version": "1.0",
        "servicename": "ogmios",
        "methodname": "Query",
        "args": {"query": "ledgerTip"},
    }


def test_http_endpoint():
    assert http_endpoint("ws://localhost:1337") == "http://localhost:1337"
    assert http_endpoint("wss://ogmios.example") == "https://ogmios.example"
    assert http_endpoint("http://x") == "http://x"


def test_chain_tip():
    client, session = _client(_ok({"slot": 100, "id": "ab"}))
    assert client.chain_tip() == PointStruct(id="ab", slot=100)
    url, payload = session.posts[0]
    assert url == "http://ogmios:1337"
    assert payload["method"] == "queryLedgerState/tip"


def test_chain_tip_v5():
    client, session = _client({"type": "jsonwsp/response", "result": {"slot": 100, "hash": "ab", "blockNo": 3}})
    assert client.chain_tip_v5() == PointStructV5(block_no=3, hash="ab", slot=100)
    assert session.posts[0][1]["args"] == {"query": "ledgerTip"}


def test_query_errors():
    client, _ = _client({"jsonrpc": "2.0", "error": {"code": 2001, "message": "era mismatch", "data": {"x": 1}}})
    with pytest.raises(QueryError) as exc:
        client.chain_tip()
    assert exc.value.code == 2001
    assert exc.value.data == {"x": 1}

    client, _ = _client({"type": "jsonwsp/fault", "fault": {"code": "client", "string": "bad query"}})
    with pytest.raises(QueryError, match="bad query"):
        client.current_protocol_parameters_v5()

    client, _ = _client(["not", "an", "object"])
    with pytest.raises(DecodeError):
        client.current_epoch()


def test_scalar_queries():
    client, session = _client(_ok(420), _ok("2017-09-23T21:44:51Z"), _ok(9000000), _ok({"minFeeA": 44}))
    assert client.current_epoch() == 420
    assert client.start_time() == "2017-09-23T21:44:51Z"
    assert client.block_height() == 9000000
    assert client.current_protocol_parameters() == {"minFeeA": 44}
    assert [p["method"] for _, p in session.posts] == [
        "queryLedgerState/epoch",
        "queryNetwork/startTime",
        "queryNetwork/blockHeight",
        "queryLedgerState/protocolParameters",
    ]


def test_genesis_config():
    client, session = _client(_ok({"networkMagic": 764824073}), _ok({"networkMagic": 1}))
    assert client.genesis_config("shelley") == {"networkMagic": 764824073}
    assert session.posts[0][1]["params"] == {"era": "shelley"}
    client.genesis_config_v5("shelley")
    assert session.posts[1][1]["args"] == {"query": {"genesisConfig": "shelley"}}


def test_era_summaries_and_elapsed_time():
    client, _ = _client(_ok([_era(0, 100, 20000), _era(100, 200, 1000)]))
    history = client.era_summaries()
    assert len(history.summaries) == 2
    assert history.summaries[1].parameters.slot_length_ms == 1000

    # 100 slots of the first era plus 50 of the second
    assert slot_to_elapsed_milliseconds(history, 150) == 100 * 20000 + 50 * 1000
    assert slot_to_elapsed_milliseconds(history, 250) == 100 * 20000 + 100 * 1000
    assert slot_to_elapsed_milliseconds(history, 50) == 50 * 20000
    assert slot_to_elapsed_milliseconds(EraHistory(), 50) == 0


def test_era_summary_decoding_is_strict():
    with pytest.raises(DecodeError):
        EraSummary.from_json({"start": {"slot": "zero"}})


def test_era_start():
    bound = {"time": {"seconds": 89856000}, "slot": 72316800, "epoch": 365}
    client, _ = _client(_ok(bound), {"result": bound})
    assert client.era_start().epoch == 365
    assert client.era_start_v5().slot == 72316800


def test_utxos():
    utxo = {
        "transaction": {"id": "ab" * 32},
        "index": 1,
        "address": "addr1",
        "value": {"ada": {"lovelace": 2000000}},
    }
    client, session = _client(_ok([utxo]), _ok([utxo]), {"result": [[{"txId": "ab", "index": 1}, {}]]})

    utxos = client.utxos_by_address("addr1")
    assert utxos[0].value.ada_lovelace() == 2000000
    assert utxos[0].to_json() == utxo
    assert session.posts[0][1]["params"] == {"addresses": ["addr1"]}

    client.utxos_by_tx_in(TxIn("ab" * 32, 1))
    assert session.posts[1][1]["params"] == {"outputReferences": [{"transaction": {"id": "ab" * 32}, "index": 1}]}

    legacy = client.utxos_by_tx_in_v5(TxIn("ab", 1))
    assert legacy == [[{"txId": "ab", "index": 1}, {}]]
    assert session.posts[2][1]["args"] == {"query": {"utxo": [{"txId": "ab", "index": 1}]}}


def test_reward_address_key_hash():
    assert reward_address_key_hash(_stake_address()) == KEY_HASH.hex()
    with pytest.raises(ValueError):
        reward_address_key_hash("not-bech32")


def test_get_delegation():
    summary = {"delegate": {"id": "pool1abc"}, "rewards": {"ada": {"lovelace": 1500}}}
    client, session = _client(_ok({KEY_HASH.hex(): summary}))
    delegation = client.get_delegation(_stake_address())
    assert delegation.pool_id == "pool1abc"
    assert delegation.rewards == 1500
    assert session.posts[0][1]["params"] == {"keys": [_stake_address()]}


def test_get_delegation_missing_account():
    client, _ = _client(_ok({}), _ok({KEY_HASH.hex(): None}))
    with pytest.raises(QueryError, match="not found"):
        client.get_delegation(_stake_address())
    with pytest.raises(QueryError, match="nil"):
        client.get_delegation(_stake_address())


def test_get_delegation_undelegated():
    client, _ = _client(_ok({KEY_HASH.hex(): {}}))
    delegation = client.get_delegation(_stake_address())
    assert delegation.pool_id == ""
    assert delegation.rewards == 0


def test_utxos_by_address_v5():
    client, session = _client({"result": [[{"txId": "ab", "index": 0}, {"address": "addr1", "value": {"coins": 1}}]]})
    assert client.utxos_by_address_v5("addr1")[0][1]["value"] == {"coins": 1}
    assert session.posts[0][1]["args"] == {"query": {"utxo": ["addr1"]}}


def test_tx_in_helpers():
    tx_in = TxIn("ab", 2)
    assert str(tx_in) == "ab#2"
    assert tx_in.tx_id().output_index() == 2
