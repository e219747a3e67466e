import pytest

from ogsync.cli import _client, build_parser, cmd_chainsync, cmd_mempool, cmd_submit, cmd_tip, cmd_utxos
from ogsync.config import Settings


def test_subcommands():
    parser = build_parser()

    args = parser.parse_args(["tip"])
    assert args.func is cmd_tip

    args = parser.parse_args(["--endpoint", "ws://node:1337", "chainsync", "--from-slot", "10", "--from-hash", "ab", "--max-blocks", "3"])
    assert args.func is cmd_chainsync
    assert args.endpoint == "ws://node:1337"
    assert (args.from_slot, args.from_hash, args.max_blocks, args.min_slot) == (10, "ab", 3, None)

    assert parser.parse_args(["mempool", "--snapshots", "2"]).func is cmd_mempool
    assert parser.parse_args(["utxos", "addr1", "addr2"]).addresses == ["addr1", "addr2"]
    assert parser.parse_args(["submit", "84a4"]).func is cmd_submit
    assert parser.parse_args(["utxos", "addr1"]).func is cmd_utxos


def test_command_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_client_from_settings():
    client = _client(Settings(endpoint="ws://node:1337", pipeline=3, save_interval=7))
    assert (client.endpoint, client.pipeline, client.save_interval) == ("ws://node:1337", 3, 7)


def test_client_rejects_bad_settings():
    with pytest.raises(ValueError):
        _client(Settings(pipeline=0))
