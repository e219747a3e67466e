import pytest

from ogsync.client import DEFAULT_ENDPOINT
from ogsync.config import ENDPOINT_ENV, Settings, load_config


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv(ENDPOINT_ENV, raising=False)
    settings = load_config(tmp_path / "missing.yaml")
    assert settings == Settings()
    assert settings.endpoint == DEFAULT_ENDPOINT


def test_yaml_file(tmp_path, monkeypatch):
    monkeypatch.delenv(ENDPOINT_ENV, raising=False)
    path = tmp_path / "ogsync.yaml"
    path.write_text("endpoint: ws://node:1337\npipeline: 5\nreconnect: true\nstore: /var/lib/ogsync/points.cbor\n")
    settings = load_config(path)
    assert settings.endpoint == "ws://node:1337"
    assert settings.pipeline == 5
    assert settings.reconnect is True
    assert settings.store == "/var/lib/ogsync/points.cbor"
    assert settings.save_interval == 10000


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "ogsync.yaml"
    path.write_text("endpoint: ws://node:1337\n")
    monkeypatch.setenv(ENDPOINT_ENV, "ws://other:1337")
    assert load_config(path).endpoint == "ws://other:1337"


def test_unknown_keys_are_rejected(tmp_path):
    path = tmp_path / "ogsync.yaml"
    path.write_text("endpoint: ws://node:1337\npipelines: 5\n")
    with pytest.raises(ValueError, match="pipelines"):
        load_config(path)


def test_top_level_must_be_a_mapping(tmp_path):
    path = tmp_path / "ogsync.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_config(path)
