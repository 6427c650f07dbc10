import logging
from pathlib import Path

from pydantic import ValidationError
from pytest import raises

from tree_sync import MemoryStore, RestStore
from tree_sync.tools.config import Config, InstanceConfig
from tree_sync.tools.yaml_model import load_document

CONFIG_YAML = """\
instances:
  local:
    url: http://localhost:9000/db/
    root_path: /app//data/
  remote:
    url: https://example.com/db
    token: secret
    debug: true
"""


def test_load(tmp_path: Path):
    file = tmp_path / "tree-sync.yaml"
    file.write_text(CONFIG_YAML)

    config = Config.load_yaml(file)

    local = config.instances["local"]
    assert local.url == "http://localhost:9000/db"
    assert local.root_path == "app/data"
    assert local.token is None
    assert not local.debug

    remote = config.instances["remote"]
    assert remote.token == "secret"
    assert remote.debug

    # round trip
    dump_file = tmp_path / "dump.yaml"
    config.dump_yaml(dump_file)
    assert Config.load_yaml(dump_file) == config
    assert "token" not in dump_file.read_text().split("remote")[0]


def test_load_invalid(tmp_path: Path):
    file = tmp_path / "tree-sync.yaml"

    with raises(ValueError):
        Config.load_yaml(file)

    file.write_text("- a\n- b\n")
    with raises(ValueError):
        Config.load_yaml(file)

    file.write_text("instances:\n  x:\n    url: ftp://example.com\n")
    with raises(ValidationError):
        Config.load_yaml(file)


def test_load_document(tmp_path: Path):
    file = tmp_path / "schema.json"
    file.write_text('{"a": true}')
    assert load_document(file) == {"a": True}

    file = tmp_path / "schema.yml"
    file.write_text("a: true\nb:\n  '!c': true\n")
    assert load_document(file) == {"a": True, "b": {"!c": True}}


def test_create():
    instance = InstanceConfig(url="https://example.com/db", root_path="app")
    logger = logging.getLogger("test")

    store = instance.create_store(logger=logger)
    assert isinstance(store, RestStore)
    assert store.url == "https://example.com/db"

    session = instance.create_session(MemoryStore(), logger=logger)
    assert session.root.path == ("app",)
    assert not session.debug
