"""
Tests for store options and config-file loading.
"""

import json

import pytest

from rdf_quadstore.errors import StoreInitializationError
from rdf_quadstore.storage.options import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_TIMEOUT_SECONDS,
    StoreOptions,
    load_options,
)


class TestStoreOptions:
    """Tests for StoreOptions."""

    def test_defaults(self):
        opts = StoreOptions()
        assert opts.select_timeout == DEFAULT_TIMEOUT_SECONDS == 120
        assert opts.insert_timeout == 120
        assert opts.delete_timeout == 120
        assert opts.batch_size == DEFAULT_BATCH_SIZE == 100

    @pytest.mark.parametrize("field, value", [
        ("select_timeout", 0),
        ("insert_timeout", -5),
        ("delete_timeout", "10"),
        ("batch_size", True),
    ])
    def test_validate_rejects(self, field, value):
        with pytest.raises(StoreInitializationError, match=field):
            StoreOptions(**{field: value}).validate()

    def test_dict_round_trip(self):
        opts = StoreOptions(select_timeout=5, batch_size=10)
        assert StoreOptions.from_dict(opts.to_dict()) == opts

    def test_from_dict_ignores_unknown_keys(self, caplog):
        opts = StoreOptions.from_dict({"select_timeout": 7, "colour": "blue"})
        assert opts.select_timeout == 7
        assert "colour" in caplog.text


class TestLoadOptions:
    """Tests for load_options."""

    def test_yaml_nested_section(self, tmp_path):
        path = tmp_path / "store.yaml"
        path.write_text("quadstore:\n  insert_timeout: 30\n  batch_size: 250\n")
        opts = load_options(path)
        assert opts.insert_timeout == 30
        assert opts.batch_size == 250
        assert opts.select_timeout == 120

    def test_json_top_level(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({"delete_timeout": 15}))
        assert load_options(path).delete_timeout == 15

    def test_save_then_load(self, tmp_path):
        opts = StoreOptions(select_timeout=3, insert_timeout=4, delete_timeout=5, batch_size=6)
        for name in ("opts.yml", "opts.json"):
            opts.save(tmp_path / name)
            assert load_options(tmp_path / name) == opts

    def test_missing_file(self, tmp_path):
        with pytest.raises(StoreInitializationError):
            load_options(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("quadstore: [unclosed\n")
        with pytest.raises(StoreInitializationError):
            load_options(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(StoreInitializationError):
            load_options(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "neg.yaml"
        path.write_text("batch_size: -1\n")
        with pytest.raises(StoreInitializationError):
            load_options(path)
