"""
Utility tests - JSON file helpers, endpoint derivation and key generation.
"""

import base64
import json

import pytest

from tcoin_validation.oracle.encoding import derive_endpoint_id
from tcoin_validation.util.files import load_json_file, write_json_file
from scripts.derive_endpoints import DEFAULT_ENDPOINTS, DEFAULT_TITLE, derive_endpoints
from scripts.generate_key import generate_key


class TestJsonFiles:
    """Test JSON read/write helpers."""

    def test_write_and_load(self, tmp_path):
        path = tmp_path / "out.json"
        write_json_file({"a": 1}, path)
        assert load_json_file(path) == {"a": 1}

    def test_write_mode_overwrites(self, tmp_path):
        path = tmp_path / "out.json"
        write_json_file({"a": 1}, path)
        write_json_file({"b": 2}, path, mode="w")
        assert load_json_file(path) == {"b": 2}

    def test_append_mode_merges(self, tmp_path):
        path = tmp_path / "out.json"
        write_json_file({"a": 1, "b": 1}, path)
        merged = write_json_file({"b": 2}, path, mode="a")
        assert merged == {"a": 1, "b": 2}
        assert load_json_file(path) == {"a": 1, "b": 2}

    def test_append_to_missing_file(self, tmp_path):
        path = tmp_path / "new.json"
        write_json_file({"a": 1}, path, mode="a")
        assert load_json_file(path) == {"a": 1}

    def test_append_to_non_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(json.dumps([1, 2]))
        with pytest.raises(ValueError):
            write_json_file({"a": 1}, path, mode="a")

    def test_invalid_mode(self, tmp_path):
        with pytest.raises(ValueError):
            write_json_file({"a": 1}, tmp_path / "x.json", mode="x")

    def test_missing_parent_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            write_json_file({"a": 1}, tmp_path / "missing" / "x.json")

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_json_file(tmp_path / "nope.json")


class TestDeriveEndpoints:
    """Test the endpoint derivation script."""

    def test_derives_all_default_endpoints(self, tmp_path):
        path = tmp_path / "apiEndpoints.json"
        derived = derive_endpoints(DEFAULT_TITLE, DEFAULT_ENDPOINTS, str(path))

        assert set(derived) == {"userStatus", "userRoot", "identityRoot", "root"}
        assert derived["userStatus"] == derive_endpoint_id("tCoinValidation", "userStatus")
        assert load_json_file(path) == derived

    def test_append_keeps_existing_entries(self, tmp_path):
        path = tmp_path / "apiEndpoints.json"
        derive_endpoints(DEFAULT_TITLE, ["root"], str(path))
        derive_endpoints(DEFAULT_TITLE, ["userStatus"], str(path), mode="a")
        assert set(load_json_file(path)) == {"root", "userStatus"}


class TestGenerateKey:
    """Test random key generation."""

    def test_default_size(self):
        key = generate_key()
        assert len(base64.b64decode(key)) == 32

    def test_custom_size(self):
        assert len(base64.b64decode(generate_key(16))) == 16

    def test_keys_differ(self):
        assert generate_key() != generate_key()

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            generate_key(0)
