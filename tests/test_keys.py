"""Tests for key validation and path mapping."""

from pathlib import Path

import pytest

from filedb import InvalidKey
from filedb.keys import LOCK_SUFFIX, TEMP_SUFFIX, KeyPaths, is_artifact, validate_key, validate_prefix


class TestValidateKey:
    @pytest.mark.parametrize("key", ["a", "a/b", "users/42/profile.json", "a.b", ".hidden", "x..y"])
    def test_valid(self, key):
        assert validate_key(key) == key

    @pytest.mark.parametrize(
        "key",
        [
            "",
            "/abs",
            "a/",
            "a//b",
            "../x",
            "a/../b",
            "a/./b",
            ".",
            "a\\b",
            "k" + LOCK_SUFFIX,
            "dir" + TEMP_SUFFIX + "/k",
            ".filedb",
            ".filedb/x",
        ],
    )
    def test_invalid(self, key):
        with pytest.raises(InvalidKey):
            validate_key(key)

    def test_invalid_key_is_value_error(self):
        with pytest.raises(ValueError):
            validate_key("..")

    def test_non_string(self):
        with pytest.raises(InvalidKey, match="must be a string"):
            validate_key(42)  # type: ignore[arg-type]

    def test_marker_name_allowed_below_root(self):
        assert validate_key("a/.filedb") == "a/.filedb"


class TestValidatePrefix:
    def test_root(self):
        assert validate_prefix("") == ""
        assert validate_prefix("/") == ""

    def test_strips_slashes(self):
        assert validate_prefix("/a/b/") == "a/b"

    def test_rejects_traversal(self):
        with pytest.raises(InvalidKey):
            validate_prefix("../up")


class TestKeyPaths:
    def test_entry_path(self, tmp_path):
        paths = KeyPaths(tmp_path)
        assert paths.entry_path("a/b") == tmp_path / "a" / "b"

    def test_lock_path_beside_entry(self, tmp_path):
        paths = KeyPaths(tmp_path)
        assert paths.lock_path("a/b") == tmp_path / "a" / ("b" + LOCK_SUFFIX)

    def test_temp_location_same_directory(self, tmp_path):
        paths = KeyPaths(tmp_path)
        directory, prefix = paths.temp_location("a/b")
        assert directory == paths.entry_path("a/b").parent
        assert prefix == "b."

    def test_marker(self, tmp_path):
        assert KeyPaths(tmp_path).marker == tmp_path / ".filedb"

    def test_prefix_dir(self, tmp_path):
        paths = KeyPaths(tmp_path)
        assert paths.prefix_dir("") == tmp_path
        assert paths.prefix_dir("x/y/") == Path(tmp_path, "x", "y")

    def test_distinct_keys_map_to_distinct_paths(self, tmp_path):
        paths = KeyPaths(tmp_path)
        keys = ["a", "a/b", "ab", "a.b", "b/a"]
        assert len({paths.entry_path(k) for k in keys}) == len(keys)


class TestIsArtifact:
    def test_lock_and_temp(self):
        assert is_artifact("k" + LOCK_SUFFIX)
        assert is_artifact("k.x8f2a1" + TEMP_SUFFIX)

    def test_regular_names(self):
        assert not is_artifact("k")
        assert not is_artifact("k.lock")
        assert not is_artifact("k.tmp")
