"""Unit tests for the key-value store backends."""

import sqlite3
from unittest.mock import patch

import pytest

from localauth.core.exceptions import StorageError
from localauth.storage import JsonFileStore, MemoryStore, SQLiteStore


@pytest.fixture(params=["memory", "json", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    if request.param == "json":
        return JsonFileStore(tmp_path / "kv")
    return SQLiteStore(tmp_path / "kv" / "store.db")


class TestKeyValueContract:
    def test_missing_key_is_none(self, store):
        assert store.get_item("@auth_user") is None

    def test_set_then_get(self, store):
        store.set_item("@auth_user", '{"id": "1"}')
        assert store.get_item("@auth_user") == '{"id": "1"}'

    def test_set_overwrites(self, store):
        store.set_item("@auth_user", "a")
        store.set_item("@auth_user", "b")
        assert store.get_item("@auth_user") == "b"

    def test_remove(self, store):
        store.set_item("@auth_user", "a")
        store.remove_item("@auth_user")
        assert store.get_item("@auth_user") is None

    def test_remove_missing_is_noop(self, store):
        store.remove_item("@auth_user")
        assert store.get_item("@auth_user") is None

    def test_keys_are_independent(self, store):
        store.set_item("@auth_user", "session")
        store.set_item("@auth_users", "[]")
        store.remove_item("@auth_user")
        assert store.get_item("@auth_users") == "[]"

    def test_compare_and_set_on_absent_key(self, store):
        assert store.compare_and_set("@auth_users", None, "[1]") is True
        assert store.get_item("@auth_users") == "[1]"

    def test_compare_and_set_rejects_stale_expectation(self, store):
        store.set_item("@auth_users", "[1]")
        assert store.compare_and_set("@auth_users", None, "[2]") is False
        assert store.compare_and_set("@auth_users", "[0]", "[2]") is False
        assert store.get_item("@auth_users") == "[1]"

    def test_compare_and_set_with_current_value(self, store):
        store.set_item("@auth_users", "[1]")
        assert store.compare_and_set("@auth_users", "[1]", "[1,2]") is True
        assert store.get_item("@auth_users") == "[1,2]"


class TestMemoryStore:
    def test_initial_values(self):
        store = MemoryStore({"@auth_user": "x"})
        assert store.get_item("@auth_user") == "x"


class TestJsonFileStore:
    def test_key_maps_to_file_name(self, tmp_path):
        store = JsonFileStore(tmp_path)
        assert store.path_for("@auth_users") == tmp_path / "auth_users.json"
        assert store.path_for("@a/b") == tmp_path / "a_b.json"

    def test_directory_created_on_write(self, tmp_path):
        store = JsonFileStore(tmp_path / "nested" / "dir")
        store.set_item("@auth_user", "{}")
        assert (tmp_path / "nested" / "dir" / "auth_user.json").exists()

    def test_file_is_owner_only(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.set_item("@auth_user", "{}")
        mode = (tmp_path / "auth_user.json").stat().st_mode & 0o777
        assert mode == 0o600

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.set_item("@auth_user", "{}")
        store.set_item("@auth_user", "{}")
        assert [p.name for p in tmp_path.iterdir()] == ["auth_user.json"]

    def test_read_failure_raises_storage_error(self, tmp_path):
        store = JsonFileStore(tmp_path)
        with patch(
            "pathlib.Path.read_text", side_effect=PermissionError("denied")
        ):
            with pytest.raises(StorageError) as exc_info:
                store.get_item("@auth_user")
        assert isinstance(exc_info.value.__cause__, PermissionError)

    @pytest.mark.parametrize("key", ["@auth_user", "@auth_users"])
    def test_invalid_utf8_raises_storage_error(self, tmp_path, key):
        store = JsonFileStore(tmp_path)
        store.path_for(key).write_bytes(b"\xff\xfe{bad")
        with pytest.raises(StorageError) as exc_info:
            store.get_item(key)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_invalid_utf8_fails_compare_and_set(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.path_for("@auth_users").write_bytes(b"\xff\xfe{bad")
        with pytest.raises(StorageError):
            store.compare_and_set("@auth_users", None, "[]")
        assert store.path_for("@auth_users").read_bytes() == b"\xff\xfe{bad"

    def test_write_failure_raises_storage_error(self, tmp_path):
        store = JsonFileStore(tmp_path)
        with patch("os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                store.set_item("@auth_user", "{}")
        assert store.get_item("@auth_user") is None


class TestSQLiteStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "store.db"
        SQLiteStore(path).set_item("@auth_user", "x")
        assert SQLiteStore(path).get_item("@auth_user") == "x"

    def test_backend_error_is_wrapped(self, tmp_path):
        store = SQLiteStore(tmp_path / "store.db")
        with patch.object(
            store, "_connect", side_effect=sqlite3.OperationalError("locked")
        ):
            with pytest.raises(StorageError):
                store.set_item("@auth_user", "x")
