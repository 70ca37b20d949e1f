"""Tests for the index location cache."""

import json
import os
from unittest.mock import MagicMock

import pytest
import redis

from libs.common.config import IndexServiceConfig
from libs.common.errors import CacheStorageError
from libs.index_store.location_cache import (
    JsonFileLocationCache,
    RedisLocationCache,
    create_location_cache,
)


class TestJsonFileLocationCache:
    def test_missing_file_is_empty(self, tmp_path):
        cache = JsonFileLocationCache(tmp_path / "indices.json")
        assert cache.get_entries() == {}

    def test_set_then_get(self, tmp_path):
        cache = JsonFileLocationCache(tmp_path / "nested" / "indices.json")
        cache.set_entry("idx1", "/data/idx1")
        assert cache.get_entries() == {"idx1": "/data/idx1"}

    def test_upsert_replaces_location(self, tmp_path):
        cache = JsonFileLocationCache(tmp_path / "indices.json")
        cache.set_entry("idx1", "/old")
        cache.set_entry("idx1", "/new")
        assert cache.get_entries() == {"idx1": "/new"}

    def test_remove_entry(self, tmp_path):
        cache = JsonFileLocationCache(tmp_path / "indices.json")
        cache.set_entry("idx1", "/data/idx1")
        cache.set_entry("idx2", "/data/idx2")
        cache.remove_entry("idx1")
        assert cache.get_entries() == {"idx2": "/data/idx2"}

    def test_remove_absent_is_noop(self, tmp_path):
        path = tmp_path / "indices.json"
        cache = JsonFileLocationCache(path)
        cache.remove_entry("nothing")
        assert not path.exists()

        cache.set_entry("idx1", "/data/idx1")
        cache.remove_entry("nothing")
        assert cache.get_entries() == {"idx1": "/data/idx1"}

    def test_durable_across_instances(self, tmp_path):
        path = tmp_path / "indices.json"
        JsonFileLocationCache(path).set_entry("idx1", "/data/idx1")

        # A fresh instance, as after a restart
        assert JsonFileLocationCache(path).get_entries() == {"idx1": "/data/idx1"}
        assert json.loads(path.read_text()) == {"idx1": "/data/idx1"}

    def test_preserves_insertion_order(self, tmp_path):
        cache = JsonFileLocationCache(tmp_path / "indices.json")
        for name in ["zeta", "alpha", "mid"]:
            cache.set_entry(name, f"/data/{name}")
        assert list(cache.get_entries()) == ["zeta", "alpha", "mid"]

    def test_no_temp_files_left_behind(self, tmp_path):
        cache = JsonFileLocationCache(tmp_path / "indices.json")
        cache.set_entry("idx1", "/data/idx1")
        cache.remove_entry("idx1")
        assert os.listdir(tmp_path) == ["indices.json"]

    def test_empty_file_is_empty(self, tmp_path):
        path = tmp_path / "indices.json"
        path.write_text("")
        assert JsonFileLocationCache(path).get_entries() == {}

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "indices.json"
        path.write_text("{not json")
        with pytest.raises(CacheStorageError):
            JsonFileLocationCache(path).get_entries()

    def test_wrong_shape_raises_storage_error(self, tmp_path):
        path = tmp_path / "indices.json"
        path.write_text(json.dumps(["idx1", "/data/idx1"]))
        with pytest.raises(CacheStorageError):
            JsonFileLocationCache(path).get_entries()

        path.write_text(json.dumps({"idx1": 42}))
        with pytest.raises(CacheStorageError):
            JsonFileLocationCache(path).get_entries()

    def test_unwritable_location_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        cache = JsonFileLocationCache(blocker / "indices.json")
        with pytest.raises(CacheStorageError):
            cache.set_entry("idx1", "/data/idx1")

    def test_unreadable_path_raises_storage_error(self, tmp_path):
        # A directory where the file should be cannot be read
        path = tmp_path / "indices.json"
        path.mkdir()
        with pytest.raises(CacheStorageError):
            JsonFileLocationCache(path).get_entries()


class TestRedisLocationCache:
    def test_get_entries_decodes_bytes(self):
        client = MagicMock()
        client.hgetall.return_value = {b"idx1": b"/data/idx1", "idx2": "/data/idx2"}
        cache = RedisLocationCache(client, key="locations")
        assert cache.get_entries() == {"idx1": "/data/idx1", "idx2": "/data/idx2"}
        client.hgetall.assert_called_once_with("locations")

    def test_set_and_remove(self):
        client = MagicMock()
        cache = RedisLocationCache(client, key="locations")
        cache.set_entry("idx1", "/data/idx1")
        cache.remove_entry("idx1")
        client.hset.assert_called_once_with("locations", "idx1", "/data/idx1")
        client.hdel.assert_called_once_with("locations", "idx1")

    @pytest.mark.parametrize("method, args", [
        ("get_entries", ()),
        ("set_entry", ("idx1", "/data/idx1")),
        ("remove_entry", ("idx1",)),
    ])
    def test_redis_errors_surface_as_storage_error(self, method, args):
        client = MagicMock()
        error = redis.ConnectionError("down")
        client.hgetall.side_effect = error
        client.hset.side_effect = error
        client.hdel.side_effect = error
        cache = RedisLocationCache(client)
        with pytest.raises(CacheStorageError):
            getattr(cache, method)(*args)


class TestCreateLocationCache:
    def test_file_backend(self, tmp_path):
        config = IndexServiceConfig(ml_index_cache_path=str(tmp_path / "indices.json"))
        cache = create_location_cache(config)
        assert isinstance(cache, JsonFileLocationCache)
        assert cache.path == tmp_path / "indices.json"

    def test_redis_backend(self):
        config = IndexServiceConfig(ml_index_cache_backend="redis", ml_index_cache_key="k")
        cache = create_location_cache(config)
        assert isinstance(cache, RedisLocationCache)
        assert cache.key == "k"

    def test_unknown_backend(self):
        config = IndexServiceConfig(ml_index_cache_backend="floppy")
        with pytest.raises(ValueError, match="Unsupported location cache backend"):
            create_location_cache(config)
