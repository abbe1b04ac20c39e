"""Tests for JsonStorage — StoragePort over one JSON file per key."""

import json
import os
import tempfile

import pytest

from punchclock.adapters.storage.json_store import JsonStorage
from punchclock.domain.errors import PersistenceFailure


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def storage(tmp_dir):
    return JsonStorage(tmp_dir)


class TestJsonStorage:
    def test_missing_key_takes_default(self, storage):
        assert storage.get(["autoSchedule"], {"autoSchedule": False}) == {"autoSchedule": False}

    def test_missing_key_without_default_absent(self, storage):
        assert storage.get(["checkinTime"]) == {}

    def test_set_then_get(self, storage):
        storage.set({"checkinTime": "08:45", "autoSchedule": True})
        assert storage.get(["checkinTime", "autoSchedule"]) == {"checkinTime": "08:45", "autoSchedule": True}

    def test_one_file_per_key(self, storage, tmp_dir):
        storage.set({"logs": [{"detail": "héllo"}]})
        with open(os.path.join(tmp_dir, "logs.json"), encoding="utf-8") as f:
            assert json.load(f) == [{"detail": "héllo"}]

    def test_no_temp_files_left(self, storage, tmp_dir):
        storage.set({"a": 1, "b": 2})
        assert sorted(os.listdir(tmp_dir)) == ["a.json", "b.json"]

    def test_survives_new_instance(self, storage, tmp_dir):
        storage.set({"checkoutNextFireAt": "2026-06-15T17:30:00+00:00"})
        assert JsonStorage(tmp_dir).get(["checkoutNextFireAt"])["checkoutNextFireAt"].startswith("2026-06-15")

    def test_none_value_is_stored(self, storage):
        storage.set({"checkinNextFireAt": None})
        assert storage.get(["checkinNextFireAt"], {"checkinNextFireAt": "x"}) == {"checkinNextFireAt": None}

    def test_corrupt_file_raises(self, storage, tmp_dir):
        with open(os.path.join(tmp_dir, "logs.json"), "w") as f:
            f.write("{not json")
        with pytest.raises(PersistenceFailure):
            storage.get(["logs"])

    def test_invalid_key(self, storage):
        with pytest.raises(PersistenceFailure):
            storage.set({"../escape": 1})

    def test_unserializable_value(self, storage):
        with pytest.raises(PersistenceFailure):
            storage.set({"bad": object()})

    def test_creates_directory(self, tmp_dir):
        nested = os.path.join(tmp_dir, "a", "b")
        JsonStorage(nested).set({"k": 1})
        assert os.path.exists(os.path.join(nested, "k.json"))
