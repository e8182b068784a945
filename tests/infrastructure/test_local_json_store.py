"""Tests for the local JSON blob store."""
import json
import os
from pathlib import Path

import pytest

from app.core.exceptions import StorageError
from app.infrastructure.storage import LocalJsonStore


@pytest.fixture
def store(tmp_path):
    return LocalJsonStore(tmp_path / "faces")


class TestLocalJsonStore:
    """LocalJsonStore keeps one JSON file per key."""

    def test_creates_directory(self, tmp_path):
        LocalJsonStore(tmp_path / "a" / "b")
        assert (tmp_path / "a" / "b").is_dir()

    async def test_write_then_read(self, store):
        data = {"face_1": {"referenceEmbedding": [0.25, -1.5], "images": ["x.jpg"]}}

        await store.write("face-groups.json", data)

        assert await store.exists("face-groups.json")
        assert await store.read("face-groups.json") == data
        on_disk = json.loads((store.root / "face-groups.json").read_text(encoding="utf-8"))
        assert on_disk == data

    async def test_overwrite_leaves_no_temp_file(self, store):
        await store.write("doc.json", {"v": 1})
        await store.write("doc.json", {"v": 2})

        assert await store.read("doc.json") == {"v": 2}
        assert os.listdir(store.root) == ["doc.json"]

    async def test_missing_document(self, store):
        assert not await store.exists("nope.json")
        with pytest.raises(StorageError):
            await store.read("nope.json")

    async def test_malformed_document(self, store):
        (store.root / "bad.json").write_text("{oops", encoding="utf-8")

        with pytest.raises(StorageError):
            await store.read("bad.json")

    async def test_unserialisable_data_keeps_previous_document(self, store):
        await store.write("doc.json", {"v": 1})

        with pytest.raises(StorageError):
            await store.write("doc.json", {"v": object()})

        assert await store.read("doc.json") == {"v": 1}
        assert os.listdir(store.root) == ["doc.json"]

    @pytest.mark.parametrize("key", ["", "..", "a/b.json", "a\\b.json"])
    async def test_rejects_unsafe_keys(self, store, key):
        with pytest.raises(StorageError):
            await store.write(key, {})

    async def test_long_key_maps_to_bounded_file_name(self, store):
        key = "_".join(["d" * 60] * 4) + "_photo.jpg.json"
        other = "_".join(["d" * 60] * 4) + "_other.jpg.json"

        await store.write(key, {"v": 1})
        await store.write(other, {"v": 2})

        assert await store.exists(key)
        assert await store.read(key) == {"v": 1}
        assert await store.read(other) == {"v": 2}
        names = sorted(os.listdir(store.root))
        assert len(names) == 2
        assert all(len(name.encode()) <= 200 and name.endswith(".json") for name in names)

    def test_short_key_is_its_own_file_name(self):
        assert LocalJsonStore.file_name("face-groups.json") == "face-groups.json"

    async def test_stat_failure_raises_storage_error(self, store, monkeypatch):
        def too_long(self):
            raise OSError(36, "File name too long")

        monkeypatch.setattr(Path, "is_file", too_long)

        with pytest.raises(StorageError):
            await store.exists("doc.json")
