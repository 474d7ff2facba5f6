"""Tests for JsonStore and single-generation backups."""

import json
import os
from unittest.mock import patch

import pytest

from prodready.core.backup import backup_path, snapshot
from prodready.core.json_store import JsonStore
from prodready.lib.typed_errors import MalformedState, ToolingMissing


@pytest.fixture
def store_path(tmp_path):
    """A store path whose parent does not exist yet."""
    return tmp_path / "conf" / "store.json"


class TestSnapshot:
    """Tests for single-generation backups."""

    def test_copies_bytes_verbatim(self, tmp_path):
        """Test the backup is a byte-for-byte copy."""
        path = tmp_path / "settings.json"
        path.write_bytes(b'{"a":1,   "b":  [1,2]}')

        target = snapshot(path)

        assert target == tmp_path / "settings.json.backup"
        assert target.read_bytes() == b'{"a":1,   "b":  [1,2]}'

    def test_overwrites_previous_generation(self, tmp_path):
        """Test only the latest backup is kept."""
        path = tmp_path / "settings.json"
        path.write_text("first")
        snapshot(path)
        path.write_text("second")
        snapshot(path)

        assert backup_path(path).read_text() == "second"

    def test_missing_file_is_noop(self, tmp_path):
        """Test snapshotting an absent file creates nothing."""
        assert snapshot(tmp_path / "nope.json") is None
        assert list(tmp_path.iterdir()) == []


class TestLoad:
    """Tests for reading a store."""

    def test_absent_returns_default(self, store_path):
        """Test an absent file loads as the default document."""
        store = JsonStore(store_path, default_factory=lambda: {"plugins": {}})
        assert store.load() == {"plugins": {}}
        assert not store_path.exists()

    def test_invalid_json_is_malformed(self, store_path):
        """Test unparseable JSON raises MalformedState."""
        store_path.parent.mkdir(parents=True)
        store_path.write_text("{not json")

        with pytest.raises(MalformedState):
            JsonStore(store_path).load()

    def test_non_object_is_malformed(self, store_path):
        """Test a non-object top level raises MalformedState."""
        store_path.parent.mkdir(parents=True)
        store_path.write_text("[1, 2, 3]")

        with pytest.raises(MalformedState, match="expected object"):
            JsonStore(store_path).load()

    def test_read_key_walks_nested(self, store_path):
        """Test read_key returns None for any missing level."""
        store_path.parent.mkdir(parents=True)
        store_path.write_text(json.dumps({"a": {"b": {"c": 3}}}))
        store = JsonStore(store_path)

        assert store.read_key("a", "b", "c") == 3
        assert store.read_key("a", "x") is None
        assert store.read_key("a", "b", "c", "d") is None


class TestUpdate:
    """Tests for the read-modify-write cycle."""

    def test_creates_parent_and_file(self, store_path):
        """Test the first update creates the directory and file."""
        store = JsonStore(store_path)
        store.update(lambda doc: doc.__setitem__("k", "v"))

        assert json.loads(store_path.read_text()) == {"k": "v"}
        assert store_path.read_text().endswith("\n")
        assert not backup_path(store_path).exists()

    def test_preserves_key_order_and_unrelated_content(self, store_path):
        """Test unrelated keys keep their values and order."""
        store_path.parent.mkdir(parents=True)
        original = {"z": 1, "a": {"nested": [1, {"deep": True}]}, "m": None}
        store_path.write_text(json.dumps(original))

        JsonStore(store_path).update(lambda doc: doc.__setitem__("new", 1))

        data = json.loads(store_path.read_text())
        assert list(data) == ["z", "a", "m", "new"]
        assert data["a"] == original["a"]
        assert data["m"] is None

    def test_backup_holds_pre_mutation_content(self, store_path):
        """Test the backup holds the content before the update."""
        store_path.parent.mkdir(parents=True)
        store_path.write_text('{"before": true}')

        JsonStore(store_path).update(lambda doc: doc.__setitem__("after", True))

        assert backup_path(store_path).read_text() == '{"before": true}'

    def test_unchanged_document_is_not_rewritten(self, store_path):
        """Test a no-op mutation leaves the file and backup alone."""
        store_path.parent.mkdir(parents=True)
        store_path.write_text('{"k":   "v"}')

        JsonStore(store_path).update(lambda doc: doc.__setitem__("k", "v"))

        assert store_path.read_text() == '{"k":   "v"}'
        assert not backup_path(store_path).exists()

    def test_create_false_leaves_absent_store_absent(self, store_path):
        """Test create=False runs mutate without writing."""
        result = JsonStore(store_path).update(lambda doc: "ran", create=False)

        assert result == "ran"
        assert not store_path.parent.exists()

    def test_malformed_store_is_never_overwritten(self, store_path):
        """Test a malformed store is left exactly as it was."""
        store_path.parent.mkdir(parents=True)
        store_path.write_text("{broken")

        with pytest.raises(MalformedState):
            JsonStore(store_path).update(lambda doc: doc.__setitem__("k", 1))

        assert store_path.read_text() == "{broken"
        assert not backup_path(store_path).exists()

    def test_permission_denied_becomes_tooling_missing(self, store_path):
        """Test permission errors surface as ToolingMissing."""
        store = JsonStore(store_path)
        with patch(
            "prodready.core.json_store._atomic_write_json",
            side_effect=PermissionError(13, "Permission denied"),
        ):
            with pytest.raises(ToolingMissing):
                store.update(lambda doc: doc.__setitem__("k", 1))

        assert not store_path.exists()

    def test_no_temp_files_left_behind(self, store_path):
        """Test atomic writes leave only the store and its backup."""
        store = JsonStore(store_path)
        store.update(lambda doc: doc.__setitem__("k", 1))
        store.update(lambda doc: doc.__setitem__("k", 2))

        assert sorted(p.name for p in store_path.parent.iterdir()) == [
            "store.json",
            "store.json.backup",
        ]


def _try_lock(directory):
    """Take and release a non-blocking exclusive flock on directory."""
    import fcntl

    fd = os.open(directory, os.O_RDONLY)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


@pytest.mark.skipif(os.name == "nt", reason="flock is POSIX only")
class TestLocking:
    """Tests for the per-store directory lock."""

    def test_lock_held_during_update(self, store_path):
        """Test a second exclusive flock fails while mutate runs."""
        blocked = []

        def mutate(doc):
            try:
                _try_lock(store_path.parent)
            except BlockingIOError:
                blocked.append(True)
            doc["k"] = 1

        JsonStore(store_path).update(mutate)

        assert blocked == [True]
        assert json.loads(store_path.read_text()) == {"k": 1}

    def test_lock_released_after_update(self, store_path):
        """Test the directory can be locked again once the cycle ends."""
        JsonStore(store_path).update(lambda doc: doc.__setitem__("k", 1))

        _try_lock(store_path.parent)

    def test_lock_released_when_mutate_raises(self, store_path):
        """Test a failing mutation does not leave the directory locked."""

        def mutate(doc):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            JsonStore(store_path).update(mutate)

        _try_lock(store_path.parent)
        assert not store_path.exists()

    def test_create_false_takes_no_lock_on_absent_store(self, store_path):
        """Test an absent store with create=False creates no directory to lock."""
        JsonStore(store_path).update(lambda doc: None, create=False)

        assert not store_path.parent.exists()
