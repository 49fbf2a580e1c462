"""Tests for quotesync.storage.record_store: snapshot load/persist and views."""

import json
import random

import pytest

from quotesync.storage import RecordStore
from quotesync.storage.defaults import DEFAULT_QUOTES
from quotesync.types import PersistenceError

# ============================================================================
# Loading
# ============================================================================


class TestLoad:
    def test_missing_snapshot_seeds_defaults(self, snapshot_path, sink):
        store = RecordStore(snapshot_path, status_sink=sink)
        records = store.load()

        assert len(records) == len(DEFAULT_QUOTES)
        assert all(not r.synced and r.is_pending for r in records)
        assert not snapshot_path.exists()

    def test_missing_snapshot_without_seeding_is_empty(self, store):
        assert store.records == []

    def test_unpersisted_store_is_dirty(self, snapshot_path):
        store = RecordStore(snapshot_path, seed_defaults=False)
        store.load()
        assert store.is_dirty()

    def test_loads_saved_records(self, snapshot_path, write_snapshot):
        write_snapshot(
            [
                {"id": 1, "text": "A", "category": "X", "synced": True},
                {"id": "local-abc", "text": "B", "category": "Y", "synced": False},
            ]
        )
        store = RecordStore(snapshot_path)
        store.load()

        assert [r.id for r in store.records] == [1, "local-abc"]
        assert store.get("local-abc").synced is False
        assert not store.is_dirty()

    def test_legacy_entries_load_with_defaults(self, snapshot_path, write_snapshot):
        write_snapshot([{"quote": "Stay hungry.", "author": "Steve Jobs"}])
        store = RecordStore(snapshot_path)
        store.load()

        (record,) = store.records
        assert record.text == "Stay hungry."
        assert record.is_pending

    def test_skips_unusable_entries(self, snapshot_path, write_snapshot):
        write_snapshot(
            [
                "junk",
                {"id": 2, "text": "", "category": "X"},
                {"id": 3, "text": "C", "category": "Z"},
            ]
        )
        store = RecordStore(snapshot_path)
        store.load()
        assert [r.id for r in store.records] == [3]

    def test_corrupt_snapshot_raises(self, snapshot_path):
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError) as exc_info:
            RecordStore(snapshot_path).load()
        assert exc_info.value.path == snapshot_path

    def test_non_list_snapshot_raises(self, snapshot_path, write_snapshot):
        write_snapshot({"records": []})
        with pytest.raises(PersistenceError, match="JSON array"):
            RecordStore(snapshot_path).load()


# ============================================================================
# Persisting
# ============================================================================


class TestPersist:
    def test_persist_writes_full_collection(self, store, snapshot_path, sink):
        store.add("A", "X")
        store.add("B", "Y")
        store.persist()

        saved = json.loads(snapshot_path.read_text(encoding="utf-8"))
        assert [e["text"] for e in saved] == ["A", "B"]
        assert all(e["synced"] is False for e in saved)
        assert sink.messages[-1] == ("Saved 2 records", False)

    def test_persist_leaves_no_temp_files(self, store, snapshot_path):
        store.add("A", "X")
        store.persist()
        store.persist()
        assert sorted(p.name for p in snapshot_path.parent.iterdir()) == ["records.json"]

    def test_persisted_records_reload_identically(self, store, snapshot_path):
        store.add("A", "X")
        store.persist()

        reloaded = RecordStore(snapshot_path)
        reloaded.load()
        assert reloaded.snapshot() == store.snapshot()

    def test_persist_with_explicit_records_replaces_collection(self, store, make_record):
        store.add("old", "X")
        store.persist([make_record(9, "new", "Y")])
        assert [r.id for r in store.records] == [9]

    def test_persist_failure_raises_and_notifies(self, tmp_path, sink):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = RecordStore(blocker / "records.json", status_sink=sink, seed_defaults=False)
        store.load()
        store.add("A", "X")

        with pytest.raises(PersistenceError):
            store.persist()

        assert len(sink.errors) == 1
        assert "Failed to save records" in sink.errors[0]
        # Memory stays authoritative
        assert len(store) == 1
        assert store.is_dirty()

    def test_persist_if_changed_skips_identical_snapshot(self, store):
        store.add("A", "X")
        assert store.persist_if_changed() is True
        assert store.persist_if_changed() is False

    def test_in_place_mutation_marks_dirty(self, store):
        record = store.add("A", "X")
        store.persist()
        record.synced = True
        assert store.is_dirty()


# ============================================================================
# Collection access and views
# ============================================================================


class TestCollection:
    def test_add_creates_unsynced_local_record(self, store):
        record = store.add("A", "X")
        assert record.is_pending
        assert record.synced is False
        assert store.unsynced() == [record]

    def test_records_returns_a_copy(self, store):
        store.add("A", "X")
        store.records.clear()
        assert len(store) == 1

    def test_replace_all(self, store, make_record):
        store.add("A", "X")
        store.replace_all([make_record(1), make_record(2, "B")])
        assert [r.id for r in store.records] == [1, 2]

    def test_find_content(self, store):
        record = store.add("A", "X")
        assert store.find_content("A", "X") is record
        assert store.find_content("A", "Y") is None


class TestViews:
    @pytest.fixture
    def filled(self, store):
        store.add("Stay hungry, stay foolish.", "Steve Jobs")
        store.add("It always seems impossible until it's done.", "Nelson Mandela")
        store.add("The greatest glory in living...", "Nelson Mandela")
        return store

    def test_filter_matches_text_case_insensitively(self, filled):
        assert [r.category for r in filled.filter("HUNGRY")] == ["Steve Jobs"]

    def test_filter_matches_category(self, filled):
        assert len(filled.filter("mandela")) == 2

    def test_blank_filter_returns_everything(self, filled):
        assert len(filled.filter("")) == 3
        assert len(filled.filter("   ")) == 3
        assert len(filled.filter(None)) == 3

    def test_random_record_respects_filter(self, filled):
        rng = random.Random(42)
        for _ in range(10):
            assert filled.random_record("mandela", rng=rng).category == "Nelson Mandela"

    def test_random_record_none_when_nothing_matches(self, filled):
        assert filled.random_record("nobody") is None

    def test_categories_are_distinct_and_sorted(self, filled):
        assert filled.categories() == ["Nelson Mandela", "Steve Jobs"]
