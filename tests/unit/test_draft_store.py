"""Unit tests for draft persistence."""

import asyncio
import json

import pytest
from accountform.drafts.backends import DraftStorageError, JsonFileBackend, MemoryBackend
from accountform.drafts.store import SAVED_AT_FIELD, DraftStore, has_significant_data

DAY = 24 * 60 * 60


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingBackend(MemoryBackend):
    def __init__(self):
        super().__init__()
        self.writes = 0

    def set(self, key, value):
        self.writes += 1
        super().set(key, value)


class BrokenBackend:
    def get(self, key):
        raise DraftStorageError("quota exceeded")

    def set(self, key, value):
        raise DraftStorageError("quota exceeded")

    def delete(self, key):
        raise DraftStorageError("quota exceeded")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return CountingBackend()


@pytest.fixture
def store(backend, clock):
    return DraftStore(backend, key="draft", debounce_seconds=0.02, clock=clock)


class TestSaveAndLoad:
    """Tests for the save/load round trip."""

    def test_load_returns_none_when_empty(self, store):
        """Test an empty slot loads as None."""
        assert store.load() is None
        assert store.exists() is False

    def test_save_now_adds_saved_at(self, store, backend, clock):
        """Test the stored record carries savedAt in milliseconds."""
        assert store.save_now({"companyName": "ACME"}) is True

        raw = json.loads(backend.get("draft"))
        assert raw["companyName"] == "ACME"
        assert raw[SAVED_AT_FIELD] == int(clock.now * 1000)

    def test_round_trip_within_retention(self, store, clock):
        """Test a draft younger than 7 days is returned."""
        store.save_now({"companyName": "ACME", "siren": "404833048"})
        clock.now += 6 * DAY

        draft = store.load()

        assert draft["companyName"] == "ACME"
        assert draft["siren"] == "404833048"

    def test_expired_draft_is_purged(self, store, backend, clock):
        """Test a draft older than 7 days is deleted and None returned."""
        store.save_now({"companyName": "ACME"})
        clock.now += 7 * DAY + 1

        assert store.load() is None
        assert backend.get("draft") is None

    def test_same_data_is_saved_again_after_purge(self, store, backend, clock):
        """Test a purged draft does not suppress an identical later save."""
        store.save_now({"companyName": "ACME"})
        clock.now += 7 * DAY + 1
        assert store.load() is None

        assert store.save_now({"companyName": "ACME"}) is True

        assert json.loads(backend.get("draft"))["companyName"] == "ACME"
        assert store.load()["companyName"] == "ACME"

    def test_corrupt_draft_is_deleted(self, store, backend):
        """Test unparsable content is treated as absent and removed."""
        backend.set("draft", "{not json")

        assert store.load() is None
        assert backend.get("draft") is None

    def test_draft_without_saved_at_is_deleted(self, store, backend):
        """Test a record missing its timestamp is discarded."""
        backend.set("draft", json.dumps({"companyName": "ACME"}))

        assert store.load() is None
        assert backend.get("draft") is None

    def test_identical_data_is_not_rewritten(self, store, backend):
        """Test saving unchanged data skips the backend write."""
        store.save_now({"companyName": "ACME"})
        assert store.save_now({"companyName": "ACME"}) is False
        assert backend.writes == 1

    def test_saved_at_is_ignored_for_change_detection(self, store, backend):
        """Test a resumed record including savedAt counts as unchanged."""
        store.save_now({"companyName": "ACME"})
        draft = store.load()

        assert store.save_now(draft) is False
        assert backend.writes == 1

    def test_clear_removes_draft(self, store):
        """Test clear deletes the slot and allows rewriting the same data."""
        store.save_now({"companyName": "ACME"})
        store.clear()

        assert store.load() is None
        assert store.save_now({"companyName": "ACME"}) is True


class TestDebouncedSave:
    """Tests for debounced writes."""

    @pytest.mark.asyncio
    async def test_rapid_saves_write_once_with_last_value(self, store, backend):
        """Test save(a); save(b) produces a single write of b."""
        store.save({"companyName": "A"})
        store.save({"companyName": "B"})

        await asyncio.sleep(0.06)

        assert backend.writes == 1
        assert store.load()["companyName"] == "B"

    @pytest.mark.asyncio
    async def test_flush_writes_pending_save(self, backend, clock):
        """Test flush persists a pending save immediately."""
        store = DraftStore(backend, key="draft", debounce_seconds=60, clock=clock)
        store.save({"companyName": "ACME"})
        assert store.pending is True

        await store.flush()

        assert backend.writes == 1
        assert store.pending is False

    @pytest.mark.asyncio
    async def test_clear_cancels_pending_save(self, store, backend):
        """Test clear drops a scheduled write."""
        store.save({"companyName": "ACME"})
        store.clear()

        await asyncio.sleep(0.05)

        assert backend.writes == 0


class TestStorageFailures:
    """Tests that storage errors never escape."""

    def test_broken_backend_degrades_silently(self, clock):
        """Test every operation swallows backend errors."""
        store = DraftStore(BrokenBackend(), key="draft", clock=clock)

        assert store.save_now({"companyName": "ACME"}) is False
        assert store.load() is None
        assert store.exists() is False
        store.clear()

    def test_errors_logged_only_when_reporting(self, clock, caplog):
        """Test report_errors=False keeps failures out of the logs."""
        quiet = DraftStore(BrokenBackend(), key="draft", clock=clock, report_errors=False)
        quiet.load()
        assert "quota exceeded" not in caplog.text

        loud = DraftStore(BrokenBackend(), key="draft", clock=clock)
        loud.load()
        assert "quota exceeded" in caplog.text


class TestJsonFileBackend:
    """Tests for the file backend."""

    def test_set_get_delete(self, tmp_path):
        """Test values persist as files and can be removed."""
        backend = JsonFileBackend(tmp_path / "drafts")
        backend.set("account-form-draft:abc", '{"a": 1}')

        assert backend.get("account-form-draft:abc") == '{"a": 1}'
        assert len(list((tmp_path / "drafts").glob("*.json"))) == 1

        backend.delete("account-form-draft:abc")
        assert backend.get("account-form-draft:abc") is None
        backend.delete("account-form-draft:abc")

    def test_store_over_file_backend(self, tmp_path, clock):
        """Test a draft survives a new store instance on the same directory."""
        backend = JsonFileBackend(tmp_path)
        DraftStore(backend, key="draft", clock=clock).save_now({"city": "Lyon"})

        draft = DraftStore(backend, key="draft", clock=clock).load()
        assert draft["city"] == "Lyon"


class TestSignificantData:
    """Tests for the auto-save trigger condition."""

    def test_blank_record_is_not_significant(self):
        assert has_significant_data({}) is False
        assert has_significant_data({"companyName": "   ", "cgvAccepted": True}) is False

    def test_any_non_blank_string_is_significant(self):
        assert has_significant_data({"companyName": "", "city": "Paris"}) is True
