"""Tests for OutcomeLog — bounded newest-first log."""

import pytest

from punchclock.domain.log_store import OutcomeLog
from punchclock.domain.models import Intent, OutcomeKind, OutcomeLogEntry

from tests.fakes import MemoryStorage


def entry(n, kind=OutcomeKind.SUCCESS):
    return OutcomeLogEntry(timestamp=f"2026-01-01T09:{n:02d}:00", kind=kind, detail=f"entry {n}")


class TestOutcomeLog:
    def test_newest_first(self):
        log = OutcomeLog(10)
        log.append(entry(1))
        log.append(entry(2))
        assert [e.detail for e in log.entries()] == ["entry 2", "entry 1"]

    def test_eleventh_entry_evicts_oldest(self):
        log = OutcomeLog(10)
        for n in range(1, 12):
            log.append(entry(n))
        assert len(log) == 10
        details = [e.detail for e in log.entries()]
        assert details[0] == "entry 11"
        assert "entry 1" not in details

    def test_entries_is_a_copy(self):
        log = OutcomeLog(3)
        log.append(entry(1))
        log.entries().clear()
        assert len(log) == 1

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            OutcomeLog(0)

    def test_persisted_and_reloaded(self):
        storage = MemoryStorage()
        log = OutcomeLog(5, storage=storage, key="logs")
        log.append(OutcomeLogEntry(timestamp="t", kind=OutcomeKind.FAILURE, detail="x", intent=Intent.CHECK_OUT))
        assert storage.data["logs"][0]["intent"] == "checkout"

        again = OutcomeLog(5, storage=storage, key="logs")
        assert again.entries()[0].intent is Intent.CHECK_OUT
        assert again.entries()[0].kind is OutcomeKind.FAILURE

    def test_reload_respects_smaller_capacity(self):
        storage = MemoryStorage({"logs": [entry(n).to_dict() for n in range(8)]})
        assert len(OutcomeLog(3, storage=storage)) == 3

    def test_bad_entries_skipped(self):
        storage = MemoryStorage({"logs": [{"kind": "bogus"}, entry(1).to_dict(), "junk"]})
        log = OutcomeLog(5, storage=storage)
        assert [e.detail for e in log.entries()] == ["entry 1"]

    def test_storage_failure_keeps_memory_copy(self):
        storage = MemoryStorage(fail=True)
        log = OutcomeLog(5, storage=storage)
        log.append(entry(1))
        assert len(log) == 1


class TestOutcomeLogEntry:
    def test_round_trip_without_intent(self):
        e = OutcomeLogEntry.now(OutcomeKind.INFO, "hello")
        assert OutcomeLogEntry.from_dict(e.to_dict()) == e
        assert e.to_dict()["intent"] is None
