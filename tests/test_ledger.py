"""Tests for the audit ledger."""

import hashlib
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from ada.storage import ledger
from ada.storage.models import LedgerEntry
from tests.conftest import make_session


def _entry(minutes_ago: int, text: str = "hello") -> LedgerEntry:
    return LedgerEntry(
        timestamp=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago),
        input_hash=ledger.hash_input(text),
        input_preview=ledger.preview_input(text),
        actions=[f"createEvent: {text}"],
        results=["ok"],
    )


class TestHashing:
    def test_hash_is_sha256_hex(self):
        assert ledger.hash_input("Dentist") == hashlib.sha256(b"Dentist").hexdigest()
        assert len(ledger.hash_input("Dentist")) == 64

    def test_hash_is_deterministic(self):
        assert ledger.hash_input("same input") == ledger.hash_input("same input")
        assert ledger.hash_input("same input") != ledger.hash_input("same input.")

    def test_lone_surrogate_still_hashes(self):
        digest = ledger.hash_input("Dentist \ud800")
        assert len(digest) == 64
        assert digest != ledger.hash_input("Dentist ")

    def test_preview_is_prefix_capped_at_200(self):
        text = "x" * 150 + "y" * 150
        preview = ledger.preview_input(text)
        assert len(preview) == 200
        assert text.startswith(preview)

    def test_short_preview_is_whole_input(self):
        assert ledger.preview_input("short") == "short"


class TestRecord:
    @pytest.mark.asyncio
    async def test_record_never_stores_raw_input(self):
        session = make_session()
        text = "secret " * 50

        entry = await ledger.record(session, text, ["createReminder: x"], ["done"])

        session.add.assert_called_once_with(entry)
        session.flush.assert_awaited_once()
        assert entry.input_hash == ledger.hash_input(text)
        assert len(entry.input_preview) == 200
        assert text not in json.dumps(ledger.entry_to_export(entry))

    @pytest.mark.asyncio
    async def test_record_without_flush(self):
        session = make_session()
        await ledger.record(session, "x", [], [], flush=False)
        session.add.assert_called_once()
        session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_copies_lists(self):
        session = make_session()
        actions = ["a"]
        entry = await ledger.record(session, "x", actions, ["r"])
        actions.append("b")
        assert entry.actions == ["a"]


class TestExport:
    def test_export_is_newest_first(self):
        entries = [_entry(30, "old"), _entry(0, "new"), _entry(10, "middle")]
        data = json.loads(ledger.render_export(entries))
        assert [d["inputPreview"] for d in data] == ["new", "middle", "old"]

    def test_export_round_trips_stored_entries(self):
        entries = [_entry(45, "Pay rent"), _entry(0, "Dentist"), _entry(20, "Groceries")]
        entries[1].results = ["Event created", "Calendar access not granted"]

        data = json.loads(ledger.render_export(entries))

        expected = sorted(entries, key=lambda e: e.timestamp, reverse=True)
        assert len(data) == len(expected)
        for exported, entry in zip(data, expected):
            assert datetime.fromisoformat(exported["timestamp"]) == entry.timestamp
            assert exported["inputHash"] == entry.input_hash
            assert exported["actions"] == entry.actions
            assert exported["results"] == entry.results

    def test_export_keys(self):
        data = json.loads(ledger.render_export([_entry(0)]))
        assert set(data[0]) == {"timestamp", "inputHash", "inputPreview", "actions", "results"}
        assert data[0]["timestamp"].startswith("2026-03-01T12:00:00")

    def test_export_is_pretty_printed_with_sorted_keys(self):
        raw = ledger.render_export([_entry(0)])
        assert "\n  " in raw
        keys = list(json.loads(raw)[0])
        assert keys == sorted(keys)

    def test_empty_export(self):
        assert json.loads(ledger.render_export([])) == []

    @pytest.mark.asyncio
    async def test_export_json_reads_all_entries(self):
        session = make_session()
        result = MagicMock()
        result.scalars.return_value.all.return_value = [_entry(5), _entry(1)]
        session.execute.return_value = result

        data = json.loads(await ledger.export_json(session))
        assert len(data) == 2


class TestVerify:
    def test_matching_input(self):
        assert ledger.verify(_entry(0, "Dentist Tuesday"), "Dentist Tuesday") is True

    def test_different_input(self):
        assert ledger.verify(_entry(0, "Dentist Tuesday"), "Dentist Wednesday") is False
