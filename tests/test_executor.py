"""Tests for plan execution."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ada.errors import InvalidTransition
from ada.processing.executor import ReceiptView, render_checklist
from ada.services.backends import MemoryBackend
from ada.storage.models import LedgerEntry
from tests.conftest import make_executor, make_permissions, make_plan, make_session


def _ledger_entries(session) -> list[LedgerEntry]:
    return [c.args[0] for c in session.add.call_args_list if isinstance(c.args[0], LedgerEntry)]


class TestExecute:
    @pytest.mark.asyncio
    async def test_one_receipt_per_action_in_order(self):
        session = make_session()
        backend = MemoryBackend()
        plan = make_plan([
            ("createEvent", {"title": "Dentist", "date": "2026-03-10", "time": "15:00"}),
            ("createReminder", {"title": "Bring insurance card", "date": "2026-03-10"}),
            ("createChecklist", {"title": "Packing", "items": "toothbrush\nfloss"}),
            ("dailyBrief", {"title": "Brief"}),
        ])

        receipts = await make_executor(backend).run(session, plan)

        assert [r.action_tool for r in receipts] == ["createEvent", "createReminder", "createChecklist", "dailyBrief"]
        assert [r.position for r in receipts] == [0, 1, 2, 3]
        assert all(r.success for r in receipts)
        assert plan.receipts == receipts
        assert plan.status == "completed"
        assert plan.executed_at is not None
        assert len(backend.events) == 1
        assert len(backend.reminders) == 1

    @pytest.mark.asyncio
    async def test_successful_actions_create_items(self):
        session = make_session()
        plan = make_plan([
            ("createEvent", {"title": "Dentist", "date": "2026-03-10", "time": "15:00", "location": "Clinic"}),
            ("createReminder", {"title": "Pay rent", "date": "2026-04-01", "priority": "high"}),
            ("createChecklist", {"title": "Groceries", "items": "milk"}),
        ])

        await make_executor().run(session, plan)

        kinds = {item.kind: item for item in plan.items}
        assert set(kinds) == {"event", "reminder", "checklist"}
        assert kinds["event"].location == "Clinic"
        assert kinds["event"].due_date.hour == 15
        assert kinds["reminder"].priority == "high"
        assert kinds["reminder"].due_date.day == 1
        assert all(item.source_text == plan.raw_input for item in plan.items)

    @pytest.mark.asyncio
    async def test_calendar_denied_fails_plan_but_runs_rest(self):
        """Dentist example: calendar refused, reminder still created."""
        session = make_session()
        backend = MemoryBackend()
        executor = make_executor(backend, make_permissions(calendar="deny"))
        plan = make_plan([
            ("createEvent", {"title": "Dentist", "date": "2026-03-10", "time": "15:00"}),
            ("createReminder", {"title": "Bring insurance card"}),
        ])

        receipts = await executor.run(session, plan)

        assert receipts[0].success is False
        assert receipts[0].result_summary == "Calendar access not granted"
        assert receipts[0].external_id is None
        assert receipts[1].success is True
        assert plan.status == "failed"
        assert backend.events == {}
        assert len(backend.reminders) == 1
        assert [i.kind for i in plan.items] == ["reminder"]

    @pytest.mark.asyncio
    async def test_reminders_denied(self):
        session = make_session()
        executor = make_executor(permissions=make_permissions(reminders="deny"))
        plan = make_plan([("createReminder", {"title": "x"})])

        receipts = await executor.run(session, plan)

        assert receipts[0].result_summary == "Reminders access not granted"
        assert plan.status == "failed"

    @pytest.mark.asyncio
    async def test_backend_error_becomes_failed_receipt(self):
        session = make_session()
        executor = make_executor(MemoryBackend(fail_with="calendar store locked"))
        plan = make_plan()

        receipts = await executor.run(session, plan)

        assert receipts[0].success is False
        assert "calendar store locked" in receipts[0].result_summary
        assert plan.status == "failed"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_failed_receipt(self):
        session = make_session()
        executor = make_executor()
        executor.calendar.create_event = AsyncMock(side_effect=RuntimeError("boom"))
        plan = make_plan([
            ("createEvent", {"title": "Dentist", "date": "2026-03-10"}),
            ("inboxToPlan", {"title": "later"}),
        ])

        receipts = await executor.run(session, plan)

        assert receipts[0].result_summary == "Error: boom"
        assert receipts[1].success is True
        assert plan.status == "failed"

    @pytest.mark.asyncio
    async def test_event_without_time_defaults_to_nine(self):
        session = make_session()
        backend = MemoryBackend()
        plan = make_plan([("createEvent", {"title": "Haircut", "date": "2026-03-12"})])

        await make_executor(backend).run(session, plan)

        event = next(iter(backend.events.values()))
        assert (event.start.hour, event.start.minute) == (9, 0)

    @pytest.mark.asyncio
    async def test_acknowledgement_receipts(self):
        session = make_session()
        plan = make_plan([("scanAndExtract", {}), ("dailyBrief", {}), ("inboxToPlan", {})])

        receipts = await make_executor().run(session, plan)

        assert [(r.action_description, r.result_summary) for r in receipts] == [
            ("Scan & Extract", "Content queued for scanning"),
            ("Daily Brief", "Brief generated"),
            ("Inbox to Plan", "Plan created from inbox"),
        ]

    @pytest.mark.asyncio
    async def test_empty_plan_completes(self):
        session = make_session()
        plan = make_plan([])

        receipts = await make_executor().run(session, plan)

        assert receipts == []
        assert plan.status == "completed"


class TestLedger:
    @pytest.mark.asyncio
    async def test_exactly_one_ledger_entry(self):
        session = make_session()
        plan = make_plan([
            ("createEvent", {"title": "Dentist", "date": "2026-03-10", "time": "15:00"}),
            ("createChecklist", {"title": "Bring", "items": "card"}),
        ])

        receipts = await make_executor().run(session, plan)

        entries = _ledger_entries(session)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.plan_id == plan.id
        assert entry.actions == ["createEvent: Dentist", "createChecklist: Bring"]
        assert entry.results == [r.result_summary for r in receipts]
        assert entry.input_preview == plan.raw_input

    @pytest.mark.asyncio
    async def test_run_does_not_commit(self):
        session = make_session()
        await make_executor().run(session, make_plan())
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_execute_commits(self):
        session = make_session()
        await make_executor().execute(session, make_plan())
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_persistence_failure_keeps_external_effects(self):
        from sqlalchemy.exc import OperationalError

        session = make_session()
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("db down"))
        backend = MemoryBackend()
        plan = make_plan()

        receipts = await make_executor(backend).execute(session, plan)

        assert receipts[0].success is True
        assert len(backend.events) == 1
        session.rollback.assert_awaited_once()


class TestStatusGuard:
    @pytest.mark.asyncio
    async def test_terminal_plan_cannot_run_again(self):
        session = make_session()
        executor = make_executor()
        plan = make_plan()
        await executor.run(session, plan)

        with pytest.raises(InvalidTransition):
            await executor.run(session, plan)
        assert len(plan.receipts) == 1


class TestChecklist:
    def test_render_numbered(self):
        assert render_checklist("Groceries", ["milk", "eggs"]) == (
            "Checklist 'Groceries' created with 2 items:\n[1] milk\n[2] eggs"
        )

    def test_render_empty(self):
        assert render_checklist("Empty", []) == "Checklist 'Empty' created with 0 items"

    @pytest.mark.asyncio
    async def test_blank_lines_ignored(self):
        session = make_session()
        plan = make_plan([("createChecklist", {"title": "Trip", "items": "passport\n\n  \ncharger\n"})])

        receipts = await make_executor().run(session, plan)

        assert receipts[0].result_summary.startswith("Checklist 'Trip' created with 2 items")


class TestReceiptView:
    def test_copies_fields(self):
        receipt = MagicMock(action_tool="createEvent", action_description="Dentist",
                            result_summary="ok", success=True, external_id="abc")
        view = ReceiptView.of(receipt)
        assert view == ReceiptView("createEvent", "Dentist", "ok", True, "abc")
