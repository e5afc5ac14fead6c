"""Plan execution: runs each action, one receipt per action, one ledger entry per plan."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ada.errors import AdaError, CapabilityDenied
from ada.services.calendar import CalendarService, ReminderService
from ada.storage import ledger
from ada.storage.db import save_best_effort
from ada.storage.models import Action, Item, Plan, Receipt

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENTS = {
    "scanAndExtract": ("Scan & Extract", "Content queued for scanning"),
    "dailyBrief": ("Daily Brief", "Brief generated"),
    "inboxToPlan": ("Inbox to Plan", "Plan created from inbox"),
}

ITEM_PRIORITY_FOR_REMINDER = {"high": "high", "low": "low"}


@dataclass(frozen=True)
class ReceiptView:
    """Plain copy of a receipt, safe to read after the session is gone."""

    tool: str
    description: str
    summary: str
    success: bool
    external_id: Optional[str] = None

    @classmethod
    def of(cls, receipt: Receipt) -> "ReceiptView":
        return cls(
            tool=receipt.action_tool,
            description=receipt.action_description,
            summary=receipt.result_summary,
            success=receipt.success,
            external_id=receipt.external_id,
        )


def checklist_entries(action: Action) -> list[str]:
    raw = action.parameters.get("items", "")
    return [line.strip() for line in raw.splitlines() if line.strip()]


def render_checklist(title: str, entries: list[str]) -> str:
    summary = f"Checklist '{title}' created with {len(entries)} items"
    if entries:
        numbered = "\n".join(f"[{i}] {entry}" for i, entry in enumerate(entries, start=1))
        summary += f":\n{numbered}"
    return summary


class PlanExecutor:
    """Executes plans against the calendar and reminder services."""

    def __init__(self, calendar: CalendarService, reminders: ReminderService):
        self.calendar = calendar
        self.reminders = reminders

    async def execute(self, session: AsyncSession, plan: Plan) -> list[Receipt]:
        """Run the plan and persist it with its receipts and ledger entry."""
        receipts = await self.run(session, plan)
        await save_best_effort(session)
        return receipts

    async def run(self, session: AsyncSession, plan: Plan) -> list[Receipt]:
        """Run every action in order without committing.

        Moves the plan to executing, then to completed if every receipt
        succeeded and failed otherwise, and adds one ledger entry.
        """
        plan.transition_to("executing")
        actions = plan.get_actions()
        logger.info("Executing plan %s: %d actions", str(plan.id)[:8], len(actions))

        receipts: list[Receipt] = []
        for position, action in enumerate(actions):
            receipt = await self._execute_action(plan, action)
            receipt.position = position
            plan.receipts.append(receipt)
            receipts.append(receipt)

        plan.transition_to("completed" if all(r.success for r in receipts) else "failed")
        plan.executed_at = datetime.now(timezone.utc)

        await ledger.record(
            session,
            input_text=plan.raw_input,
            actions=[a.describe() for a in actions],
            results=[r.result_summary for r in receipts],
            plan_id=plan.id,
            flush=False,
        )

        logger.info(
            "Plan %s %s: %d/%d actions succeeded",
            str(plan.id)[:8],
            plan.status,
            sum(1 for r in receipts if r.success),
            len(receipts),
        )
        return receipts

    async def _execute_action(self, plan: Plan, action: Action) -> Receipt:
        try:
            if action.tool == "createEvent":
                return await self._create_event(plan, action)
            if action.tool == "createReminder":
                return await self._create_reminder(plan, action)
            if action.tool == "createChecklist":
                return self._create_checklist(plan, action)
            if action.tool in ACKNOWLEDGEMENTS:
                description, summary = ACKNOWLEDGEMENTS[action.tool]
                return _receipt(action, description, summary, success=True)
            return _receipt(action, action.title or action.tool, f"Unknown tool: {action.tool}", success=False)
        except CapabilityDenied as e:
            return _receipt(action, action.title or action.tool, str(e), success=False)
        except AdaError as e:
            logger.warning("Action %s failed: %s", action.describe(), e)
            return _receipt(action, action.title or action.tool, str(e), success=False)
        except Exception as e:
            logger.error("Action %s raised unexpectedly: %s", action.describe(), e, exc_info=True)
            return _receipt(action, action.title or action.tool, f"Error: {e}", success=False)

    async def _create_event(self, plan: Plan, action: Action) -> Receipt:
        params = action.parameters
        description = params.get("title") or "Create event"
        if not await self.calendar.request_access():
            return _receipt(action, description, "Calendar access not granted", success=False)

        created = await self.calendar.create_event(
            title=params.get("title", ""),
            date_string=params.get("date"),
            start_time=params.get("time") or "09:00",
            end_time=params.get("end_time"),
            location=params.get("location"),
            notes=params.get("notes"),
        )
        plan.items.append(Item(
            title=params.get("title", ""),
            detail=params.get("notes", ""),
            kind="event",
            due_date=created.start,
            location=params.get("location"),
            people=plan.get_entities().people,
            source_text=plan.raw_input,
        ))
        return _receipt(action, description, created.summary, success=True, external_id=created.external_id)

    async def _create_reminder(self, plan: Plan, action: Action) -> Receipt:
        params = action.parameters
        description = params.get("title") or "Create reminder"
        if not await self.reminders.request_access():
            return _receipt(action, description, "Reminders access not granted", success=False)

        created = await self.reminders.create_reminder(
            title=params.get("title", ""),
            due_date_string=params.get("date"),
            priority=params.get("priority"),
            notes=params.get("notes"),
        )
        due = (
            datetime(created.due.year, created.due.month, created.due.day).astimezone()
            if created.due else None
        )
        plan.items.append(Item(
            title=params.get("title", ""),
            detail=params.get("notes", ""),
            kind="reminder",
            priority=ITEM_PRIORITY_FOR_REMINDER.get(params.get("priority", ""), "normal"),
            due_date=due,
            people=plan.get_entities().people,
            source_text=plan.raw_input,
        ))
        return _receipt(action, description, created.summary, success=True, external_id=created.external_id)

    def _create_checklist(self, plan: Plan, action: Action) -> Receipt:
        title = action.parameters.get("title") or "Checklist"
        entries = checklist_entries(action)
        summary = render_checklist(title, entries)
        plan.items.append(Item(
            title=title,
            detail=summary,
            kind="checklist",
            tags=["checklist"],
            source_text=plan.raw_input,
        ))
        return _receipt(action, title, summary, success=True)


def _receipt(
    action: Action,
    description: str,
    summary: str,
    success: bool,
    external_id: Optional[str] = None,
) -> Receipt:
    return Receipt(
        action_tool=action.tool,
        action_description=description,
        result_summary=summary,
        success=success,
        external_id=external_id,
    )
