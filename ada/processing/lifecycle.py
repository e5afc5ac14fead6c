"""Plan lifecycle: input to plan, plan to inbox or execution, inbox to execution or dismissal."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ada.errors import (
    ConversationBusy,
    GenerationError,
    InvalidTransition,
    ModelUnavailable,
    PlanAlreadyClaimed,
)
from ada.processing.executor import PlanExecutor, ReceiptView
from ada.processing.generator import PlanGenerator
from ada.processing.risk import can_auto_execute, classify_risk
from ada.processing.schemas import GeneratedAction, GeneratedPlan
from ada.storage import ledger
from ada.storage.conversations import (
    append_message,
    find_conversation_for_plan,
    load_or_create_conversation,
    maybe_set_title,
    start_conversation,
)
from ada.storage.db import save_best_effort
from ada.storage.models import Action, Conversation, Entities, Plan, Receipt
from ada.storage.plans import claim_plan, get_plan, list_pending_plans

logger = logging.getLogger(__name__)

DISMISSED_RESULT = "Dismissed by user"


@dataclass
class Outcome:
    """What happened to one input or one inbox decision.

    Holds plain copies so it stays readable even if the final save failed.
    """

    reply: str
    conversation_id: Optional[UUID] = None
    plan_id: Optional[UUID] = None
    intent: Optional[str] = None
    status: Optional[str] = None
    risk_level: Optional[str] = None
    receipts: list[ReceiptView] = field(default_factory=list)
    error: Optional[str] = None
    model_unavailable: bool = False
    saved: bool = True

    @property
    def succeeded(self) -> bool:
        return self.error is None


def _action_parameters(action: GeneratedAction) -> dict[str, str]:
    params = {
        "title": action.title,
        "date": action.date,
        "time": action.time,
        "end_time": action.end_time,
        "location": action.location,
        "notes": action.notes,
        "priority": action.priority,
        "items": "\n".join(action.list_items) if action.list_items else None,
    }
    return {k: v for k, v in params.items() if v}


def build_plan(raw_input: str, generated: GeneratedPlan) -> Plan:
    """Turn a generated plan into a draft Plan with a classified risk level."""
    actions = [
        Action(
            tool=a.tool,
            parameters=_action_parameters(a),
            requires_confirmation=a.requires_confirmation,
        )
        for a in generated.actions
    ]
    entities = Entities(
        dates=generated.dates,
        times=generated.times,
        locations=generated.locations,
        people=generated.people,
        amounts=generated.amounts,
    )
    return Plan(
        intent=generated.intent,
        raw_input=raw_input,
        summary=generated.summary,
        entities=entities.model_dump(),
        actions=[a.model_dump(mode="json") for a in actions],
        risk_level=classify_risk(generated.risk_level),
    )


def _describe_action(action: Action) -> str:
    params = action.parameters
    line = f"- {action.title or action.tool} ({action.tool})"
    if params.get("date"):
        line += f" on {params['date']}"
        if params.get("time"):
            line += f" at {params['time']}"
    if params.get("location"):
        line += f", {params['location']}"
    if action.requires_confirmation:
        line += " [needs confirmation]"
    return line


def render_plan(plan: Plan, receipts: Optional[list[Receipt]] = None) -> str:
    """Plain-text reply describing a plan and, once run, its receipts."""
    lines = [plan.intent, ""]
    lines.extend(_describe_action(a) for a in plan.get_actions())
    if plan.summary:
        lines.extend(["", plan.summary])

    if plan.status == "awaitingConfirmation":
        lines.extend(["", f"This plan needs your confirmation. Approve or dismiss plan {str(plan.id)[:8]}."])
    elif receipts is not None:
        lines.append("")
        for r in receipts:
            mark = "ok" if r.success else "failed"
            lines.append(f"[{mark}] {r.result_summary}")
    return "\n".join(lines).strip()


def is_storable_text(text: str) -> bool:
    """False for strings with lone surrogates, which no UTF-8 store accepts."""
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def failure_reply(error: Exception) -> str:
    if isinstance(error, ModelUnavailable):
        return f"I can't plan anything right now: the language model is unavailable ({error})."
    return f"I couldn't turn that into a plan ({error}). Try rephrasing it."


class PlanLifecycleController:
    """Drives plans from raw input to a terminal status.

    One controller instance owns the in-flight sets, so it must be shared by
    everything that submits input or decides on plans in a process.
    """

    def __init__(self, generator: PlanGenerator, executor: PlanExecutor):
        self.generator = generator
        self.executor = executor
        self._in_flight: set[UUID] = set()
        self._plans_in_flight: set[UUID] = set()

    def is_processing(self, conversation_id: UUID) -> bool:
        return conversation_id in self._in_flight

    @contextmanager
    def _owning(self, plan_id: UUID, target: str):
        if plan_id in self._plans_in_flight:
            raise PlanAlreadyClaimed(target)
        self._plans_in_flight.add(plan_id)
        try:
            yield
        finally:
            self._plans_in_flight.discard(plan_id)

    async def start_new_conversation(self, session: AsyncSession) -> Conversation:
        conversation = await start_conversation(session)
        await save_best_effort(session)
        return conversation

    async def submit(
        self,
        session: AsyncSession,
        text: str,
        conversation_id: Optional[UUID] = None,
    ) -> Outcome:
        """Generate a plan for ``text`` and execute or park it by risk.

        Raises ConversationBusy if the conversation already has input in flight,
        and GenerationError if ``text`` cannot be stored as UTF-8.
        """
        if not is_storable_text(text):
            raise GenerationError("Input contains characters that are not valid text")

        if conversation_id is not None and conversation_id in self._in_flight:
            raise ConversationBusy(f"Conversation {conversation_id} is still processing")

        conversation = await load_or_create_conversation(session, conversation_id)
        if conversation.id in self._in_flight:
            raise ConversationBusy(f"Conversation {conversation.id} is still processing")

        self._in_flight.add(conversation.id)
        try:
            return await self._process(session, conversation, text)
        finally:
            self._in_flight.discard(conversation.id)

    async def _process(self, session: AsyncSession, conversation: Conversation, text: str) -> Outcome:
        append_message(conversation, "user", text)

        try:
            generated = await self.generator.generate_plan(text)
        except (ModelUnavailable, GenerationError) as e:
            logger.warning("No plan for input in conversation %s: %s", str(conversation.id)[:8], e)
            reply = failure_reply(e)
            append_message(conversation, "assistant", reply)
            saved = await save_best_effort(session)
            return Outcome(
                reply=reply,
                conversation_id=conversation.id,
                error=str(e),
                model_unavailable=isinstance(e, ModelUnavailable),
                saved=saved,
            )

        plan = build_plan(text, generated)
        session.add(plan)
        logger.info(
            "Plan %s drafted: %d actions, risk %s",
            str(plan.id)[:8],
            len(plan.actions),
            plan.risk_level,
        )

        receipts: Optional[list[Receipt]] = None
        if can_auto_execute(plan.risk_level):
            receipts = await self.executor.run(session, plan)
        else:
            plan.transition_to("awaitingConfirmation")
            logger.info("Plan %s parked for confirmation", str(plan.id)[:8])

        reply = render_plan(plan, receipts)
        append_message(conversation, "assistant", reply, plan_id=plan.id)
        maybe_set_title(conversation, plan.intent)

        outcome = _outcome(plan, reply, conversation.id, receipts)
        outcome.saved = await save_best_effort(session)
        return outcome

    async def pending_plans(self, session: AsyncSession) -> list[Plan]:
        return await list_pending_plans(session)

    async def approve(self, session: AsyncSession, plan_id: UUID) -> Outcome:
        """Execute a plan that is awaiting confirmation.

        Raises PlanAlreadyClaimed if another approval or dismissal got the plan first.
        """
        with self._owning(plan_id, "executing"):
            plan = await get_plan(session, plan_id)
            if plan.status != "awaitingConfirmation":
                raise InvalidTransition(plan.status, "executing")
            await claim_plan(session, plan.id, "executing")
            return await self._run_approved(session, plan)

    async def _run_approved(self, session: AsyncSession, plan: Plan) -> Outcome:
        receipts = await self.executor.run(session, plan)
        reply = render_plan(plan, receipts)
        conversation = await find_conversation_for_plan(session, plan.id)
        if conversation is not None:
            append_message(conversation, "assistant", reply, plan_id=plan.id)

        outcome = _outcome(plan, reply, conversation.id if conversation else None, receipts)
        outcome.saved = await save_best_effort(session)
        return outcome

    async def dismiss(self, session: AsyncSession, plan_id: UUID) -> Outcome:
        """Reject a plan that is awaiting confirmation. Nothing is executed."""
        with self._owning(plan_id, "failed"):
            plan = await get_plan(session, plan_id)
            if plan.status != "awaitingConfirmation":
                raise InvalidTransition(plan.status, "failed")
            await claim_plan(session, plan.id, "failed")
            return await self._record_dismissal(session, plan)

    async def _record_dismissal(self, session: AsyncSession, plan: Plan) -> Outcome:
        plan.transition_to("failed")
        await ledger.record(
            session,
            input_text=plan.raw_input,
            actions=[a.describe() for a in plan.get_actions()],
            results=[DISMISSED_RESULT],
            plan_id=plan.id,
            flush=False,
        )
        reply = f"Dismissed: {plan.intent}"
        conversation = await find_conversation_for_plan(session, plan.id)
        if conversation is not None:
            append_message(conversation, "assistant", reply, plan_id=plan.id)
        logger.info("Plan %s dismissed", str(plan.id)[:8])

        outcome = _outcome(plan, reply, conversation.id if conversation else None, [])
        outcome.saved = await save_best_effort(session)
        return outcome


def _outcome(
    plan: Plan,
    reply: str,
    conversation_id: Optional[UUID],
    receipts: Optional[list[Receipt]],
) -> Outcome:
    return Outcome(
        reply=reply,
        conversation_id=conversation_id,
        plan_id=plan.id,
        intent=plan.intent,
        status=plan.status,
        risk_level=plan.risk_level,
        receipts=[ReceiptView.of(r) for r in receipts or []],
    )
