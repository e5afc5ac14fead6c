"""SQLAlchemy ORM models for Ada."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ada.errors import InvalidTransition

ITEM_KINDS = ("task", "event", "note", "checklist", "reminder")
ITEM_STATUSES = ("pending", "inProgress", "completed", "cancelled")
ITEM_PRIORITIES = ("low", "normal", "high", "urgent")
TOOL_KINDS = (
    "createEvent",
    "createReminder",
    "createChecklist",
    "scanAndExtract",
    "dailyBrief",
    "inboxToPlan",
)
RISK_LEVELS = ("none", "needsConfirm", "sensitive")
PLAN_STATUSES = ("draft", "awaitingConfirmation", "executing", "completed", "failed")
MESSAGE_ROLES = ("user", "assistant", "system")

# Allowed plan status moves. completed and failed are terminal.
PLAN_TRANSITIONS = {
    "draft": {"awaitingConfirmation", "executing"},
    "awaitingConfirmation": {"executing", "failed"},
    "executing": {"completed", "failed"},
    "completed": set(),
    "failed": set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_in(column: str, values: tuple[str, ...]) -> CheckConstraint:
    quoted = ",".join(f"'{v}'" for v in values)
    return CheckConstraint(f"{column} IN ({quoted})")


class Base(DeclarativeBase):
    pass


class ConstructDefaults:
    """Fill ids, timestamps and simple defaults when the object is built.

    Column defaults only fire on flush, but the executor reads plan ids,
    statuses and timestamps long before anything is flushed.
    """

    __construct_defaults__: dict = {}

    def __init__(self, **kwargs):
        kwargs.setdefault("id", uuid.uuid4())
        for key, value in self.__construct_defaults__.items():
            kwargs.setdefault(key, value() if callable(value) else value)
        super().__init__(**kwargs)


# --- Embedded value types (stored as JSON on the plan) ---


class Action(BaseModel):
    """One tool invocation requested by a plan."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    tool: str
    parameters: dict[str, str] = Field(default_factory=dict)
    requires_confirmation: bool = False

    @property
    def title(self) -> str:
        return self.parameters.get("title", "")

    def describe(self) -> str:
        return f"{self.tool}: {self.title}"


class Entities(BaseModel):
    dates: list[str] = Field(default_factory=list)
    times: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    people: list[str] = Field(default_factory=list)
    amounts: list[str] = Field(default_factory=list)


# --- Tables ---


class Plan(ConstructDefaults, Base):
    __tablename__ = "plans"
    __construct_defaults__ = {
        "status": "draft",
        "risk_level": "needsConfirm",
        "actions": list,
        "entities": lambda: Entities().model_dump(),
        "created_at": _utcnow,
        "items": list,
        "receipts": list,
    }

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    intent: Mapped[str] = mapped_column(Text, nullable=False)
    raw_input: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    entities: Mapped[dict] = mapped_column(JSON, nullable=False)
    actions: Mapped[list[dict]] = mapped_column(JSON, nullable=False)
    risk_level: Mapped[str] = mapped_column(String, _check_in("risk_level", RISK_LEVELS), nullable=False)
    status: Mapped[str] = mapped_column(String, _check_in("status", PLAN_STATUSES), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    executed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    items: Mapped[list["Item"]] = relationship(back_populates="plan", cascade="all, delete-orphan")
    receipts: Mapped[list["Receipt"]] = relationship(
        back_populates="plan", cascade="all, delete-orphan", order_by="Receipt.position"
    )

    __table_args__ = (
        Index("idx_plans_status", "status"),
        Index("idx_plans_created", "created_at"),
    )

    def get_actions(self) -> list[Action]:
        return [Action.model_validate(a) for a in self.actions or []]

    def get_entities(self) -> Entities:
        return Entities.model_validate(self.entities or {})

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")

    def transition_to(self, target: str) -> None:
        """Move to ``target`` or raise InvalidTransition."""
        if target not in PLAN_TRANSITIONS.get(self.status, set()):
            raise InvalidTransition(self.status, target)
        self.status = target


class Item(ConstructDefaults, Base):
    __tablename__ = "items"
    __construct_defaults__ = {
        "detail": "",
        "kind": "task",
        "status": "pending",
        "priority": "normal",
        "people": list,
        "tags": list,
        "created_at": _utcnow,
        "updated_at": _utcnow,
    }

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    detail: Mapped[str] = mapped_column(Text, default="")
    kind: Mapped[str] = mapped_column(String, _check_in("kind", ITEM_KINDS), default="task")
    status: Mapped[str] = mapped_column(String, _check_in("status", ITEM_STATUSES), default="pending")
    priority: Mapped[str] = mapped_column(String, _check_in("priority", ITEM_PRIORITIES), default="normal")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    location: Mapped[Optional[str]] = mapped_column(Text)
    people: Mapped[list[str]] = mapped_column(JSON, default=list)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    source_text: Mapped[Optional[str]] = mapped_column(Text)
    plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("plans.id", ondelete="CASCADE"))

    plan: Mapped[Optional["Plan"]] = relationship(back_populates="items")

    __table_args__ = (
        Index("idx_items_status", "status"),
        Index("idx_items_kind", "kind"),
        Index("idx_items_plan", "plan_id"),
    )

    def set_status(self, status: str) -> None:
        """Change status, keeping completed_at set exactly when completed."""
        if status not in ITEM_STATUSES:
            raise ValueError(f"Unknown item status: {status}")
        now = _utcnow()
        self.status = status
        self.completed_at = now if status == "completed" else None
        self.updated_at = now


class Receipt(ConstructDefaults, Base):
    __tablename__ = "receipts"
    __construct_defaults__ = {"created_at": _utcnow, "position": 0}

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("plans.id", ondelete="CASCADE"))
    position: Mapped[int] = mapped_column(Integer, default=0)
    action_tool: Mapped[str] = mapped_column(Text, nullable=False)
    action_description: Mapped[str] = mapped_column(Text, nullable=False)
    result_summary: Mapped[str] = mapped_column(Text, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    external_id: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    plan: Mapped[Optional["Plan"]] = relationship(back_populates="receipts")

    __table_args__ = (
        Index("idx_receipts_plan", "plan_id"),
    )


class LedgerEntry(ConstructDefaults, Base):
    __tablename__ = "ledger_entries"
    __construct_defaults__ = {"timestamp": _utcnow}

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    input_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    input_preview: Mapped[str] = mapped_column(String(200), nullable=False)
    actions: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    results: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    # Plain column, not a foreign key: the ledger outlives deleted plans.
    plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)

    __table_args__ = (
        Index("idx_ledger_timestamp", "timestamp"),
        Index("idx_ledger_hash", "input_hash"),
    )


class Conversation(ConstructDefaults, Base):
    __tablename__ = "conversations"
    __construct_defaults__ = {
        "title": "New Conversation",
        "created_at": _utcnow,
        "updated_at": _utcnow,
        "messages": list,
    }

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, default="New Conversation")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    messages: Mapped[list["Message"]] = relationship(
        back_populates="conversation", cascade="all, delete-orphan", order_by="Message.position"
    )

    __table_args__ = (
        Index("idx_conversations_updated", "updated_at"),
    )


class Message(ConstructDefaults, Base):
    __tablename__ = "messages"
    __construct_defaults__ = {"created_at": _utcnow}

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("conversations.id", ondelete="CASCADE")
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[str] = mapped_column(String, _check_in("role", MESSAGE_ROLES), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)

    conversation: Mapped[Optional["Conversation"]] = relationship(back_populates="messages")

    __table_args__ = (
        Index("idx_messages_conversation", "conversation_id", "position"),
    )


# Receipts and ledger entries are write-once.


@event.listens_for(Receipt, "before_update")
def _receipt_is_immutable(mapper, connection, target):
    raise ValueError(f"Receipt {target.id} is immutable")


@event.listens_for(LedgerEntry, "before_update")
def _ledger_entry_is_immutable(mapper, connection, target):
    raise ValueError(f"Ledger entry {target.id} is immutable")


@event.listens_for(LedgerEntry, "before_delete")
def _ledger_entry_is_permanent(mapper, connection, target):
    raise ValueError(f"Ledger entry {target.id} cannot be deleted")
