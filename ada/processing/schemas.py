"""Structured outputs the generative model must produce.

The JSON schema of each model is handed to the model backend for constrained
decoding, and every response is validated against the same model.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ToolName = Literal[
    "createEvent",
    "createReminder",
    "createChecklist",
    "scanAndExtract",
    "dailyBrief",
    "inboxToPlan",
]


class _Generable(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GeneratedAction(_Generable):
    tool: ToolName = Field(description="The tool to invoke")
    title: str = Field(description="Title or name for the action")
    date: Optional[str] = Field(default=None, description="Date if applicable, ISO 8601 (YYYY-MM-DD)")
    time: Optional[str] = Field(default=None, description="Start time if applicable (HH:mm)")
    end_time: Optional[str] = Field(default=None, alias="endTime", description="End time if applicable (HH:mm)")
    location: Optional[str] = Field(default=None, description="Location if applicable")
    notes: Optional[str] = Field(default=None, description="Additional notes or details")
    priority: Optional[str] = Field(default=None, description="Priority for reminders: low, normal or high")
    list_items: Optional[list[str]] = Field(default=None, alias="listItems", description="List of items for checklists")
    requires_confirmation: bool = Field(
        alias="requiresConfirmation",
        description="Whether this action needs user confirmation before executing",
    )


class GeneratedPlan(_Generable):
    intent: str = Field(description="A concise description of the user's overall intent")
    actions: list[GeneratedAction] = Field(description="Actions to execute, in order")
    dates: list[str] = Field(default_factory=list, description="Extracted date references")
    times: list[str] = Field(default_factory=list, description="Extracted time references")
    locations: list[str] = Field(default_factory=list, description="Extracted location references")
    people: list[str] = Field(default_factory=list, description="Extracted people references")
    amounts: list[str] = Field(default_factory=list, description="Extracted amounts")
    # Plain string on purpose: anything outside the enum is classified fail-closed.
    risk_level: str = Field(
        alias="riskLevel",
        description="Risk level of the plan",
        json_schema_extra={"enum": ["none", "needs_confirm", "sensitive"]},
    )
    summary: str = Field(description="Brief summary of what will happen when this plan executes")


class ExtractedTask(_Generable):
    title: str = Field(description="The task description")
    due_date: Optional[str] = Field(default=None, alias="dueDate", description="Due date if mentioned")
    priority: Literal["low", "normal", "high", "urgent"] = Field(default="normal", description="Priority level")
    assignee: Optional[str] = Field(default=None, description="Person assigned if mentioned")


class ExtractedContent(_Generable):
    document_type: Literal["notes", "bill", "flyer", "schedule", "receipt", "other"] = Field(
        alias="documentType", description="The type of document scanned"
    )
    tasks: list[ExtractedTask] = Field(default_factory=list, description="Extracted tasks or action items")
    dates: list[str] = Field(default_factory=list, description="Extracted date references")
    contacts: list[str] = Field(default_factory=list, description="Extracted contact information")
    amounts: list[str] = Field(default_factory=list, description="Key amounts or numbers found")
    clean_document: str = Field(alias="cleanDocument", description="Clean, reformatted version of the document")
    summary: str = Field(description="One-line summary of the scanned content")


class BriefEvent(_Generable):
    title: str = Field(description="Event title")
    time: str = Field(description="Event time")
    location: Optional[str] = Field(default=None, description="Event location if any")


class DailyBriefOutput(_Generable):
    greeting: str = Field(description="Greeting appropriate for the time of day")
    summary: str = Field(description="Summary of today's events and tasks")
    top_priorities: list[str] = Field(
        alias="topPriorities", min_length=3, max_length=3, description="Exactly three top priorities for today"
    )
    upcoming_events: list[BriefEvent] = Field(
        default_factory=list, alias="upcomingEvents", description="Upcoming events for today"
    )
    pending_reminders: list[str] = Field(
        default_factory=list, alias="pendingReminders", description="Pending reminders due today or overdue"
    )
