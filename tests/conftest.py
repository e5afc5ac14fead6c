"""Shared test fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ada.llm.fixture import FixtureModel
from ada.processing.executor import PlanExecutor
from ada.processing.generator import PlanGenerator
from ada.processing.lifecycle import PlanLifecycleController
from ada.processing.schemas import GeneratedAction, GeneratedPlan
from ada.services.backends import MemoryBackend
from ada.services.calendar import CalendarService, ReminderService
from ada.services.permissions import PermissionsManager
from ada.storage.models import Action, Plan


def make_session():
    """A mock AsyncSession: add() is sync, everything else is awaited."""
    session = MagicMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    session.execute.return_value.rowcount = 1
    session.get = AsyncMock()
    return session


def make_generated_action(**overrides) -> GeneratedAction:
    defaults = {
        "tool": "createEvent",
        "title": "Dentist",
        "date": "2026-03-10",
        "time": "15:00",
        "requires_confirmation": False,
    }
    defaults.update(overrides)
    return GeneratedAction(**defaults)


def make_generated_plan(**overrides) -> GeneratedPlan:
    defaults = {
        "intent": "Book dentist appointment",
        "actions": [make_generated_action()],
        "dates": ["2026-03-10"],
        "times": ["15:00"],
        "risk_level": "none",
        "summary": "Adds the dentist to your calendar.",
    }
    defaults.update(overrides)
    return GeneratedPlan(**defaults)


def make_plan(actions=None, **overrides) -> Plan:
    """A draft Plan. ``actions`` is a list of (tool, parameters) pairs."""
    if actions is None:
        actions = [("createEvent", {"title": "Dentist", "date": "2026-03-10", "time": "15:00"})]
    defaults = {
        "intent": "Book dentist appointment",
        "raw_input": "Dentist on March 10 at 3pm",
        "summary": "Adds the dentist to your calendar.",
        "actions": [Action(tool=t, parameters=p).model_dump(mode="json") for t, p in actions],
        "risk_level": "none",
    }
    defaults.update(overrides)
    return Plan(**defaults)


def make_permissions(**standing) -> PermissionsManager:
    """Permissions with standing answers; defaults to allowing calendar and reminders."""
    answers = {"calendar": "allow", "reminders": "allow"}
    answers.update(standing)
    return PermissionsManager(standing=answers)


def make_executor(backend=None, permissions=None) -> PlanExecutor:
    backend = backend or MemoryBackend()
    permissions = permissions or make_permissions()
    return PlanExecutor(CalendarService(backend, permissions), ReminderService(backend, permissions))


@pytest.fixture
def session():
    return make_session()


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def model():
    return FixtureModel()


@pytest.fixture
def controller(model, backend):
    return PlanLifecycleController(PlanGenerator(model, timeout=5), make_executor(backend))
