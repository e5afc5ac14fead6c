"""Wiring: one shared instance of each service per process."""

import logging
from dataclasses import dataclass
from typing import Optional

from ada.config import Settings, get_settings
from ada.llm.factory import build_model
from ada.processing.executor import PlanExecutor
from ada.processing.generator import PlanGenerator
from ada.processing.lifecycle import PlanLifecycleController
from ada.services.backends import CalendarBackend, IcsBackend, MemoryBackend
from ada.services.calendar import CalendarService, ReminderService
from ada.services.permissions import ConsentPrompt, PermissionsManager

logger = logging.getLogger(__name__)


@dataclass
class Services:
    permissions: PermissionsManager
    calendar: CalendarService
    reminders: ReminderService
    generator: PlanGenerator
    executor: PlanExecutor
    controller: PlanLifecycleController


def build_services(
    settings: Optional[Settings] = None,
    prompt: Optional[ConsentPrompt] = None,
    dry_run: bool = False,
    backend: Optional[CalendarBackend] = None,
) -> Services:
    """Build the service graph. ``dry_run`` swaps in the offline model and an in-memory calendar."""
    settings = settings or get_settings()
    if backend is None:
        backend = MemoryBackend() if dry_run else IcsBackend(settings.general.data_path)

    permissions = PermissionsManager(
        prompt=prompt,
        standing=settings.permissions.model_dump(),
    )
    calendar = CalendarService(backend, permissions)
    reminders = ReminderService(backend, permissions)
    generator = PlanGenerator(build_model(settings, dry_run=dry_run), timeout=settings.model.timeout_seconds)
    executor = PlanExecutor(calendar, reminders)
    logger.debug("Services built (backend %s)", type(backend).__name__)
    return Services(
        permissions=permissions,
        calendar=calendar,
        reminders=reminders,
        generator=generator,
        executor=executor,
        controller=PlanLifecycleController(generator, executor),
    )
