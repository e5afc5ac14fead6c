"""Capability consent for calendar, reminders and camera."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

logger = logging.getLogger(__name__)

CAPABILITIES = ("calendar", "reminders", "camera")

ConsentPrompt = Callable[[str], Awaitable[bool]]


class PermissionsManager:
    """Grants capabilities, asking the user at most once per process.

    Each capability has its own lock, so a pending calendar prompt does not
    hold up a reminders request. Grants are remembered for the life of the
    process; refusals are not, so the user can change their mind next time.
    """

    def __init__(
        self,
        prompt: Optional[ConsentPrompt] = None,
        standing: Optional[dict[str, str]] = None,
    ):
        self._prompt = prompt
        self._standing = standing or {}
        self._granted: dict[str, bool] = {}
        self._locks = {name: asyncio.Lock() for name in CAPABILITIES}

    def is_granted(self, capability: str) -> bool:
        return self._granted.get(capability, False)

    async def request(self, capability: str) -> bool:
        if capability not in self._locks:
            raise ValueError(f"Unknown capability: {capability}")

        async with self._locks[capability]:
            if self._granted.get(capability):
                return True

            standing = self._standing.get(capability, "ask")
            if standing == "allow":
                granted = True
            elif standing == "deny" or self._prompt is None:
                granted = False
            else:
                granted = bool(await self._prompt(capability))

            if granted:
                self._granted[capability] = True
            logger.info("%s access %s", capability, "granted" if granted else "denied")
            return granted
