"""Exceptions raised by the Ada core."""


class AdaError(Exception):
    """Base class for every error the core raises on purpose."""


class ModelUnavailable(AdaError):
    """The generative model cannot run here (not installed, not reachable, no key)."""


class GenerationError(AdaError):
    """The model ran but produced nothing usable: malformed, off-schema or timed out."""


class CapabilityDenied(AdaError):
    """The user refused access to a gated capability such as the calendar."""

    def __init__(self, capability: str):
        super().__init__(f"{capability.capitalize()} access not granted")
        self.capability = capability


class AdapterError(AdaError):
    """An external system rejected a write."""


class InvalidTransition(AdaError):
    """A plan was asked to move to a status its current status cannot reach."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move plan from {current} to {target}")
        self.current = current
        self.target = target


class ConversationBusy(AdaError):
    """A second input arrived while the conversation is still generating."""


class PlanNotFound(AdaError):
    pass


class PlanAlreadyClaimed(InvalidTransition):
    """Another approval or dismissal took the plan first."""

    def __init__(self, target: str):
        AdaError.__init__(self, "Plan is already being approved or dismissed elsewhere")
        self.current = None
        self.target = target
