"""Risk classification for generated plans."""

RISK_MAP = {
    "none": "none",
    "sensitive": "sensitive",
}


def classify_risk(generated_risk: str) -> str:
    """Map the model's risk string onto a plan risk level.

    Fails closed: anything not recognized needs confirmation.
    """
    return RISK_MAP.get(generated_risk, "needsConfirm")


def can_auto_execute(risk_level: str) -> bool:
    return risk_level == "none"
