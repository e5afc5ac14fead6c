"""Tests for API response models and endpoint error mapping."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from ada.api.routes import (
    LedgerEntryResponse,
    OutcomeResponse,
    PlanResponse,
    app,
    get_services,
)
from ada.errors import (
    ConversationBusy,
    GenerationError,
    InvalidTransition,
    PlanAlreadyClaimed,
    PlanNotFound,
)
from ada.processing.executor import ReceiptView
from ada.processing.lifecycle import Outcome
from tests.conftest import make_session


@asynccontextmanager
async def _fake_session():
    yield make_session()


@pytest.fixture
def controller():
    return MagicMock()


@pytest.fixture
def client(controller):
    services = MagicMock()
    services.controller = controller
    app.dependency_overrides[get_services] = lambda: services
    with patch("ada.api.routes.get_session", _fake_session):
        yield TestClient(app)
    app.dependency_overrides.clear()


class TestResponseModels:
    def test_outcome_from_dataclass(self):
        outcome = Outcome(
            reply="done",
            plan_id=uuid4(),
            status="completed",
            risk_level="none",
            receipts=[ReceiptView("createEvent", "Dentist", "Event created", True, "ext-1")],
        )
        resp = OutcomeResponse.model_validate(outcome)
        assert resp.status == "completed"
        assert resp.receipts[0].external_id == "ext-1"

    def test_plan_optional_fields_default(self):
        resp = PlanResponse(id=uuid4(), intent="x", risk_level="needsConfirm", status="awaitingConfirmation")
        assert resp.summary is None
        assert resp.actions == []
        assert resp.executed_at is None

    def test_ledger_entry(self):
        resp = LedgerEntryResponse(
            id=uuid4(),
            timestamp=datetime(2026, 3, 1, tzinfo=timezone.utc),
            input_hash="a" * 64,
            input_preview="Dentist",
        )
        assert resp.actions == []
        assert resp.plan_id is None


class TestEndpoints:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_submit(self, client, controller):
        controller.submit = AsyncMock(return_value=Outcome(reply="ok", status="completed"))
        resp = client.post("/plans", json={"text": "Dentist at 3"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

    def test_submit_empty_text_rejected(self, client):
        assert client.post("/plans", json={"text": ""}).status_code == 422

    def test_submit_busy_is_conflict(self, client, controller):
        controller.submit = AsyncMock(side_effect=ConversationBusy("busy"))
        assert client.post("/plans", json={"text": "x"}).status_code == 409

    @pytest.mark.parametrize("unavailable,status", [(True, 503), (False, 502)])
    def test_generation_failures(self, client, controller, unavailable, status):
        controller.submit = AsyncMock(return_value=Outcome(
            reply="I can't plan anything right now", error="x", model_unavailable=unavailable,
        ))
        resp = client.post("/plans", json={"text": "x"})
        assert resp.status_code == status
        assert "plan" in resp.json()["detail"]

    def test_approve_missing_plan(self, client, controller):
        controller.approve = AsyncMock(side_effect=PlanNotFound("nope"))
        assert client.post(f"/plans/{uuid4()}/approve").status_code == 404

    def test_approve_wrong_status(self, client, controller):
        controller.approve = AsyncMock(side_effect=InvalidTransition("completed", "executing"))
        assert client.post(f"/plans/{uuid4()}/approve").status_code == 409

    def test_approve_claimed_elsewhere_is_conflict(self, client, controller):
        controller.approve = AsyncMock(side_effect=PlanAlreadyClaimed("executing"))
        resp = client.post(f"/plans/{uuid4()}/approve")
        assert resp.status_code == 409
        assert "already being approved" in resp.json()["detail"]

    def test_submit_unstorable_text_is_unprocessable(self, client, controller):
        controller.submit = AsyncMock(side_effect=GenerationError("Input contains characters that are not valid text"))
        assert client.post("/plans", json={"text": "x"}).status_code == 422

    def test_dismiss(self, client, controller):
        controller.dismiss = AsyncMock(return_value=Outcome(reply="Dismissed: x", status="failed"))
        resp = client.post(f"/plans/{uuid4()}/dismiss")
        assert resp.status_code == 200
        assert resp.json()["reply"] == "Dismissed: x"

    def test_ledger_export(self, client):
        with patch("ada.storage.ledger.export_json", AsyncMock(return_value="[]")):
            resp = client.get("/ledger/export")
        assert resp.status_code == 200
        assert resp.json() == []
