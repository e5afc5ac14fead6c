"""FastAPI REST API for Ada."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ada.errors import ConversationBusy, GenerationError, InvalidTransition, PlanNotFound
from ada.processing.lifecycle import Outcome
from ada.services.container import Services, build_services
from ada.storage.db import get_session

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Ada API",
    description="REST API for Ada, the plan lifecycle engine",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_services: Optional[Services] = None


def get_services() -> Services:
    """One service graph per process. No consent prompt: standing grants only."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


# --- Pydantic request/response models ---

class SubmitRequest(BaseModel):
    text: str = Field(min_length=1)
    conversation_id: Optional[UUID] = None


class ReceiptResponse(BaseModel):
    tool: str
    description: str
    summary: str
    success: bool
    external_id: Optional[str] = None

    model_config = {"from_attributes": True}


class OutcomeResponse(BaseModel):
    reply: str
    conversation_id: Optional[UUID] = None
    plan_id: Optional[UUID] = None
    intent: Optional[str] = None
    status: Optional[str] = None
    risk_level: Optional[str] = None
    receipts: list[ReceiptResponse] = []
    saved: bool = True

    model_config = {"from_attributes": True}


class ActionResponse(BaseModel):
    tool: str
    parameters: dict[str, str] = {}
    requires_confirmation: bool = False


class PlanResponse(BaseModel):
    id: UUID
    intent: str
    summary: Optional[str] = None
    risk_level: str
    status: str
    actions: list[ActionResponse] = []
    created_at: Optional[datetime] = None
    executed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LedgerEntryResponse(BaseModel):
    id: UUID
    timestamp: datetime
    input_hash: str
    input_preview: str
    actions: list[str] = []
    results: list[str] = []
    plan_id: Optional[UUID] = None

    model_config = {"from_attributes": True}


def _outcome_response(outcome: Outcome) -> OutcomeResponse:
    return OutcomeResponse.model_validate(outcome)


# --- Endpoints ---

@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/plans", response_model=OutcomeResponse)
async def submit_plan(request: SubmitRequest, services: Services = Depends(get_services)):
    """Turn input into a plan; low-risk plans run immediately."""
    async with get_session() as session:
        try:
            outcome = await services.controller.submit(session, request.text, request.conversation_id)
        except ConversationBusy as e:
            raise HTTPException(status_code=409, detail=str(e))
        except GenerationError as e:
            raise HTTPException(status_code=422, detail=str(e))

    if outcome.error:
        # The assistant reply is already stored; report why no plan came out.
        status = 503 if outcome.model_unavailable else 502
        raise HTTPException(status_code=status, detail=outcome.reply)
    return _outcome_response(outcome)


@app.get("/plans/pending", response_model=list[PlanResponse])
async def list_pending(services: Services = Depends(get_services)):
    """Plans awaiting confirmation, oldest first."""
    async with get_session() as session:
        plans = await services.controller.pending_plans(session)
        return [
            PlanResponse(
                id=p.id,
                intent=p.intent,
                summary=p.summary,
                risk_level=p.risk_level,
                status=p.status,
                actions=[ActionResponse(**a.model_dump(exclude={"id"})) for a in p.get_actions()],
                created_at=p.created_at,
                executed_at=p.executed_at,
            )
            for p in plans
        ]


@app.post("/plans/{plan_id}/approve", response_model=OutcomeResponse)
async def approve_plan(plan_id: UUID, services: Services = Depends(get_services)):
    async with get_session() as session:
        try:
            outcome = await services.controller.approve(session, plan_id)
        except PlanNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        except InvalidTransition as e:
            raise HTTPException(status_code=409, detail=str(e))
    return _outcome_response(outcome)


@app.post("/plans/{plan_id}/dismiss", response_model=OutcomeResponse)
async def dismiss_plan(plan_id: UUID, services: Services = Depends(get_services)):
    async with get_session() as session:
        try:
            outcome = await services.controller.dismiss(session, plan_id)
        except PlanNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        except InvalidTransition as e:
            raise HTTPException(status_code=409, detail=str(e))
    return _outcome_response(outcome)


@app.get("/ledger", response_model=list[LedgerEntryResponse])
async def list_ledger(limit: int = Query(50, le=500)):
    """Ledger entries, newest first."""
    from ada.storage.ledger import list_entries

    async with get_session() as session:
        return await list_entries(session, limit=limit)


@app.get("/ledger/export")
async def export_ledger():
    """The whole ledger as the JSON export document."""
    from ada.storage.ledger import export_json

    async with get_session() as session:
        data = await export_json(session)
    return Response(content=data, media_type="application/json")
