"""HTTP routes for event intake and operator approvals.

The orchestrator is synchronous (SQLite, httpx, Anthropic SDK), so every
call is dispatched with ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from leadflow.domain.errors import (
    ActionAlreadyResolvedError,
    ActionNotFoundError,
    ExternalToolError,
    PersistenceError,
    StepExecutionError,
)
from leadflow.domain.types import ApprovalStatus
from leadflow.engine.orchestrator import Orchestrator

logger = structlog.get_logger()

router = APIRouter()

_ERROR_STATUS = {"validation": 422, "in_flight": 409, "persistence": 503}


class EventRequest(BaseModel):
    """Body of ``POST /events``."""

    type: str = Field(description="Event type, e.g. 'missed_call'")
    payload: dict[str, Any] = Field(default_factory=dict)
    event_id: str | None = Field(default=None, description="Idempotency key")


class ResolveRequest(BaseModel):
    """Body of the approve/reject endpoints."""

    notes: str | None = None
    resolved_by: str = "operator"


def _orchestrator(request: Request) -> Orchestrator:
    orchestrator: Orchestrator | None = request.app.state.services.get("orchestrator")
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")
    return orchestrator


@router.post("/events")
async def post_event(body: EventRequest, request: Request) -> JSONResponse:
    """Accept an inbound event and process it.

    Returns 200 with the handling result (including replays and failed
    plans), 422 for invalid events, 409 when the same event id is still in
    flight, and 503 on persistence failures.
    """
    orchestrator = _orchestrator(request)
    result = await asyncio.to_thread(
        orchestrator.handle_event, body.type, body.payload, body.event_id
    )
    code = _ERROR_STATUS.get(result.error_kind or "", 200)
    return JSONResponse(content=result.model_dump(mode="json"), status_code=code)


@router.get("/events")
async def list_events(
    request: Request, limit: int = Query(default=50, ge=1, le=500)
) -> list[dict[str, Any]]:
    """Return the most recent events, newest first."""
    store = request.app.state.services["store"]
    try:
        events = await asyncio.to_thread(store.list_events, limit)
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return [event.model_dump(mode="json") for event in events]


@router.get("/actions")
async def list_actions(
    request: Request, status: ApprovalStatus | None = ApprovalStatus.PENDING
) -> list[dict[str, Any]]:
    """Return pending actions, filtered by ``status`` (default ``pending``)."""
    orchestrator = _orchestrator(request)
    try:
        actions = await asyncio.to_thread(orchestrator.list_pending_actions, status)
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return [action.model_dump(mode="json") for action in actions]


async def _resolve(request: Request, action_id: int, body: ResolveRequest, approve: bool) -> Any:
    orchestrator = _orchestrator(request)
    handler = orchestrator.approve_action if approve else orchestrator.reject_action
    try:
        result = await asyncio.to_thread(handler, action_id, body.notes, body.resolved_by)
    except ActionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (ActionAlreadyResolvedError, StepExecutionError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except (ExternalToolError, PersistenceError) as exc:
        logger.error("action_resolution_failed", action_id=action_id, error=str(exc))
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return result.model_dump(mode="json")


@router.post("/actions/{action_id}/approve")
async def approve_action(
    action_id: int, request: Request, body: ResolveRequest | None = None
) -> dict[str, Any]:
    """Approve a pending action and execute its stored payload."""
    return await _resolve(request, action_id, body or ResolveRequest(), approve=True)


@router.post("/actions/{action_id}/reject")
async def reject_action(
    action_id: int, request: Request, body: ResolveRequest | None = None
) -> dict[str, Any]:
    """Reject a pending action without executing it."""
    return await _resolve(request, action_id, body or ResolveRequest(), approve=False)
