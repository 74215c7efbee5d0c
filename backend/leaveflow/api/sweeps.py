# ruff: noqa: TC001
"""Manual triggers for the periodic sweeps the worker runs."""

from __future__ import annotations

from fastapi import APIRouter

from leaveflow.api.deps import HrDep
from leaveflow.db import SessionDep
from leaveflow.schemas.sweep import DocumentSweepResponse, StaleApprovalSweepResponse
from leaveflow.services.scheduler import run_document_sweep, run_stale_approval_sweep

sweeps_router = APIRouter(prefix="/sweeps", tags=["sweeps"])


@sweeps_router.post("/documents", response_model=DocumentSweepResponse)
async def trigger_document_sweep(session: SessionDep, actor: HrDep) -> DocumentSweepResponse:
    """Run the document-deadline sweep now (HR only)."""
    result = await run_document_sweep(session)
    return DocumentSweepResponse(
        processed=result.processed,
        auto_rejected=result.auto_rejected,
        reminders_sent=result.reminders_sent,
        urgent_reminders_sent=result.urgent_reminders_sent,
        errors=result.errors,
    )


@sweeps_router.post("/stale-approvals", response_model=StaleApprovalSweepResponse)
async def trigger_stale_approval_sweep(session: SessionDep, actor: HrDep) -> StaleApprovalSweepResponse:
    """Run the stale-approval escalation sweep now (HR only)."""
    result = await run_stale_approval_sweep(session)
    return StaleApprovalSweepResponse(
        processed=result.processed,
        escalated=result.escalated,
        unresolved=result.unresolved,
        skipped=result.skipped,
        errors=result.errors,
    )
