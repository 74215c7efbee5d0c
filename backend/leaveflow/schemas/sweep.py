from __future__ import annotations

from pydantic import BaseModel


class DocumentSweepResponse(BaseModel):
    """Response from the document-deadline sweep trigger."""

    processed: int
    auto_rejected: int
    reminders_sent: int
    urgent_reminders_sent: int
    errors: int


class StaleApprovalSweepResponse(BaseModel):
    """Response from the stale-approval sweep trigger."""

    processed: int
    escalated: int
    unresolved: int
    skipped: int
    errors: int
