"""Processing endpoint — run one mailbox pass on demand."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from intake.application.services.intake_service import IntakeService
from intake.infrastructure.api.dependencies import get_intake_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["processing"])


@router.post("/process")
async def run_pass(intake: IntakeService = Depends(get_intake_service)):
    """Fetch and process unread intake mail now."""
    if intake.is_running:
        raise HTTPException(status_code=409, detail="A mailbox pass is already running")

    summary = await intake.run_pass()
    if summary is None:
        raise HTTPException(status_code=409, detail="A mailbox pass is already running")

    return {
        "status": "ok" if not summary.failed and not summary.errors else "partial",
        "started_at": summary.started_at.isoformat(),
        "fetched": summary.fetched,
        "processed": summary.processed,
        "skipped": summary.skipped,
        "failed": summary.failed,
        "errors": summary.errors,
    }
