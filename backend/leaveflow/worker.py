"""Worker process for the periodic leave sweeps.

Runs two independent asyncio loops: the document-deadline sweep (hourly by
default) and the stale-approval escalation sweep (every 30 minutes).
"""

from __future__ import annotations

import asyncio
import logging

from leaveflow.config import get_settings
from leaveflow.db import session_scope

logger = logging.getLogger(__name__)


async def run_document_loop(interval_seconds: int) -> None:
    """Loop running the document-deadline sweep."""
    from leaveflow.services.scheduler import run_document_sweep

    logger.info("Document sweep loop started (every %ds)", interval_seconds)

    while True:
        try:
            async with session_scope() as session:
                result = await run_document_sweep(session)
            logger.info(
                "Document sweep complete: processed=%d auto_rejected=%d reminders=%d urgent=%d errors=%d",
                result.processed,
                result.auto_rejected,
                result.reminders_sent,
                result.urgent_reminders_sent,
                result.errors,
            )
        except Exception:
            logger.exception("Document sweep failed")

        await asyncio.sleep(interval_seconds)


async def run_stale_approval_loop(interval_seconds: int) -> None:
    """Loop running the stale-approval escalation sweep."""
    from leaveflow.services.scheduler import run_stale_approval_sweep

    logger.info("Stale-approval sweep loop started (every %ds)", interval_seconds)

    while True:
        try:
            async with session_scope() as session:
                result = await run_stale_approval_sweep(session)
            if result.unresolved:
                logger.warning("Stale-approval sweep left %d request(s) unresolved", result.unresolved)
            logger.info(
                "Stale-approval sweep complete: processed=%d escalated=%d unresolved=%d skipped=%d errors=%d",
                result.processed,
                result.escalated,
                result.unresolved,
                result.skipped,
                result.errors,
            )
        except Exception:
            logger.exception("Stale-approval sweep failed")

        await asyncio.sleep(interval_seconds)


async def run_worker() -> None:
    settings = get_settings()
    await asyncio.gather(
        run_document_loop(settings.document_sweep_interval_seconds),
        run_stale_approval_loop(settings.stale_sweep_interval_seconds),
    )


def main() -> None:
    """Entry point for the worker process."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
