import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from leaveflow.config import get_settings
from leaveflow.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

ComponentState = Literal["up", "down"]


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    app: str
    version: str
    environment: str
    database: ComponentState


async def _probe_database(session: SessionDep) -> ComponentState:
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database probe failed")
        return "down"
    return "up"


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Liveness plus database reachability; never fails the request itself."""
    settings = get_settings()
    database = await _probe_database(session)
    return HealthResponse(
        status="ok" if database == "up" else "degraded",
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        database=database,
    )
