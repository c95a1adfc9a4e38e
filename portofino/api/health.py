"""Health check endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from portofino.api.deps import get_dispatcher
from portofino.dispatcher.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    app_dir: str


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    dispatcher: Annotated[Dispatcher, Depends(get_dispatcher)],
) -> HealthResponse:
    """Health check endpoint for monitoring and load balancers."""
    app_dir_status = "ok"
    if not dispatcher.root.location.is_dir():
        logger.warning(
            "Health check: application directory %s is missing", dispatcher.root.location
        )
        app_dir_status = "missing"

    return HealthResponse(
        status="ok" if app_dir_status == "ok" else "degraded",
        version="0.1.0",
        app_dir=app_dir_status,
    )
