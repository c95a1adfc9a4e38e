"""Admin API endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from portofino.api.deps import get_page_service
from portofino.schemas.admin import CacheClearResponse
from portofino.services.page_service import PageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.delete("/cache", response_model=CacheClearResponse)
async def clear_caches(
    page_service: Annotated[PageService, Depends(get_page_service)],
) -> CacheClearResponse:
    """Drop every cached page and configuration; they are reloaded on next access."""
    pages = page_service.page_cache.invalidate_all()
    configurations = page_service.clear_configuration_cache()
    logger.info("Cleared %d cached pages and %d cached configurations", pages, configurations)
    return CacheClearResponse(pages=pages, configurations=configurations)
