"""Admin request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel


class CacheClearResponse(BaseModel):
    """Number of entries dropped from each definition cache."""

    pages: int
    configurations: int
