"""Template selection endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from portofino.api.deps import get_template_resolver
from portofino.pageactions.templates import TemplateResolver
from portofino.schemas.page import TemplateOption, TemplateOptionsResponse

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("", response_model=TemplateOptionsResponse)
async def list_templates(
    templates: Annotated[TemplateResolver, Depends(get_template_resolver)],
) -> TemplateOptionsResponse:
    """List the templates of the active skin."""
    provider = templates.template_options()
    return TemplateOptionsResponse(
        skin=templates.skin,
        default=templates.default_template,
        options=[
            TemplateOption(value=value, label=label)
            for value, label in provider.get_options(0).items()
        ],
    )
