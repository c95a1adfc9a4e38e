"""Per-request context handed to page actions during dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from portofino.dispatcher.resources import Dispatch
    from portofino.pageactions.scripting import ScriptingLoader
    from portofino.pageactions.templates import TemplateResolver
    from portofino.services.page_service import PageService


@dataclass
class RequestContext:
    """Collaborators of one request. ``dispatch`` is set once resolution completes."""

    page_service: PageService
    templates: TemplateResolver
    scripting: ScriptingLoader | None = None
    dispatch: Dispatch | None = None
