"""Shared API dependencies: settings, page service, dispatcher, request context."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from portofino.config import Settings
from portofino.dispatcher.context import RequestContext
from portofino.dispatcher.dispatcher import Dispatcher
from portofino.pageactions.scripting import ScriptingLoader
from portofino.pageactions.templates import TemplateResolver
from portofino.services.page_service import PageService


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_page_service(request: Request) -> PageService:
    """Get the page service from app state."""
    page_service: PageService = request.app.state.page_service
    return page_service


def get_dispatcher(request: Request) -> Dispatcher:
    """Get the dispatcher from app state."""
    dispatcher: Dispatcher = request.app.state.dispatcher
    return dispatcher


def get_template_resolver(request: Request) -> TemplateResolver:
    """Get the template resolver for the active skin from app state."""
    templates: TemplateResolver = request.app.state.templates
    return templates


def get_scripting(request: Request) -> ScriptingLoader:
    scripting: ScriptingLoader = request.app.state.scripting
    return scripting


def get_request_context(
    page_service: Annotated[PageService, Depends(get_page_service)],
    templates: Annotated[TemplateResolver, Depends(get_template_resolver)],
    scripting: Annotated[ScriptingLoader, Depends(get_scripting)],
) -> RequestContext:
    """Fresh context for one dispatch."""
    return RequestContext(page_service=page_service, templates=templates, scripting=scripting)
