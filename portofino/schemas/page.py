"""Page dispatch request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from portofino.filesystem.page_xml import NavigationRoot


class PageSummary(BaseModel):
    """One resolved page of a dispatch chain."""

    id: str | None = None
    name: str
    path: str
    title: str | None = None
    description: str | None = None
    navigation_root: NavigationRoot
    action: str
    configured: bool = False


class PortletResponse(BaseModel):
    """A page placed in a layout container."""

    id: str
    path: str
    order: int


class DispatchResponse(BaseModel):
    """Result of resolving a page path."""

    path: str
    resolved_path: str
    extra_path: list[str]
    pages: list[PageSummary]
    template: str
    return_to_parent_target: str | None = None
    portlets: dict[str, list[PortletResponse]]


class PageUpdate(BaseModel):
    """Request to update a page's settings."""

    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    navigation_root: NavigationRoot = NavigationRoot.INHERIT
    template: str | None = Field(default=None, max_length=500)
    detail_template: str | None = Field(default=None, max_length=500)
    apply_template_recursively: bool = False
    script: str | None = Field(default=None, max_length=500_000)


class TemplateOption(BaseModel):
    value: str
    label: str | None = None


class TemplateOptionsResponse(BaseModel):
    """Templates available on the active skin."""

    skin: str
    default: str
    options: list[TemplateOption]
