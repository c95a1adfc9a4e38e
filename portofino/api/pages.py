"""Page dispatch API endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, HTTPException

from portofino.api.deps import get_dispatcher, get_request_context
from portofino.dispatcher.context import RequestContext
from portofino.dispatcher.dispatcher import Dispatcher
from portofino.exceptions import ResourceNotFoundError
from portofino.pageactions.base import EditPage
from portofino.schemas.page import DispatchResponse, PageSummary, PageUpdate, PortletResponse

if TYPE_CHECKING:
    from portofino.dispatcher.resources import Dispatch, PageInstance
    from portofino.pageactions.base import PageAction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pages", tags=["pages"])


def _summary(instance: PageInstance) -> PageSummary:
    page = instance.page
    action_class = instance.action_class
    return PageSummary(
        id=page.id,
        name=instance.name,
        path=instance.path,
        title=page.title,
        description=page.description,
        navigation_root=page.actual_navigation_root,
        action=action_class.__name__ if action_class is not None else "",
        configured=instance.configuration is not None,
    )


def _current_action(dispatch: Dispatch, path: str) -> tuple[PageInstance, PageAction]:
    instance = dispatch.last_page_instance
    if instance is None or instance.action is None:
        raise ResourceNotFoundError(path)
    return instance, instance.action


def _dispatch_response(dispatch: Dispatch, action: PageAction) -> DispatchResponse:
    action.setup_return_to_parent_target()
    portlets = action.setup_portlets()
    return DispatchResponse(
        path=dispatch.rewritten_path,
        resolved_path=dispatch.resolved_path,
        extra_path=list(dispatch.extra_path),
        pages=[_summary(instance) for instance in dispatch.page_instances],
        template=action.page_template(),
        return_to_parent_target=action.return_to_parent_target,
        portlets={
            container: [PortletResponse(id=p.id, path=p.path, order=p.order) for p in placed]
            for container, placed in portlets.items()
        },
    )


@router.get("/{path:path}", response_model=DispatchResponse)
async def get_page_endpoint(
    path: str,
    dispatcher: Annotated[Dispatcher, Depends(get_dispatcher)],
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> DispatchResponse:
    """Resolve a page path into its chain of pages.

    Trailing segments that do not name a page are returned as ``extra_path``.
    """
    dispatch = dispatcher.resolve(path, context)
    _, action = _current_action(dispatch, path)
    return _dispatch_response(dispatch, action)


@router.put("/{path:path}", response_model=PageSummary)
async def update_page_endpoint(
    path: str,
    body: PageUpdate,
    dispatcher: Annotated[Dispatcher, Depends(get_dispatcher)],
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> PageSummary:
    """Update the settings of the page at ``path``."""
    dispatch = dispatcher.resolve(path, context)
    if dispatch.extra_path:
        raise ResourceNotFoundError(path)
    instance, action = _current_action(dispatch, path)
    saved = action.update_page_configuration(
        EditPage(
            title=body.title,
            description=body.description,
            navigation_root=body.navigation_root,
            template=body.template,
            detail_template=body.detail_template,
            apply_template_recursively=body.apply_template_recursively,
            script=body.script,
        )
    )
    if not saved:
        raise HTTPException(status_code=500, detail="Storage operation failed")
    return _summary(instance)
