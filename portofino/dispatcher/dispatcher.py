"""Resolution of request paths into chains of configured page instances."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from portofino.dispatcher.resolver import DescriptorResourceResolver
from portofino.dispatcher.resources import Dispatch, PageInstance, Resource, Root
from portofino.exceptions import ResourceNotFoundError
from portofino.filesystem.store import DETAIL, PAGE_FILE

if TYPE_CHECKING:
    from portofino.dispatcher.context import RequestContext
    from portofino.dispatcher.registry import ActionRegistry, RootRegistry
    from portofino.dispatcher.resolver import ResourceResolver
    from portofino.filesystem.store import ResourceLocation
    from portofino.services.page_service import PageService

logger = logging.getLogger(__name__)


def resolve_root(
    location: ResourceLocation,
    resolver: ResourceResolver | None = None,
    registry: RootRegistry | None = None,
) -> Root:
    """Build the root resource for ``location``.

    The directory may declare a registered root type; an unknown declaration
    is logged and a plain ``Root`` is used instead.

    Raises ResourceNotFoundError if ``location`` is not an existing directory.
    """
    if not location.is_dir():
        raise ResourceNotFoundError(str(location))
    if resolver is None:
        resolver = DescriptorResourceResolver()
    declared = resolver.resolve_type(location)
    if declared is None:
        return Root(location, resolver)
    root_class = registry.get(declared) if registry is not None else None
    if root_class is None:
        logger.warning(
            "Root type %r declared by %s is not registered, using the default root",
            declared,
            location,
        )
        return Root(location, resolver)
    logger.debug("Using root type %s for %s", root_class.__name__, location)
    return root_class(location, resolver)


def split_path(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


class Dispatcher:
    """Walks the page directory tree below ``root`` one path segment at a time."""

    def __init__(
        self, root: Root, page_service: PageService, action_registry: ActionRegistry
    ) -> None:
        self.root = root
        self.page_service = page_service
        self.action_registry = action_registry

    def resolve(self, path: str, context: RequestContext | None = None) -> Dispatch:
        """Resolve ``path`` as far as page directories allow.

        Segments that do not name a page (missing directory, no ``page.xml``,
        the reserved ``detail`` directory, hidden entries or an unregistered
        action type) end the walk; they and everything after them are returned
        as ``extra_path``. Raises PageNotActiveError if a page on the way
        cannot be loaded, including a cached page whose file has since been
        removed.
        """
        segments = split_path(path)
        resources: list[Resource] = [self.root]
        parent: Resource = self.root
        consumed = 0
        for segment in segments:
            instance = self._resolve_segment(parent, segment, context)
            if instance is None:
                break
            resources.append(instance)
            parent = instance
            consumed += 1

        dispatch = Dispatch(
            original_path=path,
            rewritten_path="/" + "/".join(segments),
            resources=tuple(resources),
            extra_path=tuple(segments[consumed:]),
        )
        if context is not None:
            context.dispatch = dispatch
        logger.debug(
            "Resolved %s to %d page(s), extra path %s",
            path,
            len(resources) - 1,
            dispatch.extra_path,
        )
        return dispatch

    def _resolve_segment(
        self, parent: Resource, segment: str, context: RequestContext | None
    ) -> PageInstance | None:
        if segment == DETAIL or segment.startswith("."):
            return None
        directory = parent.location.child(segment)
        if not directory.child(PAGE_FILE).is_file() and not self.page_service.is_page_cached(
            directory
        ):
            # A page deleted since it was cached is reported by its cache entry.
            return None

        page = self.page_service.get_page(directory)
        action_class = self.action_registry.get_action_class(page.action_type)
        if action_class is None:
            logger.warning(
                "Page %s declares unknown action type %r", directory, page.action_type
            )
            return None

        instance = PageInstance(directory, page, parent, action_class)
        action = action_class()
        self.page_service.configure_page_action(
            action, instance, self.action_registry.get_configuration_class(action_class)
        )
        if context is not None:
            action.prepare(instance, context)
        return instance
