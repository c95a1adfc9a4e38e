"""Resource tree nodes: the root, page instances and the dispatch that chains them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from portofino.exceptions import InvalidOperationError

if TYPE_CHECKING:
    from portofino.dispatcher.resolver import ResourceResolver
    from portofino.filesystem.page_xml import Layout, Page
    from portofino.filesystem.store import ResourceLocation
    from portofino.pageactions.base import PageAction

logger = logging.getLogger(__name__)


class Resource:
    """A node of the resource tree backed by a directory."""

    def __init__(self, location: ResourceLocation, parent: Resource | None = None) -> None:
        self.location = location
        self._parent = parent

    @property
    def parent(self) -> Resource | None:
        return self._parent

    def set_parent(self, parent: Resource | None) -> None:
        self._parent = parent

    @property
    def name(self) -> str:
        return self.location.name

    @property
    def path(self) -> str:
        parent_path = self._parent.path if self._parent is not None else ""
        return f"{parent_path}/{self.name}"


class Root(Resource):
    """The top of the tree. Its path is empty and it has no parent.

    Applications may register subclasses (see ``RootRegistry``); they are
    built with the same ``(location, resolver)`` arguments.
    """

    def __init__(self, location: ResourceLocation, resolver: ResourceResolver) -> None:
        super().__init__(location)
        self.resolver = resolver

    @property
    def parent(self) -> Resource | None:
        return None

    def set_parent(self, parent: Resource | None) -> None:
        raise InvalidOperationError("Cannot set the parent of the root")

    @property
    def path(self) -> str:
        return ""


class PageInstance(Resource):
    """A page directory bound to its page, configuration and action for one request."""

    def __init__(
        self,
        location: ResourceLocation,
        page: Page,
        parent: Resource,
        action_class: type[PageAction] | None = None,
    ) -> None:
        super().__init__(location, parent)
        self.page = page
        self.action_class = action_class
        self.action: PageAction | None = None
        self.configuration: Any | None = None

    @property
    def layout(self) -> Layout | None:
        return self.page.layout

    @property
    def parent_page_instance(self) -> PageInstance | None:
        return self.parent if isinstance(self.parent, PageInstance) else None

    def __repr__(self) -> str:
        return f"PageInstance({self.path!r}, action={self.action_class!r})"


@dataclass(frozen=True)
class Dispatch:
    """Result of resolving one request path.

    ``resources`` starts with the root and continues with one page instance
    per resolved segment; ``extra_path`` holds the segments left over for the
    last page's own sub-routes.
    """

    original_path: str
    rewritten_path: str
    resources: tuple[Resource, ...]
    extra_path: tuple[str, ...] = field(default_factory=tuple)

    @property
    def root(self) -> Resource:
        return self.resources[0]

    @property
    def page_instances(self) -> list[PageInstance]:
        return [r for r in self.resources if isinstance(r, PageInstance)]

    @property
    def last_resource(self) -> Resource:
        return self.resources[-1]

    @property
    def last_page_instance(self) -> PageInstance | None:
        instances = self.page_instances
        return instances[-1] if instances else None

    @property
    def resolved_path(self) -> str:
        """The part of the path consumed by page instances."""
        return self.last_resource.path
