"""Base class for page actions: the per-request objects bound to page directories."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from portofino.exceptions import DefinitionLoadError, DefinitionSaveError
from portofino.filesystem.page_xml import NavigationRoot
from portofino.filesystem.store import DETAIL, PAGE_FILE

if TYPE_CHECKING:
    from pydantic import BaseModel

    from portofino.dispatcher.context import RequestContext
    from portofino.dispatcher.resources import Dispatch, PageInstance
    from portofino.filesystem.page_xml import Layout, Page
    from portofino.filesystem.store import ResourceLocation

logger = logging.getLogger(__name__)

DEFAULT_LAYOUT_CONTAINER = "default"


@dataclass(frozen=True, order=True)
class PortletInstance:
    """A page placed in a layout container. Sorts by ``order`` only."""

    order: int
    id: str
    path: str


@dataclass
class EditPage:
    """Editable page settings submitted by the page configuration form."""

    title: str
    description: str | None = None
    navigation_root: NavigationRoot = NavigationRoot.INHERIT
    template: str | None = None
    detail_template: str | None = None
    apply_template_recursively: bool = False
    script: str | None = None


class PageAction:
    """A page action bound to one ``PageInstance`` for one request.

    Subclasses that read a ``configuration.xml`` set ``configuration_class``
    to a ``PageActionConfiguration`` subclass.
    """

    configuration_class: ClassVar[type[BaseModel] | None] = None

    def __init__(self) -> None:
        self.page_instance: PageInstance | None = None
        self.context: RequestContext | None = None
        self.script: str | None = None
        self.return_to_parent_target: str | None = None
        self.portlets: dict[str, list[PortletInstance]] = {}

    def set_page_instance(self, page_instance: PageInstance) -> None:
        self.page_instance = page_instance
        page_instance.action = self

    def prepare(self, page_instance: PageInstance, context: RequestContext) -> None:
        """Called by the dispatcher once the instance is configured."""
        self.page_instance = page_instance
        self.context = context

    def _require_instance(self) -> PageInstance:
        if self.page_instance is None:
            msg = f"{type(self).__name__} is not bound to a page instance"
            raise RuntimeError(msg)
        return self.page_instance

    def _require_context(self) -> RequestContext:
        if self.context is None:
            msg = f"{type(self).__name__} has not been prepared with a request context"
            raise RuntimeError(msg)
        return self.context

    @property
    def page(self) -> Page:
        return self._require_instance().page

    @property
    def configuration(self) -> BaseModel | None:
        return self._require_instance().configuration

    @property
    def dispatch(self) -> Dispatch | None:
        return self.context.dispatch if self.context is not None else None

    @property
    def description(self) -> str:
        instance = self._require_instance()
        return instance.page.title or instance.name

    # Navigation

    def setup_return_to_parent_target(self) -> str | None:
        """Describe the page a "return to parent" link should lead to, if any."""
        self.return_to_parent_target = None
        dispatch = self.dispatch
        if dispatch is None:
            return None
        instances = dispatch.page_instances
        has_previous = (
            self.page.actual_navigation_root == NavigationRoot.INHERIT and len(instances) > 1
        )
        if has_previous:
            previous = instances[-2]
            has_previous = previous.page.actual_navigation_root != NavigationRoot.GHOST_ROOT
            if has_previous and previous.action is not None:
                self.return_to_parent_target = previous.action.description
        return self.return_to_parent_target

    # Layout

    def setup_portlets(self, myself: str | None = None) -> dict[str, list[PortletInstance]]:
        """Group this page and its embedded child pages by layout container."""
        instance = self._require_instance()
        myself = myself if myself is not None else instance.path
        base_path = self.dispatch.rewritten_path if self.dispatch is not None else instance.path
        base_path = base_path.rstrip("/")
        self.portlets = {}
        layout = instance.layout
        if layout is None:
            self.portlets[DEFAULT_LAYOUT_CONTAINER] = [PortletInstance(0, "p", myself)]
            return self.portlets

        container = layout.self_.container or DEFAULT_LAYOUT_CONTAINER
        self.portlets.setdefault(container, []).append(
            PortletInstance(layout.self_.actual_order, "p", myself)
        )
        for child in layout.child_pages:
            if child.container is None:
                continue
            self.portlets.setdefault(child.container, []).append(
                PortletInstance(child.actual_order, f"c{child.name}", f"{base_path}/{child.name}")
            )
        for portlets in self.portlets.values():
            portlets.sort(key=lambda p: p.order)
        return self.portlets

    def page_template(self, layout: Layout | None = None) -> str:
        if layout is None:
            layout = self.page.layout
        return self._require_context().templates.resolve_layout(layout)

    # Administration

    def save_configuration(self, configuration: BaseModel) -> bool:
        instance = self._require_instance()
        try:
            configuration_file = self._require_context().page_service.save_configuration(
                instance.location, configuration
            )
        except DefinitionSaveError:
            logger.exception("Couldn't save configuration of %s", instance.path)
            return False
        logger.info("Configuration saved to %s", configuration_file)
        return True

    def update_page_configuration(self, edit: EditPage) -> bool:
        """Apply ``edit`` to the page and save it. Returns False if saving fails.

        Raises ValueError if the title is blank.
        """
        instance = self._require_instance()
        context = self._require_context()
        title = edit.title.strip() if edit.title else ""
        if not title:
            msg = "Page title must not be empty"
            raise ValueError(msg)

        page = copy.deepcopy(instance.page)
        layout, detail_layout = page.init()
        page.title = title
        page.description = edit.description
        page.navigation_root = edit.navigation_root.value
        layout.template = edit.template
        detail_layout.template = edit.detail_template
        try:
            page_file = context.page_service.save_page(instance.location, page)
        except DefinitionSaveError:
            logger.exception("Couldn't save page %s", instance.path)
            return False
        logger.info("Page saved to %s", page_file)
        instance.page = page

        if edit.apply_template_recursively:
            self.update_template(instance.location, edit.template, edit.detail_template)
        if edit.script is not None:
            self.script = edit.script
            self.update_script()
        return True

    def update_template(
        self, directory: ResourceLocation, template: str | None, detail_template: str | None
    ) -> None:
        """Set the templates of every page below ``directory``, depth first.

        Pages in ``detail`` directories keep their templates, although their
        own descendants are updated. A page that fails to update is logged and
        skipped.
        """
        page_service = self._require_context().page_service
        for child in directory.child_directories():
            if child.name != DETAIL and child.child(PAGE_FILE).is_file():
                try:
                    page = page_service.load_page(child.child(PAGE_FILE))
                    layout, detail_layout = page.init()
                    layout.template = template
                    detail_layout.template = detail_template
                    page_service.save_page(child, page)
                except (DefinitionLoadError, DefinitionSaveError):
                    logger.warning("Could not set template of %s", child, exc_info=True)
            self.update_template(child, template, detail_template)

    # Scripting

    def prepare_script(self) -> str | None:
        instance = self._require_instance()
        scripting = self._require_context().scripting
        if scripting is None:
            return None
        try:
            self.script = scripting.read_script(instance.location)
        except OSError:
            logger.warning("Couldn't load script for page %s", instance.page.id, exc_info=True)
        return self.script

    def update_script(self) -> bool:
        """Write ``self.script`` and ask the scripting loader to pick it up."""
        instance = self._require_instance()
        scripting = self._require_context().scripting
        if scripting is None or self.script is None:
            return False
        try:
            scripting.write_script(instance.location, self.script)
        except OSError:
            logger.exception("Error writing script of %s", instance.path)
            return False
        if not scripting.reload(instance.location):
            logger.warning("Script of page %s does not define a valid action", instance.page.id)
            return False
        return True


class CustomAction(PageAction):
    """Action for pages that declare no specific behaviour."""
