"""XML reader/writer for page.xml page definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import IO

from lxml import etree


class NavigationRoot(StrEnum):
    INHERIT = "INHERIT"
    ROOT = "ROOT"
    GHOST_ROOT = "GHOST_ROOT"


@dataclass
class SelfLayout:
    """Placement of the page itself inside its own layout."""

    container: str | None = None
    order: int | None = None

    @property
    def actual_order(self) -> int:
        return self.order if self.order is not None else 0


@dataclass
class ChildPage:
    """Placement of an embedded child page inside the parent's layout."""

    name: str
    container: str | None = None
    order: int | None = None

    @property
    def actual_order(self) -> int:
        return self.order if self.order is not None else 0


@dataclass
class Layout:
    template: str | None = None
    self_: SelfLayout = field(default_factory=SelfLayout)
    child_pages: list[ChildPage] = field(default_factory=list)

    def sorted_child_pages(self) -> list[ChildPage]:
        """Child pages by order; pages with equal order keep their document order."""
        return sorted(self.child_pages, key=lambda c: c.actual_order)


@dataclass
class Page:
    """Parsed page definition from page.xml."""

    id: str | None = None
    title: str | None = None
    description: str | None = None
    navigation_root: str | None = None
    action_type: str | None = None
    apply_template_recursively: bool = False
    layout: Layout | None = None
    detail_layout: Layout | None = None

    def init(self) -> tuple[Layout, Layout]:
        """Post-load hook: guarantee both layouts exist and return them."""
        if self.layout is None:
            self.layout = Layout()
        if self.detail_layout is None:
            self.detail_layout = Layout()
        return self.layout, self.detail_layout

    @property
    def actual_navigation_root(self) -> NavigationRoot:
        if not self.navigation_root:
            return NavigationRoot.INHERIT
        try:
            return NavigationRoot(self.navigation_root.strip().upper())
        except ValueError:
            return NavigationRoot.INHERIT


def _int_or_none(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    return int(raw)


def _parse_layout(element: etree._Element | None) -> Layout | None:
    if element is None:
        return None
    layout = Layout(template=element.get("template"))
    self_el = element.find("self")
    if self_el is not None:
        layout.self_ = SelfLayout(
            container=self_el.get("container"),
            order=_int_or_none(self_el.get("order")),
        )
    children_el = element.find("childPages")
    if children_el is not None:
        for child_el in children_el.findall("childPage"):
            name = child_el.get("name")
            if not name:
                msg = "childPage element missing required 'name' attribute"
                raise ValueError(msg)
            layout.child_pages.append(
                ChildPage(
                    name=name,
                    container=child_el.get("container"),
                    order=_int_or_none(child_el.get("order")),
                )
            )
    return layout


def parse_page(source: IO[bytes] | bytes) -> Page:
    """Parse a page document.

    Raises ``etree.XMLSyntaxError`` for malformed XML and ``ValueError`` for
    documents that are well formed but do not describe a page. Does not run
    ``Page.init()``; callers loading from disk do.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    if isinstance(source, bytes):
        root = etree.fromstring(source, parser)
    else:
        root = etree.parse(source, parser).getroot()
    if root.tag != "page":
        msg = f"Expected <page> root element, got <{root.tag}>"
        raise ValueError(msg)
    return Page(
        id=root.get("id"),
        title=root.get("title"),
        description=root.get("description"),
        navigation_root=root.get("navigationRoot"),
        action_type=root.get("actionType"),
        apply_template_recursively=root.get("applyTemplateRecursively", "false").lower()
        == "true",
        layout=_parse_layout(root.find("layout")),
        detail_layout=_parse_layout(root.find("detailLayout")),
    )


def _set_optional(element: etree._Element, name: str, value: object | None) -> None:
    if value is not None:
        element.set(name, str(value))


def _write_layout(parent: etree._Element, tag: str, layout: Layout | None) -> None:
    if layout is None:
        return
    layout_el = etree.SubElement(parent, tag)
    _set_optional(layout_el, "template", layout.template)
    self_el = etree.SubElement(layout_el, "self")
    _set_optional(self_el, "container", layout.self_.container)
    _set_optional(self_el, "order", layout.self_.order)
    if layout.child_pages:
        children_el = etree.SubElement(layout_el, "childPages")
        for child in layout.child_pages:
            child_el = etree.SubElement(children_el, "childPage")
            child_el.set("name", child.name)
            _set_optional(child_el, "container", child.container)
            _set_optional(child_el, "order", child.order)


def serialize_page(page: Page) -> bytes:
    """Serialize a page to its canonical, pretty-printed document."""
    root = etree.Element("page")
    _set_optional(root, "id", page.id)
    _set_optional(root, "title", page.title)
    _set_optional(root, "description", page.description)
    _set_optional(root, "navigationRoot", page.navigation_root)
    _set_optional(root, "actionType", page.action_type)
    root.set("applyTemplateRecursively", "true" if page.apply_template_recursively else "false")
    _write_layout(root, "layout", page.layout)
    _write_layout(root, "detailLayout", page.detail_layout)
    return etree.tostring(root, pretty_print=True, xml_declaration=True, encoding="UTF-8")
