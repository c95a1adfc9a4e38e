"""Resolution of the type a resource directory declares for itself."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from lxml import etree

from portofino.exceptions import DefinitionLoadError
from portofino.filesystem.store import RESOURCE_DESCRIPTOR_FILE

if TYPE_CHECKING:
    from portofino.filesystem.store import ResourceLocation


@runtime_checkable
class ResourceResolver(Protocol):
    """Tells which registered type, if any, a directory declares."""

    def resolve_type(self, location: ResourceLocation) -> str | None: ...


class DescriptorResourceResolver:
    """Reads ``<resource type="..."/>`` from a directory's ``resource.xml``."""

    def resolve_type(self, location: ResourceLocation) -> str | None:
        descriptor = location.child(RESOURCE_DESCRIPTOR_FILE)
        if not descriptor.is_file():
            return None
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            with descriptor.open_read() as stream:
                root = etree.parse(stream, parser).getroot()
        except (OSError, etree.XMLSyntaxError) as exc:
            raise DefinitionLoadError(str(descriptor), str(exc)) from exc
        declared = (root.get("type") or "").strip()
        return declared or None
