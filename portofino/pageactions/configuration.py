"""Base class for page action configuration objects."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class PageActionConfiguration(BaseModel):
    """Configuration persisted next to a page as ``configuration.xml``.

    Subclasses declare their fields as pydantic fields. Collaborators managed
    by the application (settings, registries) are not persisted; declare them
    as private attributes and list their names in ``injected`` so the
    injector can populate them after loading.
    """

    model_config = ConfigDict(validate_assignment=True)

    xml_tag: ClassVar[str] = "configuration"
    injected: ClassVar[tuple[str, ...]] = ()

    def init(self) -> None:
        """Post-load hook, run after injection."""
