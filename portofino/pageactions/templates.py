"""Template resolution against the active skin."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from portofino.forms.options import DefaultOptionProvider

if TYPE_CHECKING:
    from pathlib import Path

    from portofino.filesystem.page_xml import Layout

logger = logging.getLogger(__name__)

TEMPLATES_DIR = "templates"


@dataclass(frozen=True)
class TemplateResolver:
    """Maps layout templates to paths that exist in ``skins_dir/skin``."""

    skins_dir: Path
    skin: str = "default"
    default_template: str = "/templates/default"

    @property
    def skin_dir(self) -> Path:
        return self.skins_dir / self.skin

    def resolve(self, template: str | None) -> str:
        """Return ``template`` if it exists on the skin, else the default template."""
        if template is None or not template.strip():
            return self.default_template
        skin_dir = self.skin_dir.resolve()
        real_path = (skin_dir / template.strip().lstrip("/")).resolve()
        if not real_path.is_relative_to(skin_dir) or not real_path.exists():
            logger.warning(
                "Template file %s does not exist in skin %s, using default", template, self.skin
            )
            return self.default_template
        return template

    def resolve_layout(self, layout: Layout | None) -> str:
        return self.resolve(layout.template if layout is not None else None)

    def template_options(self, name: str = "template") -> DefaultOptionProvider:
        """Selectable templates: one option per directory in the skin's templates folder."""
        provider = DefaultOptionProvider(name, 1, [], [])
        templates_dir = self.skin_dir / TEMPLATES_DIR
        if templates_dir.is_dir():
            for child in sorted(templates_dir.iterdir()):
                if child.is_dir():
                    provider.append_row([f"/{TEMPLATES_DIR}/{child.name}"], [child.name])
        return provider
