"""Dependency injection for freshly loaded configuration objects."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


@runtime_checkable
class Injector(Protocol):
    """Populates application-managed references on a deserialized object."""

    def inject(self, target: object) -> None: ...


class ContextInjector:
    """Injects values from a name -> object mapping.

    The target's class lists the attributes it wants in an ``injected`` class
    attribute. Each is looked up by its name without leading underscores, so
    ``_settings`` receives the ``settings`` value; names missing from the
    context are left untouched.
    """

    def __init__(self, context: Mapping[str, Any] | None = None) -> None:
        self.context: dict[str, Any] = dict(context or {})

    def register(self, name: str, value: Any) -> None:
        self.context[name] = value

    def inject(self, target: object) -> None:
        for attribute in getattr(type(target), "injected", ()):
            name = attribute.lstrip("_")
            if name not in self.context:
                logger.debug("No value to inject into %s.%s", type(target).__name__, attribute)
                continue
            setattr(target, attribute, self.context[name])
