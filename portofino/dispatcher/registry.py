"""Registries mapping declared type names to root and page action classes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from portofino.dispatcher.resources import Root
from portofino.pageactions.base import PageAction

if TYPE_CHECKING:
    from pydantic import BaseModel


class RootRegistry:
    """Named ``Root`` subclasses a root directory may declare in ``resource.xml``."""

    def __init__(self) -> None:
        self._roots: dict[str, type[Root]] = {}

    def register(self, name: str, root_class: type[Root]) -> None:
        """Register a root class. Raises TypeError if it is not a ``Root`` subclass."""
        if not isinstance(root_class, type) or not issubclass(root_class, Root):
            msg = f"{root_class!r} registered as {name!r} is not a Root subclass"
            raise TypeError(msg)
        self._roots[name] = root_class

    def get(self, name: str) -> type[Root] | None:
        return self._roots.get(name)

    def names(self) -> list[str]:
        return list(self._roots)


class ActionRegistry:
    """Page action classes by the name pages declare in ``actionType``."""

    def __init__(self) -> None:
        self._actions: dict[str, type[PageAction]] = {}
        self._configurations: dict[type[PageAction], type[BaseModel]] = {}
        self._default: str | None = None

    def register(
        self,
        name: str,
        action_class: type[PageAction],
        *,
        configuration_class: type[BaseModel] | None = None,
        default: bool = False,
    ) -> None:
        """Register an action class. Raises TypeError if it is not a ``PageAction``.

        ``configuration_class`` overrides the configuration class the action
        declares.
        """
        if not isinstance(action_class, type) or not issubclass(action_class, PageAction):
            msg = f"{action_class!r} registered as {name!r} is not a PageAction subclass"
            raise TypeError(msg)
        self._actions[name] = action_class
        if configuration_class is not None:
            self._configurations[action_class] = configuration_class
        if default or self._default is None:
            self._default = name

    @property
    def default_name(self) -> str | None:
        return self._default

    def get_action_class(self, name: str | None) -> type[PageAction] | None:
        """Class for ``name``; a blank name selects the default action."""
        if name is None or not name.strip():
            if self._default is None:
                return None
            return self._actions[self._default]
        return self._actions.get(name.strip())

    def get_configuration_class(
        self, action_class: type[PageAction]
    ) -> type[BaseModel] | None:
        return self._configurations.get(action_class, action_class.configuration_class)

    def names(self) -> list[str]:
        return list(self._actions)
