"""Per-page action scripts.

Compiling scripts into action classes is left to an external hook; this
module only stores the script text next to the page and notifies the hook.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

    from portofino.filesystem.store import ResourceLocation

logger = logging.getLogger(__name__)

SCRIPT_FILE = "action.py"


@runtime_checkable
class ScriptingLoader(Protocol):
    def read_script(self, directory: ResourceLocation) -> str | None: ...

    def write_script(self, directory: ResourceLocation, text: str) -> None: ...

    def reload(self, directory: ResourceLocation) -> bool: ...


class FileScriptingLoader:
    """Keeps the script in ``<directory>/action.py``.

    ``on_change`` is called after each write and returns whether the new
    script produced a usable action class.
    """

    def __init__(self, on_change: Callable[[ResourceLocation], bool] | None = None) -> None:
        self._on_change = on_change

    def script_file(self, directory: ResourceLocation) -> ResourceLocation:
        return directory.child(SCRIPT_FILE)

    def read_script(self, directory: ResourceLocation) -> str | None:
        script_file = self.script_file(directory)
        if not script_file.is_file():
            return None
        return script_file.read_text()

    def write_script(self, directory: ResourceLocation, text: str) -> None:
        self.script_file(directory).write_text(text)

    def reload(self, directory: ResourceLocation) -> bool:
        if self._on_change is None:
            return True
        return self._on_change(self.script_file(directory))
