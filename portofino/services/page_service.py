"""Page service: cached access to page definitions and page action configurations."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from lxml import etree

from portofino.exceptions import DefinitionLoadError, DefinitionSaveError, PageNotActiveError
from portofino.filesystem.configuration_xml import parse_configuration, serialize_configuration
from portofino.filesystem.page_xml import Page, parse_page, serialize_page
from portofino.filesystem.store import CONFIGURATION_FILE, PAGE_FILE, ResourceLocation
from portofino.services.definition_cache import CacheEntry, DefinitionCache
from portofino.services.injector import ContextInjector, Injector

if TYPE_CHECKING:
    from collections.abc import Callable
    from concurrent.futures import Executor

    from pydantic import BaseModel

    from portofino.config import Settings
    from portofino.dispatcher.resources import PageInstance

logger = logging.getLogger(__name__)

_C = TypeVar("_C", bound="BaseModel")


class ConfigurableAction(Protocol):
    """What ``configure_page_action`` needs from a page action."""

    configuration_class: type[BaseModel] | None

    def set_page_instance(self, page_instance: PageInstance) -> None: ...


class PageService:
    """Loads, saves and caches ``page.xml`` and ``configuration.xml`` documents.

    Both caches refresh entries in the background once they are older than
    their check frequency; saving a document invalidates its entry before
    returning.
    """

    def __init__(
        self,
        *,
        page_cache_size: int = 1000,
        page_cache_check_frequency: float | None = 5,
        configuration_cache_size: int = 1000,
        configuration_cache_check_frequency: float | None = 5,
        refresh_workers: int = 4,
        injector: Injector | None = None,
        executor: Executor | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._owns_executor = executor is None
        self._executor: Executor = executor or ThreadPoolExecutor(
            max_workers=refresh_workers, thread_name_prefix="definition-refresh"
        )
        self.injector: Injector = injector or ContextInjector()
        self.page_cache: DefinitionCache[ResourceLocation, Page] = DefinitionCache(
            name="page",
            max_size=page_cache_size,
            refresh_after=page_cache_check_frequency,
            loader=self._load_page_entry,
            reloader=self._reload_page_entry,
            executor=self._executor,
            clock=clock,
        )
        self.configuration_cache: DefinitionCache[ResourceLocation, Any] = DefinitionCache(
            name="configuration",
            max_size=configuration_cache_size,
            refresh_after=configuration_cache_check_frequency,
            reloader=self._reload_configuration_entry,
            executor=self._executor,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Settings, injector: Injector | None = None) -> PageService:
        return cls(
            page_cache_size=settings.page_cache_size,
            page_cache_check_frequency=settings.page_cache_check_frequency,
            configuration_cache_size=settings.configuration_cache_size,
            configuration_cache_check_frequency=settings.configuration_cache_check_frequency,
            refresh_workers=settings.cache_refresh_workers,
            injector=injector,
        )

    def close(self) -> None:
        """Stop the refresh workers. Pending refreshes are dropped."""
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    # Pages

    def save_page(self, directory: ResourceLocation, page: Page) -> ResourceLocation:
        """Write ``page`` to ``directory/page.xml`` and invalidate its cache entry."""
        page_file = directory.child(PAGE_FILE)
        _write_document(page_file, lambda: serialize_page(page), self.page_cache)
        return page_file

    def load_page(self, page_file: ResourceLocation) -> Page:
        """Read and initialize a page, bypassing the cache."""
        try:
            with page_file.open_read() as stream:
                page = parse_page(stream)
        except (OSError, etree.XMLSyntaxError, ValueError) as exc:
            raise DefinitionLoadError(str(page_file), str(exc)) from exc
        page.init()
        return page

    def get_page(self, directory: ResourceLocation) -> Page:
        """Return the cached page of ``directory``.

        Raises PageNotActiveError if the page cannot be loaded or its cache
        entry is in error state.
        """
        page_file = directory.child(PAGE_FILE)
        try:
            entry = self.page_cache.get(page_file)
        except DefinitionLoadError as exc:
            raise PageNotActiveError(str(directory)) from exc
        if entry.error or entry.payload is None:
            raise PageNotActiveError(str(directory))
        return entry.payload

    def is_page_cached(self, directory: ResourceLocation) -> bool:
        return directory.child(PAGE_FILE) in self.page_cache

    def _load_page_entry(self, page_file: ResourceLocation) -> CacheEntry[Page]:
        last_modified = page_file.last_modified()
        return CacheEntry.loaded(self.load_page(page_file), last_modified)

    def _reload_page_entry(
        self, page_file: ResourceLocation, old: CacheEntry[Page]
    ) -> CacheEntry[Page]:
        if not page_file.exists():
            # Not an error here: get_page() reports the entry as not active.
            return CacheEntry.failed()
        last_modified = page_file.last_modified()
        if last_modified <= old.last_modified:
            return old
        try:
            return CacheEntry.loaded(self.load_page(page_file), last_modified)
        except DefinitionLoadError:
            logger.exception("Could not reload cached page from %s", page_file)
            return CacheEntry.failed(last_modified)

    # Configurations

    def save_configuration(
        self, directory: ResourceLocation, configuration: BaseModel
    ) -> ResourceLocation:
        """Write ``configuration`` to ``directory/configuration.xml`` and invalidate it."""
        configuration_file = directory.child(CONFIGURATION_FILE)
        _write_document(
            configuration_file,
            lambda: serialize_configuration(configuration),
            self.configuration_cache,
        )
        return configuration_file

    def load_configuration(
        self, configuration_file: ResourceLocation, configuration_class: type[_C] | None
    ) -> _C | None:
        """Read a configuration, inject its collaborators and run its ``init`` hook.

        Returns None without touching the file when no class is expected.
        """
        if configuration_class is None:
            return None
        try:
            with configuration_file.open_read() as stream:
                configuration = parse_configuration(stream, configuration_class)
        except (OSError, etree.XMLSyntaxError, ValueError) as exc:
            raise DefinitionLoadError(str(configuration_file), str(exc)) from exc
        self.injector.inject(configuration)
        init = getattr(configuration, "init", None)
        if callable(init):
            init()
        return configuration

    def get_configuration(
        self, configuration_file: ResourceLocation, configuration_class: type[_C] | None
    ) -> _C | None:
        """Return the cached configuration, loading it when missing, stale or invalid."""
        if configuration_class is None:
            return None

        def accept(entry: CacheEntry[Any]) -> bool:
            if entry.error:
                logger.warning(
                    "Cached configuration for %s is in error state, forcing a reload",
                    configuration_file,
                )
                return False
            if not isinstance(entry.payload, configuration_class):
                logger.warning(
                    "Cached configuration for %s is an instance of the wrong class, "
                    "forcing a reload",
                    configuration_file,
                )
                return False
            return True

        def load(key: ResourceLocation) -> CacheEntry[Any]:
            last_modified = key.last_modified()
            configuration = self.load_configuration(key, configuration_class)
            return CacheEntry.loaded(configuration, last_modified)

        entry = self.configuration_cache.get_or_load(configuration_file, load, accept)
        return entry.payload

    def _reload_configuration_entry(
        self, configuration_file: ResourceLocation, old: CacheEntry[Any]
    ) -> CacheEntry[Any]:
        if not configuration_file.exists():
            # Unlike pages, the entry cannot be rebuilt without the caller's
            # class; get_configuration() replaces it on the next read.
            return CacheEntry.failed(payload_type=old.payload_type)
        last_modified = configuration_file.last_modified()
        if last_modified <= old.last_modified or old.payload_type is None:
            return old
        # Errored entries are retried too, with the class recorded at failure.
        try:
            configuration = self.load_configuration(configuration_file, old.payload_type)
        except Exception:
            logger.exception(
                "Could not reload cached configuration from %s, removing from cache",
                configuration_file,
            )
            return CacheEntry.failed(payload_type=old.payload_type)
        return CacheEntry.loaded(configuration, last_modified)

    def clear_configuration_cache(self, configuration_class: type[BaseModel] | None = None) -> int:
        """Drop all cached configurations, or those whose class is exactly ``configuration_class``."""
        if configuration_class is None:
            return self.configuration_cache.invalidate_all()
        return self.configuration_cache.invalidate_all(
            lambda _key, entry: entry.payload_type is configuration_class
        )

    def configure_page_action(
        self,
        page_action: ConfigurableAction,
        page_instance: PageInstance,
        configuration_class: type[BaseModel] | None = None,
    ) -> None:
        """Attach the page's configuration to ``page_instance`` and link the action to it.

        ``configuration_class`` defaults to the one the action declares. Does
        nothing if the instance is already configured. A configuration that
        fails to load is logged and leaves the instance unconfigured.
        """
        if page_instance.configuration is not None:
            logger.debug("Page instance %s is already configured", page_instance.path)
            return
        configuration_file = page_instance.location.child(CONFIGURATION_FILE)
        if configuration_class is None:
            configuration_class = type(page_action).configuration_class
        if configuration_class is not None and not configuration_file.exists():
            logger.debug("No configuration for %s at %s", page_instance.path, configuration_file)
        else:
            try:
                page_instance.configuration = self.get_configuration(
                    configuration_file, configuration_class
                )
            except Exception:
                logger.exception("Couldn't load configuration from %s", configuration_file)
        page_action.set_page_instance(page_instance)


def _write_document(
    target: ResourceLocation,
    render: Callable[[], bytes],
    cache: DefinitionCache[ResourceLocation, Any],
) -> None:
    try:
        data = render()
        if not target.exists():
            target.create_file()
        with target.open_write() as stream:
            stream.write(data)
    except (OSError, ValueError) as exc:
        raise DefinitionSaveError(str(target), str(exc)) from exc
    finally:
        cache.invalidate(target)
