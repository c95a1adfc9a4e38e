"""Shared test fixtures for Portofino."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient

from portofino.config import Settings
from portofino.dispatcher.context import RequestContext
from portofino.dispatcher.dispatcher import Dispatcher, resolve_root
from portofino.filesystem.page_xml import ChildPage, Layout, Page, SelfLayout, serialize_page
from portofino.filesystem.store import ResourceLocation
from portofino.main import create_app, default_action_registry, lifespan
from portofino.pageactions.scripting import FileScriptingLoader
from portofino.pageactions.templates import TemplateResolver
from portofino.services.page_service import PageService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from pathlib import Path

    from fastapi import FastAPI

    from portofino.dispatcher.registry import ActionRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_test_client(
    settings: Settings, app: FastAPI | None = None
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with a fully initialized app.

    Runs the application lifespan explicitly because ASGITransport does not
    trigger it.
    """
    if app is None:
        app = create_app(settings)
    async with (
        lifespan(app),
        AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac,
    ):
        yield ac


class ManualExecutor:
    """Executor that queues submitted work until ``run_all`` is called."""

    def __init__(self) -> None:
        self.pending: list[tuple[Future[Any], Callable[..., Any], tuple[Any, ...]]] = []
        self.closed = False

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future[Any]:
        if self.closed:
            msg = "cannot schedule new futures after shutdown"
            raise RuntimeError(msg)
        future: Future[Any] = Future()
        self.pending.append((future, lambda *a: fn(*a, **kwargs), args))
        return future

    def run_all(self) -> int:
        count = 0
        while self.pending:
            future, fn, args = self.pending.pop(0)
            try:
                future.set_result(fn(*args))
            except Exception as exc:
                future.set_exception(exc)
            count += 1
        return count

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        self.closed = True
        if cancel_futures:
            self.pending.clear()


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def write_page(
    directory: Path,
    *,
    title: str | None = None,
    action_type: str | None = None,
    navigation_root: str | None = None,
    template: str | None = None,
    child_pages: list[ChildPage] | None = None,
) -> Path:
    """Create ``directory`` with a page.xml and return the directory."""
    directory.mkdir(parents=True, exist_ok=True)
    page = Page(
        id=directory.name,
        title=title if title is not None else directory.name.title(),
        navigation_root=navigation_root,
        action_type=action_type,
        layout=Layout(
            template=template,
            self_=SelfLayout(container="default", order=0),
            child_pages=child_pages or [],
        ),
    )
    (directory / "page.xml").write_bytes(serialize_page(page))
    return directory


@pytest.fixture
def manual_executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tmp_app_dir(tmp_path: Path) -> Path:
    """Application directory with a small page tree.

    orders/            (custom page)
    orders/lines/      (custom page)
    orders/detail/     (detail page)
    reports/           (ghost root)
    """
    app_dir = tmp_path / "app"
    app_dir.mkdir()
    write_page(
        app_dir / "orders",
        title="Orders",
        child_pages=[ChildPage(name="lines", container="right", order=1)],
    )
    write_page(app_dir / "orders" / "lines", title="Order lines")
    write_page(app_dir / "orders" / "detail", title="Order detail")
    write_page(app_dir / "reports", title="Reports", navigation_root="GHOST_ROOT")
    return app_dir


@pytest.fixture
def tmp_skins_dir(tmp_path: Path) -> Path:
    """Skin directory with ``default`` and ``wide`` templates."""
    skins = tmp_path / "skins"
    for name in ("default", "wide"):
        (skins / "default" / "templates" / name).mkdir(parents=True)
    return skins


@pytest.fixture
def test_settings(tmp_app_dir: Path, tmp_skins_dir: Path) -> Settings:
    """Create test settings with temporary paths."""
    return Settings(
        _env_file=None,
        debug=True,
        app_dir=tmp_app_dir,
        skins_dir=tmp_skins_dir,
        page_cache_check_frequency=5,
        configuration_cache_check_frequency=5,
    )


@pytest.fixture
def page_service(manual_executor: ManualExecutor, fake_clock: FakeClock) -> PageService:
    return PageService(executor=manual_executor, clock=fake_clock)


@pytest.fixture
def action_registry() -> ActionRegistry:
    return default_action_registry()


@pytest.fixture
def dispatcher(
    tmp_app_dir: Path, page_service: PageService, action_registry: ActionRegistry
) -> Dispatcher:
    root = resolve_root(ResourceLocation.of(tmp_app_dir))
    return Dispatcher(root, page_service, action_registry)


@pytest.fixture
def request_context(page_service: PageService, tmp_skins_dir: Path) -> RequestContext:
    return RequestContext(
        page_service=page_service,
        templates=TemplateResolver(skins_dir=tmp_skins_dir),
        scripting=FileScriptingLoader(),
    )
