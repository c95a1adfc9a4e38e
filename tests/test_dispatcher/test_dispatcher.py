"""Tests for root resolution and path dispatch."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

import pytest

from portofino.dispatcher.dispatcher import Dispatcher, resolve_root
from portofino.dispatcher.registry import ActionRegistry, RootRegistry
from portofino.dispatcher.resolver import DescriptorResourceResolver
from portofino.dispatcher.resources import PageInstance, Root
from portofino.exceptions import (
    DefinitionLoadError,
    InvalidOperationError,
    PageNotActiveError,
    ResourceNotFoundError,
)
from portofino.filesystem.configuration_xml import serialize_configuration
from portofino.filesystem.store import ResourceLocation
from portofino.pageactions.base import CustomAction, PageAction
from portofino.pageactions.configuration import PageActionConfiguration
from tests.conftest import write_page

if TYPE_CHECKING:
    from pathlib import Path

    from portofino.dispatcher.context import RequestContext
    from portofino.services.page_service import PageService
    from tests.conftest import FakeClock, ManualExecutor


class ReportConfiguration(PageActionConfiguration):
    xml_tag: ClassVar[str] = "reportConfiguration"

    query: str


class ReportAction(PageAction):
    configuration_class = ReportConfiguration


class PlainReportAction(PageAction):
    pass


class AdminRoot(Root):
    pass


class TestResolveRoot:
    def test_plain_directory_gives_plain_root(self, tmp_app_dir: Path) -> None:
        root = resolve_root(ResourceLocation.of(tmp_app_dir))
        assert type(root) is Root
        assert root.path == ""
        assert root.parent is None

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ResourceNotFoundError):
            resolve_root(ResourceLocation.of(tmp_path / "nowhere"))

    def test_file_is_not_a_root(self, tmp_path: Path) -> None:
        (tmp_path / "page.xml").write_text("<page/>")
        with pytest.raises(ResourceNotFoundError):
            resolve_root(ResourceLocation.of(tmp_path / "page.xml"))

    def test_declared_root_type(self, tmp_app_dir: Path) -> None:
        (tmp_app_dir / "resource.xml").write_text('<resource type="admin"/>')
        registry = RootRegistry()
        registry.register("admin", AdminRoot)

        root = resolve_root(ResourceLocation.of(tmp_app_dir), registry=registry)

        assert isinstance(root, AdminRoot)
        assert isinstance(root.resolver, DescriptorResourceResolver)

    def test_unregistered_root_type_falls_back(
        self, tmp_app_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        (tmp_app_dir / "resource.xml").write_text('<resource type="galactic"/>')

        root = resolve_root(ResourceLocation.of(tmp_app_dir), registry=RootRegistry())

        assert type(root) is Root
        assert "galactic" in caplog.text

    def test_malformed_descriptor(self, tmp_app_dir: Path) -> None:
        (tmp_app_dir / "resource.xml").write_text("<resource")
        with pytest.raises(DefinitionLoadError):
            resolve_root(ResourceLocation.of(tmp_app_dir))

    def test_root_parent_cannot_be_set(self, tmp_app_dir: Path) -> None:
        root = resolve_root(ResourceLocation.of(tmp_app_dir))
        other = resolve_root(ResourceLocation.of(tmp_app_dir))
        with pytest.raises(InvalidOperationError):
            root.set_parent(other)


class TestRegistries:
    def test_root_registry_rejects_non_roots(self) -> None:
        registry = RootRegistry()
        with pytest.raises(TypeError, match="not a Root subclass"):
            registry.register("bogus", PageInstance)  # type: ignore[arg-type]
        assert registry.names() == []

    def test_action_registry_rejects_non_actions(self) -> None:
        registry = ActionRegistry()
        with pytest.raises(TypeError, match="not a PageAction subclass"):
            registry.register("bogus", Root)  # type: ignore[arg-type]

    def test_first_registration_is_default(self) -> None:
        registry = ActionRegistry()
        registry.register("custom", CustomAction)
        registry.register("report", ReportAction)

        assert registry.default_name == "custom"
        assert registry.get_action_class(None) is CustomAction
        assert registry.get_action_class("  ") is CustomAction
        assert registry.get_action_class("report") is ReportAction
        assert registry.get_action_class("missing") is None
        assert registry.get_configuration_class(ReportAction) is ReportConfiguration
        assert registry.names() == ["custom", "report"]

    def test_explicit_default(self) -> None:
        registry = ActionRegistry()
        registry.register("custom", CustomAction)
        registry.register("report", ReportAction, default=True)
        assert registry.get_action_class("") is ReportAction

    def test_configuration_class_override(self) -> None:
        registry = ActionRegistry()
        registry.register("plain", PlainReportAction)
        assert registry.get_configuration_class(PlainReportAction) is None
        registry.register("report", PlainReportAction, configuration_class=ReportConfiguration)
        assert registry.get_configuration_class(PlainReportAction) is ReportConfiguration

    def test_empty_registry_has_no_default(self) -> None:
        assert ActionRegistry().get_action_class(None) is None


class TestResolve:
    def test_resolves_page_chain(self, dispatcher: Dispatcher) -> None:
        dispatch = dispatcher.resolve("/orders/lines")

        orders, lines = dispatch.page_instances
        assert dispatch.root is dispatcher.root
        assert orders.path == "/orders"
        assert lines.path == "/orders/lines"
        assert orders.parent is dispatcher.root
        assert lines.parent_page_instance is orders
        assert lines.page.title == "Order lines"
        assert isinstance(lines.action, CustomAction)
        assert lines.action.page_instance is lines
        assert dispatch.extra_path == ()
        assert dispatch.resolved_path == "/orders/lines"
        assert dispatch.last_page_instance is lines

    def test_unresolved_segments_become_extra_path(self, dispatcher: Dispatcher) -> None:
        dispatch = dispatcher.resolve("orders/42/edit")

        assert [p.path for p in dispatch.page_instances] == ["/orders"]
        assert dispatch.extra_path == ("42", "edit")
        assert dispatch.original_path == "orders/42/edit"
        assert dispatch.rewritten_path == "/orders/42/edit"

    def test_detail_directory_is_not_dispatched(self, dispatcher: Dispatcher) -> None:
        dispatch = dispatcher.resolve("/orders/detail")
        assert [p.path for p in dispatch.page_instances] == ["/orders"]
        assert dispatch.extra_path == ("detail",)

    def test_empty_path_resolves_to_root(self, dispatcher: Dispatcher) -> None:
        dispatch = dispatcher.resolve("/")
        assert dispatch.resources == (dispatcher.root,)
        assert dispatch.last_page_instance is None
        assert dispatch.rewritten_path == "/"
        assert dispatch.resolved_path == ""

    def test_repeated_slashes_are_normalized(self, dispatcher: Dispatcher) -> None:
        dispatch = dispatcher.resolve("//orders///lines/")
        assert dispatch.rewritten_path == "/orders/lines"
        assert len(dispatch.page_instances) == 2

    def test_parent_directory_segments_stop_resolution(self, dispatcher: Dispatcher) -> None:
        dispatch = dispatcher.resolve("../app/orders")
        assert dispatch.page_instances == []
        assert dispatch.extra_path == ("..", "app", "orders")

    def test_directory_without_page_stops(
        self, dispatcher: Dispatcher, tmp_app_dir: Path
    ) -> None:
        (tmp_app_dir / "orders" / "attachments").mkdir()
        dispatch = dispatcher.resolve("/orders/attachments")
        assert dispatch.extra_path == ("attachments",)

    def test_unknown_action_type_stops_with_warning(
        self, dispatcher: Dispatcher, tmp_app_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        write_page(tmp_app_dir / "orders" / "chart", action_type="chart")
        dispatch = dispatcher.resolve("/orders/chart")
        assert [p.path for p in dispatch.page_instances] == ["/orders"]
        assert "unknown action type 'chart'" in caplog.text

    def test_broken_page_is_not_active(self, dispatcher: Dispatcher, tmp_app_dir: Path) -> None:
        (tmp_app_dir / "orders" / "lines" / "page.xml").write_text("<page")
        with pytest.raises(PageNotActiveError):
            dispatcher.resolve("/orders/lines")

    def test_configured_action(
        self,
        tmp_app_dir: Path,
        page_service: PageService,
        action_registry: ActionRegistry,
    ) -> None:
        action_registry.register("report", ReportAction)
        report_dir = write_page(tmp_app_dir / "reports" / "monthly", action_type="report")
        (report_dir / "configuration.xml").write_bytes(
            serialize_configuration(ReportConfiguration(query="select 1"))
        )
        dispatcher = Dispatcher(
            resolve_root(ResourceLocation.of(tmp_app_dir)), page_service, action_registry
        )

        dispatch = dispatcher.resolve("/reports/monthly")

        monthly = dispatch.page_instances[-1]
        assert isinstance(monthly.action, ReportAction)
        assert isinstance(monthly.configuration, ReportConfiguration)
        assert monthly.configuration.query == "select 1"

    def test_pages_are_served_from_cache(
        self, dispatcher: Dispatcher, page_service: PageService
    ) -> None:
        first = dispatcher.resolve("/orders").page_instances[0]
        second = dispatcher.resolve("/orders").page_instances[0]
        assert first is not second
        assert first.page is second.page
        assert len(page_service.page_cache) == 1

    def test_context_receives_dispatch(
        self, dispatcher: Dispatcher, request_context: RequestContext
    ) -> None:
        dispatch = dispatcher.resolve("/orders/lines", request_context)

        assert request_context.dispatch is dispatch
        for instance in dispatch.page_instances:
            assert instance.action is not None
            assert instance.action.context is request_context
            assert instance.action.dispatch is dispatch

    def test_registered_configuration_class_is_used(
        self,
        tmp_app_dir: Path,
        page_service: PageService,
        action_registry: ActionRegistry,
    ) -> None:
        action_registry.register(
            "plain-report", PlainReportAction, configuration_class=ReportConfiguration
        )
        report_dir = write_page(tmp_app_dir / "reports" / "daily", action_type="plain-report")
        (report_dir / "configuration.xml").write_bytes(
            serialize_configuration(ReportConfiguration(query="select 2"))
        )
        dispatcher = Dispatcher(
            resolve_root(ResourceLocation.of(tmp_app_dir)), page_service, action_registry
        )

        daily = dispatcher.resolve("/reports/daily").page_instances[-1]

        assert isinstance(daily.configuration, ReportConfiguration)
        assert daily.configuration.query == "select 2"


class TestDeletedPages:
    def test_deleted_page_becomes_not_active(
        self,
        dispatcher: Dispatcher,
        tmp_app_dir: Path,
        manual_executor: ManualExecutor,
        fake_clock: FakeClock,
    ) -> None:
        dispatcher.resolve("/orders/lines")
        (tmp_app_dir / "orders" / "lines" / "page.xml").unlink()
        fake_clock.advance(10)

        # The stale entry is served while the refresh is pending.
        stale = dispatcher.resolve("/orders/lines")
        assert stale.resolved_path == "/orders/lines"
        manual_executor.run_all()

        with pytest.raises(PageNotActiveError):
            dispatcher.resolve("/orders/lines")

    def test_deleted_page_directory_becomes_not_active(
        self,
        dispatcher: Dispatcher,
        tmp_app_dir: Path,
        manual_executor: ManualExecutor,
        fake_clock: FakeClock,
    ) -> None:
        dispatcher.resolve("/orders/lines")
        (tmp_app_dir / "orders" / "lines" / "page.xml").unlink()
        (tmp_app_dir / "orders" / "lines").rmdir()
        fake_clock.advance(10)
        dispatcher.resolve("/orders/lines")
        manual_executor.run_all()

        with pytest.raises(PageNotActiveError):
            dispatcher.resolve("/orders/lines")

    def test_never_cached_directory_is_extra_path(
        self, dispatcher: Dispatcher, tmp_app_dir: Path
    ) -> None:
        (tmp_app_dir / "orders" / "drafts").mkdir()
        dispatch = dispatcher.resolve("/orders/drafts")
        assert dispatch.extra_path == ("drafts",)
