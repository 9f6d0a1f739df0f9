"""Prebuilt end-to-end journeys over the TFKosmos screens.

Each builder returns a :class:`~tfkosmos_e2e.scenario.Scenario` bound to one
:class:`~tfkosmos_e2e.pages.ScreenSet`. Steps that need a reachable cloud
account take the ``gate`` argument; with the gate disabled they are skipped
together with everything downstream of the scan.
"""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

import anyio

from tfkosmos_e2e.options import Provider, ResourceTab, TemplateKind
from tfkosmos_e2e.pages import ScreenSet
from tfkosmos_e2e.pages.generate import ARTIFACT_NAME
from tfkosmos_e2e.scenario import Scenario, ScenarioReport
from tfkosmos_e2e.sessions import ParallelSessionManager
from tfkosmos_e2e.testdata import (
    AWS_SCAN,
    AWS_VALID_CONNECTION,
    AZURE_SCAN,
    AZURE_VALID_CONNECTION,
    DEFAULT_GENERATE,
    ConnectionProfile,
    GenerateConfig,
    ScanConfig,
)

logger = logging.getLogger(__name__)


def _is_artifact(handle, _ctx) -> bool:
    return handle.suggested_filename == ARTIFACT_NAME and handle.size > 0


def _add_connect_and_scan(
    flow: Scenario,
    screens: ScreenSet,
    connection: Optional[ConnectionProfile],
    scan: ScanConfig,
    gate: Optional[str],
) -> None:
    if connection is not None:

        @flow.step(gate=gate)
        async def open_connection(ctx):
            await screens.connection.open()

        @flow.step(provides="connection_message", gate=gate)
        async def test_connection(ctx):
            return await screens.connection.test_connection(connection)

    @flow.step(gate=gate)
    async def open_scan(ctx):
        await screens.scan.open()

    @flow.step(provides="scan_id", gate=gate)
    async def run_scan(ctx):
        return await screens.scan.start_scan(scan)


def _add_generation(flow: Scenario, screens: ScreenSet, generate: GenerateConfig) -> None:
    @flow.step(requires=("selected",), provides="generate_scan_id")
    async def go_to_generate(ctx):
        return await screens.resources.go_to_generate()

    @flow.step(requires=("generate_scan_id",))
    async def configure_generation(ctx):
        await screens.generate.apply_config(generate)

    @flow.step(requires=("generate_scan_id",), provides="generation_message")
    async def generate_code(ctx):
        return await screens.generate.generate()

    @flow.step(requires=("generation_message",), provides="artifact", check=_is_artifact)
    async def download_artifact(ctx):
        return await screens.generate.download_artifact()

    @flow.step(requires=("generation_message",), check=lambda visible, _ctx: visible, optional=True)
    async def check_preview(ctx):
        return await screens.generate.preview_visible()


def aws_full_flow(
    screens: ScreenSet,
    *,
    connection: ConnectionProfile = AWS_VALID_CONNECTION,
    scan: ScanConfig = AWS_SCAN,
    generate: GenerateConfig = DEFAULT_GENERATE,
    gate: Optional[str] = None,
) -> Scenario:
    """Connect, scan, select every user, generate and download the archive."""
    flow = Scenario("aws-full-flow")
    _add_connect_and_scan(flow, screens, connection, scan, gate)

    @flow.step(requires=("scan_id",), provides="resource_count")
    async def list_users(ctx):
        await screens.resources.switch_tab(ResourceTab.USERS, Provider.AWS)
        return await screens.resources.get_resource_count()

    @flow.step(requires=("resource_count",), provides="selected", check=lambda n, ctx: n > 0)
    async def select_all(ctx):
        await screens.resources.select_all()
        return await screens.resources.get_selected_count()

    _add_generation(flow, screens, generate)
    return flow


def aws_single_resource_flow(
    screens: ScreenSet,
    *,
    row: int = 0,
    connection: ConnectionProfile = AWS_VALID_CONNECTION,
    scan: ScanConfig = AWS_SCAN,
    generate: GenerateConfig = DEFAULT_GENERATE,
    gate: Optional[str] = None,
) -> Scenario:
    """Connect, scan, select one user row and generate code for it alone."""
    flow = Scenario("aws-single-resource")
    _add_connect_and_scan(flow, screens, connection, scan, gate)

    @flow.step(requires=("scan_id",), provides="resource_count", check=lambda n, ctx: n >= 0)
    async def list_users(ctx):
        await screens.resources.switch_tab(ResourceTab.USERS, Provider.AWS)
        return await screens.resources.get_resource_count()

    @flow.step(requires=("resource_count",), provides="selected", check=lambda n, ctx: n == 1)
    async def select_one(ctx):
        await screens.resources.select_resource(row)
        return await screens.resources.get_selected_count()

    _add_generation(flow, screens, generate)
    return flow


def aws_dependency_graph(
    screens: ScreenSet,
    *,
    scan: ScanConfig = AWS_SCAN,
    gate: Optional[str] = None,
) -> Scenario:
    """Scan and render the dependency graph; provides ``node_count``."""
    flow = Scenario("aws-dependency-graph")
    _add_connect_and_scan(flow, screens, None, scan, gate)

    @flow.step(requires=("scan_id",), provides="node_count", check=lambda n, ctx: n > 0)
    async def show_dependencies(ctx):
        await screens.resources.switch_tab(ResourceTab.DEPENDENCIES, Provider.AWS)
        return await screens.resources.dependency_node_count()

    return flow


def aws_filter_and_select(
    screens: ScreenSet,
    *,
    scan: ScanConfig = AWS_SCAN,
    search: str = "test-",
    gate: Optional[str] = None,
) -> Scenario:
    """Filter the user list, select one row, then clear selection and filter."""
    flow = Scenario("aws-filter-and-select")
    _add_connect_and_scan(flow, screens, None, scan, gate)

    @flow.step(requires=("scan_id",), provides="total")
    async def count_users(ctx):
        await screens.resources.switch_tab(ResourceTab.USERS, Provider.AWS)
        return await screens.resources.get_resource_count()

    @flow.step(requires=("total",), provides="filtered", check=lambda n, ctx: 0 < n <= ctx["total"])
    async def filter_users(ctx):
        await screens.resources.filter_by_simple_search(search)
        return await screens.resources.get_resource_count()

    @flow.step(requires=("filtered",), check=lambda n, ctx: n == 1)
    async def select_one(ctx):
        await screens.resources.select_resource(0)
        return await screens.resources.get_selected_count()

    @flow.step(requires=("filtered",), check=lambda n, ctx: n == 0)
    async def deselect_everything(ctx):
        await screens.resources.deselect_all()
        return await screens.resources.get_selected_count()

    @flow.step(requires=("total",), check=lambda n, ctx: n == ctx["total"])
    async def clear_filter(ctx):
        await screens.resources.clear_filter()
        return await screens.resources.get_resource_count()

    return flow


def azure_full_flow(
    screens: ScreenSet,
    *,
    connection: ConnectionProfile = AZURE_VALID_CONNECTION,
    scan: ScanConfig = AZURE_SCAN,
    generate: GenerateConfig = DEFAULT_GENERATE,
    gate: Optional[str] = None,
) -> Scenario:
    """Service-principal connect, subscription scan, role assignments to Terraform."""
    flow = Scenario("azure-full-flow")
    _add_connect_and_scan(flow, screens, connection, scan, gate)

    @flow.step(requires=("scan_id",), provides="resource_count")
    async def list_role_assignments(ctx):
        await screens.resources.switch_tab(ResourceTab.ROLE_ASSIGNMENTS, Provider.AZURE)
        return await screens.resources.get_resource_count()

    @flow.step(requires=("resource_count",), provides="selected", check=lambda n, ctx: n > 0)
    async def select_all(ctx):
        await screens.resources.select_all()
        return await screens.resources.get_selected_count()

    _add_generation(flow, screens, generate)
    return flow


def template_customize_and_restore(
    screens: ScreenSet,
    *,
    kind: TemplateKind = TemplateKind.IAM_USER,
    marker: str = "# customized by e2e",
) -> Scenario:
    """Edit a template, save it, then restore the default and compare."""
    flow = Scenario("template-customize-and-restore")

    @flow.step(provides="original")
    async def open_template(ctx):
        await screens.templates.open()
        await screens.templates.select_template(kind)
        return await screens.templates.get_editor_content()

    @flow.step(requires=("original",), provides="edited")
    async def edit_template(ctx):
        edited = f"{ctx['original'].rstrip()}\n{marker}\n"
        await screens.templates.set_editor_content(edited)
        return edited

    @flow.step(requires=("edited",), check=lambda errors, ctx: errors == [])
    async def validate_template(ctx):
        return await screens.templates.validation_errors()

    @flow.step(requires=("edited",), optional=True)
    async def preview_template(ctx):
        return await screens.templates.preview()

    @flow.step(requires=("edited",), provides="save_message")
    async def save_template(ctx):
        return await screens.templates.save()

    @flow.step(requires=("save_message",), check=lambda available, ctx: available)
    async def restore_offered(ctx):
        return await screens.templates.restore_available()

    @flow.step(requires=("save_message",), provides="restore_message")
    async def restore_template(ctx):
        return await screens.templates.restore()

    @flow.step(requires=("restore_message",), check=lambda content, ctx: marker not in content)
    async def verify_restored(ctx):
        return await screens.templates.get_editor_content()

    return flow


def scan_only(screens: ScreenSet, scan: ScanConfig, *, gate: Optional[str] = None) -> Scenario:
    flow = Scenario(f"{scan.provider.value}-scan")
    _add_connect_and_scan(flow, screens, None, scan, gate)
    return flow


async def concurrent_scans(
    manager: ParallelSessionManager,
    scans: Mapping[str, ScanConfig],
    *,
    gate: Optional[str] = None,
    enabled_gates=None,
    timeout: Optional[float] = None,
) -> Dict[str, ScenarioReport]:
    """Run one scan per isolated browser session at the same time.

    Returns the report of every session keyed by label. The first failing
    session cancels the others; its :class:`StepFailed` propagates wrapped
    in the task group's exception group.
    """
    reports: Dict[str, ScenarioReport] = {}

    async def _run(label: str, scan: ScanConfig) -> None:
        session = await manager.create_session(label=label)
        flow = scan_only(session.screens, scan, gate=gate)
        reports[label] = await flow.run(
            enabled_gates=enabled_gates,
            timeout=timeout,
            diagnostics=session.screens.scan,
        )

    logger.info(f"Starting {len(scans)} concurrent scans: {', '.join(scans)}")
    async with anyio.create_task_group() as tg:
        for label, scan in scans.items():
            tg.start_soon(_run, label, scan)
    return reports
