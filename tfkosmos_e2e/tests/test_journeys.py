"""Prebuilt journeys end to end against the mock application."""
import zipfile

import pytest

from tfkosmos_e2e import journeys
from tfkosmos_e2e.config import GATE_LIVE_AWS
from tfkosmos_e2e.errors import StepFailed
from tfkosmos_e2e.options import NamingConvention
from tfkosmos_e2e.pages.generate import ARTIFACT_NAME
from tfkosmos_e2e.testdata import AWS_SCAN, AZURE_SCAN, DEFAULT_GENERATE

pytestmark = [pytest.mark.asyncio, pytest.mark.mock_app_options(scan_seconds=0.5)]


async def test_aws_full_flow(mock_screens):
    report = await journeys.aws_full_flow(mock_screens).run(enabled_gates=(), diagnostics=mock_screens.scan)
    assert report.ok, report.summary()
    assert report.context["resource_count"] == 23
    assert report.context["selected"] == 23
    assert report.context["generate_scan_id"] == report.context["scan_id"]
    assert report.context["artifact"].suggested_filename == ARTIFACT_NAME


async def test_single_resource_flow(mock_screens):
    report = await journeys.aws_single_resource_flow(mock_screens).run(enabled_gates=(), diagnostics=mock_screens.scan)
    assert report.ok, report.summary()
    assert report.context["selected"] == 1
    assert DEFAULT_GENERATE.naming_convention is NamingConvention.SNAKE_CASE

    artifact = report.context["artifact"]
    assert artifact.size > 0
    with zipfile.ZipFile(artifact.path) as archive:
        code = archive.read("aws_iam_user.tf").decode()
    assert "test_user_01" in code
    assert "test_user_02" not in code


async def test_azure_full_flow(mock_screens):
    report = await journeys.azure_full_flow(mock_screens).run(enabled_gates=(), diagnostics=mock_screens.scan)
    assert report.ok, report.summary()
    assert report.context["resource_count"] == 12
    assert report.context["artifact"].size > 0


async def test_filter_and_select(mock_screens):
    flow = journeys.aws_filter_and_select(mock_screens, search="test-user-1")
    report = await flow.run(enabled_gates=())
    assert report.ok, report.summary()
    assert (report.context["total"], report.context["filtered"]) == (23, 10)


async def test_dependency_graph(mock_screens):
    report = await journeys.aws_dependency_graph(mock_screens).run(enabled_gates=())
    assert report.context["node_count"] == 10


async def test_template_customize_and_restore(mock_screens):
    report = await journeys.template_customize_and_restore(mock_screens).run(enabled_gates=())
    assert report.ok, report.summary()
    assert report.failed == []
    assert "# customized by e2e" in report.context["edited"]


async def test_gated_flow_is_skipped_without_gate(mock_screens):
    flow = journeys.aws_full_flow(mock_screens, gate=GATE_LIVE_AWS)
    report = await flow.run(enabled_gates=())
    assert report.ok
    assert report.passed == []
    assert report.skipped == [step.name for step in flow.steps]


async def test_failed_scan_stops_the_journey(mock_screens):
    flow = journeys.aws_full_flow(mock_screens, scan=AWS_SCAN.with_overrides(profile="invalid-profile"))
    with pytest.raises(StepFailed) as excinfo:
        await flow.run(enabled_gates=(), diagnostics=mock_screens.scan)
    assert excinfo.value.step == "run_scan"
    assert excinfo.value.report.passed == ["open_connection", "test_connection", "open_scan"]


async def test_concurrent_scans_are_isolated(mock_sessions):
    reports = await journeys.concurrent_scans(mock_sessions, {"aws": AWS_SCAN, "azure": AZURE_SCAN}, enabled_gates=())
    assert set(reports) == {"aws", "azure"}
    assert all(report.ok for report in reports.values())
    assert reports["aws"].context["scan_id"] != reports["azure"].context["scan_id"]
    assert mock_sessions.session_count == 2


async def test_concurrent_scan_failure_propagates(mock_sessions):
    scans = {"good": AWS_SCAN, "bad": AWS_SCAN.with_overrides(profile="invalid-profile")}
    with pytest.raises(ExceptionGroup) as excinfo:
        await journeys.concurrent_scans(mock_sessions, scans, enabled_gates=())
    assert excinfo.group_contains(StepFailed)
