"""Scan screen: progress phases, scan id extraction and failure reporting."""
import re

import pytest

from tfkosmos_e2e.pages import ScanPhase
from tfkosmos_e2e.testdata import AWS_SCAN, AZURE_SCAN

pytestmark = pytest.mark.asyncio


async def test_aws_scan_reaches_resource_list(mock_screens):
    scan = mock_screens.scan
    await scan.open()
    outcome = await scan.start_scan(AWS_SCAN)

    assert outcome.is_success, outcome.reason
    assert re.fullmatch(r"[0-9a-f]{12}", outcome.value)
    assert mock_screens.scan.current_path == f"/resources/{outcome.value}"
    assert scan.phases == [ScanPhase.PENDING, ScanPhase.RUNNING, ScanPhase.COMPLETE]


async def test_azure_scan(mock_screens):
    await mock_screens.scan.open()
    outcome = await mock_screens.scan.start_scan(AZURE_SCAN)
    assert outcome.is_success, outcome.reason


async def test_scan_with_unknown_profile_fails(mock_screens):
    scan = mock_screens.scan
    await scan.open()
    outcome = await scan.start_scan(AWS_SCAN.with_overrides(profile="invalid-profile"))

    assert outcome.is_failure
    assert "invalid-profile" in outcome.reason
    assert scan.phases[-1] is ScanPhase.ERROR
    assert scan.current_path == "/scan"


async def test_azure_scan_without_subscription_fails(mock_screens):
    await mock_screens.scan.open()
    outcome = await mock_screens.scan.start_scan(AZURE_SCAN.with_overrides(subscription=None))
    assert outcome.is_failure
    assert "subscription" in outcome.reason


@pytest.mark.mock_app_options(scan_seconds=30)
async def test_scan_timeout_is_reported(mock_screens):
    await mock_screens.scan.open()
    outcome = await mock_screens.scan.start_scan(AWS_SCAN, timeout=1.0)
    assert outcome.is_timed_out
    assert outcome.timeout == 1.0
    assert mock_screens.scan.phases[-1] is ScanPhase.RUNNING
