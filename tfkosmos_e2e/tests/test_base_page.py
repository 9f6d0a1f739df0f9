"""Bounded waits and scoped session effects of the base page, on a fake page."""
import anyio
import pytest

from tfkosmos_e2e.config import Timeouts, settings
from tfkosmos_e2e.errors import NotificationTimeout, ScanIdentifierMissing, StepFailed, WaitTimedOut
from tfkosmos_e2e.pages.base import BasePage
from tfkosmos_e2e.pages.scan import ScanPage, ScanPhase
from tfkosmos_e2e.scenario import Scenario
from tfkosmos_e2e.testdata import AWS_SCAN
from tfkosmos_e2e.tests.fakes import FakeDownload, FakePage

pytestmark = pytest.mark.asyncio

FAST = Timeouts(navigation=1.0, action=1.0, notification=1.0, scan=1.0, download=1.0, poll_interval=0.02)


class TestWaitForNotification:
    async def test_returns_the_matching_text_once_it_appears(self):
        page = FakePage()
        base = BasePage(page, FAST)

        async def _appear():
            await anyio.sleep(0.05)
            page.texts.append("Template saved")

        async with anyio.create_task_group() as tg:
            tg.start_soon(_appear)
            text = await base.wait_for_notification("saved")
        assert text == "Template saved"

    async def test_without_pattern_any_alert_matches(self):
        base = BasePage(FakePage(texts=["Scan completed"]), FAST)
        assert await base.wait_for_notification() == "Scan completed"

    async def test_timeout_names_the_visible_text(self):
        base = BasePage(FakePage(texts=["Validation failed"]), FAST)
        with pytest.raises(NotificationTimeout) as excinfo:
            await base.wait_for_notification("saved", timeout=0.1)
        error = excinfo.value
        assert isinstance(error, WaitTimedOut)
        assert error.timeout == 0.1
        assert error.elapsed >= 0.1
        assert "visible text: Validation failed" in error.attempted
        assert "matching /saved/" in str(error)


class TestAcceptDialogs:
    async def test_handler_is_scoped_to_the_block(self):
        page = FakePage()
        base = BasePage(page, FAST)
        async with base.accept_dialogs() as messages:
            dialog = await page.open_dialog("Restore the default template?")
            assert dialog.accepted
        assert messages == ["Restore the default template?"]
        assert page.listeners["dialog"] == []

        later = await page.open_dialog("Leave page?")
        assert not later.accepted

    async def test_handler_is_removed_when_the_block_fails(self):
        page = FakePage()
        base = BasePage(page, FAST)
        with pytest.raises(RuntimeError):
            async with base.accept_dialogs():
                raise RuntimeError("restore button missing")
        assert page.listeners["dialog"] == []


class TestExpectDownload:
    async def test_saves_into_the_page_download_dir(self, tmp_path):
        page = FakePage()
        base = BasePage(page, FAST, download_dir=tmp_path / "session")

        async def _click():
            page.offer_download(FakeDownload("terraform-output.zip", b"PK-archive"))

        handle = await base.expect_download(_click)
        assert handle.path == tmp_path / "session" / "terraform-output.zip"
        assert handle.size == len(b"PK-archive")
        assert page.download_waiters == []

    async def test_explicit_target_dir_wins(self, tmp_path):
        page = FakePage()
        base = BasePage(page, FAST, download_dir=tmp_path / "session")

        async def _click():
            page.offer_download(FakeDownload("terraform-output.zip", b"PK"))

        handle = await base.expect_download(_click, target_dir=tmp_path / "explicit")
        assert handle.path.parent == tmp_path / "explicit"

    async def test_listener_is_released_when_the_scenario_times_out(self):
        page = FakePage()
        base = BasePage(page, FAST)
        flow = Scenario("download")

        @flow.step(provides="artifact")
        async def download_artifact(ctx):
            return await base.expect_download(anyio.sleep_forever, timeout=5.0)

        with pytest.raises(StepFailed) as excinfo:
            await flow.run(enabled_gates=(), timeout=0.1)
        assert "scenario timeout" in excinfo.value.reason
        assert page.download_waiters == []


class TestCaptureDiagnostic:
    async def test_failure_returns_none(self):
        page = FakePage()
        page.screenshot_error = OSError("disk full")
        assert await BasePage(page, FAST).capture_diagnostic("aws-full-flow/run_scan") is None

    async def test_success_returns_a_sanitised_path(self):
        path = await BasePage(FakePage(), FAST).capture_diagnostic("aws-full-flow/run scan")
        assert path is not None
        assert path.name == f"{settings.screenshot_prefix}-aws-full-flow-run-scan.png"
        assert path.read_bytes() == b"png"


class TestScanCompletion:
    async def test_scan_id_comes_from_the_resources_route(self):
        page = FakePage(url="http://localhost:5173/resources/abc123def456", texts=["control"])
        scan = ScanPage(page, FAST)
        outcome = await scan.start_scan(AWS_SCAN)
        assert outcome.unwrap() == "abc123def456"
        assert scan.phases == [ScanPhase.PENDING, ScanPhase.RUNNING, ScanPhase.COMPLETE]
        assert "fill:test-" in page.actions

    async def test_resources_route_without_id(self):
        page = FakePage(url="http://localhost:5173/resources/", texts=["control"])
        with pytest.raises(ScanIdentifierMissing) as excinfo:
            await ScanPage(page, FAST).start_scan(AWS_SCAN)
        assert excinfo.value.url == "http://localhost:5173/resources/"
