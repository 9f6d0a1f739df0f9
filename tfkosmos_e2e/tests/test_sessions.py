"""Isolated sessions for scenarios running side by side, against a fake browser."""
from pathlib import Path

import anyio
import pytest

from tfkosmos_e2e.config import settings
from tfkosmos_e2e.pages.generate import ARTIFACT_NAME
from tfkosmos_e2e.sessions import ParallelSessionManager
from tfkosmos_e2e.tests.fakes import FakeBrowser, FakeDownload

pytestmark = pytest.mark.asyncio


async def test_each_session_gets_its_own_context_and_download_dir():
    browser = FakeBrowser()
    async with ParallelSessionManager(browser, base_url="http://localhost:5173", locale="en-US", timeout=5) as manager:
        first = await manager.create_session("scan")
        second = await manager.create_session("scan")
        assert (first.session_id, second.session_id) == ("scan_1", "scan_2")
        assert first.context is not second.context
        assert first.download_dir == Path(settings.download_dir) / "scan_1"
        assert first.screens.generate.download_dir == first.download_dir
        assert first.download_dir != second.download_dir
        assert manager.session_count == 2

    options = browser.contexts[0].options
    assert options["locale"] == "en-US"
    assert options["accept_downloads"] is True
    assert browser.contexts[0].default_timeout == 5000
    assert all(context.closed for context in browser.contexts)
    assert manager.session_count == 0


async def test_duplicate_session_id_is_rejected():
    manager = ParallelSessionManager(FakeBrowser())
    await manager.create_session(session_id="aws")
    with pytest.raises(ValueError):
        await manager.create_session(session_id="aws")


async def test_parallel_downloads_keep_their_own_bytes(tmp_path):
    manager = ParallelSessionManager(FakeBrowser(), download_root=tmp_path)
    first = await manager.create_session("aws")
    second = await manager.create_session("azure")
    handles = {}

    async def _download(session, content, delay):
        async def _click():
            session.page.offer_download(FakeDownload(ARTIFACT_NAME, content, delay))

        handles[session.label] = await session.screens.generate.expect_download(_click)

    async with anyio.create_task_group() as tg:
        # The first session finishes saving last.
        tg.start_soon(_download, first, b"session-A", 0.05)
        tg.start_soon(_download, second, b"session-B-longer", 0.0)

    aws, azure = handles["aws"], handles["azure"]
    assert aws.path != azure.path
    assert aws.path == tmp_path / first.session_id / ARTIFACT_NAME
    assert aws.path.read_bytes() == b"session-A"
    assert aws.size == len(b"session-A")
    assert azure.path.read_bytes() == b"session-B-longer"
    await manager.close_all()
