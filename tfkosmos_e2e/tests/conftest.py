"""
Fixtures for tests that drive the mock application in a real browser.

Request ``mock_screens`` or ``mock_sessions`` instead of ``screens`` /
``session_manager``: they activate the mock profile before the browser is
launched, so the browser locale matches the profile under test.
"""
import pytest
import pytest_asyncio

from tfkosmos_e2e.config import settings
from tfkosmos_e2e.testdata import AWS_SCAN


@pytest.fixture(autouse=True)
def artifact_dirs(monkeypatch, tmp_path):
    """Keep downloads and diagnostic screenshots inside the test's tmp dir."""
    monkeypatch.setattr(settings, 'download_dir', str(tmp_path / 'downloads'))
    monkeypatch.setattr(settings, 'screenshot_dir', str(tmp_path / 'screenshots'))
    return tmp_path


@pytest_asyncio.fixture()
async def mock_screens(mock_profile, screens):
    return screens


@pytest_asyncio.fixture()
async def mock_sessions(mock_profile, session_manager):
    return session_manager


@pytest_asyncio.fixture()
async def aws_scan_id(mock_screens):
    """Completed AWS scan (23 ``test-`` users); the browser is left on its resource list."""
    await mock_screens.scan.open()
    outcome = await mock_screens.scan.start_scan(AWS_SCAN)
    return outcome.unwrap()
