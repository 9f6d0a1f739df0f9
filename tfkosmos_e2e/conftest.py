import sys
import threading
from pathlib import Path

import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from playwright.async_api import Error as PlaywrightError

from tfkosmos_e2e.config import E2eTargetProfile, settings
from tfkosmos_e2e.pages import ScreenSet
from tfkosmos_e2e.playwright_client import PlaywrightClient
from tfkosmos_e2e.sessions import ParallelSessionManager


# ============================================================================
# Mock TFKosmos application
# ============================================================================

class MockServer:
    """Serve :func:`tfkosmos_e2e.mock_app.create_mock_app` on a free local port."""

    def __init__(self, host='127.0.0.1', **app_options):
        from tfkosmos_e2e.mock_app import create_mock_app

        self.host = host
        self.app = create_mock_app(**app_options)
        self.server = None
        self.thread = None

    def start(self):
        from werkzeug.serving import make_server

        self.server = make_server(self.host, 0, self.app, threaded=True)
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()

    def stop(self):
        if self.server:
            self.server.shutdown()
            if self.thread:
                self.thread.join(timeout=5)

    @property
    def url(self):
        return f"http://{self.host}:{self.server.server_port}"


@pytest.fixture(scope='function')
def mock_app_server(request):
    """Running mock application with fresh state.

    Options for ``create_mock_app`` can be passed with indirect
    parametrization or the ``mock_app_options`` marker::

        @pytest.mark.mock_app_options(terraform_version=None)
    """
    marker = request.node.get_closest_marker('mock_app_options')
    options = dict(marker.kwargs) if marker else {}
    options.update(getattr(request, 'param', None) or {})

    server = MockServer(**options)
    server.start()
    yield server
    server.stop()


@pytest.fixture(params=['en-US', 'ja-JP'])
def mock_profile(request, mock_app_server):
    """Point the harness at the mock app, once per UI language."""
    profile = E2eTargetProfile(name=f"mock-{request.param}", base_url=mock_app_server.url, locale=request.param)
    with settings.use_profile(profile):
        yield profile


# ============================================================================
# Browser fixtures
# ============================================================================

@pytest_asyncio.fixture()
async def playwright_client():
    """Create a Playwright client for the active locale; skip when no browser is installed."""
    client = PlaywrightClient(headless=settings.playwright_headless)
    try:
        await client.connect()
    except PlaywrightError as exc:
        await client.close()
        pytest.skip(f"Playwright browser not available - run 'playwright install chromium' ({exc})")
    try:
        yield client
    finally:
        await client.close()


@pytest_asyncio.fixture()
async def screens(playwright_client):
    """Every screen object, bound to the client's default page."""
    return ScreenSet(playwright_client.page)


@pytest_asyncio.fixture()
async def session_manager(playwright_client):
    """Isolated browser contexts for scenarios that run side by side.

    All sessions are closed after the test.
    """
    async with ParallelSessionManager(
        browser=playwright_client.browser,
        base_url=settings.url(''),
        locale=settings.locale,
    ) as manager:
        yield manager


def _profile_id(profile: E2eTargetProfile) -> str:
    return profile.name


@pytest.fixture(params=settings.profiles(), ids=_profile_id)
def active_profile(request):
    """Activate each configured target profile for the test run."""
    profile: E2eTargetProfile = request.param
    with settings.use_profile(profile):
        yield profile


def pytest_configure(config):
    config.addinivalue_line('markers', 'mock_app_options(**kwargs): options for the mock application')
    config.addinivalue_line('markers', 'live: needs a running TFKosmos deployment')
