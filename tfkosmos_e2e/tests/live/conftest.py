"""
Fixtures for journeys against a running TFKosmos deployment.

Every configured target profile is exercised (``primary`` and, with
``E2E_SMOKE_BASE_URL``, ``smoke``). Tests are skipped when the profile's
base URL does not answer.
"""
import httpx
import pytest
import pytest_asyncio

from tfkosmos_e2e.config import settings


@pytest.fixture
def live_target(active_profile):
    """The active profile, once its deployment answers over HTTP."""
    url = settings.url('')
    try:
        with httpx.Client(timeout=5.0, follow_redirects=True) as client:
            client.get(url)
    except httpx.HTTPError as exc:
        pytest.skip(f"TFKosmos not reachable at {url} - start the app or set E2E_BASE_URL ({exc})")
    return active_profile


@pytest_asyncio.fixture()
async def live_screens(live_target, screens):
    return screens


@pytest_asyncio.fixture()
async def live_sessions(live_target, session_manager):
    return session_manager
