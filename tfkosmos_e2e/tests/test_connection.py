"""Connection screen against the mock application, in both UI languages."""
import pytest

from tfkosmos_e2e.errors import InvalidOption
from tfkosmos_e2e.options import Provider
from tfkosmos_e2e.testdata import (
    AWS_INVALID_CONNECTION,
    AWS_VALID_CONNECTION,
    AZURE_INVALID_CONNECTION,
    AZURE_VALID_CONNECTION,
)

pytestmark = pytest.mark.asyncio


async def test_aws_connection_succeeds(mock_screens):
    await mock_screens.connection.open()
    outcome = await mock_screens.connection.test_connection(AWS_VALID_CONNECTION)
    assert outcome.is_success, outcome.reason
    assert "123456789012" in outcome.value


async def test_aws_connection_with_unknown_profile_fails(mock_screens):
    await mock_screens.connection.open()
    outcome = await mock_screens.connection.test_connection(AWS_INVALID_CONNECTION)
    assert outcome.is_failure
    assert "invalid-profile" in outcome.reason


async def test_retry_after_failure_reports_fresh_result(mock_screens):
    page = mock_screens.connection
    await page.open()
    assert (await page.test_connection(AWS_INVALID_CONNECTION)).is_failure
    assert (await page.test_connection(AWS_VALID_CONNECTION)).is_success


async def test_azure_service_principal(mock_screens):
    await mock_screens.connection.open()
    outcome = await mock_screens.connection.test_connection(AZURE_VALID_CONNECTION)
    assert outcome.is_success, outcome.reason
    assert "test-client-id" in outcome.value


async def test_azure_rejected_credentials(mock_screens):
    await mock_screens.connection.open()
    outcome = await mock_screens.connection.test_connection(AZURE_INVALID_CONNECTION)
    assert outcome.is_failure
    assert "AADSTS7000215" in outcome.reason


async def test_switching_providers(mock_screens):
    page = mock_screens.connection
    await page.open()
    assert await page.active_provider_visible(Provider.AWS)

    await page.switch_to_azure()
    await page.switch_to_azure()
    assert await page.active_provider_visible(Provider.AZURE)

    await page.switch_to_aws()
    assert await page.active_provider_visible(Provider.AWS)


async def _visible_form(page):
    return (
        page.current_path,
        await page.active_provider_visible(Provider.AWS),
        await page.active_provider_visible(Provider.AZURE),
        await page.has_field("aws_region"),
        await page.has_field("azure_auth_method"),
    )


async def test_repeated_switching_ends_like_a_single_switch(mock_screens):
    page = mock_screens.connection
    await page.open()
    await page.switch_to_aws()
    single = await _visible_form(page)

    for _ in range(5):
        await page.switch_to_azure()
        await page.switch_to_aws()
    assert await _visible_form(page) == single
    assert single[1:] == (True, False, True, False)


async def test_unknown_provider_is_rejected(mock_screens):
    await mock_screens.connection.open()
    with pytest.raises(InvalidOption) as excinfo:
        await mock_screens.connection.switch_provider("gcp")
    assert excinfo.value.allowed == ("aws", "azure")
