"""Templates screen: editor access, debounced validation, save, preview and restore."""
import pytest
import pytest_asyncio

from tfkosmos_e2e.mock_app import DEFAULT_TEMPLATES
from tfkosmos_e2e.options import TemplateKind

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture()
async def templates(mock_screens):
    page = mock_screens.templates
    await page.open()
    await page.select_template(TemplateKind.IAM_USER)
    return page


async def test_editor_shows_default_template(templates):
    assert await templates.get_editor_content() == DEFAULT_TEMPLATES["iam_user"]
    assert not await templates.restore_available()


async def test_broken_template_reports_errors(templates):
    await templates.set_editor_content("{% if user %}\nresource {{ user.user_name }}\n")
    errors = await templates.validation_errors()
    assert len(errors) == 1
    assert errors[0].startswith("line ")


async def test_errors_clear_after_fix(templates):
    await templates.set_editor_content("{{ user.user_name")
    assert await templates.validation_errors()
    await templates.set_editor_content(DEFAULT_TEMPLATES["iam_user"])
    assert await templates.validation_errors() == []


async def test_invalid_template_is_not_saved(templates):
    await templates.set_editor_content("{{ user.user_name")
    outcome = await templates.save()
    assert outcome.is_failure
    assert not await templates.restore_available()


async def test_preview(templates):
    assert await templates.preview()
    assert 'resource "aws_iam_user" "example"' in await templates.page.locator("#template-preview").inner_text()


async def test_save_then_restore(templates):
    edited = DEFAULT_TEMPLATES["iam_user"] + "# customized\n"
    await templates.set_editor_content(edited)
    assert (await templates.save()).is_success
    assert await templates.restore_available()

    outcome = await templates.restore()
    assert outcome.is_success, outcome.reason
    assert await templates.get_editor_content() == DEFAULT_TEMPLATES["iam_user"]
    assert not await templates.restore_available()


async def test_other_template_kinds(mock_screens):
    page = mock_screens.templates
    await page.open()
    await page.select_template("role_assignment")
    assert "azurerm_role_assignment" in await page.get_editor_content()
