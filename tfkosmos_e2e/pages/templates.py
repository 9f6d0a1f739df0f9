"""Templates screen: editing, previewing, saving and restoring generation templates.

Editor content is read and written through the Monaco model API
(``window.monaco.editor.getModels()[0]``); typing large templates with
simulated keystrokes is unreliable.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Union

import anyio

from tfkosmos_e2e.errors import LocatorNotFound
from tfkosmos_e2e.fields import TEMPLATES_FIELDS
from tfkosmos_e2e.locators import FieldSpec
from tfkosmos_e2e.options import TemplateKind, coerce
from tfkosmos_e2e.outcome import AsyncOutcome
from tfkosmos_e2e.pages.base import BasePage

logger = logging.getLogger(__name__)

_MODEL_LOOKUP = "window.monaco.editor.getModels()[0]"

_GET_CONTENT = """() => {
    const model = window.monaco && window.monaco.editor && window.monaco.editor.getModels()[0];
    return model ? model.getValue() : null;
}"""

_SET_CONTENT = """(text) => {
    const model = window.monaco && window.monaco.editor && window.monaco.editor.getModels()[0];
    if (!model) { return false; }
    model.setValue(text);
    return true;
}"""


class TemplatesPage(BasePage):
    path = "/templates"
    FIELDS = TEMPLATES_FIELDS

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._last_edit: Optional[float] = None

    async def open(self) -> None:
        await self.navigate()
        await self.field("template_list").wait_until_visible(self.timeouts.navigation)

    async def select_template(self, kind: Union[TemplateKind, str]) -> None:
        kind = coerce(TemplateKind, kind, "template kind")
        item = self.resolver.handle(
            FieldSpec(f"{kind.value}_template", role="button", role_name=kind.value, index=0)
        )
        await item.wait_until_visible(self.timeouts.action, self.timeouts.poll_interval)
        await item.click()
        await self.field("editor").wait_until_visible(self.timeouts.action)
        self._last_edit = None

    # ---- editor -----------------------------------------------------------------
    async def get_editor_content(self) -> str:
        content = await self.page.evaluate(_GET_CONTENT)
        if content is None:
            raise LocatorNotFound(field="editor model", attempted=(f"{_MODEL_LOOKUP} -> no model",))
        return content

    async def set_editor_content(self, text: str) -> None:
        if not await self.page.evaluate(_SET_CONTENT, text):
            raise LocatorNotFound(field="editor model", attempted=(f"{_MODEL_LOOKUP} -> no model",))
        self._last_edit = anyio.current_time()

    async def validation_errors(self) -> List[str]:
        """Validation messages for the current content.

        Waits out the debounce window measured from the last edit so the
        list reflects what was just typed, not the previous content.
        """
        if self._last_edit is not None:
            remaining = self.timeouts.debounce - (anyio.current_time() - self._last_edit)
            if remaining > 0:
                await self.settle(remaining)
        section = self.field("validation_errors_section")
        if not await section.is_visible():
            return []
        heading = await section.locate()
        items = heading.locator("xpath=..").locator("li")
        return [text.strip() for text in await items.all_text_contents()]

    # ---- actions ----------------------------------------------------------------
    async def _race_result(self, button: str, label: str, timeout: Optional[float]) -> AsyncOutcome[str]:
        return await self.race_after(
            self.field(button).click,
            {
                "success": self.watch_notification("save_success"),
                "error": self.watch_notification("template_error", success=False),
            },
            timeout=self.timeouts.notification if timeout is None else timeout,
            label=label,
        )

    async def save(self, timeout: Optional[float] = None) -> AsyncOutcome[str]:
        return await self._race_result("save_button", "template save", timeout)

    async def restore(self, timeout: Optional[float] = None) -> AsyncOutcome[str]:
        """Restore the default template, accepting the confirmation dialog."""
        async with self.accept_dialogs() as dialogs:
            outcome = await self._race_result("restore_button", "template restore", timeout)
        if not dialogs:
            logger.debug("Restore completed without a confirmation dialog")
        self._last_edit = None
        return outcome

    async def restore_available(self) -> bool:
        return await self.field("restore_button").is_visible()

    async def preview(self, timeout: Optional[float] = None) -> bool:
        """Render a preview of the current content; True once the preview is shown."""
        await self.field("preview_button").click()
        await self.field("preview_heading").wait_until_visible(
            self.timeouts.notification if timeout is None else timeout
        )
        return True
