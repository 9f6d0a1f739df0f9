"""Resources screen: tabs, filtering, selection and pagination over a scan's results."""
from __future__ import annotations

import logging
from typing import Optional, Tuple

import anyio

from tfkosmos_e2e.counts import parse_page_position, parse_selected_count, parse_total_count
from tfkosmos_e2e.errors import InvalidOption, WaitTimedOut
from tfkosmos_e2e.fields import RESOURCES_FIELDS
from tfkosmos_e2e.locators import FieldSpec, ScreenHandle
from tfkosmos_e2e.options import Provider, ResourceTab, coerce
from tfkosmos_e2e.pages.base import BasePage

logger = logging.getLogger(__name__)


class ResourcesPage(BasePage):
    path = "/resources"
    FIELDS = RESOURCES_FIELDS

    async def open(self, scan_id: str) -> None:
        await self.navigate(f"/resources/{scan_id}")
        await self.wait_for_loading_complete()

    # ---- tabs -------------------------------------------------------------------
    def _tab(self, tab: ResourceTab) -> ScreenHandle:
        return self.resolver.handle(
            FieldSpec(f"{tab.value}_tab", role="button", role_name=rf"^{tab.label}$")
        )

    async def switch_tab(self, tab: ResourceTab, provider: Optional[Provider] = None) -> None:
        """Show ``tab``. With ``provider``, tabs that provider does not offer are rejected."""
        tab = coerce(ResourceTab, tab, "resource tab")
        if provider is not None:
            provider = coerce(Provider, provider, "provider")
            allowed = ResourceTab.for_provider(provider)
            if tab not in allowed:
                raise InvalidOption(
                    setting=f"{provider.value} resource tab",
                    value=tab.value,
                    allowed=tuple(t.value for t in allowed),
                )
        handle = self._tab(tab)
        # Tabs render only after the scan summary has loaded.
        await handle.wait_until_visible(self.timeouts.navigation, self.timeouts.poll_interval)
        await handle.click()
        await self.wait_for_loading_complete()

    # ---- filter -----------------------------------------------------------------
    async def open_filter(self) -> None:
        if await self.field("filter_input").is_visible():
            return
        await self.field("filter_toggle").click()
        await self.field("filter_input").wait_until_visible(self.timeouts.action)

    async def close_filter(self) -> None:
        if await self.field("filter_input").is_visible():
            await self.field("filter_toggle").click()

    async def filter_by_simple_search(self, text: str) -> None:
        await self.open_filter()
        if await self.has_field("simple_search"):
            await self.field("simple_search").check()
        await self.field("filter_input").fill(text)
        # Search input is debounced before the table refreshes.
        await self.settle(self.timeouts.debounce)
        await self.wait_for_loading_complete()

    async def filter_by_query(self, expression: str) -> None:
        """Filter with the advanced query language, e.g. ``name LIKE "test-*"``."""
        await self.open_filter()
        await self.field("advanced_query").check()
        await self.field("filter_input").fill(expression)
        await self.settle(self.timeouts.debounce)
        await self.wait_for_loading_complete()

    async def clear_filter(self) -> None:
        await self.open_filter()
        await self.field("clear_filter").click()
        await self.settle(self.timeouts.debounce)
        await self.wait_for_loading_complete()

    # ---- selection --------------------------------------------------------------
    async def select_all(self) -> None:
        await self.field("select_all").check()

    async def deselect_all(self) -> None:
        """Clear the selection, including a partial one the header box does not show."""
        checkbox = self.field("select_all")
        if not await checkbox.is_checked():
            await checkbox.check()
        await checkbox.uncheck()

    async def _row_checkbox(self, index: int):
        row = await self.field("resource_rows").nth(index).locate()
        return row.locator("input[type='checkbox']").first

    async def select_resource(self, index: int) -> None:
        await (await self._row_checkbox(index)).check()

    async def deselect_resource(self, index: int) -> None:
        await (await self._row_checkbox(index)).uncheck()

    # ---- pagination -------------------------------------------------------------
    async def page_position(self) -> Optional[Tuple[int, int]]:
        """``(current, total)`` pages, or ``None`` when the table is not paginated."""
        if not await self.has_field("page_info"):
            return None
        return parse_page_position(await self.field("page_info").text_content())

    async def next_page(self) -> bool:
        """Go forward one page. Returns False (and does nothing) on the last page."""
        return await self._turn_page("next_page")

    async def prev_page(self) -> bool:
        """Go back one page. Returns False (and does nothing) on the first page."""
        return await self._turn_page("prev_page")

    async def _turn_page(self, name: str) -> bool:
        button = self.field(name)
        if not await button.is_present() or not await button.is_enabled():
            logger.debug(f"{name} unavailable; staying on page {await self.page_position()}")
            return False
        before = await self.page_position()
        await button.click()
        await self._wait_for_position_change(before)
        return True

    async def _wait_for_position_change(self, before: Optional[Tuple[int, int]]) -> None:
        if before is None:
            await self.wait_for_loading_complete()
            return
        start = anyio.current_time()
        deadline = start + self.timeouts.action
        while await self.page_position() == before:
            now = anyio.current_time()
            if now >= deadline:
                raise WaitTimedOut(
                    what=f"page indicator to move away from {before[0]} / {before[1]}",
                    timeout=self.timeouts.action,
                    elapsed=now - start,
                )
            await anyio.sleep(min(self.timeouts.poll_interval, deadline - now))

    # ---- counts -----------------------------------------------------------------
    async def get_selected_count(self) -> int:
        if not await self.has_field("selection_summary"):
            return 0
        return parse_selected_count(await self.field("selection_summary").text_content())

    async def get_row_count(self) -> int:
        """Rows rendered on the current page."""
        return await self.field("resource_rows").count()

    async def get_resource_count(self) -> int:
        """Total resources for the active tab and filter, across all pages."""
        if await self.has_field("page_info"):
            total = parse_total_count(await self.field("page_info").text_content())
            if total is not None:
                return total
        return await self.get_row_count()

    # ---- navigation out ---------------------------------------------------------
    async def go_to_generate(self) -> str:
        """Continue to generation settings; returns the scan id from the new route."""
        await self.field("go_to_generate").click()
        match = await self.wait_for_path(r"^/generate/([^/?#]+)")
        return match.group(1)

    async def dependency_node_count(self) -> int:
        await self.field("dependency_graph").wait_until_visible(self.timeouts.action)
        return await self.field("dependency_nodes").count()
