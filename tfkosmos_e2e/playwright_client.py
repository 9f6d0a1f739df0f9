"""
Direct Playwright Client
========================

Launches the configured browser in-process and hands out contexts and pages
preconfigured with the harness locale, default timeout and download support.

Usage:
    from tfkosmos_e2e.playwright_client import PlaywrightClient

    async with PlaywrightClient() as client:
        page = client.page
        await page.goto("http://localhost:5173/connection")
"""

from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

from tfkosmos_e2e.config import settings

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")


class PlaywrightClient:
    """
    Direct Playwright client owning one browser and one default context.

    Example:
        async with PlaywrightClient(locale="en-US") as client:
            await client.page.goto(settings.url("/scan"))
    """

    def __init__(
        self,
        browser_type: Optional[str] = None,
        headless: Optional[bool] = None,
        timeout: Optional[float] = None,
        locale: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        """
        Initialize Playwright client.

        Args:
            browser_type: Browser to use (chromium, firefox, webkit); defaults to E2E_BROWSER
            headless: Run in headless mode (None = PLAYWRIGHT_HEADLESS)
            timeout: Default action timeout in seconds (None = E2E_ACTION_TIMEOUT)
            locale: Browser locale, drives which UI language the app renders
            base_url: Base URL for relative navigation
        """
        self.browser_type = browser_type or settings.browser_type
        if self.browser_type not in SUPPORTED_BROWSERS:
            print(f"[CONFIG] WARNING: unknown browser '{self.browser_type}', using chromium")
            self.browser_type = "chromium"
        self.headless = settings.playwright_headless if headless is None else headless
        self.timeout = settings.timeouts.action if timeout is None else timeout
        self.locale = locale or settings.locale
        self.base_url = base_url

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "PlaywrightClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self) -> None:
        """Launch the browser and open the default context and page."""
        self._playwright = await async_playwright().start()
        try:
            launcher = getattr(self._playwright, self.browser_type)
            self._browser = await launcher.launch(headless=self.headless)
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise

        self._context = await self.new_context()
        self._page = await self._context.new_page()

    async def new_context(self, **kwargs) -> BrowserContext:
        """
        Create a new isolated browser context.

        Args:
            **kwargs: Context options overriding the harness defaults

        Returns:
            BrowserContext with downloads enabled and the default timeout set
        """
        if not self._browser:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")

        options = {"locale": self.locale, "accept_downloads": True}
        if self.base_url:
            options["base_url"] = self.base_url
        options.update(kwargs)
        context = await self._browser.new_context(**options)
        context.set_default_timeout(self.timeout * 1000)
        return context

    async def new_page(self) -> Page:
        if not self._context:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")
        return await self._context.new_page()

    async def close(self) -> None:
        """Close all connections and cleanup resources."""
        if self._page:
            await self._page.close()
            self._page = None

        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @property
    def browser(self) -> Browser:
        if not self._browser:
            raise RuntimeError("Client not connected")
        return self._browser

    @property
    def context(self) -> BrowserContext:
        if not self._context:
            raise RuntimeError("Client not connected")
        return self._context

    @property
    def page(self) -> Page:
        if not self._page:
            raise RuntimeError("Client not connected or page not created")
        return self._page
