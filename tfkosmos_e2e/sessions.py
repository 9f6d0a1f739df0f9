"""
Parallel Session Manager for scenario runs.

Each scenario gets its own Playwright BrowserContext and its own set of page
objects, so scans and generation jobs started by one scenario never see the
cookies, storage or dialogs of another.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, TypedDict
import logging

from playwright.async_api import Browser, BrowserContext, Page

from tfkosmos_e2e.config import settings
from tfkosmos_e2e.pages import ScreenSet

logger = logging.getLogger(__name__)


class ViewportSize(TypedDict):
    """Viewport size specification."""
    width: int
    height: int


@dataclass
class SessionHandle:
    """Handle to one isolated browser session."""
    session_id: str
    context: BrowserContext
    page: Page
    screens: ScreenSet
    label: str
    download_dir: Path
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"SessionHandle(id={self.session_id}, label={self.label})"


class ParallelSessionManager:
    """
    Manages isolated browser sessions for scenarios that run side by side.

    Usage:
        async with ParallelSessionManager(browser, base_url=settings.url("")) as manager:
            first = await manager.create_session("scan-a")
            second = await manager.create_session("scan-b")
            await first.screens.scan.start_scan(config_a)
    """

    DEFAULT_VIEWPORT: ViewportSize = {'width': 1280, 'height': 720}
    DEFAULT_LOCALE = 'ja-JP'

    def __init__(
        self,
        browser: Browser,
        base_url: Optional[str] = None,
        viewport: Optional[ViewportSize] = None,
        locale: str = DEFAULT_LOCALE,
        timeout: Optional[float] = None,
        download_root: Optional[Path] = None,
    ):
        """
        Args:
            browser: Playwright Browser instance
            base_url: Base URL for relative navigation (optional)
            viewport: Default viewport size (optional)
            locale: Browser locale setting
            timeout: Default action timeout in seconds (optional)
            download_root: Parent of the per-session download directories
                (defaults to settings.download_dir)
        """
        self.browser = browser
        self.base_url = base_url
        self.viewport: ViewportSize = viewport or self.DEFAULT_VIEWPORT
        self.locale = locale
        self.timeout = timeout
        self.download_root = download_root
        self.sessions: Dict[str, SessionHandle] = {}
        self._counter = 0

    async def __aenter__(self) -> 'ParallelSessionManager':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close_all()

    async def create_session(
        self,
        label: str = "scenario",
        session_id: Optional[str] = None,
        viewport: Optional[ViewportSize] = None,
    ) -> SessionHandle:
        """
        Create a new isolated browser session with its own page objects.

        Args:
            label: Human readable purpose, used in generated session ids
            session_id: Custom session ID (auto-generated if not provided)
            viewport: Custom viewport size (uses default if not provided)
        """
        if session_id is None:
            self._counter += 1
            session_id = f"{label}_{self._counter}"

        if session_id in self.sessions:
            raise ValueError(f"Session {session_id} already exists")

        options: Dict[str, Any] = {
            "viewport": viewport if viewport is not None else self.viewport,
            "locale": self.locale,
            "accept_downloads": True,
        }
        if self.base_url:
            options["base_url"] = self.base_url
        context = await self.browser.new_context(**options)
        if self.timeout is not None:
            context.set_default_timeout(self.timeout * 1000)
        page = await context.new_page()
        download_dir = Path(self.download_root or settings.download_dir) / session_id

        handle = SessionHandle(
            session_id=session_id,
            context=context,
            page=page,
            screens=ScreenSet(page, download_dir=download_dir),
            label=label,
            download_dir=download_dir,
        )
        self.sessions[session_id] = handle

        logger.debug(f"Created session: {handle}")
        return handle

    async def close_session(self, session_id: str) -> None:
        """Close and remove a session."""
        if session_id in self.sessions:
            handle = self.sessions.pop(session_id)
            try:
                await handle.context.close()
                logger.debug(f"Closed session: {handle}")
            except Exception as e:
                logger.warning(f"Error closing session {session_id}: {e}")

    async def close_all(self) -> None:
        for session_id in list(self.sessions.keys()):
            await self.close_session(session_id)

    @property
    def session_count(self) -> int:
        return len(self.sessions)
