"""Navigation, bounded waits and diagnostics shared by every screen object.

Screen objects never sleep or poll on their own; they go through the
primitives here so every wait has an explicit bound and reports how long it
actually waited.
"""
from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional
from urllib.parse import urlparse

import anyio
from playwright.async_api import Dialog, Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeout

from tfkosmos_e2e.config import Timeouts, settings
from tfkosmos_e2e.errors import NavigationFailed, NotificationTimeout, WaitTimedOut
from tfkosmos_e2e.fields import COMMON_FIELDS
from tfkosmos_e2e.locators import FieldSpec, LocatorResolver, ScreenHandle
from tfkosmos_e2e.outcome import AsyncOutcome, Probe, race

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadHandle:
    """A file the application offered for download, saved locally."""

    suggested_filename: str
    path: Path
    size: int


class BasePage:
    """Common behaviour for screen objects.

    Subclasses set ``path`` (the route they live on) and ``FIELDS`` (their
    slice of the field catalog). Shared feedback fields from
    :data:`~tfkosmos_e2e.fields.COMMON_FIELDS` are always available.
    """

    path: str = "/"
    FIELDS: Mapping[str, FieldSpec] = {}

    def __init__(
        self,
        page: Page,
        timeouts: Optional[Timeouts] = None,
        download_dir: Optional[Path] = None,
    ) -> None:
        self.page = page
        self.timeouts = timeouts or settings.timeouts
        self.download_dir = Path(download_dir) if download_dir is not None else None
        self.resolver = LocatorResolver(page)
        self._handles: Dict[str, ScreenHandle] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={self.path})"

    # ---- fields -----------------------------------------------------------------
    def field(self, name: str) -> ScreenHandle:
        """Handle for a named field of this screen."""
        handle = self._handles.get(name)
        if handle is None:
            spec = self.FIELDS.get(name) or COMMON_FIELDS.get(name)
            if spec is None:
                raise KeyError(f"{type(self).__name__} has no field named '{name}'")
            handle = self.resolver.handle(spec)
            self._handles[name] = handle
        return handle

    async def has_field(self, name: str) -> bool:
        """Whether the field is currently rendered (sub-forms may omit it)."""
        return await self.field(name).is_present()

    # ---- navigation -------------------------------------------------------------
    @property
    def current_path(self) -> str:
        return urlparse(self.page.url).path

    async def navigate(self, path: Optional[str] = None) -> None:
        """Load ``path`` (default: this screen's route) and wait for the network to settle.

        Falls back to DOM-content-loaded when the page keeps background
        connections open and never reaches network idle.
        """
        url = settings.url(path if path is not None else self.path)
        timeout_ms = self.timeouts.navigation * 1000
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeout:
            logger.debug(f"networkidle not reached for {url}, retrying with domcontentloaded")
            try:
                await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
            except PlaywrightError as exc:
                raise NavigationFailed(url=url, message=str(exc)) from exc
        except PlaywrightError as exc:
            raise NavigationFailed(url=url, message=str(exc)) from exc

    async def wait_for_path(self, pattern: str, timeout: Optional[float] = None) -> re.Match:
        """Wait until the current URL path matches ``pattern``."""
        bound = self.timeouts.navigation if timeout is None else timeout
        regex = re.compile(pattern)
        start = anyio.current_time()
        deadline = start + bound
        while True:
            match = regex.search(self.current_path)
            if match:
                return match
            now = anyio.current_time()
            if now >= deadline:
                break
            await anyio.sleep(min(self.timeouts.poll_interval, deadline - now))
        raise WaitTimedOut(
            what=f"URL path matching /{pattern}/ (last: {self.current_path})",
            timeout=bound,
            elapsed=anyio.current_time() - start,
        )

    # ---- waits ------------------------------------------------------------------
    async def settle(self, seconds: float) -> None:
        """Fixed pause for documented debounce windows. Nothing else may sleep."""
        await anyio.sleep(seconds)

    async def wait_for_notification(
        self,
        expected: Optional[str] = None,
        timeout: Optional[float] = None,
        field: str = "notification",
    ) -> str:
        """Wait for a visible alert region, optionally one whose text matches ``expected``.

        Returns the matching text; raises :class:`NotificationTimeout`.
        """
        bound = self.timeouts.notification if timeout is None else timeout
        handle = self.field(field)
        regex = re.compile(expected, re.IGNORECASE) if expected else None
        start = anyio.current_time()
        deadline = start + bound
        seen: List[str] = []
        while True:
            if await handle.is_visible():
                seen = await handle.all_text_contents()
                for text in seen:
                    if regex is None or regex.search(text):
                        return text
            now = anyio.current_time()
            if now >= deadline:
                break
            await anyio.sleep(min(self.timeouts.poll_interval, deadline - now))

        what = f"notification '{field}'" + (f" matching /{expected}/" if expected else "")
        attempted = [spec for spec, _ in handle.spec.strategies()]
        if seen:
            attempted.append(f"visible text: {' | '.join(seen)}")
        raise NotificationTimeout(
            what=what,
            timeout=bound,
            elapsed=anyio.current_time() - start,
            attempted=tuple(attempted),
        )

    def watch_notification(self, field: str, success: bool = True) -> Probe:
        """Non-raising probe for :func:`~tfkosmos_e2e.outcome.race`.

        Resolves to ``SUCCEEDED(text)`` (or ``FAILED(text)`` when ``success``
        is false) as soon as the field is visible.
        """
        handle = self.field(field)

        async def _probe() -> Optional[AsyncOutcome]:
            if not await handle.is_visible():
                return None
            text = " ".join((await handle.all_text_contents())).strip()
            if success:
                return AsyncOutcome.succeeded(text, label=field)
            return AsyncOutcome.failed(text or field, label=field)

        return _probe

    async def race_after(
        self,
        trigger: Callable[[], Awaitable[object]],
        watchers: Mapping[str, Probe],
        timeout: float,
        label: str,
    ) -> AsyncOutcome:
        """Click-and-race: watch ``watchers`` from before ``trigger`` runs.

        A result that was already on screen before the trigger is ignored
        until the trigger has completed, so a message left over from the
        previous attempt cannot win the race.
        """
        stale = {name: await probe() for name, probe in watchers.items()}
        issued = anyio.Event()

        def _fresh(name: str, probe: Probe) -> Probe:
            async def _probe() -> Optional[AsyncOutcome]:
                result = await probe()
                leftover = stale[name]
                if (
                    result is not None
                    and leftover is not None
                    and not issued.is_set()
                    and (result.value, result.reason) == (leftover.value, leftover.reason)
                ):
                    return None
                return result

            return _probe

        async def _trigger() -> None:
            await trigger()
            issued.set()

        return await race(
            {name: _fresh(name, probe) for name, probe in watchers.items()},
            timeout=timeout,
            trigger=_trigger,
            interval=self.timeouts.poll_interval,
            label=label,
        )

    async def wait_for_loading_complete(self, timeout: Optional[float] = None) -> None:
        """Wait until the DOM has loaded and no loading indicator is visible."""
        bound = self.timeouts.navigation if timeout is None else timeout
        start = anyio.current_time()
        try:
            await self.page.wait_for_load_state("domcontentloaded", timeout=bound * 1000)
        except PlaywrightTimeout as exc:
            raise WaitTimedOut(what="DOM content loaded", timeout=bound, elapsed=anyio.current_time() - start) from exc

        indicator = self.field("loading_indicator")
        deadline = start + bound
        while await indicator.is_visible():
            now = anyio.current_time()
            if now >= deadline:
                raise WaitTimedOut(
                    what="loading indicator to disappear",
                    timeout=bound,
                    elapsed=now - start,
                )
            await anyio.sleep(min(self.timeouts.poll_interval, deadline - now))

    # ---- scoped session effects ------------------------------------------------
    @asynccontextmanager
    async def accept_dialogs(self) -> AsyncIterator[List[str]]:
        """Auto-accept confirm/alert dialogs for the duration of the block.

        Yields the list of dialog messages seen. The handler is removed on
        exit, including on cancellation.
        """
        messages: List[str] = []

        async def _accept(dialog: Dialog) -> None:
            messages.append(dialog.message)
            logger.debug(f"Accepting {dialog.type} dialog: {dialog.message}")
            await dialog.accept()

        self.page.on("dialog", _accept)
        try:
            yield messages
        finally:
            self.page.remove_listener("dialog", _accept)

    async def expect_download(
        self,
        trigger: Callable[[], Awaitable[object]],
        timeout: Optional[float] = None,
        target_dir: Optional[Path] = None,
    ) -> DownloadHandle:
        """Arm a download listener, run ``trigger``, and save the resulting file.

        Files land in ``target_dir``, else the page's own ``download_dir``, else
        ``settings.download_dir``. Sessions that run side by side must not share one.
        """
        bound = self.timeouts.download if timeout is None else timeout
        start = anyio.current_time()
        try:
            async with self.page.expect_download(timeout=bound * 1000) as download_info:
                await trigger()
            download = await download_info.value
        except PlaywrightTimeout as exc:
            raise WaitTimedOut(what="download to start", timeout=bound, elapsed=anyio.current_time() - start) from exc

        directory = Path(target_dir or self.download_dir or settings.download_dir)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / download.suggested_filename
        await download.save_as(path)
        size = path.stat().st_size
        logger.debug(f"Downloaded {download.suggested_filename} ({size} bytes) to {path}")
        return DownloadHandle(suggested_filename=download.suggested_filename, path=path, size=size)

    # ---- diagnostics ------------------------------------------------------------
    async def capture_diagnostic(self, name: str) -> Optional[Path]:
        """Best-effort full-page screenshot. Never raises."""
        safe = re.sub(r"[^A-Za-z0-9_.-]+", "-", name).strip("-") or "diagnostic"
        try:
            directory = Path(settings.screenshot_dir)
            directory.mkdir(parents=True, exist_ok=True)
            path = directory / f"{settings.screenshot_prefix}-{safe}.png"
            await self.page.screenshot(path=str(path), full_page=True)
        except Exception as exc:
            logger.warning(f"Diagnostic capture '{name}' failed: {exc}")
            return None
        logger.info(f"Diagnostic screenshot saved: {path}")
        return path
