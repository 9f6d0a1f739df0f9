"""Page objects for the TFKosmos screens."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from playwright.async_api import Page

from tfkosmos_e2e.config import Timeouts
from tfkosmos_e2e.pages.base import BasePage, DownloadHandle
from tfkosmos_e2e.pages.connection import ConnectionPage
from tfkosmos_e2e.pages.generate import GeneratePage
from tfkosmos_e2e.pages.resources import ResourcesPage
from tfkosmos_e2e.pages.scan import ScanPage, ScanPhase
from tfkosmos_e2e.pages.templates import TemplatesPage


class ScreenSet:
    """One instance of every screen object, bound to a single browser page."""

    def __init__(
        self,
        page: Page,
        timeouts: Optional[Timeouts] = None,
        download_dir: Optional[Path] = None,
    ) -> None:
        self.page = page
        self.download_dir = download_dir
        self.connection = ConnectionPage(page, timeouts)
        self.scan = ScanPage(page, timeouts)
        self.resources = ResourcesPage(page, timeouts)
        self.generate = GeneratePage(page, timeouts, download_dir)
        self.templates = TemplatesPage(page, timeouts)

    def __repr__(self) -> str:
        return f"ScreenSet(url={self.page.url})"


__all__ = [
    "BasePage",
    "ConnectionPage",
    "DownloadHandle",
    "GeneratePage",
    "ResourcesPage",
    "ScanPage",
    "ScanPhase",
    "ScreenSet",
    "TemplatesPage",
]
