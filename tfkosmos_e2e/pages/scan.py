"""Scan screen: provider-specific scan configuration and job progress."""
from __future__ import annotations

import enum
import logging
import re
from typing import List, Optional

from tfkosmos_e2e.errors import ScanIdentifierMissing
from tfkosmos_e2e.fields import SCAN_FIELDS
from tfkosmos_e2e.options import Provider, coerce
from tfkosmos_e2e.outcome import AsyncOutcome, poll
from tfkosmos_e2e.pages.base import BasePage
from tfkosmos_e2e.testdata import ScanConfig

logger = logging.getLogger(__name__)

RESOURCES_ROUTE = re.compile(r"^/resources(?:/|$)")
SCAN_ID_IN_PATH = re.compile(r"^/resources/([^/?#]+)")


class ScanPhase(enum.IntEnum):
    PENDING = 0
    RUNNING = 1
    COMPLETE = 2
    ERROR = 3

    @property
    def terminal(self) -> bool:
        return self >= ScanPhase.COMPLETE


class ScanPage(BasePage):
    path = "/scan"
    FIELDS = SCAN_FIELDS

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.phases: List[ScanPhase] = []

    async def open(self) -> None:
        await self.navigate()
        await self.field("scan_button").wait_until_visible(self.timeouts.navigation)

    async def select_provider(self, provider: Provider) -> None:
        """Pick the provider with the select control, or the provider button when there is none."""
        provider = coerce(Provider, provider, "provider")
        if await self.has_field("provider_select"):
            await self.field("provider_select").select(provider.value)
        else:
            button = "aws_provider_button" if provider is Provider.AWS else "azure_provider_button"
            await self.field(button).click()

    async def start_scan(self, config: ScanConfig, timeout: Optional[float] = None) -> AsyncOutcome[str]:
        """Configure and start a scan, then follow it to completion.

        Resolves to ``SUCCEEDED(scan_id)`` once the app navigates to the
        resource listing, ``FAILED(message)`` when it reports an error, or
        ``TIMED_OUT``. The observed phase sequence is kept in :attr:`phases`.
        """
        await self.select_provider(config.provider)
        if config.provider is Provider.AWS:
            await self._fill_aws(config)
        else:
            await self._fill_azure(config)

        self.phases = [ScanPhase.PENDING]
        await self.field("scan_button").click()
        bound = self.timeouts.scan if timeout is None else timeout
        label = f"{config.provider.value} scan"

        async def _probe() -> Optional[AsyncOutcome[str]]:
            phase = await self._observe_phase()
            self._record(phase)
            current = self.phases[-1]
            if current is ScanPhase.COMPLETE:
                return AsyncOutcome.succeeded(self._scan_id_from_url(), label=label)
            if current is ScanPhase.ERROR:
                message = await self.field("scan_error").text_content()
                return AsyncOutcome.failed(message.strip() or "scan reported an error", label=label)
            return None

        outcome = await poll(_probe, timeout=bound, interval=self.timeouts.poll_interval, label=label)
        logger.info(
            f"Scan {outcome.state.value} after {outcome.elapsed:.1f}s; "
            f"phases={' -> '.join(p.name for p in self.phases)}"
        )
        return outcome

    async def _observe_phase(self) -> ScanPhase:
        if RESOURCES_ROUTE.search(self.current_path):
            return ScanPhase.COMPLETE
        if await self.field("scan_error").is_visible():
            return ScanPhase.ERROR
        if await self.field("progress_bar").is_visible() or await self.field("progress_text").is_visible():
            return ScanPhase.RUNNING
        # The completion message can flash before the client-side redirect.
        if await self.field("scan_complete").is_visible():
            return ScanPhase.RUNNING
        return ScanPhase.PENDING

    def _record(self, phase: ScanPhase) -> None:
        last = self.phases[-1]
        if last.terminal or phase <= last:
            return
        if phase.terminal and last is ScanPhase.PENDING:
            # A fast backend can skip the visible running state.
            self.phases.append(ScanPhase.RUNNING)
        self.phases.append(phase)
        logger.debug(f"Scan phase -> {phase.name}")

    def _scan_id_from_url(self) -> str:
        match = SCAN_ID_IN_PATH.search(self.current_path)
        if not match:
            raise ScanIdentifierMissing(url=self.page.url)
        return match.group(1)

    async def _fill_aws(self, config: ScanConfig) -> None:
        if config.profile is not None and await self.has_field("aws_profile"):
            await self.field("aws_profile").fill(config.profile)
        if config.region and await self.has_field("aws_region"):
            await self.field("aws_region").set_value(config.region)
        if config.assume_role_arn and await self.has_field("aws_assume_role_arn"):
            await self.field("aws_assume_role_arn").fill(config.assume_role_arn)
        if config.name_prefix is not None and await self.has_field("name_prefix"):
            await self.field("name_prefix").fill(config.name_prefix)

    async def _fill_azure(self, config: ScanConfig) -> None:
        if config.subscription and await self.has_field("azure_subscription"):
            await self.field("azure_subscription").set_value(config.subscription)
        if config.resource_group and await self.has_field("azure_resource_group"):
            await self.field("azure_resource_group").set_value(config.resource_group)
