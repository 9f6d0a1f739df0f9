"""Generate screen: generation settings, the generation job, download and Terraform checks."""
from __future__ import annotations

import logging
from typing import Optional, Union

from tfkosmos_e2e.errors import DuplicateSubmission
from tfkosmos_e2e.fields import GENERATE_FIELDS
from tfkosmos_e2e.options import FileSplitRule, ImportScriptFormat, NamingConvention, coerce
from tfkosmos_e2e.outcome import AsyncOutcome, Probe, race
from tfkosmos_e2e.pages.base import BasePage, DownloadHandle
from tfkosmos_e2e.testdata import GenerateConfig

logger = logging.getLogger(__name__)

ARTIFACT_NAME = "terraform-output.zip"


class GeneratePage(BasePage):
    path = "/generate"
    FIELDS = GENERATE_FIELDS

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._generating = False

    async def open(self, scan_id: str) -> None:
        await self.navigate(f"/generate/{scan_id}")
        await self.field("generate_button").wait_until_visible(self.timeouts.navigation)

    # ---- settings ---------------------------------------------------------------
    async def set_output_path(self, path: str) -> None:
        await self.field("output_path").fill(path)

    async def set_file_split_rule(self, rule: Union[FileSplitRule, str]) -> None:
        rule = coerce(FileSplitRule, rule, "file split rule")
        await self.field("file_split_rule").select(rule.value)

    async def set_naming_convention(self, convention: Union[NamingConvention, str]) -> None:
        convention = coerce(NamingConvention, convention, "naming convention")
        await self.field("naming_convention").select(convention.value)

    async def set_import_script_format(self, fmt: Union[ImportScriptFormat, str]) -> None:
        fmt = coerce(ImportScriptFormat, fmt, "import script format")
        await self.field("import_script_format").select(fmt.value)

    async def set_generate_readme(self, enabled: bool) -> None:
        if enabled:
            await self.field("generate_readme").check()
        else:
            await self.field("generate_readme").uncheck()

    async def apply_config(self, config: GenerateConfig) -> None:
        """Apply every setting ``config`` specifies; unset fields keep the form default."""
        if config.output_path is not None:
            await self.set_output_path(config.output_path)
        if config.file_split_rule is not None:
            await self.set_file_split_rule(config.file_split_rule)
        if config.naming_convention is not None:
            await self.set_naming_convention(config.naming_convention)
        if config.import_script_format is not None:
            await self.set_import_script_format(config.import_script_format)
        if config.generate_readme is not None:
            await self.set_generate_readme(config.generate_readme)

    # ---- generation -------------------------------------------------------------
    async def generate(self, timeout: Optional[float] = None) -> AsyncOutcome[str]:
        """Run generation once.

        Raises :class:`DuplicateSubmission` while a previous run is in flight,
        whether started from this object or shown by the disabled button.
        """
        button = self.field("generate_button")
        if self._generating or not await button.is_enabled():
            raise DuplicateSubmission(action="generate")

        self._generating = True
        try:
            outcome = await self.race_after(
                button.click,
                {
                    "success": self.watch_notification("generation_success"),
                    "error": self.watch_notification("generation_error", success=False),
                },
                timeout=self.timeouts.generation if timeout is None else timeout,
                label="generation",
            )
        finally:
            self._generating = False
        logger.info(f"Generation {outcome.state.value} in {outcome.elapsed:.2f}s")
        return outcome

    async def download_artifact(self, timeout: Optional[float] = None) -> DownloadHandle:
        """Download the generated archive. The listener is armed before the click."""
        await self.field("download_button").wait_until_visible(self.timeouts.action)
        handle = await self.expect_download(self.field("download_button").click, timeout=timeout)
        if handle.suggested_filename != ARTIFACT_NAME:
            logger.warning(f"Unexpected artifact name {handle.suggested_filename!r} (expected {ARTIFACT_NAME})")
        return handle

    async def preview_visible(self) -> bool:
        return await self.field("preview_heading").is_visible() and await self.field("code_preview").is_visible()

    # ---- Terraform CLI checks ---------------------------------------------------
    async def terraform_available(self, timeout: Optional[float] = None) -> bool:
        """Whether the panel reports an installed Terraform CLI (waits for the status to render)."""
        outcome = await race(
            {
                "version": self.watch_notification("terraform_status"),
                "missing": self.watch_notification("terraform_missing", success=False),
            },
            timeout=self.timeouts.action if timeout is None else timeout,
            interval=self.timeouts.poll_interval,
            label="terraform status",
        )
        return outcome.is_success

    def _watch_value(self, field: str, value: object) -> Probe:
        handle = self.field(field)

        async def _probe() -> Optional[AsyncOutcome]:
            if await handle.is_visible():
                return AsyncOutcome.succeeded(value, label=field)
            return None

        return _probe

    async def run_validation(self, timeout: Optional[float] = None) -> AsyncOutcome[bool]:
        """``terraform validate`` via the UI: ``SUCCEEDED(True|False)`` for valid/invalid code."""
        return await self.race_after(
            self.field("validate_button").click,
            {
                "passed": self._watch_value("validation_passed", True),
                "failed": self._watch_value("validation_failed", False),
                "error": self.watch_notification("validation_request_error", success=False),
            },
            timeout=self.timeouts.generation if timeout is None else timeout,
            label="terraform validate",
        )

    async def run_format_check(self, timeout: Optional[float] = None) -> AsyncOutcome[bool]:
        """``terraform fmt -check`` via the UI: ``SUCCEEDED(True)`` when already formatted.

        Builds without a dedicated check button run the format check as part
        of validation.
        """
        if await self.has_field("format_check_button"):
            trigger = self.field("format_check_button").click
        else:
            trigger = self.field("validate_button").click
        return await self.race_after(
            trigger,
            {
                "clean": self._watch_value("format_clean", True),
                "dirty": self._watch_value("format_dirty", False),
                "error": self.watch_notification("format_error", success=False),
            },
            timeout=self.timeouts.generation if timeout is None else timeout,
            label="terraform fmt check",
        )

    async def apply_format(self, timeout: Optional[float] = None) -> AsyncOutcome[bool]:
        """Apply ``terraform fmt``. Succeeds immediately when nothing needs formatting."""
        if not await self.has_field("format_apply_button"):
            logger.info("No format action offered; files are already formatted")
            return AsyncOutcome.succeeded(True, label="terraform fmt")
        return await self.race_after(
            self.field("format_apply_button").click,
            {
                "clean": self._watch_value("format_clean", True),
                "error": self.watch_notification("format_error", success=False),
            },
            timeout=self.timeouts.generation if timeout is None else timeout,
            label="terraform fmt",
        )
