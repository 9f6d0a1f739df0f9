"""Connection screen: provider tabs and credential test."""
from __future__ import annotations

import logging
from typing import Optional

from tfkosmos_e2e.fields import CONNECTION_FIELDS
from tfkosmos_e2e.options import AzureAuthMethod, Provider, coerce
from tfkosmos_e2e.outcome import AsyncOutcome
from tfkosmos_e2e.pages.base import BasePage
from tfkosmos_e2e.testdata import ConnectionProfile

logger = logging.getLogger(__name__)

# A field that is only rendered while the provider's form is active.
_FORM_MARKER = {
    Provider.AWS: "aws_profile",
    Provider.AZURE: "azure_auth_method",
}


class ConnectionPage(BasePage):
    path = "/connection"
    FIELDS = CONNECTION_FIELDS

    async def open(self) -> None:
        await self.navigate()
        await self.field("aws_tab").wait_until_visible(self.timeouts.navigation)

    async def switch_provider(self, provider: Provider) -> None:
        """Activate the provider tab and wait for its form. Safe to repeat."""
        provider = coerce(Provider, provider, "provider")
        tab = "aws_tab" if provider is Provider.AWS else "azure_tab"
        await self.field(tab).click()
        await self.field(_FORM_MARKER[provider]).wait_until_visible(self.timeouts.action)

    async def switch_to_aws(self) -> None:
        await self.switch_provider(Provider.AWS)

    async def switch_to_azure(self) -> None:
        await self.switch_provider(Provider.AZURE)

    async def active_provider_visible(self, provider: Provider) -> bool:
        """True when ``provider``'s form is shown and the other one is not."""
        provider = coerce(Provider, provider, "provider")
        other = Provider.AZURE if provider is Provider.AWS else Provider.AWS
        return (
            await self.field(_FORM_MARKER[provider]).is_visible()
            and not await self.field(_FORM_MARKER[other]).is_visible()
        )

    async def test_connection(
        self,
        profile: ConnectionProfile,
        timeout: Optional[float] = None,
    ) -> AsyncOutcome[str]:
        """Fill the credentials for ``profile`` and run the connection test.

        Resolves to ``SUCCEEDED(message)`` or ``FAILED(message)``, whichever
        notification appears first after the test button is clicked.
        """
        await self.switch_provider(profile.provider)
        if profile.provider is Provider.AWS:
            await self._fill_aws(profile)
        else:
            await self._fill_azure(profile)

        outcome = await self.race_after(
            self.field("test_button").click,
            {
                "success": self.watch_notification("connection_success"),
                "error": self.watch_notification("connection_error", success=False),
            },
            timeout=self.timeouts.connection if timeout is None else timeout,
            label=f"{profile.provider.value} connection test",
        )
        logger.info(f"Connection test ({profile.provider.value}): {outcome.state.value} in {outcome.elapsed:.2f}s")
        return outcome

    async def _fill_aws(self, profile: ConnectionProfile) -> None:
        if profile.profile is not None:
            await self.field("aws_profile").fill(profile.profile)
        # The region control only exists on the aws-login sub-form.
        if profile.region and await self.has_field("aws_region"):
            await self.field("aws_region").set_value(profile.region)
        if profile.assume_role_arn and await self.has_field("aws_assume_role_arn"):
            await self.field("aws_assume_role_arn").fill(profile.assume_role_arn)
        if profile.session_name and await self.has_field("aws_session_name"):
            await self.field("aws_session_name").fill(profile.session_name)

    async def _fill_azure(self, profile: ConnectionProfile) -> None:
        await self.field("azure_auth_method").select(profile.auth_method.value)
        if profile.auth_method is not AzureAuthMethod.SERVICE_PRINCIPAL:
            return
        await self.field("azure_tenant_id").wait_until_visible(self.timeouts.action)
        await self.field("azure_tenant_id").fill(profile.tenant_id or "")
        await self.field("azure_client_id").fill(profile.client_id or "")
        await self.field("azure_client_secret").fill(profile.client_secret or "")
