"""Deterministic inputs for connection, scan and generation journeys.

Records are frozen; negative-path variants are derived with
``with_overrides`` so a shared fixture can never be mutated by a test.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass, replace
from typing import Optional

from tfkosmos_e2e.config import LiveCredentials
from tfkosmos_e2e.options import (
    AzureAuthMethod,
    FileSplitRule,
    ImportScriptFormat,
    NamingConvention,
    Provider,
    coerce,
)


class _Overridable:
    def with_overrides(self, **changes):
        """Copy with ``changes`` applied; unknown field names raise ``TypeError``."""
        return replace(self, **changes)


@dataclass(frozen=True)
class ConnectionProfile(_Overridable):
    provider: Provider
    # AWS
    profile: Optional[str] = None
    region: Optional[str] = None
    assume_role_arn: Optional[str] = None
    session_name: Optional[str] = None
    # Azure
    auth_method: AzureAuthMethod = AzureAuthMethod.SERVICE_PRINCIPAL
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "provider", coerce(Provider, self.provider, "provider"))
        object.__setattr__(self, "auth_method", coerce(AzureAuthMethod, self.auth_method, "auth method"))


@dataclass(frozen=True)
class ScanConfig(_Overridable):
    provider: Provider
    profile: Optional[str] = None
    region: Optional[str] = None
    assume_role_arn: Optional[str] = None
    name_prefix: Optional[str] = None
    subscription: Optional[str] = None
    resource_group: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "provider", coerce(Provider, self.provider, "provider"))


@dataclass(frozen=True)
class GenerateConfig(_Overridable):
    """Generation settings; only fields that are set are applied to the form."""

    output_path: Optional[str] = None
    file_split_rule: Optional[FileSplitRule] = None
    naming_convention: Optional[NamingConvention] = None
    import_script_format: Optional[ImportScriptFormat] = None
    generate_readme: Optional[bool] = None

    def __post_init__(self) -> None:
        if self.file_split_rule is not None:
            object.__setattr__(self, "file_split_rule", coerce(FileSplitRule, self.file_split_rule, "file split rule"))
        if self.naming_convention is not None:
            object.__setattr__(
                self, "naming_convention", coerce(NamingConvention, self.naming_convention, "naming convention")
            )
        if self.import_script_format is not None:
            object.__setattr__(
                self,
                "import_script_format",
                coerce(ImportScriptFormat, self.import_script_format, "import script format"),
            )


# ---- AWS -----------------------------------------------------------------------
AWS_VALID_CONNECTION = ConnectionProfile(provider=Provider.AWS, profile="default", region="us-east-1")
AWS_INVALID_CONNECTION = AWS_VALID_CONNECTION.with_overrides(profile="invalid-profile")

AWS_SCAN = ScanConfig(provider=Provider.AWS, profile="default", region="us-east-1", name_prefix="test-")

# ---- Azure ---------------------------------------------------------------------
AZURE_VALID_CONNECTION = ConnectionProfile(
    provider=Provider.AZURE,
    auth_method=AzureAuthMethod.SERVICE_PRINCIPAL,
    tenant_id="test-tenant-id",
    client_id="test-client-id",
    client_secret="test-client-secret",
)
AZURE_INVALID_CONNECTION = AZURE_VALID_CONNECTION.with_overrides(
    tenant_id="invalid-tenant",
    client_id="invalid-client",
    client_secret="invalid-secret",
)

AZURE_SCAN = ScanConfig(provider=Provider.AZURE, subscription="test-subscription", resource_group="test-rg")

# ---- Generation ----------------------------------------------------------------
DEFAULT_GENERATE = GenerateConfig(
    output_path="./terraform-output",
    file_split_rule=FileSplitRule.BY_RESOURCE_TYPE,
    naming_convention=NamingConvention.SNAKE_CASE,
    import_script_format=ImportScriptFormat.SH,
    generate_readme=True,
)


def unique_output_path(prefix: str = "e2e-output") -> str:
    """Output directory that does not collide with other sessions."""
    return f"./{prefix}-{secrets.token_hex(4)}"


def live_aws_connection(credentials: Optional[LiveCredentials] = None) -> ConnectionProfile:
    creds = credentials or LiveCredentials.from_env()
    return AWS_VALID_CONNECTION.with_overrides(profile=creds.aws_profile, region=creds.aws_region)


def live_aws_scan(credentials: Optional[LiveCredentials] = None) -> ScanConfig:
    creds = credentials or LiveCredentials.from_env()
    return AWS_SCAN.with_overrides(profile=creds.aws_profile, region=creds.aws_region)


def live_azure_connection(credentials: Optional[LiveCredentials] = None) -> ConnectionProfile:
    creds = credentials or LiveCredentials.from_env()
    return AZURE_VALID_CONNECTION.with_overrides(
        tenant_id=creds.azure_tenant_id,
        client_id=creds.azure_client_id,
        client_secret=creds.azure_client_secret,
    )


def live_azure_scan(credentials: Optional[LiveCredentials] = None) -> ScanConfig:
    creds = credentials or LiveCredentials.from_env()
    return AZURE_SCAN.with_overrides(subscription=creds.azure_subscription or AZURE_SCAN.subscription)
