"""Closed value sets the UI accepts, and strict coercion into them."""
from __future__ import annotations

import enum
from typing import Tuple, Type, TypeVar, Union

from tfkosmos_e2e.errors import InvalidOption

E = TypeVar("E", bound=enum.Enum)


class Provider(str, enum.Enum):
    AWS = "aws"
    AZURE = "azure"

    @property
    def label(self) -> str:
        """Accessible name of the provider tab/button."""
        return "AWS" if self is Provider.AWS else "Azure"


class AzureAuthMethod(str, enum.Enum):
    AZ_LOGIN = "az_login"
    SERVICE_PRINCIPAL = "service_principal"


class ResourceTab(str, enum.Enum):
    USERS = "users"
    GROUPS = "groups"
    ROLES = "roles"
    POLICIES = "policies"
    ATTACHMENTS = "attachments"
    CLEANUP = "cleanup"
    DEPENDENCIES = "dependencies"
    ROLE_ASSIGNMENTS = "role_assignments"
    ROLE_DEFINITIONS = "role_definitions"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def for_provider(cls, provider: Provider) -> Tuple["ResourceTab", ...]:
        if provider is Provider.AZURE:
            return (cls.ROLE_ASSIGNMENTS, cls.ROLE_DEFINITIONS, cls.DEPENDENCIES)
        return (
            cls.USERS,
            cls.GROUPS,
            cls.ROLES,
            cls.POLICIES,
            cls.ATTACHMENTS,
            cls.CLEANUP,
            cls.DEPENDENCIES,
        )


class FileSplitRule(str, enum.Enum):
    SINGLE = "single"
    BY_RESOURCE_TYPE = "by_resource_type"
    BY_RESOURCE_NAME = "by_resource_name"
    BY_RESOURCE_GROUP = "by_resource_group"
    BY_SUBSCRIPTION = "by_subscription"


class NamingConvention(str, enum.Enum):
    SNAKE_CASE = "snake_case"
    KEBAB_CASE = "kebab-case"
    ORIGINAL = "original"


class ImportScriptFormat(str, enum.Enum):
    SH = "sh"
    PS1 = "ps1"


class TemplateKind(str, enum.Enum):
    IAM_USER = "iam_user"
    IAM_GROUP = "iam_group"
    IAM_ROLE = "iam_role"
    IAM_POLICY = "iam_policy"
    ROLE_ASSIGNMENT = "role_assignment"
    ROLE_DEFINITION = "role_definition"


def coerce(enum_type: Type[E], value: Union[E, str], setting: str) -> E:
    """Return ``value`` as a member of ``enum_type`` or raise :class:`InvalidOption`.

    Accepts members and their string values only; nothing is defaulted.
    """
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        raise InvalidOption(
            setting=setting,
            value=value,
            allowed=tuple(member.value for member in enum_type),
        ) from None
