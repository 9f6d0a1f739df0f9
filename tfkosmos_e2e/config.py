"""Shared configuration for the TFKosmos E2E harness.

Configuration layers, highest priority first:
- environment variables (``E2E_BASE_URL``, ``PLAYWRIGHT_HEADLESS``, ...)
- ``.env.defaults`` at the repository root
- built-in defaults below

Live-cloud steps are gated: set ``E2E_LIVE_AWS=1`` / ``E2E_LIVE_AZURE=1`` to
run steps that need real cloud credentials.
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional
from urllib.parse import urljoin

from tfkosmos_e2e.env_defaults import get_env_default

GATE_LIVE_AWS = "live_aws"
GATE_LIVE_AZURE = "live_azure"

_TRUE = {"1", "true", "yes", "on"}


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None or value == "":
        value = get_env_default(key)
    return value if value not in (None, "") else default


def _env_flag(key: str, default: bool = False) -> bool:
    value = _env(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE


def _env_float(key: str, default: float) -> float:
    value = _env(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        print(f"[CONFIG] WARNING: {key}={value!r} is not a number, using default {default}")
        return default


@dataclass
class Timeouts:
    """Wait bounds in seconds."""

    navigation: float = 30.0
    action: float = 10.0
    notification: float = 10.0
    connection: float = 10.0
    scan: float = 60.0
    generation: float = 30.0
    download: float = 30.0
    scenario: float = 300.0
    debounce: float = 1.0
    poll_interval: float = 0.25

    @classmethod
    def from_env(cls) -> "Timeouts":
        defaults = cls()
        return cls(
            navigation=_env_float("E2E_NAVIGATION_TIMEOUT", defaults.navigation),
            action=_env_float("E2E_ACTION_TIMEOUT", defaults.action),
            notification=_env_float("E2E_NOTIFICATION_TIMEOUT", defaults.notification),
            connection=_env_float("E2E_CONNECTION_TIMEOUT", defaults.connection),
            scan=_env_float("E2E_SCAN_TIMEOUT", defaults.scan),
            generation=_env_float("E2E_GENERATION_TIMEOUT", defaults.generation),
            download=_env_float("E2E_DOWNLOAD_TIMEOUT", defaults.download),
            scenario=_env_float("E2E_SCENARIO_TIMEOUT", defaults.scenario),
            debounce=_env_float("E2E_DEBOUNCE", defaults.debounce),
            poll_interval=_env_float("E2E_POLL_INTERVAL", defaults.poll_interval),
        )


@dataclass
class E2eTargetProfile:
    """A deployment of the application under test."""

    name: str
    base_url: str
    locale: str = "ja-JP"
    live_gates: FrozenSet[str] = field(default_factory=frozenset)


class E2eTestConfig:
    """Environment-driven harness configuration.

    A ``primary`` profile always exists; an optional ``smoke`` profile is
    added when ``E2E_SMOKE_BASE_URL`` is set. Live gates are never enabled
    on the smoke profile.
    """

    def __init__(self) -> None:
        self.playwright_headless: bool = _env_flag("PLAYWRIGHT_HEADLESS", True)
        self.browser_type: str = _env("E2E_BROWSER", "chromium")
        self.screenshot_dir: str = _env("SCREENSHOT_DIR", "screenshots")
        self.screenshot_prefix: str = _env("E2E_SCREENSHOT_PREFIX", "e2e")
        self.download_dir: str = _env("E2E_DOWNLOAD_DIR", "downloads")
        self.timeouts: Timeouts = Timeouts.from_env()

        gates = set()
        if _env_flag("E2E_LIVE_AWS"):
            gates.add(GATE_LIVE_AWS)
        if _env_flag("E2E_LIVE_AZURE"):
            gates.add(GATE_LIVE_AZURE)

        primary = E2eTargetProfile(
            name="primary",
            base_url=_env("E2E_BASE_URL", "http://localhost:5173"),
            locale=_env("E2E_LOCALE", "ja-JP"),
            live_gates=frozenset(gates),
        )
        self._profiles: Dict[str, E2eTargetProfile] = {primary.name: primary}

        smoke_base = _env("E2E_SMOKE_BASE_URL")
        if smoke_base:
            smoke = E2eTargetProfile(
                name="smoke",
                base_url=smoke_base,
                locale=_env("E2E_SMOKE_LOCALE", primary.locale),
            )
            self._profiles[smoke.name] = smoke

        self._active: E2eTargetProfile = primary

    # ---- active profile helpers -------------------------------------------------
    @property
    def base_url(self) -> str:
        return self._active.base_url

    @property
    def locale(self) -> str:
        return self._active.locale

    @property
    def enabled_gates(self) -> FrozenSet[str]:
        return self._active.live_gates

    def gate_enabled(self, gate: str) -> bool:
        return gate in self._active.live_gates

    # ---- profile orchestration --------------------------------------------------
    def profiles(self) -> List[E2eTargetProfile]:
        return list(self._profiles.values())

    @contextmanager
    def use_profile(self, profile: E2eTargetProfile) -> Iterator[E2eTargetProfile]:
        """Temporarily switch the active profile.

        The profile is copied so that tests mutating it do not leak into
        later tests in the same process.
        """
        previous = self._active
        self._active = deepcopy(profile)
        try:
            yield self._active
        finally:
            self._active = previous

    # ---- utility helpers --------------------------------------------------------
    def url(self, path: str) -> str:
        """Return an absolute URL for the provided path."""
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))


@dataclass(frozen=True)
class LiveCredentials:
    """Real cloud inputs for gated journeys, read from the environment."""

    aws_profile: str = "default"
    aws_region: str = "us-east-1"
    azure_tenant_id: str = ""
    azure_client_id: str = ""
    azure_client_secret: str = ""
    azure_subscription: str = ""

    @classmethod
    def from_env(cls) -> "LiveCredentials":
        return cls(
            aws_profile=_env("E2E_AWS_PROFILE", "default"),
            aws_region=_env("E2E_AWS_REGION", "us-east-1"),
            azure_tenant_id=_env("E2E_AZURE_TENANT_ID", ""),
            azure_client_id=_env("E2E_AZURE_CLIENT_ID", ""),
            azure_client_secret=_env("E2E_AZURE_CLIENT_SECRET", ""),
            azure_subscription=_env("E2E_AZURE_SUBSCRIPTION", ""),
        )


# Singleton instance - initialized on first import
settings = E2eTestConfig()
