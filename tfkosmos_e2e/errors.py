"""Error taxonomy for the E2E harness.

Every error raised by the harness derives from :class:`HarnessError` and
renders a message that names the field/selector involved and, for waits,
the time actually spent waiting.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence, Tuple


class HarnessError(Exception):
    """Base class for harness failures."""


@dataclass(eq=False)
class LocatorNotFound(HarnessError):
    """Raised when every locator strategy for a field is exhausted or ambiguous."""

    field: str
    attempted: Sequence[str] = ()
    ambiguous: bool = False

    def __str__(self) -> str:
        reason = "ambiguous match" if self.ambiguous else "no match"
        tried = "; ".join(self.attempted) or "no strategies configured"
        return f"Could not locate '{self.field}' ({reason}). Tried: {tried}"


@dataclass(eq=False)
class WaitTimedOut(HarnessError):
    """Raised when a bounded wait expires."""

    what: str
    timeout: float
    elapsed: float
    attempted: Sequence[str] = ()

    def __str__(self) -> str:
        message = (
            f"Timed out after {self.elapsed:.1f}s (limit {self.timeout:.1f}s) "
            f"waiting for {self.what}"
        )
        if self.attempted:
            message += f". Tried: {'; '.join(self.attempted)}"
        return message


@dataclass(eq=False)
class NotificationTimeout(WaitTimedOut):
    """No matching notification appeared within the bound."""


@dataclass(eq=False)
class ScanIdentifierMissing(HarnessError):
    """The resources route was reached but carried no scan identifier."""

    url: str

    def __str__(self) -> str:
        return f"Scan finished and navigated to {self.url}, but no scan id could be parsed"


@dataclass(eq=False)
class PreconditionUnmet(HarnessError):
    """A step needs state that no earlier step produced."""

    scenario: str
    step: str
    missing: Tuple[str, ...]
    producers: Tuple[str, ...] = ()

    def __str__(self) -> str:
        message = (
            f"Scenario '{self.scenario}', step '{self.step}': "
            f"required state {', '.join(self.missing)} was not produced"
        )
        if self.producers:
            message += f" (expected from: {', '.join(self.producers)})"
        return message


@dataclass(eq=False)
class StepFailed(HarnessError):
    """Terminal failure of a scenario, naming the step that broke it."""

    scenario: str
    step: str
    elapsed: float
    reason: str
    report: Any = field(default=None, repr=False)

    def __str__(self) -> str:
        return (
            f"Scenario '{self.scenario}' aborted at step '{self.step}' "
            f"after {self.elapsed:.1f}s: {self.reason}"
        )


@dataclass(eq=False)
class OutcomeFailed(HarnessError):
    """An asynchronous operation resolved to a failure outcome."""

    label: str
    reason: str
    elapsed: float = 0.0

    def __str__(self) -> str:
        return f"{self.label} failed after {self.elapsed:.1f}s: {self.reason}"


@dataclass(eq=False)
class InvalidOption(HarnessError, ValueError):
    """A closed-enumeration setting received a value outside its set."""

    setting: str
    value: Any
    allowed: Sequence[str] = ()

    def __str__(self) -> str:
        return f"Invalid {self.setting} {self.value!r}; expected one of: {', '.join(self.allowed)}"


@dataclass(eq=False)
class NavigationFailed(HarnessError):
    """Loading a route failed."""

    url: str
    message: str

    def __str__(self) -> str:
        return f"Navigation to {self.url} failed: {self.message}"


@dataclass(eq=False)
class DuplicateSubmission(HarnessError):
    """An action was triggered again while its previous run was still in flight."""

    action: str

    def __str__(self) -> str:
        return f"'{self.action}' is already running; refusing to submit it twice"
