"""Typed results for out-of-band operations and the bounded waits that produce them.

An :class:`AsyncOutcome` is what a page object returns for anything that
completes after the triggering click: a connection test, a scan job, a
generation job. Outcomes are produced by :func:`poll` (one probe, repeated)
or :func:`race` (several probes watched concurrently, first resolution wins)
and always carry how long the wait took.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Generic, List, Mapping, Optional, TypeVar

import anyio

from tfkosmos_e2e.errors import OutcomeFailed, WaitTimedOut

logger = logging.getLogger(__name__)

T = TypeVar("T")

Probe = Callable[[], Awaitable[Optional["AsyncOutcome"]]]


class OutcomeState(str, enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class AsyncOutcome(Generic[T]):
    """Result of an operation observed asynchronously."""

    state: OutcomeState
    value: Optional[T] = None
    reason: Optional[str] = None
    label: str = ""
    elapsed: float = 0.0
    timeout: Optional[float] = None

    # ---- constructors -----------------------------------------------------------
    @classmethod
    def pending(cls, label: str = "") -> "AsyncOutcome[T]":
        return cls(OutcomeState.PENDING, label=label)

    @classmethod
    def succeeded(cls, value: Optional[T] = None, label: str = "") -> "AsyncOutcome[T]":
        return cls(OutcomeState.SUCCEEDED, value=value, label=label)

    @classmethod
    def failed(cls, reason: str, label: str = "") -> "AsyncOutcome[T]":
        return cls(OutcomeState.FAILED, reason=reason, label=label)

    @classmethod
    def timed_out(cls, label: str, timeout: float, elapsed: float) -> "AsyncOutcome[T]":
        return cls(
            OutcomeState.TIMED_OUT,
            reason=f"no result within {timeout:.1f}s",
            label=label,
            elapsed=elapsed,
            timeout=timeout,
        )

    # ---- state helpers ----------------------------------------------------------
    @property
    def is_pending(self) -> bool:
        return self.state is OutcomeState.PENDING

    @property
    def is_success(self) -> bool:
        return self.state is OutcomeState.SUCCEEDED

    @property
    def is_failure(self) -> bool:
        return self.state is OutcomeState.FAILED

    @property
    def is_timed_out(self) -> bool:
        return self.state is OutcomeState.TIMED_OUT

    def stamped(self, elapsed: float, label: Optional[str] = None, timeout: Optional[float] = None) -> "AsyncOutcome[T]":
        """Copy with timing metadata filled in."""
        return replace(
            self,
            elapsed=elapsed,
            label=label if label is not None and not self.label else self.label,
            timeout=timeout if self.timeout is None else self.timeout,
        )

    def unwrap(self) -> Optional[T]:
        """Return the success value or raise the matching harness error."""
        if self.is_success:
            return self.value
        if self.is_timed_out:
            raise WaitTimedOut(what=self.label or "outcome", timeout=self.timeout or 0.0, elapsed=self.elapsed)
        if self.is_failure:
            raise OutcomeFailed(label=self.label or "operation", reason=self.reason or "unknown", elapsed=self.elapsed)
        raise OutcomeFailed(label=self.label or "operation", reason="still pending", elapsed=self.elapsed)

    def __str__(self) -> str:
        detail = f" value={self.value!r}" if self.is_success else f" reason={self.reason!r}"
        return f"AsyncOutcome({self.label or '?'}: {self.state.value}{detail}, {self.elapsed:.2f}s)"


async def poll(
    probe: Probe,
    *,
    timeout: float,
    interval: float = 0.25,
    label: str = "",
) -> AsyncOutcome:
    """Call ``probe`` until it returns a settled outcome or ``timeout`` expires.

    ``probe`` returns ``None`` (or a pending outcome) while the condition is
    unresolved. Expiry yields a ``TIMED_OUT`` outcome instead of raising.
    """
    start = anyio.current_time()
    deadline = start + timeout

    while True:
        outcome = await probe()
        now = anyio.current_time()
        if outcome is not None and not outcome.is_pending:
            return outcome.stamped(now - start, label=label, timeout=timeout)
        if now >= deadline:
            break
        await anyio.sleep(min(interval, max(deadline - now, 0)))

    elapsed = anyio.current_time() - start
    logger.debug(f"poll timed out: {label} after {elapsed:.2f}s")
    return AsyncOutcome.timed_out(label, timeout, elapsed)


async def race(
    watchers: Mapping[str, Probe],
    *,
    timeout: float,
    trigger: Optional[Callable[[], Awaitable[object]]] = None,
    interval: float = 0.25,
    label: str = "",
) -> AsyncOutcome:
    """Watch several mutually exclusive outcomes at once; the first to settle wins.

    All watchers are scheduled before ``trigger`` runs, so an outcome that
    appears immediately after the triggering action is never missed. Losing
    watchers are cancelled. An exception from the trigger or any watcher
    cancels the rest and is re-raised as-is.
    """
    start = anyio.current_time()
    winner: List[AsyncOutcome] = []
    errors: List[BaseException] = []

    async with anyio.create_task_group() as tg:

        async def _watch(name: str, probe: Probe) -> None:
            try:
                result = await poll(probe, timeout=timeout, interval=interval, label=f"{label}:{name}")
            except Exception as exc:
                errors.append(exc)
                tg.cancel_scope.cancel()
                return
            if result.is_timed_out:
                return
            if not winner:
                logger.debug(f"race {label}: '{name}' resolved first ({result.state.value})")
                winner.append(result)
                tg.cancel_scope.cancel()

        async def _trigger() -> None:
            try:
                await trigger()
            except Exception as exc:
                errors.append(exc)
                tg.cancel_scope.cancel()

        for name, probe in watchers.items():
            tg.start_soon(_watch, name, probe)
        if trigger is not None:
            tg.start_soon(_trigger)

    elapsed = anyio.current_time() - start
    if errors:
        raise errors[0]
    if winner:
        return replace(winner[0], label=label or winner[0].label, elapsed=elapsed, timeout=timeout)
    return AsyncOutcome.timed_out(label, timeout, elapsed)
