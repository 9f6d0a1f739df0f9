"""Ordered, named steps composed into one user journey.

Example::

    flow = Scenario("aws scan")

    @flow.step(provides="scan_id")
    async def scan(ctx):
        return await ctx["screens"].scan.start_scan(AWS_SCAN)

    @flow.step(requires=("scan_id",))
    async def open_resources(ctx):
        await ctx["screens"].resources.open(ctx["scan_id"])

    report = await flow.run({"screens": screens}, timeout=300)

Steps run strictly in declaration order. A step's ``requires`` keys must be
present in the context before it runs (:class:`PreconditionUnmet`
otherwise); its return value is stored under ``provides``. An
:class:`~tfkosmos_e2e.outcome.AsyncOutcome` return value is unwrapped first,
so a failed or timed-out outcome fails the step. The first non-optional
failure aborts the scenario with a single :class:`StepFailed`.

Steps with a ``gate`` run only when that gate is enabled; a disabled gate
skips all of its steps together with any later step that needs a value only
they would have produced.
"""
from __future__ import annotations

import enum
import inspect
import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple

import anyio

from tfkosmos_e2e.config import settings
from tfkosmos_e2e.errors import PreconditionUnmet, StepFailed
from tfkosmos_e2e.outcome import AsyncOutcome

logger = logging.getLogger(__name__)

Context = Dict[str, Any]
StepAction = Callable[[Context], Awaitable[Any]]
PostCondition = Callable[[Any, Context], Any]


class StepStatus(str, enum.Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ScenarioStep:
    name: str
    action: StepAction
    requires: Tuple[str, ...] = ()
    provides: Optional[str] = None
    check: Optional[PostCondition] = None
    optional: bool = False
    gate: Optional[str] = None
    timeout: Optional[float] = None


@dataclass
class StepResult:
    name: str
    status: StepStatus
    elapsed: float = 0.0
    value: Any = None
    reason: Optional[str] = None


@dataclass
class ScenarioReport:
    scenario: str
    results: List[StepResult] = field(default_factory=list)
    context: Context = field(default_factory=dict)
    elapsed: float = 0.0

    def result(self, name: str) -> StepResult:
        for result in self.results:
            if result.name == name:
                return result
        raise KeyError(name)

    def _names(self, status: StepStatus) -> List[str]:
        return [r.name for r in self.results if r.status is status]

    @property
    def passed(self) -> List[str]:
        return self._names(StepStatus.PASSED)

    @property
    def failed(self) -> List[str]:
        return self._names(StepStatus.FAILED)

    @property
    def skipped(self) -> List[str]:
        return self._names(StepStatus.SKIPPED)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        lines = [f"Scenario '{self.scenario}' ({self.elapsed:.1f}s)"]
        for r in self.results:
            detail = f" - {r.reason}" if r.reason else ""
            lines.append(f"  [{r.status.value:>7}] {r.name} ({r.elapsed:.2f}s){detail}")
        return "\n".join(lines)


class Scenario:
    """A named journey made of :class:`ScenarioStep` objects."""

    def __init__(self, name: str, steps: Iterable[ScenarioStep] = ()) -> None:
        self.name = name
        self.steps: List[ScenarioStep] = []
        for step in steps:
            self.add(step)

    def __repr__(self) -> str:
        return f"Scenario({self.name!r}, steps={[s.name for s in self.steps]})"

    def add(self, step: ScenarioStep) -> ScenarioStep:
        if any(existing.name == step.name for existing in self.steps):
            raise ValueError(f"Scenario '{self.name}' already has a step named '{step.name}'")
        self.steps.append(step)
        return step

    def step(
        self,
        name: Optional[str] = None,
        *,
        requires: Iterable[str] = (),
        provides: Optional[str] = None,
        check: Optional[PostCondition] = None,
        optional: bool = False,
        gate: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Callable[[StepAction], StepAction]:
        """Decorator registering an ``async def action(ctx)`` as the next step."""

        def decorator(action: StepAction) -> StepAction:
            self.add(
                ScenarioStep(
                    name=name or action.__name__,
                    action=action,
                    requires=tuple(requires),
                    provides=provides,
                    check=check,
                    optional=optional,
                    gate=gate,
                    timeout=timeout,
                )
            )
            return action

        return decorator

    def _producers(self, key: str) -> Tuple[str, ...]:
        return tuple(s.name for s in self.steps if s.provides == key)

    async def run(
        self,
        context: Optional[Context] = None,
        *,
        enabled_gates: Optional[Iterable[str]] = None,
        timeout: Optional[float] = None,
        diagnostics: Any = None,
    ) -> ScenarioReport:
        """Execute all steps in order and return the report.

        ``diagnostics`` is any object with an async ``capture_diagnostic(name)``
        (a page object); it is called once when the scenario fails.
        """
        gates: Set[str] = set(settings.enabled_gates if enabled_gates is None else enabled_gates)
        report = ScenarioReport(scenario=self.name, context=dict(context or {}))
        ctx = report.context
        unavailable: Set[str] = set()
        start = anyio.current_time()
        current: Optional[ScenarioStep] = None

        logger.info(f"Scenario '{self.name}' started ({len(self.steps)} steps, gates={sorted(gates)})")
        try:
            with anyio.fail_after(timeout) if timeout is not None else nullcontext():
                for step in self.steps:
                    current = step
                    skip_reason = self._skip_reason(step, gates, unavailable, ctx)
                    if skip_reason:
                        logger.info(f"[{self.name}] skip '{step.name}': {skip_reason}")
                        report.results.append(StepResult(step.name, StepStatus.SKIPPED, reason=skip_reason))
                        if step.provides:
                            unavailable.add(step.provides)
                        continue

                    missing = tuple(key for key in step.requires if key not in ctx)
                    if missing:
                        report.elapsed = anyio.current_time() - start
                        raise PreconditionUnmet(
                            scenario=self.name,
                            step=step.name,
                            missing=missing,
                            producers=tuple(p for key in missing for p in self._producers(key)),
                        )

                    await self._run_step(step, ctx, report, unavailable, start, diagnostics)
        except TimeoutError as exc:
            report.elapsed = anyio.current_time() - start
            step_name = current.name if current else "<none>"
            report.results.append(
                StepResult(step_name, StepStatus.FAILED, reason=f"scenario timeout of {timeout:.1f}s expired")
            )
            await _capture(diagnostics, f"{self.name}-{step_name}-timeout")
            raise StepFailed(
                scenario=self.name,
                step=step_name,
                elapsed=report.elapsed,
                reason=f"scenario timeout of {timeout:.1f}s expired",
                report=report,
            ) from exc

        report.elapsed = anyio.current_time() - start
        logger.info(
            f"Scenario '{self.name}' finished in {report.elapsed:.1f}s: "
            f"{len(report.passed)} passed, {len(report.skipped)} skipped, {len(report.failed)} failed"
        )
        return report

    def _skip_reason(
        self,
        step: ScenarioStep,
        gates: Set[str],
        unavailable: Set[str],
        ctx: Context,
    ) -> Optional[str]:
        if step.gate and step.gate not in gates:
            return f"gate '{step.gate}' disabled"
        blocked = [key for key in step.requires if key in unavailable and key not in ctx]
        if blocked:
            return f"depends on skipped {', '.join(blocked)}"
        return None

    async def _run_step(
        self,
        step: ScenarioStep,
        ctx: Context,
        report: ScenarioReport,
        unavailable: Set[str],
        scenario_start: float,
        diagnostics: Any,
    ) -> None:
        logger.info(f"[{self.name}] step '{step.name}'")
        step_start = anyio.current_time()
        try:
            with anyio.fail_after(step.timeout) if step.timeout is not None else nullcontext():
                value = await step.action(ctx)
                if isinstance(value, AsyncOutcome):
                    value = value.unwrap()
                if step.check is not None:
                    verdict = step.check(value, ctx)
                    if inspect.isawaitable(verdict):
                        verdict = await verdict
                    if not verdict:
                        raise AssertionError(f"post-condition of '{step.name}' not met (value={value!r})")
        except Exception as exc:
            elapsed = anyio.current_time() - step_start
            reason = f"step timeout of {step.timeout:.1f}s expired" if isinstance(exc, TimeoutError) else str(exc)
            reason = reason or type(exc).__name__
            report.results.append(StepResult(step.name, StepStatus.FAILED, elapsed=elapsed, reason=reason))
            if step.optional:
                logger.warning(f"[{self.name}] optional step '{step.name}' failed: {reason}")
                if step.provides:
                    unavailable.add(step.provides)
                return
            report.elapsed = anyio.current_time() - scenario_start
            await _capture(diagnostics, f"{self.name}-{step.name}")
            raise StepFailed(
                scenario=self.name,
                step=step.name,
                elapsed=elapsed,
                reason=reason,
                report=report,
            ) from exc

        if step.provides:
            ctx[step.provides] = value
        elapsed = anyio.current_time() - step_start
        report.results.append(StepResult(step.name, StepStatus.PASSED, elapsed=elapsed, value=value))
        logger.info(f"[{self.name}] step '{step.name}' passed in {elapsed:.2f}s")


async def _capture(diagnostics: Any, name: str) -> None:
    """Capture a diagnostic without letting its failure replace the step error."""
    if diagnostics is None:
        return
    try:
        await diagnostics.capture_diagnostic(name)
    except Exception as exc:
        logger.warning(f"Diagnostic capture '{name}' failed: {exc}")
