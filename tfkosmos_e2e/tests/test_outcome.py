"""Bounded polling and racing of asynchronous outcomes."""
import anyio
import pytest

from tfkosmos_e2e.errors import OutcomeFailed, WaitTimedOut
from tfkosmos_e2e.outcome import AsyncOutcome, OutcomeState, poll, race


def _after(seconds, outcome):
    """Probe that resolves to ``outcome`` once ``seconds`` have passed."""
    start = []

    async def _probe():
        now = anyio.current_time()
        if not start:
            start.append(now)
        if now - start[0] >= seconds:
            return outcome
        return None

    return _probe


class TestAsyncOutcome:
    def test_str_shows_value_or_reason(self):
        success = AsyncOutcome.succeeded("scan-1", label="aws scan").stamped(1.5)
        assert str(success) == "AsyncOutcome(aws scan: succeeded value='scan-1', 1.50s)"
        failure = AsyncOutcome.failed("profile not found")
        assert str(failure) == "AsyncOutcome(?: failed reason='profile not found', 0.00s)"

    def test_unwrap_success(self):
        assert AsyncOutcome.succeeded("scan-1").unwrap() == "scan-1"

    def test_unwrap_failure(self):
        with pytest.raises(OutcomeFailed) as excinfo:
            AsyncOutcome.failed("profile not found", label="aws scan").unwrap()
        assert excinfo.value.reason == "profile not found"
        assert excinfo.value.label == "aws scan"

    def test_unwrap_timeout(self):
        outcome = AsyncOutcome.timed_out("generation", timeout=5.0, elapsed=5.1)
        assert outcome.is_timed_out
        with pytest.raises(WaitTimedOut):
            outcome.unwrap()

    def test_unwrap_pending(self):
        with pytest.raises(OutcomeFailed):
            AsyncOutcome.pending("scan").unwrap()

    def test_stamped_keeps_existing_label(self):
        stamped = AsyncOutcome.succeeded(1, label="inner").stamped(0.5, label="outer", timeout=3.0)
        assert (stamped.label, stamped.elapsed, stamped.timeout) == ("inner", 0.5, 3.0)


@pytest.mark.asyncio
async def test_poll_returns_settled_outcome_with_elapsed():
    outcome = await poll(_after(0.2, AsyncOutcome.succeeded("done")), timeout=2.0, interval=0.05, label="job")
    assert outcome.is_success
    assert outcome.value == "done"
    assert 0.2 <= outcome.elapsed < 2.0
    assert outcome.label == "job"


@pytest.mark.asyncio
async def test_poll_ignores_pending_outcomes():
    calls = []

    async def _probe():
        calls.append(1)
        return AsyncOutcome.pending() if len(calls) < 3 else AsyncOutcome.failed("boom")

    outcome = await poll(_probe, timeout=2.0, interval=0.01)
    assert outcome.is_failure
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_poll_times_out_without_raising():
    async def _never():
        return None

    outcome = await poll(_never, timeout=0.2, interval=0.05, label="never")
    assert outcome.state is OutcomeState.TIMED_OUT
    assert outcome.elapsed >= 0.2
    assert outcome.timeout == 0.2


@pytest.mark.asyncio
async def test_race_first_watcher_wins():
    outcome = await race(
        {
            "success": _after(0.3, AsyncOutcome.succeeded("ok")),
            "error": _after(0.05, AsyncOutcome.failed("rejected")),
        },
        timeout=2.0,
        interval=0.02,
        label="connection test",
    )
    assert outcome.is_failure
    assert outcome.reason == "rejected"
    assert outcome.label == "connection test"
    assert outcome.elapsed < 0.3


@pytest.mark.asyncio
async def test_race_watchers_start_before_trigger():
    events = []

    async def _probe():
        events.append("probe")
        return AsyncOutcome.succeeded(True) if "click" in events else None

    async def _trigger():
        events.append("click")

    outcome = await race({"done": _probe}, timeout=1.0, trigger=_trigger, interval=0.01)
    assert outcome.is_success
    assert events.index("probe") < events.index("click")


@pytest.mark.asyncio
async def test_race_times_out():
    async def _never():
        return None

    outcome = await race({"a": _never, "b": _never}, timeout=0.2, interval=0.05, label="nothing")
    assert outcome.is_timed_out


@pytest.mark.asyncio
async def test_race_reraises_trigger_error():
    async def _never():
        return None

    async def _broken_trigger():
        raise RuntimeError("button detached")

    with pytest.raises(RuntimeError, match="button detached"):
        await race({"a": _never}, timeout=2.0, trigger=_broken_trigger, interval=0.05)
