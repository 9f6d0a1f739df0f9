"""Messages of the harness errors name what failed and how long it took."""
import pytest

from tfkosmos_e2e.errors import (
    DuplicateSubmission,
    HarnessError,
    InvalidOption,
    LocatorNotFound,
    NavigationFailed,
    NotificationTimeout,
    OutcomeFailed,
    PreconditionUnmet,
    ScanIdentifierMissing,
    StepFailed,
    WaitTimedOut,
)


def test_locator_not_found_lists_strategies():
    error = LocatorNotFound(field="aws_profile", attempted=("role=textbox", "label=Profile"))
    assert str(error) == "Could not locate 'aws_profile' (no match). Tried: role=textbox; label=Profile"


def test_locator_not_found_ambiguous_without_strategies():
    error = LocatorNotFound(field="row_checkbox", ambiguous=True)
    assert str(error) == "Could not locate 'row_checkbox' (ambiguous match). Tried: no strategies configured"


def test_wait_timed_out_reports_elapsed_and_limit():
    error = WaitTimedOut(what="loading indicator to disappear", timeout=30.0, elapsed=30.04)
    assert str(error) == "Timed out after 30.0s (limit 30.0s) waiting for loading indicator to disappear"


def test_notification_timeout_lists_attempts():
    error = NotificationTimeout(
        what="notification 'notification' matching /saved/",
        timeout=2.0,
        elapsed=2.1,
        attempted=("css=[role=alert]", "visible text: Validation failed"),
    )
    assert isinstance(error, WaitTimedOut)
    assert str(error).endswith("Tried: css=[role=alert]; visible text: Validation failed")
    assert "limit 2.0s" in str(error)


def test_scan_identifier_missing_names_url():
    error = ScanIdentifierMissing(url="http://localhost:5173/resources/")
    assert "http://localhost:5173/resources/" in str(error)
    assert "no scan id" in str(error)


def test_precondition_unmet_names_producers():
    error = PreconditionUnmet(scenario="aws", step="open_resources", missing=("scan_id",), producers=("run_scan",))
    assert str(error) == (
        "Scenario 'aws', step 'open_resources': required state scan_id was not produced "
        "(expected from: run_scan)"
    )
    assert "expected from" not in str(PreconditionUnmet(scenario="aws", step="s", missing=("x",)))


def test_step_failed_names_step_and_reason():
    error = StepFailed(scenario="aws", step="run_scan", elapsed=1.3, reason="profile not found")
    assert str(error) == "Scenario 'aws' aborted at step 'run_scan' after 1.3s: profile not found"
    assert error.report is None


def test_outcome_failed():
    error = OutcomeFailed(label="aws connection test", reason="profile not found", elapsed=0.5)
    assert str(error) == "aws connection test failed after 0.5s: profile not found"


def test_invalid_option_is_a_value_error():
    error = InvalidOption(setting="naming convention", value="camelCase", allowed=("snake_case", "kebab-case"))
    assert isinstance(error, ValueError)
    assert str(error) == "Invalid naming convention 'camelCase'; expected one of: snake_case, kebab-case"


def test_navigation_failed():
    error = NavigationFailed(url="http://localhost:5173/scan", message="net::ERR_CONNECTION_REFUSED")
    assert str(error) == "Navigation to http://localhost:5173/scan failed: net::ERR_CONNECTION_REFUSED"


def test_duplicate_submission():
    assert str(DuplicateSubmission(action="generate")) == "'generate' is already running; refusing to submit it twice"


@pytest.mark.parametrize(
    "error",
    [
        LocatorNotFound(field="f"),
        WaitTimedOut(what="w", timeout=1.0, elapsed=1.0),
        ScanIdentifierMissing(url="u"),
        DuplicateSubmission(action="a"),
    ],
)
def test_every_error_is_a_harness_error(error):
    assert isinstance(error, HarnessError)
