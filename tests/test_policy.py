"""Tests for error records and the error policy."""

import logging

from pagewise.errors import BackendError, ErrorCategory, ErrorTracker, NoContentError
from pagewise.policy import ErrorPolicy


class TestErrors:
    """Error types carry what the host needs to present them."""

    def test_backend_error_mentions_status(self):
        assert str(BackendError("Service unavailable", status=503)) == "Service unavailable (status 503)"
        assert str(BackendError("Timed out")) == "Timed out"

    def test_no_content_message(self):
        assert "No translatable content found" in str(NoContentError())


class TestErrorPolicy:
    """Errors are recorded and never stop processing on their own."""

    def test_records_errors(self):
        policy = ErrorPolicy()

        record = policy.handle_error(ErrorCategory.BACKEND, "boom", region_index=2)

        assert record.region_index == 2
        assert policy.messages == ["boom"]

    def test_warns_once_on_repeated_errors(self, caplog):
        policy = ErrorPolicy()

        with caplog.at_level(logging.WARNING, logger="pagewise.policy"):
            for index in range(5):
                policy.handle_error(ErrorCategory.BACKEND, f"failure {index}")

        repeated = [r for r in caplog.records if "Repeated errors" in r.getMessage()]
        assert len(repeated) == 1

    def test_success_resets_consecutive_counter(self):
        policy = ErrorPolicy()
        policy.handle_error(ErrorCategory.BACKEND, "one")
        policy.handle_error(ErrorCategory.BACKEND, "two")

        policy.record_success()

        assert policy.tracker.consecutive == 0
        assert policy.tracker.total == 2

    def test_only_first_configuration_error_is_terminal(self):
        assert ErrorPolicy.is_terminal(ErrorCategory.CONFIGURATION, first_dispatch=True)
        assert not ErrorPolicy.is_terminal(ErrorCategory.CONFIGURATION, first_dispatch=False)
        assert not ErrorPolicy.is_terminal(ErrorCategory.BACKEND, first_dispatch=True)


class TestErrorTracker:
    """Counters behind the policy thresholds."""

    def test_category_change_restarts_consecutive_count(self):
        tracker = ErrorTracker()
        tracker.register(ErrorCategory.BACKEND)
        tracker.register(ErrorCategory.BACKEND)

        counts = tracker.register(ErrorCategory.STRUCTURE)

        assert (counts.consecutive, counts.total, counts.threshold_reached) == (1, 3, False)
        assert tracker.by_category[ErrorCategory.BACKEND] == 2
