"""
Tests for the collector's error types, retry policy and warning collection.

Retry tests drive retry_with_backoff with scripted page fetches; time.sleep
is patched so no test actually waits.
"""

import json
from datetime import datetime
from unittest.mock import Mock, patch

import pytest

from commentgraph.utils.errors import (
    CommentGraphError,
    ConfigurationError,
    EmptyResultError,
    GraphConstructionError,
    TransportError,
    VALID_WARNING_TYPES,
    WarningsCollector,
    WARNING_TYPE_ORPHAN_REPLY,
    WARNING_TYPE_REPLIES_TRUNCATED,
    WARNING_TYPE_SHORT_PAGE,
    retry_with_backoff,
)


class TestExceptionHierarchy:
    """Test the collector's exception taxonomy."""

    @pytest.mark.parametrize('exc_type', [
        ConfigurationError, TransportError, EmptyResultError, GraphConstructionError,
    ])
    def test_all_errors_share_base(self, exc_type):
        assert issubclass(exc_type, CommentGraphError)

    def test_transport_error_details(self):
        error = TransportError("rejected", status=403, reason="quotaExceeded")

        assert str(error) == "rejected"
        assert error.status == 403
        assert error.reason == "quotaExceeded"

    def test_transport_error_details_default_to_none(self):
        error = TransportError("network down")

        assert error.status is None
        assert error.reason is None


class TestRetryWithBackoff:
    """Test retry_with_backoff around a flaky page fetch."""

    def test_first_page_returned_without_sleeping(self):
        fetch = Mock(return_value={"items": []})

        with patch('time.sleep') as mock_sleep:
            page = retry_with_backoff(fetch, retryable_exceptions=(TransportError,))

        assert page == {"items": []}
        fetch.assert_called_once_with()
        mock_sleep.assert_not_called()

    def test_transport_error_then_page(self):
        fetch = Mock(side_effect=[TransportError("read timed out"), {"items": [{"id": "c1"}]}])

        with patch('time.sleep') as mock_sleep:
            page = retry_with_backoff(fetch, base_delay=0.5, retryable_exceptions=(TransportError,))

        assert page["items"] == [{"id": "c1"}]
        assert fetch.call_count == 2
        mock_sleep.assert_called_once_with(0.5)

    def test_last_transport_error_raised_when_retries_run_out(self):
        errors = [TransportError(f"backend error {n}", status=503) for n in range(3)]
        fetch = Mock(side_effect=errors)

        with patch('time.sleep') as mock_sleep:
            with pytest.raises(TransportError) as exc_info:
                retry_with_backoff(fetch, max_retries=2, retryable_exceptions=(TransportError,))

        assert exc_info.value is errors[-1]
        assert fetch.call_count == 3
        assert mock_sleep.call_count == 2

    def test_error_outside_retryable_set_is_not_retried(self):
        fetch = Mock(side_effect=ConfigurationError("no api key"))

        with patch('time.sleep') as mock_sleep:
            with pytest.raises(ConfigurationError):
                retry_with_backoff(fetch, retryable_exceptions=(TransportError,))

        assert fetch.call_count == 1
        mock_sleep.assert_not_called()

    @pytest.mark.parametrize('base_delay,max_delay,expected', [
        (1.0, 5.0, [1.0, 2.0, 4.0, 5.0]),
        (2.0, 30.0, [2.0, 4.0, 8.0, 16.0]),
        (10.0, 10.0, [10.0, 10.0, 10.0, 10.0]),
    ])
    def test_backoff_schedule(self, base_delay, max_delay, expected):
        fetch = Mock(side_effect=TransportError("unavailable", status=503))

        with patch('time.sleep') as mock_sleep:
            with pytest.raises(TransportError):
                retry_with_backoff(
                    fetch, max_retries=4, base_delay=base_delay, max_delay=max_delay,
                    retryable_exceptions=(TransportError,),
                )

        assert [c.args[0] for c in mock_sleep.call_args_list] == expected


class TestWarningsCollector:
    """Test typed warning accumulation."""

    def test_empty_collector_serializes_to_none(self):
        warnings = WarningsCollector()

        assert len(warnings) == 0
        assert warnings.to_json() is None

    def test_append_records_all_fields(self):
        warnings = WarningsCollector()

        warnings.append(
            WARNING_TYPE_REPLIES_TRUNCATED,
            "Only the first page of replies was collected",
            {"parent_id": "c1", "collected": 100},
        )

        entries = json.loads(warnings.to_json())
        assert len(entries) == 1
        warning = entries[0]
        assert warning["type"] == "replies_truncated"
        assert warning["message"] == "Only the first page of replies was collected"
        assert warning["context"] == {"parent_id": "c1", "collected": 100}
        # ISO 8601 with timezone
        assert datetime.fromisoformat(warning["timestamp"]).tzinfo is not None

    def test_supports_all_warning_types(self):
        warnings = WarningsCollector()

        for warning_type in sorted(VALID_WARNING_TYPES):
            warnings.append(warning_type, "msg", {})

        assert len(warnings) == 3
        assert VALID_WARNING_TYPES == {
            WARNING_TYPE_SHORT_PAGE, WARNING_TYPE_REPLIES_TRUNCATED, WARNING_TYPE_ORPHAN_REPLY,
        }

    def test_of_type_filters(self):
        warnings = WarningsCollector()
        warnings.append(WARNING_TYPE_SHORT_PAGE, "short", {"page": 1})
        warnings.append(WARNING_TYPE_ORPHAN_REPLY, "orphan", {"comment_id": "r1"})

        assert [w["message"] for w in warnings.of_type(WARNING_TYPE_ORPHAN_REPLY)] == ["orphan"]

    def test_invalid_warning_type_raises_value_error(self):
        warnings = WarningsCollector()

        with pytest.raises(ValueError, match="Invalid warning_type"):
            warnings.append("made_up_type", "msg", {})

        assert warnings.to_json() is None
