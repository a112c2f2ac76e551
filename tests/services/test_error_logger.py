"""Tests for ErrorLogger service."""

from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture
def error_logger():
    from tokenrelay.services.error_logger import ErrorLogger

    return ErrorLogger()


@pytest.fixture
def mock_bound(error_logger):
    with patch.object(error_logger, "_log") as mock_log:
        bound = MagicMock()
        mock_log.bind.return_value = bound
        bound.bind.return_value = bound
        yield bound


class TestLogStorageError:

    def test_warning_with_context(self, error_logger, mock_bound):
        from tokenrelay.logging import ErrorType

        error_logger.log_storage_error(
            ErrorType.STORAGE_WRITE_FAILED,
            "Write failed",
            user_id="42",
            path="/data/42.json",
            exception=OSError("disk full"),
            attempts=3,
        )

        mock_bound.warning.assert_called_once()
        kwargs = mock_bound.warning.call_args.kwargs
        assert kwargs["path"] == "/data/42.json"
        assert kwargs["attempts"] == 3
        assert kwargs["exception_type"] == "OSError"
        mock_bound.bind.assert_any_call(user_id="42")

    def test_error_level(self, error_logger, mock_bound):
        error_logger.log_storage_error("STORAGE_DELETE_FAILED", "Delete failed", level="error")
        mock_bound.error.assert_called_once()
        mock_bound.warning.assert_not_called()


class TestLogFeedError:

    def test_sanitizes_url(self, error_logger, mock_bound):
        error_logger.log_feed_error(
            "FEED_ERROR",
            "Bad status",
            request_url="https://api.example.com/x?api_key=secret",
            response_status=503,
        )
        kwargs = mock_bound.warning.call_args.kwargs
        assert kwargs["request_url"] == "https://api.example.com/x?api_key=***"
        assert kwargs["response_status"] == 503


class TestLogSystemError:

    def test_redacts_context(self, error_logger, mock_bound):
        error_logger.log_system_error(
            "ALERT_SEND_FAILED",
            "Send failed",
            component="notifier",
            exception=RuntimeError("boom"),
            context={"detail": "token=abcdefgh12345678", "count": 2},
        )
        kwargs = mock_bound.error.call_args.kwargs
        assert kwargs["detail"] == "token=abcd..."
        assert kwargs["count"] == 2
        assert kwargs["exception_type"] == "RuntimeError"


class TestSingleton:

    def test_get_error_logger_singleton(self):
        from tokenrelay.services.error_logger import get_error_logger

        assert get_error_logger() is get_error_logger()
