"""
Tests for the connect retry decorator
"""

from unittest.mock import Mock

import pytest

from redis_mutex.protocol.resilience import RETRYABLE_EXCEPTIONS, retry_with_backoff


class TestRetryDecorator:
    """Test the retry_with_backoff decorator"""

    def test_successful_call_no_retry(self):
        """Test that successful calls don't retry"""
        call_count = 0
        sleep = Mock()

        @retry_with_backoff(max_attempts=3, sleep=sleep)
        def successful_func():
            nonlocal call_count
            call_count += 1
            return "success"

        assert successful_func() == "success"
        assert call_count == 1
        sleep.assert_not_called()

    def test_retry_on_connection_error(self):
        """Test that ConnectionError triggers retry"""
        call_count = 0

        @retry_with_backoff(max_attempts=3, sleep=Mock())
        def flaky_func():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ConnectionError("Network error")
            return "success"

        assert flaky_func() == "success"
        assert call_count == 3

    def test_retry_on_os_error(self):
        """Test that refused connections (OSError) trigger retry"""
        call_count = 0

        @retry_with_backoff(max_attempts=2, sleep=Mock())
        def refused():
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise ConnectionRefusedError(111, "Connection refused")
            return "connected"

        assert refused() == "connected"
        assert call_count == 2

    def test_no_retry_on_value_error(self):
        """Test that non-retryable exceptions are not retried"""
        call_count = 0

        @retry_with_backoff(max_attempts=3, sleep=Mock())
        def value_error_func():
            nonlocal call_count
            call_count += 1
            raise ValueError("Invalid value")

        with pytest.raises(ValueError):
            value_error_func()
        assert call_count == 1

    def test_attempts_exhausted_reraises_last_error(self):
        """Test that the last exception propagates once attempts run out"""
        call_count = 0

        @retry_with_backoff(max_attempts=4, sleep=Mock())
        def always_fails():
            nonlocal call_count
            call_count += 1
            raise ConnectionError(f"failure {call_count}")

        with pytest.raises(ConnectionError, match="failure 4"):
            always_fails()
        assert call_count == 4

    def test_single_attempt_never_sleeps(self):
        """Test that max_attempts=1 fails immediately"""
        sleep = Mock()

        @retry_with_backoff(max_attempts=1, sleep=sleep)
        def fails():
            raise TimeoutError("timed out")

        with pytest.raises(TimeoutError):
            fails()
        sleep.assert_not_called()

    def test_fixed_delay_with_base_one(self):
        """Test that exponential_base=1 pauses the same amount between attempts"""
        sleep = Mock()

        @retry_with_backoff(max_attempts=5, base_delay=1.0, exponential_base=1, sleep=sleep)
        def fails():
            raise OSError("unreachable")

        with pytest.raises(OSError):
            fails()
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 1.0, 1.0, 1.0]

    def test_exponential_backoff_delays(self):
        """Test that delays grow exponentially"""
        sleep = Mock()

        @retry_with_backoff(max_attempts=4, base_delay=1.0, exponential_base=2, sleep=sleep)
        def fails():
            raise ConnectionError("fail")

        with pytest.raises(ConnectionError):
            fails()
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0, 4.0]

    def test_max_delay_cap(self):
        """Test that delay is capped at max_delay"""
        sleep = Mock()

        @retry_with_backoff(max_attempts=4, base_delay=10.0, max_delay=15.0, sleep=sleep)
        def fails():
            raise ConnectionError("fail")

        with pytest.raises(ConnectionError):
            fails()
        assert all(c.args[0] <= 15.0 for c in sleep.call_args_list)

    def test_jitter_stays_within_bounds(self):
        """Test that jitter keeps each delay within 50%-150% of the base"""
        sleep = Mock()

        @retry_with_backoff(max_attempts=6, base_delay=1.0, exponential_base=1, jitter=True, sleep=sleep)
        def fails():
            raise ConnectionError("fail")

        with pytest.raises(ConnectionError):
            fails()
        assert all(0.5 <= c.args[0] <= 1.5 for c in sleep.call_args_list)

    def test_custom_retryable_exceptions(self):
        """Test that only the given exception types are retried"""
        call_count = 0

        @retry_with_backoff(max_attempts=3, retryable_exceptions=(KeyError,), sleep=Mock())
        def custom():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise KeyError("again")
            return "done"

        assert custom() == "done"
        assert call_count == 3

    def test_logs_warning_per_retry(self):
        """Test that each failed attempt is logged with the attempt count"""
        logger = Mock()

        @retry_with_backoff(max_attempts=3, logger=logger, sleep=Mock())
        def fails():
            raise ConnectionError("refused")

        with pytest.raises(ConnectionError):
            fails()
        assert logger.warning.call_count == 2
        assert "attempt 1/3" in logger.warning.call_args_list[0].args[0]
        logger.error.assert_called_once()


class TestRetryDefaults:
    """Test module-level defaults"""

    def test_retryable_exceptions(self):
        assert ConnectionError in RETRYABLE_EXCEPTIONS
        assert TimeoutError in RETRYABLE_EXCEPTIONS
        assert OSError in RETRYABLE_EXCEPTIONS

    def test_retry_preserves_function_metadata(self):
        """Test that the decorator preserves function name and docstring"""

        @retry_with_backoff(max_attempts=2)
        def documented():
            """Opens a socket."""
            return 1

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Opens a socket."
