"""Tests for API utility functions."""
import json
import threading
from unittest.mock import patch, MagicMock

import pytest
from requests.exceptions import ConnectionError, HTTPError

from slidecite.utils.api_utils import handle_api_response, retry
from slidecite.utils.error_handling import ZoteroAPIError
from slidecite.utils.rate_limiter import RateLimiter


class TestHandleAPIResponse:
    """Tests for the handle_api_response function."""

    def test_handle_valid_response(self):
        """Test handling a valid JSON response."""
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = [{"key": "ABCD1234"}]

        result = handle_api_response(mock_response, "Zotero")
        assert result == [{"key": "ABCD1234"}]

    def test_handle_invalid_json(self):
        """Test handling invalid JSON response."""
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.text = "<html>"
        mock_response.json.side_effect = json.JSONDecodeError("Expecting value", "", 0)

        with pytest.raises(ZoteroAPIError) as excinfo:
            handle_api_response(mock_response, "Zotero")
        assert "invalid JSON" in str(excinfo.value)

    def test_handle_http_error(self):
        """Test handling HTTP errors."""
        mock_response = MagicMock()
        mock_response.status_code = 404
        mock_response.raise_for_status.side_effect = HTTPError("Not found")

        with pytest.raises(ZoteroAPIError) as excinfo:
            handle_api_response(mock_response, "Zotero")
        assert "Zotero request failed" in str(excinfo.value)
        assert excinfo.value.status_code == 404


class TestRetry:
    """Tests for the retry decorator."""

    @patch('slidecite.utils.api_utils.time.sleep')
    def test_retries_transient_status(self, mock_sleep):
        calls = []

        @retry(max_retries=2, backoff_factor=0.5)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ZoteroAPIError("busy", 503)
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]

    @patch('slidecite.utils.api_utils.time.sleep')
    def test_client_error_not_retried(self, mock_sleep):
        @retry()
        def forbidden():
            raise ZoteroAPIError("forbidden", 403)

        with pytest.raises(ZoteroAPIError):
            forbidden()
        mock_sleep.assert_not_called()

    @patch('slidecite.utils.api_utils.time.sleep')
    def test_gives_up_after_max_retries(self, mock_sleep):
        calls = []

        @retry(max_retries=1)
        def unreachable():
            calls.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            unreachable()
        assert len(calls) == 2
        assert mock_sleep.call_count == 1


class TestZoteroAPIError:
    """Tests for the ZoteroAPIError exception class."""

    def test_basic(self):
        error = ZoteroAPIError("Test error")
        assert str(error) == "Test error"
        assert error.status_code is None

    def test_with_status(self):
        error = ZoteroAPIError("Test error", status_code=404)
        assert "404" in str(error)


class FakeClock:
    """Clock that only moves when the limiter sleeps."""

    def __init__(self, start: float = 100.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestRateLimiter:

    def test_waits_when_window_full(self):
        clock = FakeClock()
        limiter = RateLimiter(max_calls=2, period=10, clock=clock, sleep=clock.sleep)
        for _ in range(3):
            with limiter:
                pass
        assert clock.sleeps == [10.0]
        assert limiter.recent_calls == 1

    def test_no_wait_after_window_passes(self):
        clock = FakeClock()
        limiter = RateLimiter(max_calls=1, period=1, clock=clock, sleep=clock.sleep)
        limiter.acquire()
        clock.now += 1.5
        limiter.acquire()
        assert clock.sleeps == []

    def test_threads_share_window(self):
        clock = FakeClock()
        limiter = RateLimiter(max_calls=3, period=60, clock=clock, sleep=clock.sleep)
        threads = [threading.Thread(target=limiter.acquire) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(clock.sleeps) == 1
        assert clock.now == 160.0

    def test_invalid_limits(self):
        with pytest.raises(ValueError):
            RateLimiter(max_calls=0, period=1)
