"""
Tests for credential endpoint resolution with user-confirmed retries.
"""

import io
from unittest.mock import Mock

import pytest
from rich.console import Console

from conftest import FakeSettings
from imgs3.upload.exceptions import RetryLimitReached
from imgs3.upload.retry_policy import RETRY_MESSAGE, RetryPolicy


class TestRetryPolicy:

    def setup_method(self):
        self.settings = FakeSettings(endpoint="")
        self.prompt = Mock()
        self.console = Console(file=io.StringIO())

    def test_remote_success_needs_no_prompt(self):
        self.settings.remote_endpoint = "https://broker.test/creds/"
        policy = RetryPolicy(self.settings, self.prompt, self.console)

        assert policy.resolve_and_retry() is True
        self.prompt.ask_retry.assert_not_called()

    def test_cancel_stops_immediately(self):
        self.prompt.ask_retry.return_value = False
        policy = RetryPolicy(self.settings, self.prompt, self.console)

        assert policy.resolve_and_retry() is False
        assert self.settings.get_config_remote_calls == 1
        self.prompt.ask_retry.assert_called_once_with(RETRY_MESSAGE)

    def test_each_retry_is_confirmed(self):
        self.prompt.ask_retry.side_effect = [True, True, False]
        policy = RetryPolicy(self.settings, self.prompt, self.console)

        assert policy.resolve_and_retry() is False
        assert self.settings.get_config_remote_calls == 3
        assert self.prompt.ask_retry.call_count == 3

    def test_retry_then_success(self):
        settings = self.settings
        results = iter([False, True])

        def get_config_remote():
            settings.get_config_remote_calls += 1
            if next(results):
                settings.endpoint = "https://broker.test/creds/"
                return True
            return False

        settings.get_config_remote = get_config_remote
        self.prompt.ask_retry.return_value = True
        policy = RetryPolicy(settings, self.prompt, self.console)

        assert policy.resolve_and_retry() is True
        assert self.prompt.ask_retry.call_count == 1

    def test_resolution_without_endpoint_counts_as_failure(self):
        self.settings.get_config_remote = Mock(return_value=True)
        self.prompt.ask_retry.return_value = False
        policy = RetryPolicy(self.settings, self.prompt, self.console)

        assert policy.resolve_and_retry() is False
        self.prompt.ask_retry.assert_called_once()

    def test_max_attempts_caps_loop(self):
        self.prompt.ask_retry.return_value = True
        policy = RetryPolicy(self.settings, self.prompt, self.console, max_attempts=3)

        with pytest.raises(RetryLimitReached) as exc_info:
            policy.resolve_and_retry()

        assert exc_info.value.attempts == 3
        assert "retry limit" in str(exc_info.value)
        assert self.settings.get_config_remote_calls == 3
        assert self.prompt.ask_retry.call_count == 2
