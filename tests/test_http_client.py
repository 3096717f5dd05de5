"""Unit tests for RetryingHttpClient."""
from unittest.mock import patch

import pytest
import requests
import responses
from requests.exceptions import Timeout

from lookup.http_client import RetryingHttpClient


URL = "https://api.example.com/resource"


class TestRetryingHttpClient:
    """Test cases for RetryingHttpClient."""

    @responses.activate
    def test_success_first_attempt(self):
        """Test a successful response is returned directly."""
        responses.add(responses.GET, URL, json={'ok': True}, status=200)

        response = RetryingHttpClient().get(URL)

        assert response.json() == {'ok': True}
        assert len(responses.calls) == 1

    @responses.activate
    @patch('lookup.http_client.time.sleep')
    def test_retry_then_success(self, mock_sleep):
        """Test server errors are retried with exponential backoff."""
        responses.add(responses.GET, URL, body="Server Error", status=500)
        responses.add(responses.GET, URL, body="Server Error", status=503)
        responses.add(responses.GET, URL, json={'ok': True}, status=200)

        response = RetryingHttpClient().get(URL)

        assert response.json() == {'ok': True}
        assert len(responses.calls) == 3
        assert [call.args[0] for call in mock_sleep.call_args_list] == [1, 2]

    @responses.activate
    @patch('lookup.http_client.time.sleep')
    def test_all_retries_fail(self, mock_sleep):
        """Test the last error is raised when every attempt fails."""
        for _ in range(3):
            responses.add(responses.GET, URL, body="Server Error", status=500)

        with pytest.raises(requests.HTTPError):
            RetryingHttpClient().get(URL)

        assert len(responses.calls) == 3

    @responses.activate
    @patch('lookup.http_client.time.sleep')
    def test_rate_limit_is_retried(self, mock_sleep):
        """Test HTTP 429 is retried."""
        responses.add(responses.GET, URL, status=429)
        responses.add(responses.GET, URL, json={'ok': True}, status=200)

        RetryingHttpClient().get(URL)

        assert len(responses.calls) == 2

    @responses.activate
    @patch('lookup.http_client.time.sleep')
    def test_timeout_is_retried(self, mock_sleep):
        """Test timeouts are retried and re-raised after the last attempt."""
        for _ in range(3):
            responses.add(responses.GET, URL, body=Timeout("Request timed out"))

        with pytest.raises(Timeout):
            RetryingHttpClient().get(URL)

        assert len(responses.calls) == 3

    @responses.activate
    @patch('lookup.http_client.time.sleep')
    def test_client_error_not_retried(self, mock_sleep):
        """Test 4xx responses other than 429 fail immediately."""
        responses.add(responses.GET, URL, status=404)

        with pytest.raises(requests.HTTPError):
            RetryingHttpClient().get(URL)

        assert len(responses.calls) == 1
        mock_sleep.assert_not_called()

    @responses.activate
    @patch('lookup.http_client.time.sleep')
    def test_post_not_retried(self, mock_sleep):
        """Test a POST is attempted once even on a retryable failure."""
        responses.add(responses.POST, URL, body=Timeout("Request timed out"))
        responses.add(responses.POST, URL, json={'id': 'created-twice'}, status=200)

        with pytest.raises(Timeout):
            RetryingHttpClient().post(URL, json={'summary': 'Wicked'})

        assert len(responses.calls) == 1
        mock_sleep.assert_not_called()

    @responses.activate
    @patch('lookup.http_client.time.sleep')
    def test_delete_is_retried(self, mock_sleep):
        """Test idempotent writes are retried."""
        responses.add(responses.DELETE, URL, status=503)
        responses.add(responses.DELETE, URL, status=204)

        RetryingHttpClient().request('DELETE', URL)

        assert len(responses.calls) == 2

    @responses.activate
    def test_timeout_passed_to_session(self):
        """Test the configured timeout is applied to requests."""
        responses.add(responses.POST, URL, json={}, status=200)
        client = RetryingHttpClient(timeout=7)

        with patch.object(client.session, 'request', wraps=client.session.request) as request:
            client.post(URL, data={'a': 1})

        assert request.call_args.kwargs['timeout'] == 7
