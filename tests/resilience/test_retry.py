"""Tests for the resilient API call decorator."""

from __future__ import annotations

import httpx
import pytest
from tenacity import wait_none

from leadflow.resilience.retry import is_transient_error, resilient_api_call

REQUEST = httpx.Request("POST", "https://fsm.example.com/jobs")


def _status_error(status: int) -> httpx.HTTPStatusError:
    return httpx.HTTPStatusError(
        f"HTTP {status}", request=REQUEST, response=httpx.Response(status, request=REQUEST)
    )


class TestIsTransientError:
    @pytest.mark.parametrize("status", [429, 500, 502, 503])
    def test_retryable_statuses(self, status: int) -> None:
        assert is_transient_error(_status_error(status)) is True

    @pytest.mark.parametrize("status", [400, 401, 404, 422])
    def test_client_errors_not_retried(self, status: int) -> None:
        assert is_transient_error(_status_error(status)) is False

    def test_transport_errors_retried(self) -> None:
        assert is_transient_error(httpx.ReadTimeout("slow", request=REQUEST)) is True

    def test_other_errors_not_retried(self) -> None:
        assert is_transient_error(ValueError("bad payload")) is False


class TestResilientApiCall:
    def test_succeeds_after_transient_failures(self) -> None:
        calls = {"n": 0}

        @resilient_api_call("fsm", attempts=3, wait=wait_none())
        def flaky() -> str:
            calls["n"] += 1
            if calls["n"] < 3:
                raise _status_error(503)
            return "ok"

        assert flaky() == "ok"
        assert calls["n"] == 3

    def test_reraises_original_after_exhaustion(self) -> None:
        calls = {"n": 0}

        @resilient_api_call("fsm", attempts=2, wait=wait_none())
        def down() -> None:
            calls["n"] += 1
            raise httpx.ConnectError("refused", request=REQUEST)

        with pytest.raises(httpx.ConnectError, match="refused"):
            down()
        assert calls["n"] == 2

    def test_non_transient_error_fails_fast(self) -> None:
        calls = {"n": 0}

        @resilient_api_call("fsm", attempts=5, wait=wait_none())
        def rejected() -> None:
            calls["n"] += 1
            raise _status_error(400)

        with pytest.raises(httpx.HTTPStatusError):
            rejected()
        assert calls["n"] == 1

    def test_preserves_function_metadata(self) -> None:
        @resilient_api_call("fsm")
        def create_job() -> None:
            """Create a job."""

        assert create_job.__name__ == "create_job"
        assert create_job.__doc__ == "Create a job."
