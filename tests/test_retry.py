"""Tests for the retry wrapper."""

import asyncio

import pytest

from postal_manifest.recognition import is_retryable, with_retry
from postal_manifest.recognition.client import classify_status
from postal_manifest.utils.exceptions import (
    ErrorCode,
    FailureTag,
    RecognitionServiceError,
    RetryLimitExceededError,
)


class RecordingSleep:
    """Sleep replacement that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class FlakyOperation:
    """Fails with the given errors in order, then returns ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def http_error(status):
    return RecognitionServiceError(classify_status(status), status_code=status)


def run(coro):
    return asyncio.run(coro)


class TestWithRetry:
    def test_success_first_attempt(self):
        sleep = RecordingSleep()
        operation = FlakyOperation([])

        assert run(with_retry(operation, sleep=sleep)) == "ok"
        assert operation.calls == 1
        assert sleep.delays == []

    def test_two_503_then_success(self):
        """Exactly two waits, growing by the backoff factor."""
        sleep = RecordingSleep()
        operation = FlakyOperation([http_error(503), http_error(503)], result={"pincode": "560001"})

        result = run(with_retry(operation, max_attempts=4, initial_delay=1.5, backoff_factor=1.5, sleep=sleep))

        assert result == {"pincode": "560001"}
        assert operation.calls == 3
        assert sleep.delays == pytest.approx([1.5, 2.25])

    def test_always_429_exhausts_budget(self):
        sleep = RecordingSleep()
        operation = FlakyOperation([http_error(429)] * 10)

        with pytest.raises(RetryLimitExceededError) as exc_info:
            run(with_retry(operation, max_attempts=4, sleep=sleep))

        error = exc_info.value
        assert operation.calls == 4
        assert len(sleep.delays) == 3
        assert error.code is ErrorCode.CONGESTION
        assert error.attempts == 4
        assert isinstance(error.__cause__, RecognitionServiceError)
        assert error.__cause__.status_code == 429

    def test_non_retryable_fails_immediately(self):
        sleep = RecordingSleep()
        original = http_error(400)
        operation = FlakyOperation([original])

        with pytest.raises(RecognitionServiceError) as exc_info:
            run(with_retry(operation, sleep=sleep))

        assert exc_info.value is original
        assert operation.calls == 1
        assert sleep.delays == []

    def test_untagged_error_is_not_retried(self):
        sleep = RecordingSleep()
        operation = FlakyOperation([KeyError("candidates")])

        with pytest.raises(KeyError):
            run(with_retry(operation, sleep=sleep))
        assert operation.calls == 1

    def test_transport_failure_then_success(self):
        sleep = RecordingSleep()
        operation = FlakyOperation([RecognitionServiceError(FailureTag.TRANSPORT, "reset")])

        assert run(with_retry(operation, initial_delay=0.5, sleep=sleep)) == "ok"
        assert sleep.delays == [0.5]

    def test_single_attempt_budget(self):
        sleep = RecordingSleep()
        operation = FlakyOperation([http_error(503)])

        with pytest.raises(RetryLimitExceededError):
            run(with_retry(operation, max_attempts=1, sleep=sleep))
        assert sleep.delays == []

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            run(with_retry(FlakyOperation([]), max_attempts=0))


class TestClassification:
    @pytest.mark.parametrize("status,tag,retryable", [
        (400, FailureTag.BAD_REQUEST, False),
        (401, FailureTag.UNAUTHORIZED, False),
        (403, FailureTag.UNAUTHORIZED, False),
        (404, FailureTag.UNEXPECTED_STATUS, False),
        (429, FailureTag.RATE_LIMITED, True),
        (500, FailureTag.SERVER_UNAVAILABLE, True),
        (502, FailureTag.UNEXPECTED_STATUS, False),
        (503, FailureTag.SERVER_UNAVAILABLE, True),
        (504, FailureTag.SERVER_UNAVAILABLE, True),
    ])
    def test_status_tags(self, status, tag, retryable):
        error = http_error(status)

        assert classify_status(status) is tag
        assert is_retryable(error) is retryable
        assert error.retryable is retryable

    def test_plain_exceptions_are_not_retryable(self):
        assert not is_retryable(ValueError("bad"))
        assert not is_retryable(RecognitionServiceError(FailureTag.MALFORMED_RESPONSE))
