"""Tests for the startup retry policy."""
import pytest

from bookstore.retry import RetryPolicy


def test_returns_first_success():
    """Test that a successful call is not retried."""
    sleeps = []
    policy = RetryPolicy(max_attempts=5, delay=5.0, sleep=sleeps.append)

    assert policy.call(lambda: "ok") == "ok"
    assert sleeps == []


def test_retries_until_success():
    """Test fixed delays between failed attempts."""
    sleeps = []
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("refused")
        return "connected"

    policy = RetryPolicy(max_attempts=5, delay=5.0, sleep=sleeps.append)

    assert policy.call(flaky, retry_on=(ConnectionError,)) == "connected"
    assert len(attempts) == 3
    assert sleeps == [5.0, 5.0]


def test_gives_up_after_max_attempts():
    """Test that the last error is raised once attempts run out."""
    sleeps = []
    attempts = []

    def down():
        attempts.append(1)
        raise ConnectionError("refused")

    policy = RetryPolicy(max_attempts=5, delay=0.5, sleep=sleeps.append)

    with pytest.raises(ConnectionError):
        policy.call(down, retry_on=(ConnectionError,))
    assert len(attempts) == 5
    assert len(sleeps) == 4


def test_other_errors_not_retried():
    sleeps = []
    policy = RetryPolicy(max_attempts=3, delay=1.0, sleep=sleeps.append)

    def broken():
        raise ValueError("bad config")

    with pytest.raises(ValueError):
        policy.call(broken, retry_on=(ConnectionError,))
    assert sleeps == []


def test_requires_one_attempt():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
