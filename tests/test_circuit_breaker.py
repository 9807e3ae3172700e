"""
Tests for the circuit breaker guarding text generation.
"""

import asyncio

import pytest

from dayoff.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError, CircuitState


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def failing_func():
    raise ConnectionError("backend down")


async def failing_coro():
    raise ConnectionError("backend down")


class TestCircuitBreaker:
    def test_initial_state_closed(self):
        """Test circuit starts in CLOSED state."""
        cb = CircuitBreaker(failure_threshold=3, timeout=5)
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0

    def test_successful_call(self):
        """Test successful call passes through."""
        cb = CircuitBreaker(failure_threshold=3)
        assert cb.call(lambda: "success") == "success"
        assert cb.state == CircuitState.CLOSED

    def test_single_failure_stays_closed(self):
        """Test one failure below threshold keeps the circuit closed."""
        cb = CircuitBreaker(failure_threshold=3)

        with pytest.raises(ConnectionError):
            cb.call(failing_func)

        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 1

    def test_success_resets_failure_count(self):
        """Test a success clears earlier failures."""
        cb = CircuitBreaker(failure_threshold=3)
        with pytest.raises(ConnectionError):
            cb.call(failing_func)

        cb.call(lambda: None)

        assert cb.failure_count == 0

    def test_threshold_failures_open_and_block(self):
        """Test circuit opens at threshold and blocks calls."""
        cb = CircuitBreaker(failure_threshold=2)

        for _ in range(2):
            with pytest.raises(ConnectionError):
                cb.call(failing_func)

        assert cb.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerOpenError):
            cb.call(lambda: "should not execute")

    def test_half_open_success_closes(self):
        """Test a successful trial call closes the circuit."""
        clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=2, timeout=30, clock=clock)
        for _ in range(2):
            with pytest.raises(ConnectionError):
                cb.call(failing_func)

        clock.now += 31

        assert cb.call(lambda: "recovered") == "recovered"
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0

    def test_half_open_failure_reopens(self):
        """Test a failed trial call reopens the circuit."""
        clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=2, timeout=30, clock=clock)
        for _ in range(2):
            with pytest.raises(ConnectionError):
                cb.call(failing_func)

        clock.now += 31
        with pytest.raises(ConnectionError):
            cb.call(failing_func)

        assert cb.state == CircuitState.OPEN

    def test_get_state_returns_dict(self):
        """Test state snapshot for health reporting."""
        cb = CircuitBreaker(failure_threshold=5, name="TestBreaker")

        state = cb.get_state()

        assert state["name"] == "TestBreaker"
        assert state["state"] == "closed"
        assert state["failure_count"] == 0
        assert state["failure_threshold"] == 5


class TestAsyncCalls:
    def test_async_success(self):
        """Test async call passes through."""
        cb = CircuitBreaker(failure_threshold=2)

        async def ok():
            return "letter"

        assert asyncio.run(cb.call_async(ok)) == "letter"

    def test_async_failures_open_circuit(self):
        """Test async failures open the circuit."""
        cb = CircuitBreaker(failure_threshold=2)

        for _ in range(2):
            with pytest.raises(ConnectionError):
                asyncio.run(cb.call_async(failing_coro))

        assert cb.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerOpenError):
            asyncio.run(cb.call_async(failing_coro))

    def test_timeout_counts_as_failure(self):
        """Test a cancelled async call counts as a failure."""
        cb = CircuitBreaker(failure_threshold=1)

        async def slow():
            await asyncio.sleep(5)

        async def run():
            await asyncio.wait_for(cb.call_async(slow), timeout=0.05)

        with pytest.raises(asyncio.TimeoutError):
            asyncio.run(run())

        assert cb.state == CircuitState.OPEN
