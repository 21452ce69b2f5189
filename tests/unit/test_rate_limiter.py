"""Unit tests for the in-memory rate limiter."""

from typing import Any

import pytest

from sacmtb.core.rate_limiter import KeyedWindowLimiter, LimitDecision, WindowPolicy, client_key, get_rate_limiter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> KeyedWindowLimiter:
    """Create a limiter allowing three hits per minute."""
    return KeyedWindowLimiter(WindowPolicy(limit=3, window_seconds=60), clock=clock)


class TestHit:
    """Tests for KeyedWindowLimiter.hit."""

    async def test_allows_up_to_limit(self, limiter: KeyedWindowLimiter) -> None:
        """Test that hits within the window count down."""
        key = client_key("otp", "/api/users/register", "1.2.3.4")

        results = [await limiter.hit(key) for _ in range(3)]

        assert [r.remaining for r in results] == [2, 1, 0]
        assert all(r.allowed for r in results)

    async def test_refuses_over_limit(self, limiter: KeyedWindowLimiter, clock: FakeClock) -> None:
        """Test that the fourth hit is refused until the oldest leaves the window."""
        for _ in range(3):
            await limiter.hit("k")
            clock.now += 10

        decision = await limiter.hit("k")

        assert decision == LimitDecision(allowed=False, remaining=0, retry_after=31)

    async def test_window_slides(self, limiter: KeyedWindowLimiter, clock: FakeClock) -> None:
        """Test that a refused key is allowed again once the window moves on."""
        for _ in range(3):
            await limiter.hit("k")

        clock.now += 60

        assert (await limiter.hit("k")).allowed is True

    async def test_keys_are_independent(self, limiter: KeyedWindowLimiter) -> None:
        """Test that one client's usage does not affect another."""
        for _ in range(3):
            await limiter.hit(client_key("otp", "/a", "1.1.1.1"))

        assert (await limiter.hit(client_key("otp", "/a", "2.2.2.2"))).allowed is True
        assert (await limiter.hit(client_key("otp", "/b", "1.1.1.1"))).allowed is True

    async def test_refused_hits_are_not_counted(self, limiter: KeyedWindowLimiter, clock: FakeClock) -> None:
        """Test that hammering a full window does not extend the wait."""
        for _ in range(3):
            await limiter.hit("k")
        for _ in range(5):
            await limiter.hit("k")

        clock.now += 60

        assert (await limiter.hit("k")).remaining == 2


class TestSweep:
    """Tests for dropping idle keys."""

    async def test_sweep_drops_idle_keys(self, limiter: KeyedWindowLimiter, clock: FakeClock) -> None:
        """Test that only keys with no hits left in the window are dropped."""
        await limiter.hit("old")
        clock.now += 61
        await limiter.hit("fresh")

        assert await limiter.sweep() == 1
        assert await limiter.sweep() == 0

    async def test_reset(self, limiter: KeyedWindowLimiter) -> None:
        """Test forgetting recorded hits."""
        await limiter.hit("a")
        limiter.reset()

        assert (await limiter.hit("a")).remaining == 2

    async def test_start_and_stop(self, limiter: KeyedWindowLimiter) -> None:
        """Test that the sweep task can be started twice and stopped cleanly."""
        await limiter.start()
        await limiter.start()
        await limiter.stop()
        await limiter.stop()


class TestClientKey:
    """Tests for client_key."""

    def test_unknown_client(self) -> None:
        """Test the key used when the client address is not known."""
        assert client_key("otp", "/api/admin/send-otp", None) == "otp:/api/admin/send-otp:unknown"


class TestGlobalLimiter:
    """Tests for the global limiter."""

    def test_uses_configured_window(self, test_settings: Any) -> None:
        """Test that the singleton picks up OTP limit settings."""
        limiter = get_rate_limiter()

        assert limiter.policy.limit == test_settings.otp_rate_limit_requests
        assert limiter.policy.window_seconds == test_settings.otp_rate_limit_window_seconds
        assert get_rate_limiter() is limiter
