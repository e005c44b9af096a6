"""Tests for the decaying rate limiter."""

import math

import pytest

from slack_webhook_log.errors import ConfigurationError
from slack_webhook_log.sink.rate_limiter import RateLimiter, decay_rate


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestDecayRate:
    """Tests for the decay exponent."""

    def test_formula(self):
        assert decay_rate(2.0, 5.0) == pytest.approx(2.0 * math.log(1 / 10 + 1))

    def test_unlimited(self):
        assert decay_rate(math.inf, 30) == math.inf

    def test_zero_rate_never_decays(self):
        assert decay_rate(0.0, 30) == 0.0


class TestRateLimiter:
    """Tests for the rate limiter."""

    def test_not_exceeded_after_construction(self):
        """A fresh limiter should allow the first send."""
        rl = RateLimiter(limit_per_second=1, window_seconds=1, clock=FakeClock())
        assert rl.is_exceeded() is False
        assert rl.projected_score(rl.clock()) == 0.0

    def test_unlimited_never_exceeded(self):
        """With an infinite rate nothing is ever limited."""
        rl = RateLimiter(clock=FakeClock())
        for _ in range(10_000):
            rl.record_send()
            assert rl.is_exceeded() is False

    def test_budget(self):
        rl = RateLimiter(limit_per_second=0.5, window_seconds=60, clock=FakeClock())
        assert rl.budget == 30
        assert RateLimiter(clock=FakeClock()).budget == math.inf

    def test_boundary_is_strict(self):
        """Score equal to the budget is not over it; one more send is."""
        clock = FakeClock()
        rl = RateLimiter(limit_per_second=1, window_seconds=1, clock=clock)

        rl.record_send()
        assert rl.projected_score(clock()) == 1.0
        assert rl.is_exceeded() is False

        rl.record_send()
        assert rl.is_exceeded() is True

    def test_projected_score_is_pure(self):
        """Querying twice at the same instant gives the same value."""
        clock = FakeClock()
        rl = RateLimiter(limit_per_second=1, window_seconds=10, clock=clock)
        rl.record_send()
        rl.record_send()
        clock.advance(3.7)

        first = rl.projected_score(clock())
        second = rl.projected_score(clock())
        assert first == second
        assert rl.state.sent_score == 2.0

    def test_score_decays(self):
        clock = FakeClock()
        rl = RateLimiter(limit_per_second=1, window_seconds=10, clock=clock)
        rl.record_send()
        clock.advance(5)

        expected = math.exp(-rl.state.decay * 5)
        assert rl.projected_score(clock()) == pytest.approx(expected)

    def test_record_send_projects_before_incrementing(self):
        clock = FakeClock()
        rl = RateLimiter(limit_per_second=1, window_seconds=10, clock=clock)
        rl.record_send()
        clock.advance(2)
        decayed = rl.projected_score(clock())

        rl.record_send()
        assert rl.state.sent_score == pytest.approx(decayed + 1)
        assert rl.state.last_update == clock()

    def test_steady_rate_converges_to_budget(self):
        """Sending at exactly the allowed rate approaches but never crosses the budget."""
        clock = FakeClock()
        rate, window = 1.0, 10.0
        rl = RateLimiter(limit_per_second=rate, window_seconds=window, clock=clock)

        score = 0.0
        for _ in range(200):
            clock.advance(1 / rate)
            score = rl.projected_score(clock())
            assert score <= rl.budget
            assert rl.is_exceeded() is False
            rl.record_send()

        assert score == pytest.approx(rl.budget, rel=1e-3)

    def test_burst_then_recovery(self):
        """A burst exhausts the budget; waiting restores it."""
        clock = FakeClock()
        rl = RateLimiter(limit_per_second=1, window_seconds=5, clock=clock)

        sent = 0
        while not rl.is_exceeded():
            rl.record_send()
            sent += 1
        assert sent == 6  # budget 5, strict comparison admits the 6th

        clock.advance(60)
        assert rl.is_exceeded() is False

    def test_long_gap_has_no_drift(self):
        clock = FakeClock()
        rl = RateLimiter(limit_per_second=1, window_seconds=1, clock=clock)
        rl.record_send()
        rl.record_send()
        clock.advance(86_400)
        assert rl.projected_score(clock()) == pytest.approx(0.0)

    def test_zero_rate_blocks_after_first(self):
        """A zero rate lets the first message through and nothing after."""
        clock = FakeClock()
        rl = RateLimiter(limit_per_second=0, window_seconds=30, clock=clock)
        assert rl.is_exceeded() is False
        rl.record_send()
        clock.advance(3600)
        assert rl.is_exceeded() is True

    def test_discard_counter(self):
        rl = RateLimiter(clock=FakeClock())
        assert rl.record_discard() == 1
        assert rl.record_discard() == 2
        assert rl.discarded == 2

        assert rl.take_discarded() == 2
        assert rl.discarded == 0

    @pytest.mark.parametrize(
        "rate,window",
        [(-1, 30), (math.nan, 30), (1, 0), (1, -5), (1, math.inf)],
    )
    def test_invalid_limits(self, rate, window):
        with pytest.raises(ConfigurationError):
            RateLimiter(limit_per_second=rate, window_seconds=window, clock=FakeClock())
