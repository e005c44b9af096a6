"""Rate limiter with continuous exponential decay.

Every send adds one to a score that decays as ``score * e^(-lambda * seconds)``.
Lambda is chosen such that an infinite stream of messages sent at exactly the
allowed rate converges to ``limit_per_second * window_seconds``, so the limit
is burstable by widening the window.
"""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from slack_webhook_log.errors import ConfigurationError

Clock = Callable[[], float]


def decay_rate(limit_per_second: float, window_seconds: float) -> float:
    """Return the per-second decay exponent for a rate and burst window."""
    if math.isinf(limit_per_second):
        return math.inf
    if limit_per_second == 0:
        # limit of r * ln(1 / (r * w) + 1) as r -> 0
        return 0.0
    return limit_per_second * math.log(1 / (limit_per_second * window_seconds) + 1)


@dataclass
class RateLimiterState:
    """Decaying send score owned by a single sink."""

    limit_per_second: float
    window_seconds: float
    sent_score: float = 0.0
    last_update: float = 0.0
    discarded: int = 0
    decay: float = field(init=False)

    def __post_init__(self) -> None:
        if math.isnan(self.limit_per_second) or self.limit_per_second < 0:
            raise ConfigurationError(
                f"limit_per_second must be >= 0, got {self.limit_per_second}"
            )
        if not math.isinf(self.limit_per_second) and not (
            0 < self.window_seconds < math.inf
        ):
            raise ConfigurationError(
                f"limit_window_seconds must be a positive number, got {self.window_seconds}"
            )
        self.decay = decay_rate(self.limit_per_second, self.window_seconds)


class RateLimiter:
    """Answer "may I send now?" and record sends against a decaying budget.

    Not thread-safe on its own; the owning sink serializes access.
    """

    def __init__(
        self,
        limit_per_second: float = math.inf,
        window_seconds: float = 30.0,
        clock: Clock = time.monotonic,
    ):
        self.clock = clock
        self.state = RateLimiterState(
            limit_per_second=limit_per_second,
            window_seconds=window_seconds,
            last_update=clock(),
        )

    @property
    def enabled(self) -> bool:
        return not math.isinf(self.state.limit_per_second)

    @property
    def budget(self) -> float:
        """Maximum decayed score before messages are discarded."""
        if not self.enabled:
            return math.inf
        return self.state.limit_per_second * self.state.window_seconds

    @property
    def discarded(self) -> int:
        return self.state.discarded

    def projected_score(self, at: float) -> float:
        """Project the sent score forward to ``at`` without mutating state."""
        if not self.enabled:
            return 0.0
        elapsed = at - self.state.last_update
        return self.state.sent_score * math.exp(-self.state.decay * elapsed)

    def is_exceeded(self) -> bool:
        """Check if the decayed score is strictly over budget right now."""
        if not self.enabled:
            return False
        return self.projected_score(self.clock()) > self.budget

    def record_send(self) -> None:
        """Count one transmitted message (real or discard notice)."""
        now = self.clock()
        self.state.sent_score = self.projected_score(now) + 1
        self.state.last_update = now

    def record_discard(self) -> int:
        """Count one suppressed message and return the running total."""
        self.state.discarded += 1
        return self.state.discarded

    def take_discarded(self) -> int:
        """Return the discard count and reset it to zero."""
        count = self.state.discarded
        self.state.discarded = 0
        return count
