"""Synthetic failure decisions, taken before any expensive work."""

import random
from dataclasses import dataclass
from typing import Optional

INJECTED_FAILURE_BODY = "Injected failure"


@dataclass(frozen=True)
class FaultDecision:
    inject: bool
    reason: Optional[str] = None


class FaultInjector:
    """Memoryless fault injection.

    Two independent draws per request: a uniform [0, 1) value against
    ``fail_rate``, and, when ``burst_period`` is positive, a uniform integer in
    [1, burst_period] that hits on 1. The burst draw approximates "every Nth
    request" without a shared counter, so nothing is remembered between calls.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng if rng is not None else random.Random()

    def decide(self, fail_rate: float, burst_period: int = 0) -> FaultDecision:
        random_hit = self._rng.random() < fail_rate
        burst_hit = burst_period > 0 and self._rng.randint(1, burst_period) == 1
        if random_hit:
            return FaultDecision(True, "failrate")
        if burst_hit:
            return FaultDecision(True, "burst")
        return FaultDecision(False)
