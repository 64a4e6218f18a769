"""Retry backoff policies layered on botocore's standard retry mode.

botocore decides *whether* a failed call is retried (error classification,
retry quota and the attempt ceiling). These policies only decide *how long*
to wait before the next attempt.

The stock standard mode waits a random time between 0 and the exponential
step (0-100ms, 0-200ms, 0-400ms, ...). Our policies keep the delay within
+/-10% of the step instead:

Standard (1 second unit, 3 attempts)
    retry 1: 1800-2200ms, retry 2: 3600-4400ms, retry 3: 7200-8800ms

Discovery (100ms unit, 10 attempts)
    retry 1: 180-220ms, retry 2: 360-440ms, retry 3: 720-880ms, ...
    retry 10: 92160-112640ms
"""

from __future__ import annotations

import logging
import random
from typing import Any, Callable

from botocore.retries import quota, standard

from .config import DEFAULT_MAX_ATTEMPTS, DISCOVERY_MAX_ATTEMPTS

logger = logging.getLogger(__name__)

STANDARD_UNIT_MS = 1000
DISCOVERY_UNIT_MS = 100

JITTER_FLOOR = 0.9
JITTER_SPAN = 0.2


def jittered_delay_ms(retry_count: int, unit_ms: float, rand: Callable[[], float] = random.random) -> float:
    if retry_count <= 0:
        return 0.0
    total = (2**retry_count) * unit_ms
    return total * JITTER_FLOOR + total * JITTER_SPAN * rand()


def default_backoff(retry_count: int) -> float:
    """Delay in milliseconds before retry ``retry_count`` of an interactive call."""
    return jittered_delay_ms(retry_count, STANDARD_UNIT_MS)


def discovery_backoff(retry_count: int) -> float:
    """Delay in milliseconds before retry ``retry_count`` of a discovery call."""
    return jittered_delay_ms(retry_count, DISCOVERY_UNIT_MS)


class JitteredBackoff(standard.BaseRetryBackoff):
    def __init__(self, unit_ms: float, rand: Callable[[], float] = random.random) -> None:
        self.unit_ms = unit_ms
        self._random = rand

    def delay_ms(self, retry_count: int) -> float:
        return jittered_delay_ms(retry_count, self.unit_ms, self._random)

    def delay_amount(self, context: standard.RetryContext) -> float:
        # attempt_number is the attempt that just failed, i.e. the retry about to run.
        return self.delay_ms(context.attempt_number) / 1000.0


class RetryStrategy:
    """An attempt ceiling paired with a backoff, installable on a botocore client."""

    def __init__(self, max_attempts: int, backoff: JitteredBackoff, name: str = "standard") -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.name = name

    def __repr__(self) -> str:
        return f"RetryStrategy(name={self.name!r}, max_attempts={self.max_attempts}, unit_ms={self.backoff.unit_ms})"

    def compute_delay(self, retry_count: int) -> float:
        return self.backoff.delay_ms(retry_count)

    def build_handler(self, retry_quota: standard.RetryQuotaChecker) -> standard.RetryHandler:
        return standard.RetryHandler(
            retry_policy=standard.RetryPolicy(
                retry_checker=standard.StandardRetryConditions(max_attempts=self.max_attempts),
                retry_backoff=self.backoff,
            ),
            retry_event_adapter=standard.RetryEventAdapter(),
            retry_quota=retry_quota,
        )

    def install(self, client: Any) -> standard.RetryHandler:
        """Replace the client's ``needs-retry`` handler with one using this strategy."""
        service_event_name = client.meta.service_model.service_id.hyphenize()
        unique_id = f"retry-config-{service_event_name}"
        events = client.meta.events

        retry_quota = standard.RetryQuotaChecker(quota.RetryQuota())
        events.register(f"after-call.{service_event_name}", retry_quota.release_retry_quota)

        handler = self.build_handler(retry_quota)
        events.unregister(f"needs-retry.{service_event_name}", unique_id=unique_id)
        events.register(f"needs-retry.{service_event_name}", handler.needs_retry, unique_id=unique_id)
        logger.debug(
            "Installed %s retry strategy on %s client (max_attempts=%s)",
            self.name,
            service_event_name,
            self.max_attempts,
        )
        return handler


def standard_retry_strategy(max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> RetryStrategy:
    return RetryStrategy(max_attempts, JitteredBackoff(STANDARD_UNIT_MS), name="standard")


def discovery_retry_strategy(max_attempts: int = DISCOVERY_MAX_ATTEMPTS) -> RetryStrategy:
    # Failing midway through a large paginated scan is expensive, so discovery
    # gets many cheap early retries and a long tail for persistent throttling.
    return RetryStrategy(max_attempts, JitteredBackoff(DISCOVERY_UNIT_MS), name="discovery")


__all__ = [
    "JitteredBackoff",
    "RetryStrategy",
    "default_backoff",
    "discovery_backoff",
    "discovery_retry_strategy",
    "jittered_delay_ms",
    "standard_retry_strategy",
]
