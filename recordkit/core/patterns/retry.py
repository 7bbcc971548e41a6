"""Retry policy shared by the CRUD engine."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from recordkit.core.config import EngineSettings


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry configuration.

    ``exponential_base`` of 1.0 yields a fixed delay of ``base_delay``.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    exponential_base: float = 1.0
    max_delay: float = 60.0
    jitter: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> RetryPolicy:
        return cls(
            max_attempts=settings.max_attempts,
            base_delay=settings.retry_delay_seconds,
            exponential_base=settings.retry_backoff_multiplier,
            max_delay=settings.retry_max_delay_seconds,
            jitter=settings.retry_jitter,
        )

    def attempts(self) -> Iterator[int]:
        """Yield attempt numbers, starting at 1."""
        yield from range(1, self.max_attempts + 1)

    def is_last(self, attempt: int) -> bool:
        return attempt >= self.max_attempts

    def delay_for(self, attempt: int) -> float:
        """Compute the delay to wait after ``attempt`` failed.

        Args:
            attempt: Failed attempt number (from 1)

        Returns:
            Delay in seconds
        """
        if attempt < 1 or self.base_delay == 0:
            return 0.0

        delay = self.base_delay * (self.exponential_base ** (attempt - 1))

        if self.jitter:
            jitter_range = min(delay * 0.1, 1.0)
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, min(delay, self.max_delay))

    async def wait(self, attempt: int) -> float:
        """Sleep for the backoff following ``attempt`` and return the slept time."""
        delay = self.delay_for(attempt)
        if delay > 0:
            await asyncio.sleep(delay)
        return delay
