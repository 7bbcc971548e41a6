"""Resilience patterns module."""

from recordkit.core.patterns.retry import RetryPolicy

__all__ = ["RetryPolicy"]
