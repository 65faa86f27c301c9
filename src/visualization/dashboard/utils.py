"""
Dashboard utility helpers for performance monitoring and display formatting.
"""

import logging
import time

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def format_currency(value: float, currency: str = "USD") -> str:
    """Format an amount with its currency symbol, or the ISO code as a suffix."""
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{value:,.2f}"
    return f"{value:,.2f} {currency}"


def format_currency_compact(value: float, currency: str = "USD") -> str:
    """Format currency values with K/M suffixes for large numbers."""
    if value >= 1_000_000:
        amount = f"{value / 1_000_000:.1f}M"
    elif value >= 1_000:
        amount = f"{value / 1_000:.1f}K"
    else:
        amount = f"{value:.2f}"

    symbol = CURRENCY_SYMBOLS.get(currency)
    return f"{symbol}{amount}" if symbol else f"{amount} {currency}"


def truncate_label(label: str, limit: int = 40) -> str:
    return label[:limit] + "..." if len(label) > limit else label


class PerformanceMonitor:
    """Simple performance monitoring for dashboard operations."""

    def __init__(self, slow_threshold: float = 1.0, history: int = 10):
        self.slow_threshold = slow_threshold
        self.history = history
        self.metrics: dict[str, list[float]] = {}
        self.operation_times: dict[str, float] = {}

    def start_operation(self, operation_name: str):
        """Start timing an operation."""
        self.operation_times[operation_name] = time.time()

    def end_operation(self, operation_name: str) -> float | None:
        """End timing an operation, log it and return its duration."""
        started = self.operation_times.pop(operation_name, None)
        if started is None:
            return None

        duration = time.time() - started
        timings = self.metrics.setdefault(operation_name, [])
        timings.append(duration)
        del timings[: -self.history]

        avg_time = sum(timings) / len(timings)
        logger.debug(f"⚡ {operation_name} took {duration:.3f}s (avg: {avg_time:.3f}s)")

        if duration > self.slow_threshold:
            logger.warning(f"Slow operation detected: {operation_name} took {duration:.3f}s")
        return duration

    def get_stats(self) -> dict[str, dict[str, float]]:
        """Get current performance statistics."""
        return {
            operation: {
                "count": len(times),
                "avg_time": sum(times) / len(times),
                "last_time": times[-1],
                "max_time": max(times),
            }
            for operation, times in self.metrics.items()
            if times
        }
