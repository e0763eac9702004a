"""
Clock implementations for the services.
"""

import pendulum
from pendulum import DateTime


class SystemClock:
    """Wall clock in the deployment's business timezone."""

    def __init__(self, timezone: str = "Europe/Berlin"):
        self.timezone = timezone

    def now(self) -> DateTime:
        return pendulum.now(self.timezone)


class FixedClock:
    """
    Clock frozen at a given instant, moved only by explicit calls.

    Used by tests and for dry runs against a fixed point in time.
    """

    def __init__(self, instant: DateTime):
        self._instant = instant

    def now(self) -> DateTime:
        return self._instant

    def set(self, instant: DateTime) -> None:
        self._instant = instant

    def advance(self, **kwargs) -> DateTime:
        """Move forward, e.g. ``advance(minutes=30)``."""
        self._instant = self._instant.add(**kwargs)
        return self._instant
