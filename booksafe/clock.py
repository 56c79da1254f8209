"""Wall clock, monotonic clock and sleep behind one small object.

Retry loops and the route cache take a ``Clock`` instead of calling
``time`` directly, so tests can hand in a fake that advances on ``sleep``.
"""

import time
from datetime import datetime, timezone


class Clock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


SYSTEM_CLOCK = Clock()
