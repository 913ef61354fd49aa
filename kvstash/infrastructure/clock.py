"""Wall-clock implementation of the Clock interface."""

import time

from kvstash.domain.interfaces.clock import Clock


class SystemClock(Clock):
    """Reads the system time."""

    def now(self) -> int:
        return int(time.time())
