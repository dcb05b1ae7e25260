"""System clock adapter."""

import time


class SystemClock:
    """Wall clock in whole epoch seconds."""

    def now(self) -> int:
        return int(time.time())
