import time
import logging

from .errors import TimeoutExceededError

logger = logging.getLogger(__name__)


class TimeoutChecker:
    """Cooperative deadline shared by every stage of one structure finding run.

    The algorithms poll ``check()`` at fine granularity; once the deadline has
    passed the next poll raises ``TimeoutExceededError`` and the whole run is
    abandoned. A ``timeout`` of ``None`` never expires.
    """

    def __init__(self, timeout=None, explanation=None, clock=time.monotonic):
        if timeout is not None and timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {timeout}")
        self.timeout = timeout
        self.explanation = explanation
        self._clock = clock
        self._deadline = None if timeout is None else clock() + timeout

    def check(self, where):
        if self._deadline is None:
            return
        if self._clock() > self._deadline:
            message = (
                f"Aborting {where} as it has taken longer than the timeout of "
                f"{self.timeout}s"
            )
            logger.debug(message)
            raise TimeoutExceededError(
                message,
                explanation=self.explanation,
                details={"stage": where, "timeout_seconds": self.timeout},
            )
