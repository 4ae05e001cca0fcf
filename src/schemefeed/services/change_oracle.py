"""Change oracle: decides whether the upstream is believed to have new schemes.

Pure decision logic. The oracle never performs I/O and never awaits, so
its counter increment cannot interleave with another coroutine.
"""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RefreshState:
    """Process-wide refresh bookkeeping."""

    update_check_counter: int = 0
    last_oracle_signal_at: datetime | None = None


class ChangeOracle:
    """Periodic signal every ``interval`` consults plus a random jitter signal."""

    def __init__(
        self,
        interval: int,
        jitter_probability: float,
        rng: random.Random,
        state: RefreshState | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if interval < 1:
            raise ValueError("interval must be at least 1")
        self.interval = interval
        self.jitter_probability = jitter_probability
        self.state = state if state is not None else RefreshState()
        self._rng = rng
        self._clock = clock

    def should_refresh(self) -> bool:
        """Consult the oracle once.

        Increments the check counter exactly once regardless of the answer.
        A True answer only adds a refresh opportunity; False never blocks one.
        """
        self.state.update_check_counter += 1
        counter = self.state.update_check_counter

        periodic = counter % self.interval == 0
        # Draw on every call so the random stream does not depend on the periodic branch
        jitter = self._rng.random() < self.jitter_probability

        if periodic or jitter:
            self.state.last_oracle_signal_at = self._clock()
            logger.info(
                "Upstream update signalled at check %d (periodic=%s, jitter=%s)",
                counter,
                periodic,
                jitter,
            )
            return True
        return False

    def force_signal(self) -> datetime:
        """Position the counter so the next consult lands on a periodic boundary."""
        counter = self.state.update_check_counter
        next_boundary = (counter // self.interval + 1) * self.interval
        self.state.update_check_counter = next_boundary - 1
        self.state.last_oracle_signal_at = self._clock()
        logger.info(
            "Forced upstream update: check counter moved from %d to %d",
            counter,
            self.state.update_check_counter,
        )
        return self.state.last_oracle_signal_at

    def calls_until_signal(self) -> int:
        """Consults remaining until the periodic component next fires (1 = next call)."""
        return self.interval - self.state.update_check_counter % self.interval
