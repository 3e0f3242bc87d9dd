# File: app/services/tick_budget.py
import time
from typing import Callable, Optional
from app.core.config import settings


class TickBudget:
    """Soft deadline for one tick. Evaluators stop picking up new boxes once it passes."""

    def __init__(self, seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.seconds = settings.TICK_SOFT_DEADLINE_SECONDS if seconds is None else seconds
        self._clock = clock
        self._started = clock()

    def elapsed(self) -> float:
        return self._clock() - self._started

    def remaining(self) -> float:
        return max(self.seconds - self.elapsed(), 0.0)

    def expired(self) -> bool:
        return self.elapsed() >= self.seconds
