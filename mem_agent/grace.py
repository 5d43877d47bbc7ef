"""
Consecutive publish failure tracking.
"""

from enum import Enum
from typing import Optional


class Action(Enum):
    CONTINUE = 'continue'
    ABORT = 'abort'


class GraceController:
    """
    Decides when a run of publish failures should stop the agent.

    Up to ``threshold`` consecutive failures are tolerated; the next one
    aborts. Any success resets the count. The failed batch itself is never
    retried, the next tick just publishes a fresh sample.
    """

    def __init__(self, threshold: int):
        if threshold < 0:
            raise ValueError("threshold must be >= 0")
        self.threshold = threshold
        self.failures = 0

    def record(self, error: Optional[BaseException]) -> Action:
        """Account for one publish outcome (None means success)"""
        if error is None:
            self.failures = 0
            return Action.CONTINUE

        self.failures += 1
        if self.failures > self.threshold:
            return Action.ABORT
        return Action.CONTINUE
