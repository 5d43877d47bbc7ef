"""
Host memory sampling.
"""

from dataclasses import dataclass
from typing import Callable, Tuple

import psutil

from mem_agent.errors import HostStatError


@dataclass(frozen=True)
class Sample:
    """Memory snapshot for one tick (bytes, utilization in percent)"""
    total: int
    used: int
    free: int
    utilization: int


def read_memory() -> Tuple[int, int, int]:
    """Read (total, used, free) memory in bytes from the host"""
    mem = psutil.virtual_memory()
    return mem.total, mem.used, mem.free


class MemorySampler:
    """Samples host memory and derives a utilization percentage"""

    def __init__(self, reader: Callable[[], Tuple[int, int, int]] = read_memory):
        self.reader = reader
        # Kept across ticks so a zero total never produces an undefined value
        self.utilization = 0

    def sample(self) -> Sample:
        """
        Take a fresh memory sample.

        Raises:
            HostStatError: If the host read fails or returns unusable values
        """
        try:
            total, used, free = self.reader()
            total, used, free = int(total), int(used), int(free)
        except Exception as e:
            raise HostStatError(f"Failed to read memory stats: {e}") from e

        if total > 0:
            self.utilization = 100 * used // total

        return Sample(
            total=total,
            used=used,
            free=free,
            utilization=self.utilization,
        )
