"""Write-stability detection.

Large instrument files are written incrementally. A file is treated as fully
written once its size stops changing across a fixed quiescence interval.
"""

import logging
import os
import time
from typing import Callable, Optional

__all__ = ['StabilityDetector']

logger = logging.getLogger(__name__)


class StabilityDetector:
    """Decides whether a file's write has finished.

    Samples the file size, waits ``interval`` seconds, samples again. The
    file is stable only if both samples succeeded and are equal. A failed
    stat (file missing, renamed away, permission denied) is never stable:
    the caller retries on its next observation cycle.

    Parameters
    ----------
    interval : float
        Quiescence interval in seconds.
    sleeper : callable, optional
        Sleep function (for testing). If None, uses `time.sleep`.
    """

    def __init__(self, interval: float = 3.0, sleeper: Optional[Callable[[float], None]] = None):
        self.interval = interval
        self._sleep = sleeper or time.sleep

    def _size(self, path) -> Optional[int]:
        try:
            return os.stat(path).st_size
        except OSError as e:
            logger.warning("Failed to stat %s: %s", path, e)
            return None

    def is_stable(self, path) -> bool:
        first = self._size(path)
        if first is None:
            return False

        self._sleep(self.interval)

        second = self._size(path)
        if second is None:
            return False

        if first != second:
            logger.debug("Still growing: %s (%d -> %d bytes)", path, first, second)
            return False
        return True
