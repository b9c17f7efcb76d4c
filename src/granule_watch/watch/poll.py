"""Poll-based directory watching.

Each pass lists a directory and picks up entries modified since the previous
pass. The high-water mark advances to the time sampled at the *start* of a
pass, so files that land while a pass is running are picked up by the next one.
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

from granule_watch.granule.stability import StabilityDetector

__all__ = ['DirectoryPoller', 'PollWatchSource']

logger = logging.getLogger(__name__)

MAX_STABILITY_WORKERS = 8


class DirectoryPoller(threading.Thread):
    """Polls one directory and reports files whose write has finished.

    Every pass:

    1. samples ``pass_start``
    2. lists regular files, selecting those with mtime newer than the mark
       plus files still unsettled from earlier passes
    3. runs stability checks for the selection in a scoped thread pool that
       is joined before the pass ends
    4. reports stable files to ``on_stable``; unstable ones stay unsettled
    5. sets the mark to ``pass_start``

    A missing or unreadable directory is logged and retried next period.

    Parameters
    ----------
    directory : str
        Directory to poll (not recursive).
    on_stable : callable
        Called with the path of every stable file, from the poller thread.
    detector : StabilityDetector
        Write-stability check.
    period : float
        Seconds between passes.
    include_existing : bool, optional
        If True the initial mark is 0 and files already present are reported
        on the first pass. Otherwise the mark starts at construction time.
    clock : callable, optional
        Wall-clock function comparable with file mtimes (for testing).
        If None, uses `time.time`.
    """

    def __init__(self, directory: str, on_stable: Callable[[str], None],
                 detector: StabilityDetector, period: float,
                 include_existing: bool = False,
                 clock: Optional[Callable[[], float]] = None,
                 name: Optional[str] = None):
        super().__init__(daemon=True, name=name or f"Poller-{os.path.basename(os.path.normpath(directory))}")
        self.directory = str(directory)
        self.on_stable = on_stable
        self.detector = detector
        self.period = period
        self._clock = clock or time.time
        self._mark = 0.0 if include_existing else self._clock()
        self._unsettled = set()
        self._stop_event = threading.Event()
        self._passes = 0

    def stop(self):
        """Signal the poller to stop after the current pass."""
        self._stop_event.set()

    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def mark(self) -> float:
        return self._mark

    @property
    def unsettled(self) -> frozenset:
        return frozenset(self._unsettled)

    def run(self):
        logger.info("Watching %s (poll every %.1fs)", self.directory, self.period)
        while not self.stopped():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Poll pass failed for %s", self.directory)
            self._stop_event.wait(self.period)
        logger.info("Stopped %s", self.name)

    def poll_once(self) -> List[str]:
        """Run one pass. Returns the paths reported stable, in listing order."""
        pass_start = self._clock()
        self._passes += 1

        try:
            entries = list(os.scandir(self.directory))
        except OSError as e:
            logger.warning("Failed to read directory %s: %s", self.directory, e)
            return []

        candidates = [p for p in sorted(self._unsettled) if os.path.exists(p)]
        self._unsettled.intersection_update(candidates)
        for entry in sorted(entries, key=lambda e: e.name):
            try:
                if not entry.is_file():
                    continue
                mtime = entry.stat().st_mtime
            except OSError as e:
                logger.debug("Skipping %s: %s", entry.path, e)
                continue
            if mtime > self._mark and entry.path not in self._unsettled:
                candidates.append(entry.path)

        reported = []
        if candidates:
            results = self._check_stability(candidates)
            for path, stable in results.items():
                if stable:
                    self._unsettled.discard(path)
                    self.on_stable(path)
                    reported.append(path)
                else:
                    self._unsettled.add(path)

        self._mark = pass_start
        return reported

    def _check_stability(self, paths: List[str]) -> Dict[str, bool]:
        workers = min(MAX_STABILITY_WORKERS, len(paths))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"{self.name}-stat") as pool:
            outcomes = pool.map(self.detector.is_stable, paths)
            return dict(zip(paths, outcomes))


class PollWatchSource:
    """Watch source backed by one DirectoryPoller thread per watched path.

    Example usage::

        source = PollWatchSource(QueueSink(events), StabilityDetector(3.0), period=15)
        source.add_watch("/data/incoming")
        ...
        source.close()
    """

    def __init__(self, sink: Callable[[str], None], detector: StabilityDetector,
                 period: float, include_existing: bool = False,
                 clock: Optional[Callable[[], float]] = None):
        self.sink = sink
        self.detector = detector
        self.period = period
        self.include_existing = include_existing
        self._clock = clock
        self._pollers: Dict[str, DirectoryPoller] = {}
        self._lock = threading.Lock()
        self._closed = False

    def add_watch(self, path: str) -> None:
        key = os.path.abspath(path)
        with self._lock:
            if self._closed:
                raise RuntimeError("Watch source is closed")
            if key in self._pollers:
                logger.debug("Already watching %s", key)
                return
            poller = DirectoryPoller(
                key, self.sink, self.detector, self.period,
                include_existing=self.include_existing, clock=self._clock,
            )
            self._pollers[key] = poller
        poller.start()

    def watched(self) -> List[str]:
        with self._lock:
            return list(self._pollers)

    def is_alive(self) -> bool:
        with self._lock:
            return any(p.is_alive() for p in self._pollers.values())

    def close(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            self._closed = True
            pollers = list(self._pollers.values())
        for poller in pollers:
            poller.stop()
        for poller in pollers:
            poller.join(timeout)
            if poller.is_alive():
                logger.warning("%s did not stop cleanly", poller.name)
